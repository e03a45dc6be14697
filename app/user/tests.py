from allauth.account.models import EmailAddress
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase, Client, RequestFactory, override_settings
from django.urls import reverse

from team.services import create_team
from .adapters import CustomAccountAdapter
from .forms import UserSettingsForm

User = get_user_model()


class CustomUserTests(TestCase):
    def test_create_user(self):
        user = User.objects.create_user(
            username="will", email="will@email.com", password="testpass123"
        )
        self.assertEqual(user.username, "will")
        self.assertEqual(user.email, "will@email.com")
        self.assertTrue(user.is_active)
        self.assertFalse(user.is_staff)
        self.assertFalse(user.is_superuser)

    def test_create_superuser(self):
        admin_user = User.objects.create_superuser(
            username="superadmin", email="superadmin@email.com", password="testpass123"
        )
        self.assertTrue(admin_user.is_staff)
        self.assertTrue(admin_user.is_superuser)

    def test_display_name(self):
        """Test the short name shown next to assigned items"""
        self.assertEqual(User(first_name='Jane', last_name='Smith', email='jane@example.com').display_name, 'Jane S.')
        self.assertEqual(User(first_name='Jane', email='jane@example.com').display_name, 'Jane')
        self.assertEqual(User(full_name='Jane Smith', email='jane@example.com').display_name, 'Jane Smith')
        self.assertEqual(User(email='jane.smith@example.com').display_name, 'jane.smith')
        self.assertEqual(User().display_name, 'Unknown')

    def test_team_ids(self):
        user = User.objects.create_user(username="will", email="will@email.com", password="testpass123")
        team = create_team(user, 'Team')
        self.assertEqual(user.team_ids(), [team.pk])


class LoginViewTests(TestCase):
    """Test cases for the email login page"""

    def setUp(self):
        cache.clear()
        self.client = Client()
        self.user = User.objects.create_user(username='jane', email='jane@example.com', password='testpass123')

    def test_login_page_renders(self):
        response = self.client.get(reverse('auth'))
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'user/login.html')

    def test_login_with_email(self):
        response = self.client.post(reverse('auth'), {'login': 'jane@example.com', 'password': 'testpass123'})
        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)
        self.assertEqual(int(self.client.session['_auth_user_id']), self.user.pk)

    def test_login_with_wrong_password(self):
        response = self.client.post(reverse('auth'), {'login': 'jane@example.com', 'password': 'wrong'})
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('_auth_user_id', self.client.session)

    def test_login_continues_pending_invite(self):
        team = create_team(User.objects.create_user(username='owner', email='owner@example.com', password='x'), 'Team')
        self.client.get(reverse('auth'), {'invite': team.invite_code})
        response = self.client.post(reverse('auth'), {'login': 'jane@example.com', 'password': 'testpass123'})
        self.assertRedirects(response, reverse('join-team', kwargs={'invite_code': team.invite_code}), fetch_redirect_response=False)

    def test_login_ignores_foreign_next(self):
        response = self.client.post(reverse('auth'), {
            'login': 'jane@example.com', 'password': 'testpass123', 'next': 'https://evil.example.com/',
        })
        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)

    def test_authenticated_user_is_redirected(self):
        self.client.force_login(self.user)
        response = self.client.get(reverse('auth'))
        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)

    def test_reset_password_redirects_to_allauth(self):
        response = self.client.get(reverse('reset-password'))
        self.assertRedirects(response, reverse('account_reset_password'), fetch_redirect_response=False)

    @override_settings(ACCOUNT_EMAIL_VERIFICATION='mandatory')
    def test_unverified_email_cannot_log_in(self):
        EmailAddress.objects.create(user=self.user, email='jane@example.com', primary=True, verified=False)
        response = self.client.post(reverse('auth'), {'login': 'jane@example.com', 'password': 'testpass123'})
        self.assertRedirects(response, reverse('account_email_verification_sent'), fetch_redirect_response=False)
        self.assertNotIn('_auth_user_id', self.client.session)

    @override_settings(ACCOUNT_EMAIL_VERIFICATION='mandatory')
    def test_verified_email_logs_in(self):
        EmailAddress.objects.create(user=self.user, email='jane@example.com', primary=True, verified=True)
        response = self.client.post(reverse('auth'), {'login': 'jane@example.com', 'password': 'testpass123'})
        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)
        self.assertEqual(int(self.client.session['_auth_user_id']), self.user.pk)

    @override_settings(ACCOUNT_RATE_LIMITS={'login_failed': '5/5m/ip,5/5m/key'})
    def test_repeated_failed_logins_lock_out(self):
        for _ in range(10):
            self.client.post(reverse('auth'), {'login': 'jane@example.com', 'password': 'wrong'})
        response = self.client.post(reverse('auth'), {'login': 'jane@example.com', 'password': 'testpass123'})
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('_auth_user_id', self.client.session)


class SettingsViewTests(TestCase):
    """Test cases for profile settings"""

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(username='jane', email='jane@example.com', password='testpass123')
        self.other = User.objects.create_user(username='john', email='john@example.com', password='testpass123')

    def test_settings_requires_login(self):
        response = self.client.get(reverse('user-settings'))
        self.assertEqual(response.status_code, 302)

    def test_update_profile(self):
        self.client.force_login(self.user)
        response = self.client.post(reverse('user-settings'), {
            'first_name': 'Jane', 'last_name': 'Smith', 'full_name': 'Jane Smith',
            'email': 'Jane.Smith@Example.com', 'avatar_name': 'fox',
        })
        self.assertRedirects(response, reverse('user-settings'), fetch_redirect_response=False)
        self.user.refresh_from_db()
        self.assertEqual(self.user.display_name, 'Jane S.')
        self.assertEqual(self.user.email, 'jane.smith@example.com')
        self.assertEqual(self.user.avatar_name, 'fox')

    def test_email_must_be_unique(self):
        form = UserSettingsForm(data={'email': 'JOHN@example.com'}, instance=self.user)
        self.assertFalse(form.is_valid())
        self.assertIn('email', form.errors)

    def test_delete_account(self):
        self.client.force_login(self.user)
        response = self.client.post(reverse('user-delete'))
        self.assertRedirects(response, reverse('auth'), fetch_redirect_response=False)
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())


class AccountAdapterTests(TestCase):
    """Test cases for the allauth account adapter"""

    def setUp(self):
        self.factory = RequestFactory()
        self.adapter = CustomAccountAdapter()

    def test_clean_email_lowercases(self):
        self.assertEqual(self.adapter.clean_email('Jane@Example.COM'), 'jane@example.com')

    def test_login_redirect_continues_invite(self):
        request = self.factory.get('/')
        request.session = {'pending_invite_code': 'abc123'}
        self.assertEqual(self.adapter.get_login_redirect_url(request), reverse('join-team', args=['abc123']))
        self.assertNotIn('pending_invite_code', request.session)
