from django.test import TestCase, Client, RequestFactory
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.urls import reverse, resolve

from meeting.models import MeetingSeries
from team.services import create_team
from .context_processors import team_memberships
from .views import DashboardView, HomePageView

User = get_user_model()


class HomepageTests(TestCase):
    """Test cases for the home page"""

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            username='testuser',
            email='test@example.com',
            password='testpass123'
        )

    def test_homepage_url_resolves(self):
        self.assertEqual(resolve('/').func.view_class, HomePageView)

    def test_homepage_anonymous_redirects_to_login(self):
        response = self.client.get(reverse('home'))
        self.assertRedirects(response, reverse('auth'), fetch_redirect_response=False)

    def test_homepage_authenticated_redirects_to_dashboard(self):
        self.client.force_login(self.user)
        response = self.client.get(reverse('home'))
        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)


class DashboardTests(TestCase):
    """Test cases for the dashboard"""

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            username='testuser',
            email='test@example.com',
            password='testpass123'
        )
        self.team = create_team(self.user, 'Product Team', 'PT')
        self.series = MeetingSeries.objects.create(team=self.team, name='Weekly Tactical', frequency='weekly')

        other_owner = User.objects.create_user(username='other', email='other@example.com', password='testpass123')
        self.other_team = create_team(other_owner, 'Hidden Team')

    def test_dashboard_url_resolves(self):
        self.assertEqual(resolve('/dashboard/').func.view_class, DashboardView)

    def test_dashboard_requires_login(self):
        response = self.client.get(reverse('dashboard'))
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith(reverse('auth')))

    def test_dashboard_lists_own_teams_and_series(self):
        self.client.force_login(self.user)
        response = self.client.get(reverse('dashboard'))
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'pages/dashboard.html')
        self.assertContains(response, 'Product Team')
        self.assertContains(response, 'Weekly Tactical')
        self.assertNotContains(response, 'Hidden Team')
        self.assertContains(response, self.series.get_absolute_url())

    def test_dashboard_without_teams(self):
        loner = User.objects.create_user(username='loner', email='loner@example.com', password='testpass123')
        self.client.force_login(loner)
        response = self.client.get(reverse('dashboard'))
        self.assertFalse(response.context['has_teams'])


class TeamMembershipsContextProcessorTests(TestCase):
    """Test cases for the team_memberships context processor"""

    def setUp(self):
        self.factory = RequestFactory()
        self.user = User.objects.create_user(username='testuser', email='test@example.com', password='testpass123')
        self.team = create_team(self.user, 'Product Team')

    def test_anonymous_user(self):
        request = self.factory.get('/')
        request.user = AnonymousUser()
        context = team_memberships(request)
        self.assertEqual(context['user_team_memberships'], [])
        self.assertEqual(context['user_admin_team_ids'], [])

    def test_authenticated_user(self):
        request = self.factory.get('/')
        request.user = self.user
        context = team_memberships(request)
        self.assertEqual([m.team for m in context['user_team_memberships']], [self.team])
        self.assertEqual(context['user_admin_team_ids'], [self.team.pk])
