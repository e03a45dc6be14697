from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.exceptions import ValidationError
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone

from .forms import TeamForm
from .models import Team, TeamMember, Invitation
from .services import create_team, join_team_by_code, parse_invite_emails, send_invitations

User = get_user_model()


class TeamTestCase(TestCase):
    """Base test case with a team admin, a member and an outsider"""

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123', first_name='Ada', last_name='Min',
        )
        self.member = User.objects.create_user(username='member', email='member@example.com', password='testpass123')
        self.outsider = User.objects.create_user(username='outsider', email='outsider@example.com', password='testpass123')
        self.team = create_team(self.admin, 'Product Team', 'PT')
        self.membership = TeamMember.objects.create(team=self.team, user=self.member)


class TeamModelTests(TeamTestCase):
    """Test cases for Team and TeamMember"""

    def test_creator_is_admin(self):
        self.assertTrue(self.team.is_admin(self.admin))
        self.assertFalse(self.team.is_admin(self.member))
        self.assertEqual(self.team.created_by, self.admin)
        self.assertEqual(self.team.member_count, 2)

    def test_invite_code_is_generated(self):
        self.assertTrue(self.team.invite_code)
        self.assertEqual(self.team.get_invite_path(), reverse('join-team', kwargs={'invite_code': self.team.invite_code}))

    def test_regenerate_invite_code(self):
        old_code = self.team.invite_code
        self.team.regenerate_invite_code()
        self.team.refresh_from_db()
        self.assertNotEqual(self.team.invite_code, old_code)

    def test_blank_team_name_is_rejected(self):
        for name in ['', '   ']:
            with self.subTest(name=name):
                with self.assertRaises(ValidationError):
                    create_team(self.admin, name)
        self.assertEqual(Team.objects.count(), 1)
        self.assertEqual(TeamMember.objects.count(), 2)

    def test_team_name_is_stripped(self):
        team = create_team(self.admin, '  Ops  ', ' OP ')
        self.assertEqual(team.name, 'Ops')
        self.assertEqual(team.abbreviated_name, 'OP')

    def test_abbreviated_name_max_length(self):
        with self.assertRaises(ValidationError):
            create_team(self.admin, 'Engineering', 'ENGINEERING')

    def test_duplicate_team_names_are_allowed(self):
        create_team(self.outsider, 'Product Team')
        self.assertEqual(Team.objects.filter(name='Product Team').count(), 2)

    def test_membership_is_unique(self):
        from django.db import IntegrityError, transaction
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                TeamMember.objects.create(team=self.team, user=self.member)

    def test_team_form_rejects_blank_name(self):
        form = TeamForm(data={'name': '   ', 'abbreviated_name': ''})
        self.assertFalse(form.is_valid())
        self.assertIn('name', form.errors)


class InvitationServiceTests(TeamTestCase):
    """Test cases for invite parsing, sending and joining"""

    def test_parse_invite_emails(self):
        raw = "New@Example.com, member@example.com;\nnot-an-email\n\nother@example.com, new@example.com"
        self.assertEqual(parse_invite_emails(raw, self.team), ['new@example.com', 'other@example.com'])

    def test_parse_skips_pending_invitations(self):
        Invitation.objects.create(team=self.team, email='pending@example.com', invited_by=self.admin)
        self.assertEqual(parse_invite_emails('pending@example.com, fresh@example.com', self.team), ['fresh@example.com'])

    def test_parse_keeps_expired_invitations(self):
        Invitation.objects.create(
            team=self.team, email='late@example.com', invited_by=self.admin,
            expires_at=timezone.now() - timedelta(days=1),
        )
        self.assertEqual(parse_invite_emails('late@example.com', self.team), ['late@example.com'])

    def test_invitation_expires_after_seven_days(self):
        invitation = Invitation.objects.create(team=self.team, email='Someone@Example.com', invited_by=self.admin)
        self.assertEqual(invitation.email, 'someone@example.com')
        delta = invitation.expires_at - timezone.now()
        self.assertTrue(timedelta(days=6, hours=23) < delta <= timedelta(days=7))
        self.assertTrue(invitation.is_pending)

    def test_send_invitations(self):
        link = 'http://testserver' + self.team.get_invite_path()
        invitations = send_invitations(self.team, ['a@example.com', 'b@example.com'], self.admin, link)
        self.assertEqual(len(invitations), 2)
        self.assertEqual(len(mail.outbox), 2)
        self.assertIn(link, mail.outbox[0].body)
        self.assertIn('Ada M.', mail.outbox[0].body)
        self.assertEqual(mail.outbox[0].to, ['a@example.com'])

    def test_failed_send_keeps_address_invitable(self):
        with patch('team.services.send_mail', side_effect=OSError('smtp down')):
            with self.assertRaises(OSError):
                send_invitations(self.team, ['x@example.com'], self.admin, 'http://testserver/join/x/')
        self.assertFalse(Invitation.objects.filter(email='x@example.com').exists())
        self.assertEqual(parse_invite_emails('x@example.com', self.team), ['x@example.com'])

    def test_failed_send_keeps_earlier_invitations(self):
        with patch('team.services.send_mail', side_effect=[1, OSError('smtp down')]):
            with self.assertRaises(OSError):
                send_invitations(self.team, ['a@example.com', 'b@example.com'], self.admin, 'http://testserver/join/x/')
        self.assertEqual(list(Invitation.objects.values_list('email', flat=True)), ['a@example.com'])

    def test_join_by_code(self):
        Invitation.objects.create(team=self.team, email='outsider@example.com', invited_by=self.admin)
        team, created = join_team_by_code(self.outsider, self.team.invite_code)
        self.assertTrue(created)
        self.assertEqual(team, self.team)
        membership = TeamMember.objects.get(team=self.team, user=self.outsider)
        self.assertEqual(membership.role, TeamMember.Role.MEMBER)
        self.assertEqual(Invitation.objects.get(email='outsider@example.com').status, Invitation.Status.ACCEPTED)

    def test_join_twice(self):
        team, created = join_team_by_code(self.member, self.team.invite_code)
        self.assertFalse(created)
        self.assertEqual(TeamMember.objects.filter(team=self.team, user=self.member).count(), 1)

    def test_join_with_unknown_code(self):
        with self.assertRaises(Team.DoesNotExist):
            join_team_by_code(self.outsider, 'does-not-exist')


class TeamViewTests(TeamTestCase):
    """Test cases for team pages"""

    def test_create_team_view(self):
        self.client.force_login(self.outsider)
        response = self.client.post(reverse('create-team'), {'name': 'Sales', 'abbreviated_name': 'SLS'})
        team = Team.objects.get(name='Sales')
        self.assertRedirects(response, reverse('team:team-detail', kwargs={'team_id': team.pk}), fetch_redirect_response=False)
        self.assertTrue(team.is_admin(self.outsider))

    def test_create_team_requires_login(self):
        response = self.client.get(reverse('create-team'))
        self.assertEqual(response.status_code, 302)

    def test_team_detail_member_access(self):
        self.client.force_login(self.member)
        response = self.client.get(reverse('team:team-detail', kwargs={'team_id': self.team.pk}))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Product Team')

    def test_team_detail_outsider_denied(self):
        self.client.force_login(self.outsider)
        response = self.client.get(reverse('team:team-detail', kwargs={'team_id': self.team.pk}))
        self.assertEqual(response.status_code, 403)

    def test_invite_page_admin_only(self):
        url = reverse('team:team-invite', kwargs={'team_id': self.team.pk})
        self.client.force_login(self.member)
        self.assertEqual(self.client.get(url).status_code, 403)
        self.client.force_login(self.admin)
        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertIn(self.team.invite_code, response.context['invite_link'])

    def test_rename_team(self):
        self.client.force_login(self.admin)
        url = reverse('team:team-invite', kwargs={'team_id': self.team.pk})
        self.client.post(url, {'rename': '1', 'name': 'Platform Team', 'abbreviated_name': 'PLT'})
        self.team.refresh_from_db()
        self.assertEqual(self.team.name, 'Platform Team')

    def test_rename_team_blank(self):
        self.client.force_login(self.admin)
        url = reverse('team:team-invite', kwargs={'team_id': self.team.pk})
        response = self.client.post(url, {'rename': '1', 'name': '  ', 'abbreviated_name': ''})
        self.assertEqual(response.status_code, 200)
        self.team.refresh_from_db()
        self.assertEqual(self.team.name, 'Product Team')

    def test_invite_members_view(self):
        self.client.force_login(self.admin)
        url = reverse('team:team-invite', kwargs={'team_id': self.team.pk})
        response = self.client.post(url, {'invite': '1', 'emails': 'x@example.com; y@example.com'})
        self.assertRedirects(response, url, fetch_redirect_response=False)
        self.assertEqual(Invitation.objects.filter(team=self.team).count(), 2)
        self.assertEqual(len(mail.outbox), 2)

    def test_invite_only_existing_members(self):
        self.client.force_login(self.admin)
        url = reverse('team:team-invite', kwargs={'team_id': self.team.pk})
        response = self.client.post(url, {'invite': '1', 'emails': 'member@example.com'})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Invitation.objects.exists())

    def test_invite_send_failure_can_be_retried(self):
        self.client.force_login(self.admin)
        url = reverse('team:team-invite', kwargs={'team_id': self.team.pk})
        with patch('team.services.send_mail', side_effect=OSError('smtp down')):
            response = self.client.post(url, {'invite': '1', 'emails': 'x@example.com'})
        self.assertRedirects(response, url, fetch_redirect_response=False)
        self.assertFalse(Invitation.objects.exists())

        response = self.client.post(url, {'invite': '1', 'emails': 'x@example.com'})
        self.assertRedirects(response, url, fetch_redirect_response=False)
        self.assertEqual(Invitation.objects.get().email, 'x@example.com')
        self.assertEqual(len(mail.outbox), 1)

    def test_revoke_invitation(self):
        invitation = Invitation.objects.create(team=self.team, email='x@example.com', invited_by=self.admin)
        self.client.force_login(self.admin)
        self.client.post(reverse('team:invitation-revoke', kwargs={'team_id': self.team.pk, 'pk': invitation.pk}))
        invitation.refresh_from_db()
        self.assertEqual(invitation.status, Invitation.Status.REVOKED)

    def test_join_view(self):
        self.client.force_login(self.outsider)
        response = self.client.get(reverse('join-team', kwargs={'invite_code': self.team.invite_code}))
        self.assertRedirects(response, reverse('team:team-detail', kwargs={'team_id': self.team.pk}), fetch_redirect_response=False)
        self.assertTrue(self.team.is_member(self.outsider))

    def test_join_view_invalid_code(self):
        self.client.force_login(self.outsider)
        response = self.client.get(reverse('join-team', kwargs={'invite_code': 'nope'}))
        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)

    def test_join_view_anonymous_stores_code(self):
        response = self.client.get(reverse('join-team', kwargs={'invite_code': self.team.invite_code}))
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith(reverse('auth')))
        self.assertEqual(self.client.session['pending_invite_code'], self.team.invite_code)

    def test_member_role_management(self):
        self.client.force_login(self.admin)
        self.client.post(reverse('team:member-set-admin', kwargs={'team_id': self.team.pk, 'pk': self.membership.pk}))
        self.membership.refresh_from_db()
        self.assertTrue(self.membership.is_admin)

        self.client.post(reverse('team:member-remove-admin', kwargs={'team_id': self.team.pk, 'pk': self.membership.pk}))
        self.membership.refresh_from_db()
        self.assertFalse(self.membership.is_admin)

    def test_last_admin_cannot_be_demoted(self):
        admin_membership = TeamMember.objects.get(team=self.team, user=self.admin)
        self.client.force_login(self.admin)
        self.client.post(reverse('team:member-remove-admin', kwargs={'team_id': self.team.pk, 'pk': admin_membership.pk}))
        admin_membership.refresh_from_db()
        self.assertTrue(admin_membership.is_admin)

    def test_remove_member(self):
        self.client.force_login(self.admin)
        self.client.post(reverse('team:member-remove', kwargs={'team_id': self.team.pk, 'pk': self.membership.pk}))
        self.assertFalse(self.team.is_member(self.member))

    def test_member_cannot_manage_roles(self):
        self.client.force_login(self.member)
        response = self.client.post(reverse('team:member-set-admin', kwargs={'team_id': self.team.pk, 'pk': self.membership.pk}))
        self.assertEqual(response.status_code, 403)

    def test_delete_team(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('team:team-delete', kwargs={'team_id': self.team.pk}))
        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)
        self.assertFalse(Team.objects.filter(pk=self.team.pk).exists())
