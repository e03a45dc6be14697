import json
from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase, Client
from django.urls import reverse

from team.models import TeamMember
from team.services import create_team
from .models import (
    ActionItem, AgendaItem, AgendaTemplate, AgendaTemplateItem, Comment, CompletionStatus,
    ItemKind, MeetingInstance, MeetingSeries, Priority, Topic,
)
from .services import resolve_current_instance

User = get_user_model()


class MeetingViewTestCase(TestCase):
    """Base test case: a team with an admin, a member, an outsider and a weekly series"""

    def setUp(self):
        self.client = Client()

        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123', first_name='Ada', last_name='Min',
        )
        self.member = User.objects.create_user(
            username='member', email='member@example.com', password='testpass123', first_name='Mia',
        )
        self.outsider = User.objects.create_user(
            username='outsider', email='outsider@example.com', password='testpass123',
        )

        self.team = create_team(self.admin, 'Product Team', 'PT')
        TeamMember.objects.create(team=self.team, user=self.member, role=TeamMember.Role.MEMBER)

        self.series = MeetingSeries.objects.create(
            team=self.team, name='Weekly Tactical', frequency='weekly', created_by=self.admin,
        )
        self.instance = MeetingInstance.objects.create(series=self.series, start_date=date(2025, 11, 17))

    def instance_url(self, name, **kwargs):
        kwargs.setdefault('team_id', self.team.pk)
        kwargs.setdefault('series_id', self.series.pk)
        kwargs.setdefault('instance_id', self.instance.pk)
        return reverse(f'meeting:{name}', kwargs=kwargs)


class SeriesAccessTests(MeetingViewTestCase):
    """Only team members reach the meeting pages"""

    def test_anonymous_user_is_redirected_to_login(self):
        url = reverse('meeting:series-current', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        response = self.client.get(url)
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith(reverse('auth')))

    def test_outsider_is_denied(self):
        self.client.force_login(self.outsider)
        url = reverse('meeting:series-current', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        self.assertEqual(self.client.get(url).status_code, 403)
        detail = reverse('meeting:instance-detail', kwargs={
            'team_id': self.team.pk, 'series_id': self.series.pk, 'pk': self.instance.pk,
        })
        self.assertEqual(self.client.get(detail).status_code, 403)

    def test_superuser_passes(self):
        superuser = User.objects.create_superuser(username='root', email='root@example.com', password='testpass123')
        self.client.force_login(superuser)
        response = self.client.get(self.instance.get_absolute_url())
        self.assertEqual(response.status_code, 200)

    def test_series_of_other_team_is_not_found(self):
        other_team = create_team(self.outsider, 'Other Team')
        other_series = MeetingSeries.objects.create(team=other_team, name='Theirs', frequency='weekly')
        self.client.force_login(self.member)
        url = reverse('meeting:series-current', kwargs={'team_id': self.team.pk, 'series_id': other_series.pk})
        self.assertEqual(self.client.get(url).status_code, 404)


class SeriesViewTests(MeetingViewTestCase):
    """Test cases for series creation, current instance and settings"""

    def test_series_current_redirects_to_instance(self):
        self.client.force_login(self.member)
        url = reverse('meeting:series-current', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        response = self.client.get(url)
        self.assertEqual(response.status_code, 302)
        current = self.series.instances.order_by('-start_date').first()
        self.assertEqual(response.url, current.get_absolute_url())

        # Visiting again does not create another instance
        count = self.series.instances.count()
        self.client.get(url)
        self.assertEqual(self.series.instances.count(), count)

    def test_instance_detail_renders_lists(self):
        AgendaItem.objects.create(series=self.series, title='Check-in')
        Priority.objects.create(instance=self.instance, title='Ship onboarding')
        Topic.objects.create(instance=self.instance, title='Hiring plan')
        ActionItem.objects.create(series=self.series, title='Send notes')
        self.client.force_login(self.member)

        response = self.client.get(self.instance.get_absolute_url())
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Week 47 (11/17 - 11/23)')
        self.assertContains(response, 'Check-in')
        self.assertContains(response, 'Ship onboarding')
        self.assertContains(response, 'Hiring plan')
        self.assertEqual(response.context['series'], self.series)

    def test_instance_detail_shows_previous_priorities(self):
        later = MeetingInstance.objects.create(series=self.series, start_date=date(2025, 11, 24))
        Priority.objects.create(instance=self.instance, title='Last week goal')
        self.client.force_login(self.member)

        response = self.client.get(later.get_absolute_url())
        self.assertEqual(response.context['previous_instance'], self.instance)
        self.assertEqual([p.title for p in response.context['previous_priorities']], ['Last week goal'])
        self.assertEqual(list(response.context['priorities']), [])

    def test_create_series(self):
        self.client.force_login(self.member)
        response = self.client.post(
            reverse('meeting:series-create', kwargs={'team_id': self.team.pk}),
            {'name': '  Monthly Review ', 'frequency': 'monthly'},
        )
        series = MeetingSeries.objects.get(name='Monthly Review')
        self.assertRedirects(response, series.get_absolute_url(), fetch_redirect_response=False)
        self.assertEqual(series.team, self.team)
        self.assertEqual(series.created_by, self.member)
        self.assertEqual(series.frequency, 'monthly')

    def test_create_series_with_blank_name(self):
        self.client.force_login(self.member)
        response = self.client.post(
            reverse('meeting:series-create', kwargs={'team_id': self.team.pk}),
            {'name': '   ', 'frequency': 'weekly'},
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context['form'].errors)
        self.assertEqual(MeetingSeries.objects.count(), 1)

    def test_create_series_with_unknown_frequency(self):
        self.client.force_login(self.member)
        response = self.client.post(
            reverse('meeting:series-create', kwargs={'team_id': self.team.pk}),
            {'name': 'Yearly', 'frequency': 'yearly'},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn('frequency', response.context['form'].errors)

    def test_create_next_meeting(self):
        self.client.force_login(self.member)
        response = self.client.post(reverse('meeting:series-next', kwargs={
            'team_id': self.team.pk, 'series_id': self.series.pk,
        }))
        latest = self.series.latest_instance()
        self.assertRedirects(response, latest.get_absolute_url(), fetch_redirect_response=False)
        self.assertGreater(latest.start_date, self.instance.start_date)

    def test_create_next_meeting_from_given_instance_is_idempotent(self):
        self.client.force_login(self.member)
        url = reverse('meeting:series-next', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        self.client.post(url, {'instance_id': self.instance.pk})
        self.client.post(url, {'instance_id': self.instance.pk})
        self.assertEqual(self.series.instances.filter(start_date=date(2025, 11, 24)).count(), 1)

    def test_create_next_meeting_with_invalid_instance_id(self):
        self.client.force_login(self.member)
        url = reverse('meeting:series-next', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        response = self.client.post(url, {'instance_id': 'abc'})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.series.instances.count(), 1)

    def test_create_next_meeting_requires_post(self):
        self.client.force_login(self.member)
        url = reverse('meeting:series-next', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        self.assertEqual(self.client.get(url).status_code, 405)

    def test_settings_change_frequency(self):
        self.client.force_login(self.member)
        url = reverse('meeting:series-settings', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        response = self.client.post(url, {'update': '1', 'name': 'Renamed', 'frequency': 'bi-weekly'})
        self.assertRedirects(response, url, fetch_redirect_response=False)
        self.series.refresh_from_db()
        self.assertEqual(self.series.name, 'Renamed')
        self.assertEqual(self.series.frequency, 'bi-weekly')
        self.instance.refresh_from_db()
        self.assertEqual(self.instance.frequency, 'weekly')

    def test_settings_apply_template(self):
        template = AgendaTemplate.objects.create(name='Built-in', is_system=True)
        AgendaTemplateItem.objects.create(template=template, title='Check-in', duration_minutes=5)
        self.client.force_login(self.member)
        url = reverse('meeting:series-settings', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        self.client.post(url, {'apply_template': '1', 'template': template.pk})
        self.assertEqual(list(self.series.agenda_items.values_list('title', 'time_minutes')), [('Check-in', 5)])

    def test_delete_series_requires_admin(self):
        url = reverse('meeting:series-delete', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        self.client.force_login(self.member)
        self.assertEqual(self.client.post(url).status_code, 403)

        self.client.force_login(self.admin)
        response = self.client.post(url)
        self.assertRedirects(response, reverse('team:team-detail', kwargs={'team_id': self.team.pk}), fetch_redirect_response=False)
        self.assertFalse(MeetingSeries.objects.filter(pk=self.series.pk).exists())

    def test_parking_lot(self):
        self.client.force_login(self.member)
        url = reverse('meeting:series-parking-lot', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        self.client.post(url, {'parking_lot': 'Revisit pricing'})
        self.series.refresh_from_db()
        self.assertEqual(self.series.parking_lot, 'Revisit pricing')

    def test_parking_lot_ignores_foreign_next(self):
        self.client.force_login(self.member)
        url = reverse('meeting:series-parking-lot', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk})
        response = self.client.post(url, {'parking_lot': 'Later', 'next': 'https://evil.example.com/'})
        self.assertRedirects(response, self.series.get_absolute_url(), fetch_redirect_response=False)


class ItemViewTests(MeetingViewTestCase):
    """Test cases for creating, editing, toggling and deleting meeting items"""

    def test_create_agenda_item(self):
        self.client.force_login(self.member)
        AgendaItem.objects.create(series=self.series, title='First', order_index=0)
        response = self.client.post(
            self.instance_url('item-create', kind=ItemKind.AGENDA_ITEM),
            {'title': 'Second', 'completion_status': 'not_completed', 'time_minutes': 10},
        )
        self.assertRedirects(response, self.instance.get_absolute_url(), fetch_redirect_response=False)
        item = AgendaItem.objects.get(title='Second')
        self.assertEqual(item.series, self.series)
        self.assertEqual(item.order_index, 1)
        self.assertEqual(item.created_by, self.member)

    def test_create_priority_belongs_to_instance(self):
        self.client.force_login(self.member)
        self.client.post(
            self.instance_url('item-create', kind=ItemKind.PRIORITY),
            {'title': 'Close Q4 deals', 'completion_status': 'pending', 'assigned_to': self.admin.pk},
        )
        priority = Priority.objects.get()
        self.assertEqual(priority.instance, self.instance)
        self.assertEqual(priority.assigned_to, self.admin)

    def test_assignee_must_be_team_member(self):
        self.client.force_login(self.member)
        self.client.post(
            self.instance_url('item-create', kind=ItemKind.TOPIC),
            {'title': 'Budget', 'completion_status': 'not_completed', 'assigned_to': self.outsider.pk},
        )
        self.assertFalse(Topic.objects.exists())

    def test_blank_title_creates_nothing(self):
        self.client.force_login(self.member)
        response = self.client.post(
            self.instance_url('item-create', kind=ItemKind.ACTION_ITEM),
            {'title': '   ', 'completion_status': 'not_completed'},
        )
        self.assertEqual(response.status_code, 302)
        self.assertFalse(ActionItem.objects.exists())

    def test_unknown_kind_is_not_found(self):
        self.client.force_login(self.member)
        response = self.client.post(self.instance_url('item-create', kind='meeting'), {'title': 'X'})
        self.assertEqual(response.status_code, 404)

    def test_toggle_action_item(self):
        item = ActionItem.objects.create(series=self.series, title='Send notes')
        self.client.force_login(self.member)
        url = self.instance_url('item-toggle', kind=ItemKind.ACTION_ITEM, pk=item.pk)

        self.client.post(url)
        item.refresh_from_db()
        self.assertEqual(item.completion_status, CompletionStatus.COMPLETED)
        self.assertIsNotNone(item.completed_at)

        self.client.post(url)
        item.refresh_from_db()
        self.assertEqual(item.completion_status, CompletionStatus.NOT_COMPLETED)
        self.assertIsNone(item.completed_at)

    def test_update_topic(self):
        topic = Topic.objects.create(instance=self.instance, title='Budget')
        self.client.force_login(self.member)
        url = self.instance_url('item-update', kind=ItemKind.TOPIC, pk=topic.pk)
        self.assertEqual(self.client.get(url).status_code, 200)
        response = self.client.post(url, {'title': 'Budget 2026', 'notes': '<p>Draft</p>', 'completion_status': 'not_completed'})
        self.assertRedirects(response, self.instance.get_absolute_url(), fetch_redirect_response=False)
        topic.refresh_from_db()
        self.assertEqual(topic.title, 'Budget 2026')

    def test_item_of_other_instance_is_not_found(self):
        other = MeetingInstance.objects.create(series=self.series, start_date=date(2025, 11, 24))
        topic = Topic.objects.create(instance=other, title='Elsewhere')
        self.client.force_login(self.member)
        response = self.client.post(self.instance_url('item-delete', kind=ItemKind.TOPIC, pk=topic.pk))
        self.assertEqual(response.status_code, 404)
        self.assertTrue(Topic.objects.filter(pk=topic.pk).exists())

    def test_delete_item_removes_comments(self):
        item = AgendaItem.objects.create(series=self.series, title='Check-in')
        Comment.objects.create(item_type=ItemKind.AGENDA_ITEM, item_id=item.pk, created_by=self.member, content='Hi')
        self.client.force_login(self.member)
        self.client.post(self.instance_url('item-delete', kind=ItemKind.AGENDA_ITEM, pk=item.pk))
        self.assertFalse(AgendaItem.objects.exists())
        self.assertFalse(Comment.objects.exists())


class ReorderViewTests(MeetingViewTestCase):
    """Test cases for the JSON reorder endpoint"""

    def setUp(self):
        super().setUp()
        self.first = AgendaItem.objects.create(series=self.series, title='A', order_index=0)
        self.second = AgendaItem.objects.create(series=self.series, title='B', order_index=1)
        self.url = self.instance_url('item-reorder', kind=ItemKind.AGENDA_ITEM)

    def post_order(self, ids):
        return self.client.post(self.url, data=json.dumps({'order': ids}), content_type='application/json')

    def test_reorder(self):
        self.client.force_login(self.member)
        response = self.post_order([self.second.pk, self.first.pk])
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['success'], True)
        self.assertEqual(list(self.series.agenda_items.values_list('title', flat=True)), ['B', 'A'])

    def test_reorder_with_foreign_id(self):
        self.client.force_login(self.member)
        response = self.post_order([self.second.pk, 999999])
        self.assertEqual(response.status_code, 400)
        self.assertIn('error', response.json())

    def test_reorder_with_invalid_json(self):
        self.client.force_login(self.member)
        response = self.client.post(self.url, data='not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_reorder_outsider(self):
        self.client.force_login(self.outsider)
        response = self.post_order([self.second.pk, self.first.pk])
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), {'error': 'Permission denied'})


class CommentViewTests(MeetingViewTestCase):
    """Test cases for the JSON comment endpoints"""

    def setUp(self):
        super().setUp()
        self.topic = Topic.objects.create(instance=self.instance, title='Hiring')
        self.url = reverse('meeting:item-comments', kwargs={
            'team_id': self.team.pk, 'series_id': self.series.pk, 'kind': ItemKind.TOPIC, 'item_id': self.topic.pk,
        })

    def test_add_and_list_comments(self):
        self.client.force_login(self.member)
        response = self.client.post(self.url, data=json.dumps({'content': 'Two roles open'}), content_type='application/json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['comment']['author'], 'Mia')

        response = self.client.get(self.url)
        self.assertEqual([c['content'] for c in response.json()['comments']], ['Two roles open'])

    def test_blank_comment(self):
        self.client.force_login(self.member)
        response = self.client.post(self.url, {'content': '   '})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Comment.objects.exists())

    def test_comment_body_must_be_object(self):
        self.client.force_login(self.member)
        response = self.client.post(self.url, data=json.dumps(['Two roles open']), content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Comment.objects.exists())

    def test_only_author_deletes_comment(self):
        comment = Comment.objects.create(item_type=ItemKind.TOPIC, item_id=self.topic.pk, created_by=self.member, content='Mine')
        url = reverse('meeting:comment-delete', kwargs={'team_id': self.team.pk, 'series_id': self.series.pk, 'pk': comment.pk})

        self.client.force_login(self.admin)
        self.assertEqual(self.client.post(url).status_code, 403)

        self.client.force_login(self.member)
        self.assertEqual(self.client.post(url).status_code, 200)
        self.assertFalse(Comment.objects.exists())

    def test_outsider_cannot_read_comments(self):
        self.client.force_login(self.outsider)
        self.assertEqual(self.client.get(self.url).status_code, 403)


class AgendaTemplateViewTests(TestCase):
    """Test cases for agenda template pages"""

    def setUp(self):
        self.client = Client()
        self.owner = User.objects.create_user(username='owner', email='owner@example.com', password='testpass123')
        self.other = User.objects.create_user(username='other', email='other@example.com', password='testpass123')
        self.template = AgendaTemplate.objects.create(name='Tactical', created_by=self.owner)
        self.system = AgendaTemplate.objects.create(name='Built-in', is_system=True)

    def test_list_shows_own_and_system_templates(self):
        self.client.force_login(self.other)
        response = self.client.get(reverse('agenda_templates:template-list'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(set(response.context['templates']), {self.system})

    def test_create_template(self):
        self.client.force_login(self.owner)
        response = self.client.post(reverse('agenda_templates:template-create'), {'name': 'Retro', 'description': ''})
        template = AgendaTemplate.objects.get(name='Retro')
        self.assertRedirects(response, reverse('agenda_templates:template-detail', kwargs={'pk': template.pk}), fetch_redirect_response=False)
        self.assertEqual(template.created_by, self.owner)
        self.assertFalse(template.is_system)

    def test_create_template_with_blank_name(self):
        self.client.force_login(self.owner)
        response = self.client.post(reverse('agenda_templates:template-create'), {'name': '  '})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(AgendaTemplate.objects.filter(created_by=self.owner).exclude(pk=self.template.pk).exists())

    def test_add_items_in_order(self):
        self.client.force_login(self.owner)
        url = reverse('agenda_templates:template-item-create', kwargs={'pk': self.template.pk})
        self.client.post(url, {'title': 'Check-in', 'duration_minutes': 0})
        self.client.post(url, {'title': 'Metrics', 'duration_minutes': 10})
        items = list(self.template.items.values_list('title', 'order_index'))
        self.assertEqual(items, [('Check-in', 0), ('Metrics', 1)])

    def test_other_user_cannot_edit(self):
        self.client.force_login(self.other)
        self.assertEqual(self.client.get(reverse('agenda_templates:template-update', kwargs={'pk': self.template.pk})).status_code, 404)
        self.client.post(reverse('agenda_templates:template-item-create', kwargs={'pk': self.system.pk}), {'title': 'X', 'duration_minutes': 1})
        self.assertFalse(self.system.items.exists())

    def test_system_template_is_read_only(self):
        self.client.force_login(self.owner)
        response = self.client.get(reverse('agenda_templates:template-update', kwargs={'pk': self.system.pk}))
        self.assertEqual(response.status_code, 403)

    def test_delete_own_template(self):
        self.client.force_login(self.owner)
        response = self.client.post(reverse('agenda_templates:template-delete', kwargs={'pk': self.template.pk}))
        self.assertRedirects(response, reverse('agenda_templates:template-list'), fetch_redirect_response=False)
        self.assertFalse(AgendaTemplate.objects.filter(pk=self.template.pk).exists())


class MeetingFilterTests(TestCase):
    """Test cases for the meeting template filters"""

    def test_meeting_filters(self):
        from .templatetags.meeting_extras import minutes, sanitize_richtext
        self.assertEqual(minutes(75), '1h 15m')
        self.assertEqual(minutes(60), '1h')
        self.assertEqual(minutes(5), '5m')
        self.assertEqual(minutes(None), '')
        cleaned = sanitize_richtext('<p>ok</p><script>x()</script>')
        self.assertIn('<p>ok</p>', cleaned)
        self.assertNotIn('<script>', cleaned)

    def test_resolve_from_view_matches_service(self):
        user = User.objects.create_user(username='solo', email='solo@example.com', password='testpass123')
        team = create_team(user, 'Solo')
        series = MeetingSeries.objects.create(team=team, name='Daily', frequency='daily')
        instance, _ = resolve_current_instance(series)
        self.client.force_login(user)
        response = self.client.get(series.get_absolute_url())
        self.assertRedirects(response, instance.get_absolute_url(), fetch_redirect_response=False)
