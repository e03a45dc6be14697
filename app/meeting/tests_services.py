import datetime
from datetime import date

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from team.services import create_team
from .models import (
    ActionItem, AgendaItem, AgendaTemplate, AgendaTemplateItem, Comment, CompletionStatus,
    ItemKind, MeetingInstance, MeetingSeries, Priority, Topic,
)
from .periods import UnknownFrequencyError, period_end
from .services import (
    CARRY_OVER, NOT_CARRIED, SHARED, action_items_for_instance, agenda_items_for_instance,
    apply_template, find_current_instance, get_or_create_instance, item_scope,
    materialize_next_instance, next_instance, next_order_index, previous_instance,
    reorder_items, resolve_current_instance,
)

User = get_user_model()


def at_noon(day):
    return datetime.datetime(day.year, day.month, day.day, 12, 0, tzinfo=datetime.timezone.utc)


class MeetingTestCase(TestCase):
    """Common fixture: one team with an admin and a weekly series"""

    def setUp(self):
        self.user = User.objects.create_user(
            username='alex',
            email='alex@example.com',
            password='testpass123',
            first_name='Alex',
            last_name='Doe',
        )
        self.team = create_team(self.user, 'Product Team', 'PT')
        self.series = MeetingSeries.objects.create(
            team=self.team,
            name='Weekly Tactical',
            frequency='weekly',
            created_by=self.user,
        )


class FindCurrentInstanceTests(SimpleTestCase):
    """Selection over in-memory instances, no database involved"""

    def make(self, start, frequency='weekly'):
        return MeetingInstance(start_date=start, end_date=period_end(frequency, start), frequency=frequency)

    def test_returns_instance_covering_today(self):
        instance = self.make(date(2025, 11, 17))
        self.assertIs(find_current_instance('weekly', [instance], date(2025, 11, 21)), instance)

    def test_returns_none_without_match(self):
        instance = self.make(date(2025, 11, 10))
        self.assertIsNone(find_current_instance('weekly', [instance], date(2025, 11, 21)))

    def test_prefers_most_recent_covering_instance(self):
        older = self.make(date(2025, 11, 1), 'monthly')
        newer = self.make(date(2025, 11, 17))
        self.assertIs(find_current_instance('weekly', [older, newer], date(2025, 11, 20)), newer)

    def test_non_canonical_start_covering_today(self):
        instance = self.make(date(2025, 11, 19))
        self.assertIs(find_current_instance('weekly', [instance], date(2025, 11, 24)), instance)


class ResolveCurrentInstanceTests(MeetingTestCase):
    """Test cases for resolve_current_instance"""

    def test_creates_instance_for_current_period(self):
        instance, created = resolve_current_instance(self.series, date(2025, 11, 19))
        self.assertTrue(created)
        self.assertEqual(instance.start_date, date(2025, 11, 17))
        self.assertEqual(instance.end_date, date(2025, 11, 23))
        self.assertEqual(instance.frequency, 'weekly')

    def test_is_idempotent(self):
        first, _ = resolve_current_instance(self.series, date(2025, 11, 19))
        second, created = resolve_current_instance(self.series, date(2025, 11, 23))
        self.assertFalse(created)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(self.series.instances.count(), 1)

    def test_new_period_creates_new_instance(self):
        resolve_current_instance(self.series, date(2025, 11, 19))
        instance, created = resolve_current_instance(self.series, date(2025, 11, 24))
        self.assertTrue(created)
        self.assertEqual(instance.start_date, date(2025, 11, 24))
        self.assertEqual(self.series.instances.count(), 2)

    def test_defaults_to_today(self):
        instance, _ = resolve_current_instance(self.series)
        self.assertTrue(instance.contains(timezone.localdate()))

    def test_get_or_create_instance_is_idempotent(self):
        first, created = get_or_create_instance(self.series, date(2025, 11, 17))
        second, created_again = get_or_create_instance(self.series, date(2025, 11, 17))
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.pk, second.pk)

    def test_duplicate_start_date_is_rejected_by_database(self):
        MeetingInstance.objects.create(series=self.series, start_date=date(2025, 11, 17))
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                MeetingInstance.objects.create(series=self.series, start_date=date(2025, 11, 17))

    def test_frequency_change_keeps_existing_instances(self):
        """Test that instances keep the cadence they were created with"""
        weekly, _ = resolve_current_instance(self.series, date(2025, 11, 19))
        self.series.frequency = 'monthly'
        self.series.save()

        weekly.refresh_from_db()
        self.assertEqual(weekly.frequency, 'weekly')
        self.assertEqual(weekly.label, "Week 47 (11/17 - 11/23)")

        # Still inside the weekly instance
        same, created = resolve_current_instance(self.series, date(2025, 11, 20))
        self.assertFalse(created)
        self.assertEqual(same.pk, weekly.pk)

        # Next month uses the new cadence
        monthly, created = resolve_current_instance(self.series, date(2025, 12, 3))
        self.assertTrue(created)
        self.assertEqual(monthly.start_date, date(2025, 12, 1))
        self.assertEqual(monthly.end_date, date(2025, 12, 31))
        self.assertEqual(monthly.frequency, 'monthly')


class CarryOverTests(MeetingTestCase):
    """Test cases for materialize_next_instance"""

    def setUp(self):
        super().setUp()
        self.instance, _ = resolve_current_instance(self.series, date(2025, 11, 19))
        AgendaItem.objects.create(series=self.series, title='Check-in', order_index=0)
        AgendaItem.objects.create(series=self.series, title='Metrics', order_index=1)
        Priority.objects.create(instance=self.instance, title='Ship onboarding')
        Topic.objects.create(instance=self.instance, title='Hiring plan')

    def test_carry_over_contract(self):
        self.assertEqual(CARRY_OVER[ItemKind.AGENDA_ITEM], SHARED)
        self.assertEqual(CARRY_OVER[ItemKind.ACTION_ITEM], SHARED)
        self.assertEqual(CARRY_OVER[ItemKind.PRIORITY], NOT_CARRIED)
        self.assertEqual(CARRY_OVER[ItemKind.TOPIC], NOT_CARRIED)
        self.assertEqual(set(CARRY_OVER), set(ItemKind))

    def test_next_instance_starts_one_period_later(self):
        new_instance, created = materialize_next_instance(self.series)
        self.assertTrue(created)
        self.assertEqual(new_instance.start_date, date(2025, 11, 24))
        self.assertEqual(new_instance.end_date, date(2025, 11, 30))

    def test_agenda_is_shared_and_instance_items_start_empty(self):
        new_instance, _ = materialize_next_instance(self.series)

        self.assertEqual(
            [item.title for item in agenda_items_for_instance(new_instance)],
            ['Check-in', 'Metrics'],
        )
        self.assertFalse(new_instance.priorities.exists())
        self.assertFalse(new_instance.topics.exists())
        # Nothing was copied
        self.assertEqual(AgendaItem.objects.count(), 2)
        self.assertEqual(Priority.objects.count(), 1)
        self.assertEqual(Topic.objects.count(), 1)
        # The previous instance keeps its own items
        self.assertEqual(self.instance.priorities.count(), 1)
        self.assertEqual(self.instance.topics.count(), 1)

    def test_is_idempotent_for_explicit_previous_instance(self):
        first, created = materialize_next_instance(self.series, self.instance)
        second, created_again = materialize_next_instance(self.series, self.instance)
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.pk, second.pk)

    def test_defaults_to_latest_instance(self):
        second, _ = materialize_next_instance(self.series)
        third, _ = materialize_next_instance(self.series)
        self.assertEqual(third.start_date, date(2025, 12, 1))
        self.assertEqual(previous_instance(third), second)
        self.assertEqual(next_instance(self.instance), second)
        self.assertIsNone(previous_instance(self.instance))

    def test_monthly_next_instance_clamps_month_end(self):
        series = MeetingSeries.objects.create(team=self.team, name='Monthly Review', frequency='monthly')
        january = MeetingInstance.objects.create(series=series, start_date=date(2025, 1, 31))
        february, created = materialize_next_instance(series, january)
        self.assertTrue(created)
        self.assertEqual(february.start_date, date(2025, 2, 28))

    def test_series_without_instances_resolves_current(self):
        series = MeetingSeries.objects.create(team=self.team, name='Daily Standup', frequency='daily')
        instance, created = materialize_next_instance(series)
        self.assertTrue(created)
        self.assertEqual(series.instances.count(), 1)
        self.assertEqual(instance.frequency, 'daily')

    def test_rejects_instance_of_other_series(self):
        other = MeetingSeries.objects.create(team=self.team, name='Other', frequency='weekly')
        with self.assertRaises(ValidationError):
            materialize_next_instance(other, self.instance)

    def test_next_instance_after_switch_to_monthly(self):
        """Test that the next instance starts on a canonical month after a cadence change"""
        self.series.frequency = 'monthly'
        self.series.save()

        monthly, created = materialize_next_instance(self.series, self.instance)
        self.assertTrue(created)
        self.assertEqual(monthly.start_date, date(2025, 12, 1))
        self.assertEqual(monthly.end_date, date(2025, 12, 31))

        # Lazy resolution inside December finds it instead of creating an overlap
        current, created = resolve_current_instance(self.series, date(2025, 12, 5))
        self.assertFalse(created)
        self.assertEqual(current.pk, monthly.pk)

    def test_next_instance_after_switch_to_weekly(self):
        series = MeetingSeries.objects.create(team=self.team, name='Monthly Review', frequency='monthly')
        november = MeetingInstance.objects.create(series=series, start_date=date(2025, 11, 1))
        series.frequency = 'weekly'
        series.save()

        weekly, created = materialize_next_instance(series, november)
        self.assertTrue(created)
        # First Monday after November ends
        self.assertEqual(weekly.start_date, date(2025, 12, 1))
        self.assertEqual(weekly.frequency, 'weekly')
        self.assertGreater(weekly.start_date, november.end_date)


class ActionItemWindowTests(MeetingTestCase):
    """Action items appear on every instance their activity window overlaps"""

    def setUp(self):
        super().setUp()
        self.week1 = MeetingInstance.objects.create(series=self.series, start_date=date(2025, 11, 3))
        self.week2 = MeetingInstance.objects.create(series=self.series, start_date=date(2025, 11, 10))
        self.week3 = MeetingInstance.objects.create(series=self.series, start_date=date(2025, 11, 17))

        self.open_item = ActionItem.objects.create(
            series=self.series, title='Open since week 1', order_index=0,
            created_at=at_noon(date(2025, 11, 5)),
        )
        self.done_in_week2 = ActionItem.objects.create(
            series=self.series, title='Done in week 2', order_index=1,
            created_at=at_noon(date(2025, 11, 5)),
            completion_status=CompletionStatus.COMPLETED,
            completed_at=at_noon(date(2025, 11, 12)),
        )
        self.done_in_week3 = ActionItem.objects.create(
            series=self.series, title='Created week 2, done week 3', order_index=2,
            created_at=at_noon(date(2025, 11, 12)),
            completion_status=CompletionStatus.COMPLETED,
            completed_at=at_noon(date(2025, 11, 20)),
        )
        self.new_in_week3 = ActionItem.objects.create(
            series=self.series, title='Created week 3', order_index=3,
            created_at=at_noon(date(2025, 11, 18)),
        )

    def titles(self, instance):
        return [item.title for item in action_items_for_instance(instance)]

    def test_week_one(self):
        self.assertEqual(self.titles(self.week1), ['Open since week 1', 'Done in week 2'])

    def test_week_two(self):
        self.assertEqual(
            self.titles(self.week2),
            ['Open since week 1', 'Done in week 2', 'Created week 2, done week 3'],
        )

    def test_week_three(self):
        self.assertEqual(
            self.titles(self.week3),
            ['Open since week 1', 'Created week 2, done week 3', 'Created week 3'],
        )

    def test_reopening_clears_completion_time(self):
        self.done_in_week2.completion_status = CompletionStatus.NOT_COMPLETED
        self.done_in_week2.save()
        self.assertIsNone(self.done_in_week2.completed_at)
        self.assertIn('Done in week 2', self.titles(self.week3))

    def test_completing_sets_completion_time(self):
        self.open_item.completion_status = CompletionStatus.COMPLETED
        self.open_item.save()
        self.assertIsNotNone(self.open_item.completed_at)

    def test_action_items_are_scoped_to_series(self):
        other = MeetingSeries.objects.create(team=self.team, name='Other', frequency='weekly')
        ActionItem.objects.create(series=other, title='Elsewhere', created_at=at_noon(date(2025, 11, 5)))
        self.assertNotIn('Elsewhere', self.titles(self.week3))


class OrderingTests(MeetingTestCase):
    """Test cases for reorder_items and next_order_index"""

    def setUp(self):
        super().setUp()
        self.instance, _ = resolve_current_instance(self.series, date(2025, 11, 19))
        self.first = AgendaItem.objects.create(series=self.series, title='A', order_index=0)
        self.second = AgendaItem.objects.create(series=self.series, title='B', order_index=1)
        self.third = AgendaItem.objects.create(series=self.series, title='C', order_index=2)

    def titles(self):
        return [item.title for item in item_scope(ItemKind.AGENDA_ITEM, self.instance)]

    def test_reorder_moves_last_to_front(self):
        changed = reorder_items(
            item_scope(ItemKind.AGENDA_ITEM, self.instance),
            [self.third.pk, self.first.pk, self.second.pk],
        )
        self.assertEqual(changed, 3)
        self.assertEqual(self.titles(), ['C', 'A', 'B'])
        self.assertEqual(
            list(self.series.agenda_items.order_by('order_index').values_list('order_index', flat=True)),
            [0, 1, 2],
        )

    def test_reorder_is_visible_from_other_instances(self):
        other, _ = materialize_next_instance(self.series, self.instance)
        reorder_items(self.series.agenda_items.all(), [self.second.pk, self.third.pk, self.first.pk])
        self.assertEqual([item.title for item in agenda_items_for_instance(other)], ['B', 'C', 'A'])

    def test_reorder_rejects_foreign_ids(self):
        other = MeetingSeries.objects.create(team=self.team, name='Other', frequency='weekly')
        foreign = AgendaItem.objects.create(series=other, title='X')
        with self.assertRaises(ValidationError):
            reorder_items(self.series.agenda_items.all(), [self.first.pk, self.second.pk, foreign.pk])
        self.assertEqual(self.titles(), ['A', 'B', 'C'])

    def test_reorder_requires_every_item(self):
        with self.assertRaises(ValidationError):
            reorder_items(self.series.agenda_items.all(), [self.second.pk, self.first.pk])

    def test_reorder_rejects_duplicates_and_garbage(self):
        with self.assertRaises(ValidationError):
            reorder_items(self.series.agenda_items.all(), [self.first.pk, self.first.pk, self.second.pk])
        with self.assertRaises(ValidationError):
            reorder_items(self.series.agenda_items.all(), ['first', 'second', 'third'])

    def test_equal_order_index_falls_back_to_id(self):
        AgendaItem.objects.filter(pk__in=[self.first.pk, self.second.pk, self.third.pk]).update(order_index=0)
        self.assertEqual(self.titles(), ['A', 'B', 'C'])

    def test_next_order_index(self):
        self.assertEqual(next_order_index(self.series.agenda_items.all()), 3)
        self.assertEqual(next_order_index(self.instance.priorities.all()), 0)

    def test_reorder_priorities(self):
        one = Priority.objects.create(instance=self.instance, title='One', order_index=0)
        two = Priority.objects.create(instance=self.instance, title='Two', order_index=1)
        reorder_items(item_scope(ItemKind.PRIORITY, self.instance), [two.pk, one.pk])
        self.assertEqual([p.title for p in item_scope(ItemKind.PRIORITY, self.instance)], ['Two', 'One'])


class AgendaTemplateTests(MeetingTestCase):
    """Test cases for apply_template"""

    def setUp(self):
        super().setUp()
        self.template = AgendaTemplate.objects.create(name='Tactical', created_by=self.user)
        AgendaTemplateItem.objects.create(template=self.template, title='Lightning round', duration_minutes=5, order_index=1)
        AgendaTemplateItem.objects.create(template=self.template, title='Check-in', duration_minutes=0, order_index=0)
        AgendaTemplateItem.objects.create(template=self.template, title='Metrics', duration_minutes=10, order_index=2)

    def test_apply_template_preserves_order_and_durations(self):
        created = apply_template(self.series, self.template, self.user)
        self.assertEqual(len(created), 3)
        items = list(self.series.agenda_items.order_by('order_index'))
        self.assertEqual([item.title for item in items], ['Check-in', 'Lightning round', 'Metrics'])
        self.assertEqual([item.time_minutes for item in items], [0, 5, 10])

    def test_apply_template_appends_after_existing_items(self):
        AgendaItem.objects.create(series=self.series, title='Existing', order_index=0)
        apply_template(self.series, self.template, self.user)
        titles = [item.title for item in self.series.agenda_items.order_by('order_index', 'id')]
        self.assertEqual(titles, ['Existing', 'Check-in', 'Lightning round', 'Metrics'])

    def test_total_minutes(self):
        self.assertEqual(self.template.total_minutes, 15)

    def test_available_to(self):
        system = AgendaTemplate.objects.create(name='Built-in', is_system=True)
        stranger = User.objects.create_user(username='sam', email='sam@example.com', password='testpass123')
        AgendaTemplate.objects.create(name='Private', created_by=stranger)
        available = set(AgendaTemplate.objects.available_to(self.user).values_list('name', flat=True))
        self.assertEqual(available, {'Tactical', system.name})


class NameValidationTests(MeetingTestCase):
    """Blank names and titles are rejected and nothing is stored"""

    def test_blank_series_name(self):
        for name in ['', '   ', '\t\n']:
            with self.subTest(name=name):
                with self.assertRaises(ValidationError):
                    MeetingSeries.objects.create(team=self.team, name=name, frequency='weekly')
        self.assertEqual(MeetingSeries.objects.count(), 1)

    def test_series_name_is_stripped(self):
        series = MeetingSeries.objects.create(team=self.team, name='  Retro  ', frequency='weekly')
        self.assertEqual(series.name, 'Retro')

    def test_blank_template_name(self):
        with self.assertRaises(ValidationError):
            AgendaTemplate.objects.create(name='   ', created_by=self.user)
        self.assertFalse(AgendaTemplate.objects.exists())

    def test_blank_template_item_title(self):
        template = AgendaTemplate.objects.create(name='Tactical', created_by=self.user)
        with self.assertRaises(ValidationError):
            AgendaTemplateItem.objects.create(template=template, title=' ')
        self.assertFalse(template.items.exists())

    def test_blank_item_titles(self):
        instance, _ = resolve_current_instance(self.series, date(2025, 11, 19))
        with self.assertRaises(ValidationError):
            AgendaItem.objects.create(series=self.series, title='  ')
        with self.assertRaises(ValidationError):
            Priority.objects.create(instance=instance, title='')
        with self.assertRaises(ValidationError):
            Topic.objects.create(instance=instance, title='\n')
        with self.assertRaises(ValidationError):
            ActionItem.objects.create(series=self.series, title='')
        self.assertFalse(AgendaItem.objects.exists())
        self.assertFalse(Priority.objects.exists())

    def test_unknown_frequency_is_rejected(self):
        with self.assertRaises(UnknownFrequencyError):
            MeetingSeries.objects.create(team=self.team, name='Yearly', frequency='yearly')
        self.assertFalse(MeetingSeries.objects.filter(name='Yearly').exists())

    def test_quarter_alias_is_stored_as_quarterly(self):
        series = MeetingSeries.objects.create(team=self.team, name='QBR', frequency='quarter')
        self.assertEqual(series.frequency, 'quarterly')


class CommentTests(MeetingTestCase):
    """Test cases for comments attached to meeting items"""

    def test_comments_are_bound_to_item_kind_and_id(self):
        instance, _ = resolve_current_instance(self.series, date(2025, 11, 19))
        agenda_item = AgendaItem.objects.create(series=self.series, title='Check-in')
        topic = Topic.objects.create(instance=instance, title='Hiring')
        Comment.objects.create(item_type=ItemKind.AGENDA_ITEM, item_id=agenda_item.pk, created_by=self.user, content='First')
        Comment.objects.create(item_type=ItemKind.TOPIC, item_id=topic.pk, created_by=self.user, content='Second')

        self.assertEqual([c.content for c in agenda_item.comments()], ['First'])
        self.assertEqual([c.content for c in topic.comments()], ['Second'])
        self.assertEqual(topic.comments().get().get_item(), topic)

    def test_blank_comment_is_rejected(self):
        with self.assertRaises(ValidationError):
            Comment.objects.create(item_type=ItemKind.TOPIC, item_id=1, created_by=self.user, content='  ')
