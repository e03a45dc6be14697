"""
Meeting instance lifecycle.

``resolve_current_instance`` finds (or lazily creates) the instance covering
today. ``materialize_next_instance`` creates the instance that follows the
latest one. What a new instance inherits is spelled out in ``CARRY_OVER``:
series-scoped items are shared by every instance, instance-scoped items start
empty, and nothing is ever copied.
"""
import datetime
import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Max, Q
from django.utils import timezone

from .models import (
    ActionItem, AgendaItem, ItemKind, MeetingInstance, Priority, Topic,
)
from .periods import Frequency, as_date, next_period_start, period_start

logger = logging.getLogger(__name__)

SHARED = 'shared'
NOT_CARRIED = 'not_carried'

# How each item kind relates to a newly created instance
CARRY_OVER = {
    ItemKind.AGENDA_ITEM: SHARED,
    ItemKind.ACTION_ITEM: SHARED,
    ItemKind.PRIORITY: NOT_CARRIED,
    ItemKind.TOPIC: NOT_CARRIED,
}


def find_current_instance(frequency, instances, today):
    """
    Pick the instance to display for ``today`` from ``instances``.

    An instance whose period contains ``today`` wins, the most recently
    started one if several do. Otherwise an instance starting exactly on the
    canonical period start is accepted. Returns None when neither exists.
    """
    today = as_date(today)
    instances = list(instances)
    covering = [instance for instance in instances if instance.contains(today)]
    if covering:
        return max(covering, key=lambda instance: instance.start_date)

    today_start = period_start(frequency, today)
    for instance in instances:
        if instance.start_date == today_start:
            return instance
    return None


def get_or_create_instance(series, start_date):
    """
    Idempotent instance creation keyed on ``(series, start_date)``.

    The unique constraint makes a concurrent duplicate insert fail; the loser
    re-reads the row the winner created.
    """
    try:
        with transaction.atomic():
            instance, created = MeetingInstance.objects.get_or_create(
                series=series,
                start_date=start_date,
                defaults={'frequency': series.frequency},
            )
    except IntegrityError:
        instance = MeetingInstance.objects.get(series=series, start_date=start_date)
        created = False
    if created:
        logger.info("Created meeting instance %s for series %s starting %s", instance.pk, series.pk, start_date)
    return instance, created


def resolve_current_instance(series, today=None):
    """
    Return ``(instance, created)`` for the period containing ``today``.

    Repeated calls with the same instances and clock return the same
    instance; a new instance is created at most once per missing period.
    """
    today = as_date(today) if today is not None else timezone.localdate()
    instance = find_current_instance(series.frequency, series.instances.all(), today)
    if instance is not None:
        return instance, False
    return get_or_create_instance(series, period_start(series.frequency, today))


def materialize_next_instance(series, previous_instance=None):
    """
    Create the instance that follows ``previous_instance`` (default: the
    latest instance of the series). Returns ``(instance, created)``.

    Agenda items and action items need no copying because they belong to the
    series; priorities and topics belong to an instance, so the new instance
    starts without any.
    """
    if previous_instance is None:
        previous_instance = series.latest_instance()
    if previous_instance is None:
        return resolve_current_instance(series)
    if previous_instance.series_id != series.pk:
        raise ValidationError("The previous instance belongs to a different meeting series.")

    return get_or_create_instance(series, following_start(series.frequency, previous_instance))


def following_start(frequency, previous_instance):
    """
    Start of the instance after ``previous_instance`` under ``frequency``.

    With an unchanged cadence this is one period after the previous start.
    After a cadence change it is the first canonical period start after the
    previous instance ends, so the new instance neither overlaps the previous
    one nor begins mid-period.
    """
    if Frequency.parse(previous_instance.frequency) is Frequency.parse(frequency):
        return next_period_start(frequency, previous_instance.start_date)
    day = previous_instance.end_date + datetime.timedelta(days=1)
    start = period_start(frequency, day)
    if start < day:
        start = next_period_start(frequency, start)
    return start


def previous_instance(instance):
    """The instance of the same series immediately before ``instance``"""
    return (
        MeetingInstance.objects
        .filter(series_id=instance.series_id, start_date__lt=instance.start_date)
        .order_by('-start_date')
        .first()
    )


def next_instance(instance):
    return (
        MeetingInstance.objects
        .filter(series_id=instance.series_id, start_date__gt=instance.start_date)
        .order_by('start_date')
        .first()
    )


def action_items_for_instance(instance):
    """
    Action items active during the instance's period: created on or before
    the period end and either open or completed on or after the period start.
    """
    return (
        ActionItem.objects
        .filter(series_id=instance.series_id, created_at__date__lte=instance.end_date)
        .filter(Q(completed_at__isnull=True) | Q(completed_at__date__gte=instance.start_date))
        .select_related('assigned_to')
        .order_by('order_index', 'id')
    )


def agenda_items_for_instance(instance):
    return (
        AgendaItem.objects
        .filter(series_id=instance.series_id)
        .select_related('assigned_to')
        .order_by('order_index', 'id')
    )


def item_scope(kind, instance):
    """
    The ordered list an item of ``kind`` belongs to when shown on ``instance``.

    Action items are scoped to the instance's activity window since that is
    the list the meeting page shows and reorders.
    """
    kind = ItemKind(kind)
    if kind == ItemKind.AGENDA_ITEM:
        return agenda_items_for_instance(instance)
    if kind == ItemKind.ACTION_ITEM:
        return action_items_for_instance(instance)
    if kind == ItemKind.PRIORITY:
        return Priority.objects.filter(instance=instance).select_related('assigned_to').order_by('order_index', 'id')
    return Topic.objects.filter(instance=instance).select_related('assigned_to').order_by('order_index', 'id')


def next_order_index(queryset):
    """Position after the last item of an ordered scope"""
    current = queryset.aggregate(highest=Max('order_index'))['highest']
    return 0 if current is None else current + 1


def reorder_items(queryset, ordered_ids):
    """
    Rewrite ``order_index`` of every row in ``queryset`` to match
    ``ordered_ids`` (dense, starting at 0).

    Runs in one transaction with the rows locked, so two concurrent reorders
    of the same list never interleave. ``ordered_ids`` must list exactly the
    rows of the scope.
    """
    try:
        ordered_ids = [int(pk) for pk in ordered_ids]
    except (TypeError, ValueError):
        raise ValidationError("Item ids must be integers.")
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValidationError("Item ids must not repeat.")

    with transaction.atomic():
        rows = {row.pk: row for row in queryset.select_related(None).select_for_update()}
        if set(ordered_ids) != set(rows):
            raise ValidationError("The new order must contain exactly the items of this list.")
        changed = []
        for index, pk in enumerate(ordered_ids):
            row = rows[pk]
            if row.order_index != index:
                row.order_index = index
                changed.append(row)
        if changed:
            queryset.model.objects.bulk_update(changed, ['order_index'])
    return len(changed)


def apply_template(series, template, user=None):
    """Append the template's items to the series agenda, keeping their order"""
    with transaction.atomic():
        start = next_order_index(series.agenda_items.all())
        created = [
            AgendaItem.objects.create(
                series=series,
                title=item.title,
                time_minutes=item.duration_minutes,
                order_index=start + offset,
                created_by=user,
            )
            for offset, item in enumerate(template.items.order_by('order_index', 'id'))
        ]
    logger.info("Applied agenda template %s to series %s (%d items)", template.pk, series.pk, len(created))
    return created
