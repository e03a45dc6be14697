from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.urls import reverse
from django.utils import timezone
from auditlog.registry import auditlog
from auditlog.models import AuditlogHistoryField

from team.models import Team
from .periods import Frequency, period_end, period_label, period_contains


def require_text(instance, field_name, message):
    """Strip a text field in place and reject empty values"""
    value = (getattr(instance, field_name) or '').strip()
    setattr(instance, field_name, value)
    if not value:
        raise ValidationError({field_name: message})


class CompletionStatus(models.TextChoices):
    COMPLETED = 'completed', 'Completed'
    NOT_COMPLETED = 'not_completed', 'Not completed'
    PENDING = 'pending', 'Pending'


class ItemKind(models.TextChoices):
    AGENDA_ITEM = 'agenda_item', 'Agenda item'
    PRIORITY = 'priority', 'Priority'
    TOPIC = 'topic', 'Topic'
    ACTION_ITEM = 'action_item', 'Action item'


class MeetingSeries(models.Model):
    """A recurring meeting of a team"""
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='meeting_series')
    name = models.CharField(max_length=200, help_text="Name of the meeting")
    frequency = models.CharField(max_length=20, choices=Frequency.choices(), default=Frequency.WEEKLY.value)
    parking_lot = models.TextField(blank=True, help_text="Notes parked for a later meeting")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_meeting_series')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = AuditlogHistoryField()

    class Meta:
        ordering = ['name']
        verbose_name = "Meeting Series"
        verbose_name_plural = "Meeting Series"

    def __str__(self):
        return f"{self.name} ({self.team.name})"

    def get_absolute_url(self):
        return reverse('meeting:series-current', kwargs={'team_id': self.team_id, 'series_id': self.pk})

    def clean(self):
        require_text(self, 'name', "Meeting name cannot be empty.")

    def save(self, *args, **kwargs):
        # Unknown cadences raise UnknownFrequencyError instead of falling back to weekly
        self.frequency = Frequency.parse(self.frequency).value
        self.full_clean()
        super().save(*args, **kwargs)

    def latest_instance(self):
        return self.instances.order_by('-start_date').first()


class MeetingInstance(models.Model):
    """
    One occurrence of a meeting series, covering the period that begins at
    ``start_date``. The frequency is copied from the series at creation so a
    later change of cadence leaves existing instances untouched.
    """
    series = models.ForeignKey(MeetingSeries, on_delete=models.CASCADE, related_name='instances')
    start_date = models.DateField()
    end_date = models.DateField(blank=True)
    frequency = models.CharField(max_length=20, choices=Frequency.choices(), blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-start_date']
        verbose_name = "Meeting Instance"
        verbose_name_plural = "Meeting Instances"
        constraints = [
            models.UniqueConstraint(fields=['series', 'start_date'], name='unique_series_start_date'),
        ]

    def __str__(self):
        return f"{self.series.name} - {self.label}"

    def get_absolute_url(self):
        return reverse('meeting:instance-detail', kwargs={
            'team_id': self.series.team_id,
            'series_id': self.series_id,
            'pk': self.pk,
        })

    def save(self, *args, **kwargs):
        if not self.frequency:
            self.frequency = self.series.frequency
        self.frequency = Frequency.parse(self.frequency).value
        if not self.end_date:
            self.end_date = period_end(self.frequency, self.start_date)
        if self.end_date < self.start_date:
            raise ValidationError({'end_date': "End date must not be before the start date."})
        super().save(*args, **kwargs)

    @property
    def label(self):
        return period_label(self.frequency or self.series.frequency, self.start_date)

    def contains(self, day):
        if self.end_date:
            return self.start_date <= day <= self.end_date
        return period_contains(self.frequency or self.series.frequency, self.start_date, day)


class MeetingItem(models.Model):
    """Fields shared by every ordered list item shown in a meeting"""
    item_kind = None

    title = models.CharField(max_length=500)
    order_index = models.PositiveIntegerField(default=0)
    assigned_to = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    completion_status = models.CharField(max_length=20, choices=CompletionStatus.choices, default=CompletionStatus.NOT_COMPLETED)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['order_index', 'id']

    def __str__(self):
        return self.title

    def clean(self):
        require_text(self, 'title', "Title cannot be empty.")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_completed(self):
        return self.completion_status == CompletionStatus.COMPLETED

    def comments(self):
        return Comment.objects.for_item(self)


class AgendaItem(MeetingItem):
    """Agenda entry shared by every instance of the series"""
    item_kind = ItemKind.AGENDA_ITEM

    series = models.ForeignKey(MeetingSeries, on_delete=models.CASCADE, related_name='agenda_items')
    notes = models.TextField(blank=True)
    time_minutes = models.PositiveIntegerField(null=True, blank=True)

    class Meta(MeetingItem.Meta):
        verbose_name = "Agenda Item"
        verbose_name_plural = "Agenda Items"


class Priority(MeetingItem):
    """Desired outcome for one meeting instance"""
    item_kind = ItemKind.PRIORITY

    instance = models.ForeignKey(MeetingInstance, on_delete=models.CASCADE, related_name='priorities')
    outcome = models.TextField(blank=True)
    activities = models.TextField(blank=True)
    completion_status = models.CharField(max_length=20, choices=CompletionStatus.choices, default=CompletionStatus.PENDING)

    class Meta(MeetingItem.Meta):
        verbose_name = "Priority"
        verbose_name_plural = "Priorities"


class Topic(MeetingItem):
    """Discussion topic of one meeting instance"""
    item_kind = ItemKind.TOPIC

    instance = models.ForeignKey(MeetingInstance, on_delete=models.CASCADE, related_name='topics')
    notes = models.TextField(blank=True)
    time_minutes = models.PositiveIntegerField(null=True, blank=True)

    class Meta(MeetingItem.Meta):
        verbose_name = "Topic"
        verbose_name_plural = "Topics"


class ActionItem(MeetingItem):
    """
    Follow-up task of a series. It is shown on every instance whose period
    overlaps the item's activity window (creation until completion).
    """
    item_kind = ItemKind.ACTION_ITEM

    series = models.ForeignKey(MeetingSeries, on_delete=models.CASCADE, related_name='action_items')
    notes = models.TextField(blank=True)
    due_date = models.DateField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta(MeetingItem.Meta):
        verbose_name = "Action Item"
        verbose_name_plural = "Action Items"

    def save(self, *args, **kwargs):
        if self.completion_status == CompletionStatus.COMPLETED:
            if self.completed_at is None:
                self.completed_at = timezone.now()
        else:
            self.completed_at = None
        super().save(*args, **kwargs)


class AgendaTemplateQuerySet(models.QuerySet):
    def available_to(self, user):
        """System templates plus the ones ``user`` created"""
        if user is None or not user.is_authenticated:
            return self.filter(is_system=True)
        return self.filter(models.Q(is_system=True) | models.Q(created_by=user))


class AgendaTemplate(models.Model):
    """Reusable set of agenda items"""
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    is_system = models.BooleanField(default=False, help_text="Built-in template available to every user")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True, related_name='agenda_templates')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AgendaTemplateQuerySet.as_manager()

    class Meta:
        ordering = ['-is_system', 'name']
        verbose_name = "Agenda Template"
        verbose_name_plural = "Agenda Templates"

    def __str__(self):
        return self.name

    def clean(self):
        require_text(self, 'name', "Template name cannot be empty.")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def total_minutes(self):
        return sum(item.duration_minutes for item in self.items.all())


class AgendaTemplateItem(models.Model):
    template = models.ForeignKey(AgendaTemplate, on_delete=models.CASCADE, related_name='items')
    title = models.CharField(max_length=500)
    duration_minutes = models.PositiveIntegerField(default=0)
    order_index = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['order_index', 'id']
        verbose_name = "Agenda Template Item"
        verbose_name_plural = "Agenda Template Items"

    def __str__(self):
        return f"{self.title} ({self.duration_minutes} min)"

    def clean(self):
        require_text(self, 'title', "Title cannot be empty.")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


ITEM_MODELS = {
    ItemKind.AGENDA_ITEM: AgendaItem,
    ItemKind.PRIORITY: Priority,
    ItemKind.TOPIC: Topic,
    ItemKind.ACTION_ITEM: ActionItem,
}


class CommentQuerySet(models.QuerySet):
    def for_item(self, item):
        return self.filter(item_type=item.item_kind, item_id=item.pk)


class Comment(models.Model):
    """Discussion thread entry attached to any meeting item"""
    item_type = models.CharField(max_length=20, choices=ItemKind.choices)
    item_id = models.PositiveBigIntegerField()
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='meeting_comments')
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CommentQuerySet.as_manager()

    class Meta:
        ordering = ['created_at']
        verbose_name = "Comment"
        verbose_name_plural = "Comments"
        indexes = [
            models.Index(fields=['item_type', 'item_id'], name='comment_item_idx'),
        ]

    def __str__(self):
        return f"Comment by {self.created_by.username} on {self.item_type} {self.item_id}"

    def clean(self):
        require_text(self, 'content', "Comment cannot be empty.")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def get_item(self):
        return ITEM_MODELS[self.item_type].objects.filter(pk=self.item_id).first()


# Register models for audit logging
auditlog.register(MeetingSeries)
auditlog.register(MeetingInstance)
auditlog.register(AgendaItem)
auditlog.register(Priority)
auditlog.register(Topic)
auditlog.register(ActionItem)
auditlog.register(AgendaTemplate)
auditlog.register(AgendaTemplateItem)
