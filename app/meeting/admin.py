from django.contrib import admin
from .models import (
    MeetingSeries, MeetingInstance, AgendaItem, Priority, Topic, ActionItem,
    AgendaTemplate, AgendaTemplateItem, Comment,
)


class MeetingInstanceInline(admin.TabularInline):
    model = MeetingInstance
    extra = 0
    fields = ['start_date', 'end_date', 'frequency']
    readonly_fields = ['end_date', 'frequency']


class AgendaItemInline(admin.TabularInline):
    model = AgendaItem
    extra = 0
    fields = ['order_index', 'title', 'time_minutes', 'assigned_to', 'completion_status']


@admin.register(MeetingSeries)
class MeetingSeriesAdmin(admin.ModelAdmin):
    list_display = ['name', 'team', 'frequency', 'instance_count', 'created_by', 'created_at']
    list_filter = ['frequency', 'team', 'created_at']
    search_fields = ['name', 'team__name']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['team__name', 'name']
    inlines = [AgendaItemInline, MeetingInstanceInline]
    fieldsets = (
        ('Basic Information', {'fields': ('team', 'name', 'frequency', 'created_by')}),
        ('Parking Lot', {'fields': ('parking_lot',), 'classes': ('collapse',)}),
        ('Dates', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )

    def instance_count(self, obj):
        return obj.instances.count()
    instance_count.short_description = 'Meetings'


@admin.register(MeetingInstance)
class MeetingInstanceAdmin(admin.ModelAdmin):
    list_display = ['series', 'start_date', 'end_date', 'frequency', 'created_at']
    list_filter = ['frequency', 'series__team']
    search_fields = ['series__name', 'series__team__name']
    readonly_fields = ['created_at']
    ordering = ['-start_date']
    date_hierarchy = 'start_date'


@admin.register(Priority, Topic)
class InstanceItemAdmin(admin.ModelAdmin):
    list_display = ['title', 'instance', 'assigned_to', 'completion_status', 'order_index']
    list_filter = ['completion_status', 'instance__series']
    search_fields = ['title', 'instance__series__name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(ActionItem)
class ActionItemAdmin(admin.ModelAdmin):
    list_display = ['title', 'series', 'assigned_to', 'due_date', 'completion_status', 'completed_at']
    list_filter = ['completion_status', 'series', 'due_date']
    search_fields = ['title', 'notes', 'series__name']
    readonly_fields = ['completed_at', 'updated_at']


class AgendaTemplateItemInline(admin.TabularInline):
    model = AgendaTemplateItem
    extra = 0
    fields = ['order_index', 'title', 'duration_minutes']


@admin.register(AgendaTemplate)
class AgendaTemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_system', 'created_by', 'created_at']
    list_filter = ['is_system']
    search_fields = ['name', 'description']
    inlines = [AgendaTemplateItemInline]


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ['item_type', 'item_id', 'created_by', 'created_at']
    list_filter = ['item_type', 'created_at']
    search_fields = ['content', 'created_by__email']
    readonly_fields = ['created_at', 'updated_at']
