from django.contrib import admin
from .models import Team, TeamMember, Invitation


class TeamMemberInline(admin.TabularInline):
    model = TeamMember
    extra = 0
    autocomplete_fields = ['user']


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ['name', 'abbreviated_name', 'created_by', 'member_count', 'created_at']
    list_filter = ['created_at']
    search_fields = ['name', 'abbreviated_name', 'created_by__email']
    readonly_fields = ['invite_code', 'created_at', 'updated_at', 'member_count']
    ordering = ['name']
    inlines = [TeamMemberInline]
    fieldsets = (
        ('Basic Information', {'fields': ('name', 'abbreviated_name', 'created_by', 'invite_code')}),
        ('Dates', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )

    def member_count(self, obj):
        return obj.member_count
    member_count.short_description = 'Members'


@admin.register(TeamMember)
class TeamMemberAdmin(admin.ModelAdmin):
    list_display = ['user', 'team', 'role', 'created_at']
    list_filter = ['role', 'team', 'created_at']
    search_fields = ['user__username', 'user__email', 'user__first_name', 'user__last_name', 'team__name']
    readonly_fields = ['created_at']
    ordering = ['team__name', 'created_at']


@admin.register(Invitation)
class InvitationAdmin(admin.ModelAdmin):
    list_display = ['email', 'team', 'role', 'status', 'invited_by', 'expires_at', 'created_at']
    list_filter = ['status', 'role', 'created_at']
    search_fields = ['email', 'team__name', 'invited_by__email']
    readonly_fields = ['created_at']
    ordering = ['-created_at']
