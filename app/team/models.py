import secrets
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.urls import reverse
from django.utils import timezone
from auditlog.registry import auditlog
from auditlog.models import AuditlogHistoryField


def generate_invite_code():
    return secrets.token_urlsafe(9)


def default_invitation_expiry():
    return timezone.now() + timedelta(days=settings.INVITATION_EXPIRY_DAYS)


class Team(models.Model):
    """A team that owns members and meeting series"""
    name = models.CharField(max_length=200, help_text="Name of the team")
    abbreviated_name = models.CharField(max_length=10, blank=True, help_text="Short name or abbreviation")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_teams')
    invite_code = models.CharField(max_length=32, unique=True, default=generate_invite_code, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = AuditlogHistoryField()

    class Meta:
        ordering = ['name']
        verbose_name = "Team"
        verbose_name_plural = "Teams"

    def __str__(self):
        return self.name

    def get_absolute_url(self):
        return reverse('team:team-invite', kwargs={'team_id': self.pk})

    def clean(self):
        self.name = (self.name or '').strip()
        self.abbreviated_name = (self.abbreviated_name or '').strip()
        if not self.name:
            raise ValidationError({'name': "Team name cannot be empty."})

    def save(self, *args, **kwargs):
        self.full_clean(exclude=['invite_code'])
        super().save(*args, **kwargs)

    @property
    def member_count(self):
        """Number of members in the team"""
        return self.members.count()

    def is_member(self, user):
        """Check if a user belongs to this team"""
        if not user.is_authenticated:
            return False
        return self.members.filter(user=user).exists()

    def is_admin(self, user):
        """Check if a user is an admin of this team"""
        if not user.is_authenticated:
            return False
        return self.members.filter(user=user, role=TeamMember.Role.ADMIN).exists()

    def can_user_manage_team(self, user):
        """Check if a user can manage this team (superuser or team admin)"""
        if user.is_superuser:
            return True
        return self.is_admin(user)

    def get_team_admins(self):
        return self.members.filter(role=TeamMember.Role.ADMIN)

    def get_invite_path(self):
        return reverse('join-team', kwargs={'invite_code': self.invite_code})

    def regenerate_invite_code(self):
        self.invite_code = generate_invite_code()
        self.save(update_fields=['invite_code', 'updated_at'])


class TeamMember(models.Model):
    """Membership of a user in a team"""

    class Role(models.TextChoices):
        ADMIN = 'admin', 'Admin'
        MEMBER = 'member', 'Member'

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='team_memberships')
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']
        verbose_name = "Team Member"
        verbose_name_plural = "Team Members"
        constraints = [
            models.UniqueConstraint(fields=['team', 'user'], name='unique_team_member'),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.team.name} ({self.get_role_display()})"

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN


class Invitation(models.Model):
    """Email invitation to join a team"""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        ACCEPTED = 'accepted', 'Accepted'
        REVOKED = 'revoked', 'Revoked'

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='invitations')
    email = models.EmailField()
    invited_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='sent_invitations')
    role = models.CharField(max_length=10, choices=TeamMember.Role.choices, default=TeamMember.Role.MEMBER)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    expires_at = models.DateTimeField(null=True, blank=True, default=default_invitation_expiry)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = "Invitation"
        verbose_name_plural = "Invitations"

    def __str__(self):
        return f"{self.email} -> {self.team.name} ({self.status})"

    def save(self, *args, **kwargs):
        self.email = (self.email or '').strip().lower()
        super().save(*args, **kwargs)

    @property
    def is_expired(self):
        return self.expires_at is not None and self.expires_at <= timezone.now()

    @property
    def is_pending(self):
        return self.status == self.Status.PENDING and not self.is_expired


# Register models for audit logging
auditlog.register(Team)
auditlog.register(TeamMember)
auditlog.register(Invitation)
