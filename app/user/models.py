from django.contrib.auth.models import AbstractUser
from django.db import models
from auditlog.registry import auditlog
from auditlog.models import AuditlogHistoryField


class CustomUser(AbstractUser):
    """User account with the profile fields shown next to assigned items"""
    history = AuditlogHistoryField()

    email = models.EmailField('email address', unique=True)
    full_name = models.CharField(max_length=200, blank=True)
    avatar_name = models.CharField(max_length=100, blank=True, help_text="Name of the selected avatar")

    # Add related_name to avoid field clashes
    groups = models.ManyToManyField(
        'auth.Group',
        verbose_name='groups',
        blank=True,
        help_text='The groups this user belongs to.',
        related_name='custom_user_set',
        related_query_name='custom_user',
    )
    user_permissions = models.ManyToManyField(
        'auth.Permission',
        verbose_name='user permissions',
        blank=True,
        help_text='Specific permissions for this user.',
        related_name='custom_user_set',
        related_query_name='custom_user',
    )

    class Meta:
        ordering = ['username']

    def __str__(self):
        return f"{self.username} ({self.email})"

    @property
    def display_name(self):
        """Short name: 'First L.', first name alone, or the local part of the email"""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name[0]}."
        if self.first_name:
            return self.first_name
        if self.full_name:
            return self.full_name
        if self.email:
            return self.email.split('@')[0]
        return 'Unknown'

    def team_ids(self):
        """Ids of the teams the user belongs to"""
        return list(self.team_memberships.values_list('team_id', flat=True))


# Register models for audit logging
auditlog.register(CustomUser)
