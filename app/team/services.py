"""
Team operations shared by views and tests: creating a team with its first
admin, joining by invite code, and email invitations.
"""
import logging
import re

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.template.loader import render_to_string

from .models import Team, TeamMember, Invitation

logger = logging.getLogger(__name__)

EMAIL_SEPARATORS = re.compile(r'[\n,;]+')


@transaction.atomic
def create_team(user, name, abbreviated_name=''):
    """Create a team and make its creator the first admin"""
    team = Team.objects.create(
        name=(name or '').strip(),
        abbreviated_name=(abbreviated_name or '').strip(),
        created_by=user,
    )
    TeamMember.objects.create(team=team, user=user, role=TeamMember.Role.ADMIN)
    logger.info("Team %s created by user %s", team.pk, user.pk)
    return team


def join_team_by_code(user, invite_code):
    """
    Add ``user`` to the team behind ``invite_code``.

    Returns ``(team, created)``; ``created`` is False when the user was already
    a member. Raises ``Team.DoesNotExist`` for an unknown code.
    """
    team = Team.objects.get(invite_code=invite_code)
    with transaction.atomic():
        membership, created = TeamMember.objects.get_or_create(
            team=team,
            user=user,
            defaults={'role': TeamMember.Role.MEMBER},
        )
        if user.email:
            Invitation.objects.filter(
                team=team,
                email__iexact=user.email,
                status=Invitation.Status.PENDING,
            ).update(status=Invitation.Status.ACCEPTED)
    if created:
        logger.info("User %s joined team %s by invite code", user.pk, team.pk)
    return team, created


def parse_invite_emails(raw, team):
    """
    Split free-form input into addresses to invite.

    Entries are separated by newlines, commas or semicolons, lower-cased and
    deduplicated. Entries without "@", existing members and addresses with a
    pending invitation are dropped.
    """
    emails = []
    for entry in EMAIL_SEPARATORS.split(raw or ''):
        email = entry.strip().lower()
        if email and '@' in email and email not in emails:
            emails.append(email)

    member_emails = {
        email.lower() for email in team.members.values_list('user__email', flat=True) if email
    }
    pending_emails = {
        invitation.email.lower()
        for invitation in team.invitations.filter(status=Invitation.Status.PENDING)
        if not invitation.is_expired
    }
    return [email for email in emails if email not in member_emails and email not in pending_emails]


def send_invitations(team, emails, invited_by, invite_link):
    """
    Create a pending invitation and email the invite link for each address.

    Each invitation is stored in the same transaction as its email is sent,
    so a delivery error rolls back that invitation and the address can be
    invited again. Invitations sent before the failure are kept. The error
    propagates to the caller.
    """
    inviter_name = invited_by.display_name if invited_by else 'A teammate'
    invitations = []
    for email in emails:
        with transaction.atomic():
            invitation = Invitation.objects.create(team=team, email=email, invited_by=invited_by)
            context = {
                'team': team,
                'inviter_name': inviter_name,
                'invite_link': invite_link,
                'invitation': invitation,
            }
            send_mail(
                f"You're invited to join {team.name}",
                render_to_string('team/email/invitation.txt', context),
                settings.DEFAULT_FROM_EMAIL,
                [invitation.email],
                fail_silently=False,
            )
        logger.info("Invitation %s sent to %s for team %s", invitation.pk, invitation.email, team.pk)
        invitations.append(invitation)
    return invitations
