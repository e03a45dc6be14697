import logging

from django.shortcuts import render, get_object_or_404, redirect
from django.contrib.auth.mixins import LoginRequiredMixin
from django.contrib.auth.decorators import login_required
from django.contrib import messages
from django.urls import reverse, reverse_lazy
from django.views.decorators.http import require_POST
from django.views.generic import CreateView, DeleteView, DetailView

from .forms import TeamForm, InviteForm
from .models import Team, TeamMember, Invitation
from .permissions import TeamAccessMixin, team_member_required
from .services import create_team, join_team_by_code, parse_invite_emails, send_invitations

logger = logging.getLogger(__name__)


class TeamCreateView(LoginRequiredMixin, CreateView):
    model = Team
    form_class = TeamForm
    template_name = 'team/team_form.html'

    def form_valid(self, form):
        self.object = create_team(
            self.request.user,
            form.cleaned_data['name'],
            form.cleaned_data.get('abbreviated_name', ''),
        )
        messages.success(self.request, f"Team '{self.object.name}' created successfully.")
        return redirect('team:team-detail', team_id=self.object.pk)


class TeamDetailView(TeamAccessMixin, DetailView):
    model = Team
    template_name = 'team/team_detail.html'
    context_object_name = 'team'

    def get_object(self, queryset=None):
        return self.team

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['members'] = self.team.members.select_related('user').order_by('user__first_name', 'user__last_name', 'user__email')
        context['series_list'] = self.team.meeting_series.order_by('name')
        return context


class TeamInviteView(TeamAccessMixin, DetailView):
    """Team admin page: rename the team, share the invite link, send invitations"""
    model = Team
    template_name = 'team/team_invite.html'
    context_object_name = 'team'
    team_admin_required = True

    def get_object(self, queryset=None):
        return self.team

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context.setdefault('team_form', TeamForm(instance=self.team))
        context.setdefault('invite_form', InviteForm())
        context['members'] = self.team.members.select_related('user').order_by('user__first_name', 'user__last_name', 'user__email')
        context['pending_invitations'] = [
            invitation for invitation in self.team.invitations.filter(status=Invitation.Status.PENDING)
            if not invitation.is_expired
        ]
        context['invite_link'] = self.request.build_absolute_uri(self.team.get_invite_path())
        return context

    def post(self, request, *args, **kwargs):
        self.object = self.team
        if 'rename' in request.POST:
            return self.rename_team(request)
        if 'invite' in request.POST:
            return self.invite_members(request)
        messages.error(request, "Invalid request.")
        return redirect('team:team-invite', team_id=self.team.pk)

    def rename_team(self, request):
        team_form = TeamForm(request.POST, instance=self.team)
        if not team_form.is_valid():
            messages.error(request, "Team name required.")
            return self.render_to_response(self.get_context_data(team_form=team_form))
        team_form.save()
        messages.success(request, f"Team renamed to '{self.team.name}'.")
        return redirect('team:team-invite', team_id=self.team.pk)

    def invite_members(self, request):
        invite_form = InviteForm(request.POST)
        if not invite_form.is_valid():
            return self.render_to_response(self.get_context_data(invite_form=invite_form))

        emails = parse_invite_emails(invite_form.cleaned_data['emails'], self.team)
        if not emails:
            messages.error(request, "Please enter valid email addresses that aren't already members or invited.")
            return self.render_to_response(self.get_context_data(invite_form=invite_form))

        invite_link = request.build_absolute_uri(self.team.get_invite_path())
        try:
            invitations = send_invitations(self.team, emails, request.user, invite_link)
        except Exception as e:
            logger.error("Failed to send invitations for team %s: %s", self.team.pk, e)
            messages.error(request, f"Failed to send invitations: {e}")
            return redirect('team:team-invite', team_id=self.team.pk)

        count = len(invitations)
        messages.success(request, f"Sent {count} invitation{'s' if count > 1 else ''}.")
        return redirect('team:team-invite', team_id=self.team.pk)


class TeamDeleteView(TeamAccessMixin, DeleteView):
    model = Team
    template_name = 'team/team_confirm_delete.html'
    success_url = reverse_lazy('dashboard')
    team_admin_required = True

    def get_object(self, queryset=None):
        return self.team

    def form_valid(self, form):
        messages.success(self.request, f"Team '{self.team.name}' deleted successfully.")
        logger.info("Team %s deleted by user %s", self.team.pk, self.request.user.pk)
        return super().form_valid(form)


def join_team(request, invite_code):
    """Join the team behind an invite link"""
    if not request.user.is_authenticated:
        request.session['pending_invite_code'] = invite_code
        return redirect(f"{reverse('auth')}?invite={invite_code}")

    try:
        team, created = join_team_by_code(request.user, invite_code)
    except Team.DoesNotExist:
        messages.error(request, "This invite link is not valid.")
        return redirect('dashboard')

    if created:
        messages.success(request, f"You've successfully joined {team.name}.")
    else:
        messages.info(request, f"You're already a member of {team.name}.")
    return redirect('team:team-detail', team_id=team.pk)


@login_required
@require_POST
@team_member_required(admin=True)
def revoke_invitation(request, pk, team):
    invitation = get_object_or_404(Invitation, pk=pk, team=team)
    if invitation.status != Invitation.Status.PENDING:
        messages.info(request, f"The invitation for {invitation.email} is no longer pending.")
    else:
        invitation.status = Invitation.Status.REVOKED
        invitation.save(update_fields=['status'])
        messages.success(request, f"Invitation for {invitation.email} revoked.")
    return redirect('team:team-invite', team_id=team.pk)


@login_required
@require_POST
@team_member_required(admin=True)
def regenerate_invite_code(request, team):
    team.regenerate_invite_code()
    messages.success(request, "A new invite link has been generated. The old link no longer works.")
    return redirect('team:team-invite', team_id=team.pk)


@login_required
@require_POST
@team_member_required(admin=True)
def set_team_admin(request, pk, team):
    """Give a team member the admin role"""
    member = get_object_or_404(TeamMember, pk=pk, team=team)

    if member.is_admin:
        messages.info(request, f"'{member.user.display_name}' is already an admin of '{team.name}'.")
    else:
        member.role = TeamMember.Role.ADMIN
        member.save(update_fields=['role'])
        messages.success(request, f"'{member.user.display_name}' is now an admin of '{team.name}'.")

    return redirect('team:team-invite', team_id=team.pk)


@login_required
@require_POST
@team_member_required(admin=True)
def remove_team_admin(request, pk, team):
    """Take the admin role away from a team member"""
    member = get_object_or_404(TeamMember, pk=pk, team=team)

    if not member.is_admin:
        messages.info(request, f"'{member.user.display_name}' is not an admin of '{team.name}'.")
    elif team.get_team_admins().count() <= 1:
        messages.error(request, "A team needs at least one admin.")
    else:
        member.role = TeamMember.Role.MEMBER
        member.save(update_fields=['role'])
        messages.success(request, f"'{member.user.display_name}' is no longer an admin of '{team.name}'.")

    return redirect('team:team-invite', team_id=team.pk)


@login_required
@require_POST
@team_member_required(admin=True)
def remove_team_member(request, pk, team):
    member = get_object_or_404(TeamMember, pk=pk, team=team)

    if member.is_admin and team.get_team_admins().count() <= 1:
        messages.error(request, "A team needs at least one admin.")
    else:
        name = member.user.display_name
        member.delete()
        messages.success(request, f"'{name}' removed from '{team.name}'.")

    return redirect('team:team-invite', team_id=team.pk)
