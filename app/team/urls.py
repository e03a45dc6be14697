from django.urls import path
from .views import (
    TeamDetailView, TeamInviteView, TeamDeleteView,
    revoke_invitation, regenerate_invite_code,
    set_team_admin, remove_team_admin, remove_team_member,
)

app_name = 'team'

urlpatterns = [
    # Team URLs
    path('', TeamDetailView.as_view(), name='team-detail'),
    path('invite/', TeamInviteView.as_view(), name='team-invite'),
    path('delete/', TeamDeleteView.as_view(), name='team-delete'),
    path('invite/regenerate/', regenerate_invite_code, name='invite-regenerate'),
    path('invitations/<int:pk>/revoke/', revoke_invitation, name='invitation-revoke'),

    # Team Member URLs
    path('members/<int:pk>/set-admin/', set_team_admin, name='member-set-admin'),
    path('members/<int:pk>/remove-admin/', remove_team_admin, name='member-remove-admin'),
    path('members/<int:pk>/remove/', remove_team_member, name='member-remove'),
]
