"""
URL configuration for the TacticalSync project.

Browser routes:
    /auth/                                   login (or redirect to dashboard)
    /dashboard/                              teams and meeting series of the user
    /create-team/                            create a team
    /team/<team_id>/invite/                  team admin page (rename, invitations)
    /team/<team_id>/meeting/<series_id>/     current meeting instance
    /team/<team_id>/meeting/<series_id>/settings/
    /join/<invite_code>/                     join a team by invite link
    /reset-password/                         password reset request
    /settings/                               profile settings
"""
from django.contrib import admin
from django.urls import path, include
from django.shortcuts import redirect

from team.views import TeamCreateView, join_team
from user.views import AuthView


def redirect_to_password_reset(request):
    """Redirect /reset-password/ to the allauth password reset form"""
    return redirect('account_reset_password')


urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('pages.urls')),
    path('auth/', AuthView.as_view(), name='auth'),
    path('settings/', include('user.urls')),
    path('reset-password/', redirect_to_password_reset, name='reset-password'),
    path('accounts/', include('allauth.urls')),
    path('create-team/', TeamCreateView.as_view(), name='create-team'),
    path('join/<str:invite_code>/', join_team, name='join-team'),
    path('team/<int:team_id>/', include('team.urls')),
    path('team/<int:team_id>/meeting/', include('meeting.urls')),
    path('agenda-templates/', include('meeting.template_urls')),
]
