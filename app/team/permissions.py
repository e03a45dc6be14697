"""
Team-scoped access checks.

Every page under /team/<team_id>/ is limited to members of that team; admin
actions additionally require the admin role. Superusers pass every check.
"""
from functools import wraps

from django.contrib.auth.mixins import LoginRequiredMixin, UserPassesTestMixin
from django.core.exceptions import PermissionDenied
from django.http import JsonResponse
from django.shortcuts import get_object_or_404

from .models import Team


def user_is_team_member(user, team):
    return user.is_superuser or team.is_member(user)


def user_is_team_admin(user, team):
    return team.can_user_manage_team(user)


class TeamAccessMixin(LoginRequiredMixin, UserPassesTestMixin):
    """Resolve ``self.team`` from the ``team_id`` URL kwarg and require membership"""
    team_admin_required = False

    def get_team(self):
        if not hasattr(self, '_team'):
            self._team = get_object_or_404(Team, pk=self.kwargs['team_id'])
        return self._team

    @property
    def team(self):
        return self.get_team()

    def test_func(self):
        if self.team_admin_required:
            return user_is_team_admin(self.request.user, self.team)
        return user_is_team_member(self.request.user, self.team)

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['team'] = self.team
        context['is_team_admin'] = user_is_team_admin(self.request.user, self.team)
        return context


def team_member_required(admin=False, json=False):
    """
    Decorator for function views taking ``team_id``.

    Passes the resolved team as the ``team`` keyword argument. JSON endpoints
    answer 403 with an error body instead of raising PermissionDenied.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, team_id, *args, **kwargs):
            team = get_object_or_404(Team, pk=team_id)
            check = user_is_team_admin if admin else user_is_team_member
            if not request.user.is_authenticated or not check(request.user, team):
                if json:
                    return JsonResponse({'error': 'Permission denied'}, status=403)
                raise PermissionDenied
            return view_func(request, *args, team=team, **kwargs)
        return wrapper
    return decorator
