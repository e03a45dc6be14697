import logging

from django.contrib.auth.mixins import LoginRequiredMixin
from django.shortcuts import redirect
from django.views.generic import TemplateView, View

from team.models import TeamMember

logger = logging.getLogger(__name__)


class HomePageView(View):
    """Send visitors to the dashboard, or to the login page when signed out"""

    def get(self, request, *args, **kwargs):
        if request.user.is_authenticated:
            return redirect('dashboard')
        return redirect('auth')


class DashboardView(LoginRequiredMixin, TemplateView):
    template_name = "pages/dashboard.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        memberships = (
            TeamMember.objects
            .filter(user=self.request.user)
            .select_related('team')
            .prefetch_related('team__meeting_series')
            .order_by('team__name')
        )
        context['memberships'] = memberships
        context['has_teams'] = memberships.exists()

        # Check email verification status for authenticated users
        from allauth.account.models import EmailAddress
        context['email_verified'] = EmailAddress.objects.filter(
            user=self.request.user,
            email__iexact=self.request.user.email,
            verified=True,
        ).exists()
        return context
