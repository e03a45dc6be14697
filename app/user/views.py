import logging

from django.urls import reverse_lazy
from django.views.generic import DeleteView
from django.shortcuts import render, redirect
from django.contrib import messages
from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.contrib.auth.mixins import LoginRequiredMixin
from allauth.account.views import LoginView as AllauthLoginView

from .forms import UserSettingsForm

logger = logging.getLogger(__name__)

CustomUser = get_user_model()


class AccountDeleteView(LoginRequiredMixin, DeleteView):
    model = CustomUser
    template_name = 'user/confirm_delete.html'
    success_url = reverse_lazy('auth')

    def get_object(self, queryset=None):
        # Only the logged-in user can delete their own account
        return self.request.user

    def form_valid(self, form):
        logger.info("User %s deleted their account", self.request.user.pk)
        messages.success(self.request, "Your account has been deleted successfully.")
        return super().form_valid(form)


class AuthView(AllauthLoginView):
    """
    Email/password login page backed by allauth's login flow, so email
    verification and login rate limits apply. Authenticated users are sent to
    the dashboard (or the ``next`` URL).

    ``?invite=<code>`` is remembered in the session and continued by
    ``CustomAccountAdapter.get_login_redirect_url`` after login.
    """
    template_name = "user/login.html"

    def dispatch(self, request, *args, **kwargs):
        invite_code = request.GET.get('invite')
        if invite_code:
            request.session['pending_invite_code'] = invite_code
        return super().dispatch(request, *args, **kwargs)

    def form_invalid(self, form):
        logger.debug("Form validation failed for login attempt")
        return super().form_invalid(form)


@login_required
def SettingsView(request):
    """Profile settings: names, avatar and email address"""
    settings_form = UserSettingsForm(request.POST or None, instance=request.user)

    if request.method == "POST":
        if settings_form.is_valid():
            settings_form.save()
            messages.success(request, "Settings updated successfully.")
            return redirect('user-settings')
        messages.error(request, "Please correct the errors below.")

    context = {
        'user': request.user,
        'settings_form': settings_form,
    }
    return render(request, "user/settings.html", context)
