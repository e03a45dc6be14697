from allauth.account.adapter import DefaultAccountAdapter
from django.contrib.auth import login
from django.urls import reverse


class CustomAccountAdapter(DefaultAccountAdapter):
    """Account adapter that keeps users logged in after email confirmation"""

    def confirm_email(self, request, email_address):
        """Log the user in after email confirmation"""
        super().confirm_email(request, email_address)

        # ACCOUNT_LOGIN_ON_EMAIL_CONFIRMATION only applies within the signup session
        if not request.user.is_authenticated:
            user = email_address.user
            login(request, user, backend='django.contrib.auth.backends.ModelBackend')

        return email_address

    def clean_email(self, email):
        return super().clean_email(email).strip().lower()

    def get_email_verification_redirect_url(self, email_address):
        """Return the URL to redirect to after email verification"""
        return reverse('dashboard')

    def get_login_redirect_url(self, request):
        """Continue a pending invite link after login"""
        invite_code = request.session.pop('pending_invite_code', None)
        if invite_code:
            return reverse('join-team', args=[invite_code])
        return super().get_login_redirect_url(request)
