from django import forms
from django.contrib.auth.forms import UserCreationForm, UserChangeForm
from django.contrib.auth import get_user_model
from django.utils.translation import gettext_lazy as _

CustomUser = get_user_model()


class CustomUserCreationForm(UserCreationForm):

    class Meta(UserCreationForm.Meta):
        model = CustomUser
        fields = ('username', 'email', 'first_name', 'last_name')


class CustomUserEditForm(UserChangeForm):

    class Meta:
        model = CustomUser
        fields = ('username', 'email', 'first_name', 'last_name', 'full_name', 'avatar_name')


class UserSettingsForm(forms.ModelForm):
    """Form for updating profile settings and email"""

    class Meta:
        model = CustomUser
        fields = ['first_name', 'last_name', 'full_name', 'email', 'avatar_name']
        widgets = {
            'first_name': forms.TextInput(attrs={'class': 'form-control'}),
            'last_name': forms.TextInput(attrs={'class': 'form-control'}),
            'full_name': forms.TextInput(attrs={'class': 'form-control'}),
            'email': forms.EmailInput(attrs={'class': 'form-control'}),
            'avatar_name': forms.TextInput(attrs={'class': 'form-control'}),
        }
        labels = {
            'email': _('Email Address'),
        }
        help_texts = {
            'email': _('Your email address for invitations and password resets'),
        }

    def clean_email(self):
        email = (self.cleaned_data.get('email') or '').strip().lower()
        if email:
            # Check if email is already used by another user
            if CustomUser.objects.filter(email__iexact=email).exclude(pk=self.instance.pk).exists():
                raise forms.ValidationError(_('This email address is already in use.'))
        return email
