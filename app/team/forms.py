from django import forms

from .models import Team


class TeamForm(forms.ModelForm):
    """Form for creating and renaming teams"""
    class Meta:
        model = Team
        fields = ['name', 'abbreviated_name']
        labels = {
            'abbreviated_name': 'Short name',
        }
        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control'}),
            'abbreviated_name': forms.TextInput(attrs={'class': 'form-control', 'maxlength': 10}),
        }


class InviteForm(forms.Form):
    """Email addresses to invite, separated by newlines, commas or semicolons"""
    emails = forms.CharField(
        widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3, 'placeholder': 'name@example.com, other@example.com'}),
        help_text="Separate addresses with commas, semicolons or new lines.",
    )
