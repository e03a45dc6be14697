from django import forms
from django.contrib.auth import get_user_model

from .models import (
    ActionItem, AgendaItem, AgendaTemplate, AgendaTemplateItem, Comment,
    MeetingSeries, Priority, Topic,
)
from .periods import Frequency

User = get_user_model()


class MeetingSeriesForm(forms.ModelForm):
    """Form for creating and editing meeting series"""
    frequency = forms.ChoiceField(choices=Frequency.choices(), initial=Frequency.WEEKLY.value,
                                  widget=forms.Select(attrs={'class': 'form-select'}))

    class Meta:
        model = MeetingSeries
        fields = ['name', 'frequency']
        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'e.g. Weekly Tactical'}),
        }

    def clean_name(self):
        name = self.cleaned_data.get('name', '').strip()
        if not name:
            raise forms.ValidationError("Meeting name cannot be empty.")
        return name


class ParkingLotForm(forms.ModelForm):
    class Meta:
        model = MeetingSeries
        fields = ['parking_lot']
        widgets = {
            'parking_lot': forms.Textarea(attrs={'class': 'form-control', 'rows': 4}),
        }


class ApplyTemplateForm(forms.Form):
    template = forms.ModelChoiceField(queryset=AgendaTemplate.objects.none(),
                                      widget=forms.Select(attrs={'class': 'form-select'}))

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['template'].queryset = AgendaTemplate.objects.available_to(user)


class MeetingItemForm(forms.ModelForm):
    """
    Base form for the ordered meeting lists. ``assigned_to`` is limited to
    members of the team the item belongs to.
    """

    def __init__(self, *args, team=None, **kwargs):
        super().__init__(*args, **kwargs)
        if 'assigned_to' in self.fields:
            members = User.objects.none()
            if team is not None:
                members = User.objects.filter(team_memberships__team=team)
            self.fields['assigned_to'].queryset = members.order_by('first_name', 'last_name', 'email')
            self.fields['assigned_to'].required = False
            self.fields['assigned_to'].label_from_instance = lambda user: user.display_name

    def clean_title(self):
        title = self.cleaned_data.get('title', '').strip()
        if not title:
            raise forms.ValidationError("Title cannot be empty.")
        return title


class AgendaItemForm(MeetingItemForm):
    class Meta:
        model = AgendaItem
        fields = ['title', 'notes', 'time_minutes', 'assigned_to', 'completion_status']
        widgets = {
            'title': forms.TextInput(attrs={'class': 'form-control'}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'time_minutes': forms.NumberInput(attrs={'class': 'form-control', 'min': 0}),
            'assigned_to': forms.Select(attrs={'class': 'form-select'}),
            'completion_status': forms.Select(attrs={'class': 'form-select'}),
        }


class PriorityForm(MeetingItemForm):
    class Meta:
        model = Priority
        fields = ['title', 'outcome', 'activities', 'assigned_to', 'completion_status']
        widgets = {
            'title': forms.TextInput(attrs={'class': 'form-control'}),
            'outcome': forms.Textarea(attrs={'class': 'form-control', 'rows': 2}),
            'activities': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'assigned_to': forms.Select(attrs={'class': 'form-select'}),
            'completion_status': forms.Select(attrs={'class': 'form-select'}),
        }


class TopicForm(MeetingItemForm):
    class Meta:
        model = Topic
        fields = ['title', 'notes', 'time_minutes', 'assigned_to', 'completion_status']
        widgets = {
            'title': forms.TextInput(attrs={'class': 'form-control'}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'time_minutes': forms.NumberInput(attrs={'class': 'form-control', 'min': 0}),
            'assigned_to': forms.Select(attrs={'class': 'form-select'}),
            'completion_status': forms.Select(attrs={'class': 'form-select'}),
        }


class ActionItemForm(MeetingItemForm):
    class Meta:
        model = ActionItem
        fields = ['title', 'notes', 'due_date', 'assigned_to', 'completion_status']
        widgets = {
            'title': forms.TextInput(attrs={'class': 'form-control'}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'due_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'assigned_to': forms.Select(attrs={'class': 'form-select'}),
            'completion_status': forms.Select(attrs={'class': 'form-select'}),
        }


class AgendaTemplateForm(forms.ModelForm):
    class Meta:
        model = AgendaTemplate
        fields = ['name', 'description']
        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control'}),
            'description': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
        }

    def clean_name(self):
        name = self.cleaned_data.get('name', '').strip()
        if not name:
            raise forms.ValidationError("Template name cannot be empty.")
        return name


class AgendaTemplateItemForm(forms.ModelForm):
    class Meta:
        model = AgendaTemplateItem
        fields = ['title', 'duration_minutes']
        widgets = {
            'title': forms.TextInput(attrs={'class': 'form-control'}),
            'duration_minutes': forms.NumberInput(attrs={'class': 'form-control', 'min': 0}),
        }

    def clean_title(self):
        title = self.cleaned_data.get('title', '').strip()
        if not title:
            raise forms.ValidationError("Title cannot be empty.")
        return title


class CommentForm(forms.ModelForm):
    class Meta:
        model = Comment
        fields = ['content']
        widgets = {
            'content': forms.Textarea(attrs={'class': 'form-control', 'rows': 2, 'placeholder': 'Add a comment'}),
        }
