from django.urls import path

from user.views import AccountDeleteView, SettingsView


urlpatterns = [
    path('', SettingsView, name='user-settings'),
    path('delete/', AccountDeleteView.as_view(), name='user-delete'),
]
