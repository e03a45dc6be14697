from django.urls import path
from .views import (
    AgendaTemplateListView, AgendaTemplateCreateView, AgendaTemplateDetailView,
    AgendaTemplateUpdateView, AgendaTemplateDeleteView,
    template_item_create, template_item_delete, template_item_reorder,
)

app_name = 'agenda_templates'

urlpatterns = [
    path('', AgendaTemplateListView.as_view(), name='template-list'),
    path('create/', AgendaTemplateCreateView.as_view(), name='template-create'),
    path('<int:pk>/', AgendaTemplateDetailView.as_view(), name='template-detail'),
    path('<int:pk>/edit/', AgendaTemplateUpdateView.as_view(), name='template-update'),
    path('<int:pk>/delete/', AgendaTemplateDeleteView.as_view(), name='template-delete'),
    path('<int:pk>/items/add/', template_item_create, name='template-item-create'),
    path('<int:pk>/items/<int:item_pk>/delete/', template_item_delete, name='template-item-delete'),
    path('<int:pk>/items/reorder/', template_item_reorder, name='template-item-reorder'),
]
