from django.urls import path
from .views import (
    SeriesCreateView, SeriesSettingsView, SeriesDeleteView, InstanceDetailView, ItemUpdateView,
    series_current, create_next_instance, update_parking_lot,
    item_create, item_delete, item_toggle, item_reorder, item_comments, comment_delete,
)

app_name = 'meeting'

urlpatterns = [
    # Meeting Series URLs
    path('create/', SeriesCreateView.as_view(), name='series-create'),
    path('<int:series_id>/', series_current, name='series-current'),
    path('<int:series_id>/next/', create_next_instance, name='series-next'),
    path('<int:series_id>/settings/', SeriesSettingsView.as_view(), name='series-settings'),
    path('<int:series_id>/delete/', SeriesDeleteView.as_view(), name='series-delete'),
    path('<int:series_id>/parking-lot/', update_parking_lot, name='series-parking-lot'),

    # Meeting Instance URLs
    path('<int:series_id>/instance/<int:pk>/', InstanceDetailView.as_view(), name='instance-detail'),

    # Meeting Item URLs
    path('<int:series_id>/instance/<int:instance_id>/<str:kind>/add/', item_create, name='item-create'),
    path('<int:series_id>/instance/<int:instance_id>/<str:kind>/reorder/', item_reorder, name='item-reorder'),
    path('<int:series_id>/instance/<int:instance_id>/<str:kind>/<int:pk>/edit/', ItemUpdateView.as_view(), name='item-update'),
    path('<int:series_id>/instance/<int:instance_id>/<str:kind>/<int:pk>/delete/', item_delete, name='item-delete'),
    path('<int:series_id>/instance/<int:instance_id>/<str:kind>/<int:pk>/toggle/', item_toggle, name='item-toggle'),

    # Comment URLs
    path('<int:series_id>/comments/<str:kind>/<int:item_id>/', item_comments, name='item-comments'),
    path('<int:series_id>/comments/<int:pk>/delete/', comment_delete, name='comment-delete'),
]
