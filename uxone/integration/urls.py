from django.urls import path
from . import views

urlpatterns = [
    path('integration/sync-user/', views.sync_user, name='integration-sync-user'),
    path('integration/notifications/sync/', views.notification_sync, name='integration-notification-sync'),
    path('integration/notifications/counts/', views.notification_counts, name='integration-notification-counts'),
    path('integration/notifications/cleanup/', views.notification_cleanup, name='integration-notification-cleanup'),
    path('integration/notifications/push/', views.notification_push, name='integration-notification-push'),
    path('integration/webhook-health/', views.webhook_health, name='integration-webhook-health'),
]
