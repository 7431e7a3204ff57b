from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, register, user_me,
    user_list_create, user_detail, user_change_department,
    department_list_create, department_detail,
    setting_list_create, setting_detail,
    audit_log_list, audit_log_detail,
    notification_list, notification_mark_read, notification_mark_all_read,
    notification_clear_all, notification_unread_count,
    global_search
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),
    path('users/<int:pk>/department/', user_change_department, name='user-change-department'),

    # Department endpoints
    path('departments/', department_list_create, name='department-list-create'),
    path('departments/<int:pk>/', department_detail, name='department-detail'),

    # Setting endpoints
    path('settings/', setting_list_create, name='setting-list-create'),
    path('settings/<int:pk>/', setting_detail, name='setting-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),

    # Notification endpoints
    path('notifications/', notification_list, name='notification-list'),
    path('notifications/unread-count/', notification_unread_count, name='notification-unread-count'),
    path('notifications/mark-all-read/', notification_mark_all_read, name='notification-mark-all-read'),
    path('notifications/clear/', notification_clear_all, name='notification-clear-all'),
    path('notifications/<int:pk>/read/', notification_mark_read, name='notification-mark-read'),

    # Global search endpoint
    path('search/', global_search, name='global-search'),
]
