from django.urls import path
from . import views

urlpatterns = [
    path('tickets/', views.ticket_list_create, name='ticket-list-create'),
    path('tickets/reports/', views.ticket_reports, name='ticket-reports'),
    path('tickets/<int:pk>/', views.ticket_detail, name='ticket-detail'),
    path('tickets/<int:pk>/comments/', views.ticket_comments, name='ticket-comments'),
    path('tickets/<int:pk>/convert-to-task/', views.ticket_convert_to_task, name='ticket-convert-to-task'),
    path('helpdesk/ticket-numbering/', views.ticket_numbering_config, name='ticket-numbering-config'),
    path('email-webhook/', views.email_webhook, name='email-webhook'),
]
