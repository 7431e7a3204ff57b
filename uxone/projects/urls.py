from django.urls import path
from . import views

urlpatterns = [
    # Project endpoints
    path('projects/', views.project_list_create, name='project-list-create'),
    path('projects/bulk/', views.project_bulk, name='project-bulk'),
    path('projects/<int:pk>/', views.project_detail, name='project-detail'),
    path('projects/<int:pk>/approve/', views.project_approve, name='project-approve'),
    path('projects/<int:pk>/due-dates/', views.project_due_dates, name='project-due-dates'),
    path('projects/<int:pk>/team/', views.project_team, name='project-team'),
    path('projects/<int:pk>/team/<int:user_id>/', views.project_team_member, name='project-team-member'),
    path('projects/<int:pk>/comments/', views.project_comments, name='project-comments'),

    # Task endpoints
    path('tasks/', views.task_list_create, name='task-list-create'),
    path('tasks/bulk/', views.task_bulk, name='task-bulk'),
    path('tasks/<int:pk>/', views.task_detail, name='task-detail'),
    path('tasks/<int:pk>/subtasks/', views.task_subtasks, name='task-subtasks'),
    path('tasks/<int:pk>/comments/', views.task_comments, name='task-comments'),
    path('tasks/<int:pk>/dependencies/', views.task_dependencies, name='task-dependencies'),
    path('tasks/<int:pk>/dependencies/<int:dependency_id>/', views.task_dependency_delete, name='task-dependency-delete'),
    path('tasks/<int:pk>/time-tracking/', views.task_time_tracking, name='task-time-tracking'),
    path('tasks/<int:pk>/attachments/', views.task_attachments, name='task-attachments'),
    path('tasks/<int:pk>/attachments/<int:attachment_id>/', views.task_attachment_detail, name='task-attachment-detail'),
]
