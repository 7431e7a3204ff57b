from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard-kpis/', views.dashboard_kpis, name='dashboard-kpis'),
    path('reports/project-analytics/', views.project_analytics, name='project-analytics'),
    path('reports/team-workload/', views.team_workload, name='team-workload'),
]
