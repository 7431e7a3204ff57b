from django.urls import path
from . import views

urlpatterns = [
    path('demands/', views.demand_list_create, name='demand-list-create'),
    path('demands/erp-integration/', views.demand_erp_integration, name='demand-erp-integration'),
    path('demands/<str:pk>/', views.demand_detail, name='demand-detail'),
    path('demands/<str:pk>/approve/', views.demand_approve, name='demand-approve'),
]
