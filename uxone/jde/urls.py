from django.urls import path
from . import views

urlpatterns = [
    path('jde/connection/', views.jde_connection_status, name='jde-connection'),
    path('jde/inventory/', views.jde_inventory, name='jde-inventory'),
    path('jde/inventory/export/', views.jde_inventory_export, name='jde-inventory-export'),
    path('jde/inventory/gl-classes/', views.jde_gl_classes, name='jde-gl-classes'),
    path('jde/purchase-orders/', views.jde_purchase_orders, name='jde-purchase-orders'),
    path('jde/purchase-orders/<str:po_number>/', views.jde_purchase_order_detail, name='jde-purchase-order-detail'),
    path('jde/mrp/', views.jde_mrp_messages, name='jde-mrp'),
    path('jde/cache/refresh/', views.jde_cache_refresh, name='jde-cache-refresh'),
]
