"""
URL configuration for the UXOne backend.

Every app mounts its routes under ``api/v1/``. Uploaded files are not served
from MEDIA_URL; they are downloaded through the access-checked API views.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "UXOne Administration"
admin.site.site_title = "UXOne Admin Portal"
admin.site.index_title = "Welcome to UXOne"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('uxone.core.urls')),
    path('api/v1/', include('uxone.projects.urls')),
    path('api/v1/', include('uxone.helpdesk.urls')),
    path('api/v1/', include('uxone.procurement.urls')),
    path('api/v1/', include('uxone.jde.urls')),
    path('api/v1/', include('uxone.documents.urls')),
    path('api/v1/', include('uxone.integration.urls')),
    path('api/v1/', include('uxone.reports.urls')),
]
