from django.urls import path
from . import views

urlpatterns = [
    path('document-templates/', views.template_list_create, name='document-template-list-create'),
    path('document-templates/bulk/', views.template_bulk_create, name='document-template-bulk'),
    path('document-templates/<int:pk>/', views.template_detail, name='document-template-detail'),
    path('document-numbers/generate/', views.document_number_generate, name='document-number-generate'),
    path('projects/<int:pk>/document-numbers/', views.project_document_numbers, name='project-document-numbers'),
    path('documents/', views.document_list_create, name='document-list-create'),
    path('documents/<int:pk>/', views.document_detail, name='document-detail'),
    path('documents/<int:pk>/download/', views.document_download, name='document-download'),
    path('documents/<int:pk>/approve/', views.document_approve, name='document-approve'),
]
