from django.contrib import admin
from .models import DocumentTemplate, DocumentNumber, Document


@admin.register(DocumentTemplate)
class DocumentTemplateAdmin(admin.ModelAdmin):
    list_display = ['template_code', 'template_name', 'prefix', 'year', 'current_sequence', 'revision_number', 'is_active']
    list_filter = ['is_active', 'year']
    search_fields = ['template_code', 'template_name']
    readonly_fields = ['current_sequence', 'created_at', 'updated_at']


@admin.register(DocumentNumber)
class DocumentNumberAdmin(admin.ModelAdmin):
    list_display = ['document_number', 'template', 'project', 'year', 'created_by', 'created_at']
    list_filter = ['year', 'template']
    search_fields = ['document_number']
    raw_id_fields = ['project', 'created_by']


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['name', 'project', 'owner', 'department', 'status', 'created_at']
    list_filter = ['status', 'department']
    search_fields = ['name', 'owner__username']
    raw_id_fields = ['project', 'owner', 'approved_by', 'document_number']
