import os

from django.conf import settings
from django.db import models


class DocumentTemplate(models.Model):
    """Numbering template; issued numbers look like {prefix}-{year}-{sequence:03d}"""
    template_name = models.CharField(max_length=255)
    template_code = models.CharField(max_length=50, unique=True)
    prefix = models.CharField(max_length=50)
    year = models.PositiveIntegerField()
    current_sequence = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    description = models.TextField(blank=True, default='')
    revision_number = models.PositiveIntegerField(default=0)
    effective_date = models.DateField(null=True, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='document_templates')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.template_code} - {self.template_name}"

    class Meta:
        db_table = 'document_templates'
        ordering = ['template_name']


class DocumentNumber(models.Model):
    document_number = models.CharField(max_length=100, unique=True)
    template = models.ForeignKey(DocumentTemplate, on_delete=models.PROTECT, related_name='document_numbers')
    project = models.ForeignKey('projects.Project', on_delete=models.SET_NULL, null=True, blank=True, related_name='document_numbers')
    sequence_number = models.PositiveIntegerField()
    year = models.PositiveIntegerField()
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='document_numbers')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.document_number

    class Meta:
        db_table = 'document_numbers'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['project', 'created_at'], name='idx_docnumber_project'),
        ]


def document_upload_path(instance, filename):
    folder = f"project_{instance.project_id}" if instance.project_id else 'general'
    return os.path.join('documents', folder, filename)


class Document(models.Model):
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('REJECTED', 'Rejected'),
    ]

    name = models.CharField(max_length=255)
    file = models.FileField(upload_to=document_upload_path)
    file_size = models.PositiveIntegerField(default=0)
    content_type = models.CharField(max_length=100, blank=True)
    project = models.ForeignKey('projects.Project', on_delete=models.CASCADE, null=True, blank=True, related_name='documents')
    document_number = models.ForeignKey(DocumentNumber, on_delete=models.SET_NULL, null=True, blank=True, related_name='documents')
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='documents')
    department = models.CharField(max_length=50, blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True, help_text="Free-form metadata; 'type' drives access rules")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING', db_index=True)
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_documents')
    approved_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def document_type(self):
        return (self.metadata or {}).get('type')

    class Meta:
        db_table = 'documents'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['project', 'status'], name='idx_document_project_status'),
            models.Index(fields=['department'], name='idx_document_department'),
        ]
