from django.urls import reverse
from rest_framework import serializers
from uxone.core.serializers import UserSummarySerializer
from .models import DocumentTemplate, DocumentNumber, Document


class DocumentTemplateSerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    usage_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = DocumentTemplate
        fields = ['id', 'template_name', 'template_code', 'prefix', 'year', 'current_sequence', 'is_active',
                  'description', 'revision_number', 'effective_date', 'created_by', 'usage_count',
                  'created_at', 'updated_at']
        read_only_fields = ['year', 'current_sequence', 'created_at', 'updated_at']

    def validate_template_code(self, value):
        value = value.strip().upper()
        queryset = DocumentTemplate.objects.filter(template_code=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("Template code already exists")
        return value

    def validate_prefix(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Prefix is required")
        return value.strip()


class DocumentNumberSerializer(serializers.ModelSerializer):
    template_name = serializers.CharField(source='template.template_name', read_only=True)
    template_code = serializers.CharField(source='template.template_code', read_only=True)
    created_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = DocumentNumber
        fields = ['id', 'document_number', 'template', 'template_name', 'template_code', 'project',
                  'sequence_number', 'year', 'created_by', 'created_at']
        read_only_fields = fields


class DocumentSerializer(serializers.ModelSerializer):
    owner = UserSummarySerializer(read_only=True)
    approved_by = UserSummarySerializer(read_only=True)
    document_number_value = serializers.CharField(source='document_number.document_number', read_only=True)
    download_url = serializers.SerializerMethodField()

    class Meta:
        model = Document
        fields = ['id', 'name', 'download_url', 'file_size', 'content_type', 'project', 'document_number',
                  'document_number_value', 'owner', 'department', 'metadata', 'status', 'approved_by',
                  'approved_at', 'rejection_reason', 'created_at', 'updated_at']
        read_only_fields = ['file_size', 'content_type', 'status', 'approved_at',
                            'rejection_reason', 'created_at', 'updated_at']

    def get_download_url(self, obj):
        # Files are only served through the access-checked download view
        return reverse('document-download', args=[obj.pk])
