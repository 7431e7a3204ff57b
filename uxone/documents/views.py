import json
import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q
from django.http import FileResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from uxone.core.rbac import Permissions, has_permission, can_manage_documents
from uxone.core.utils import create_audit_log, notify_user
from uxone.projects.models import Project
from uxone.projects.utils import is_admin
from .access import check_document_access, filter_accessible
from .models import DocumentTemplate, DocumentNumber, Document
from .numbering import generate_document_number, DocumentNumberError
from .serializers import DocumentTemplateSerializer, DocumentNumberSerializer, DocumentSerializer

logger = logging.getLogger(__name__)


def can_manage_templates(user):
    """Document managers and the QC department maintain numbering templates"""
    return can_manage_documents(user) or (user.department or '').upper() == 'QC'


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def template_list_create(request):
    if request.method == 'GET':
        templates = DocumentTemplate.objects.select_related('created_by').annotate(
            usage_count=Count('document_numbers')
        )
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            templates = templates.filter(is_active=is_active.lower() == 'true')
        year = request.query_params.get('year')
        if year:
            templates = templates.filter(year=year)
        search = request.query_params.get('search', '').strip()
        if search:
            templates = templates.filter(Q(template_name__icontains=search) | Q(template_code__icontains=search))
        return Response(DocumentTemplateSerializer(templates, many=True).data)

    if not can_manage_templates(request.user):
        return Response({'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)
    serializer = DocumentTemplateSerializer(data=request.data)
    if serializer.is_valid():
        template = serializer.save(
            year=timezone.localdate().year,
            current_sequence=0,
            created_by=request.user,
            effective_date=serializer.validated_data.get('effective_date') or timezone.localdate(),
        )
        create_audit_log(request=request, action='create', model_name='DocumentTemplate',
                         object_id=template.id, object_name=template.template_name,
                         object_reference=template.template_code)
        return Response(DocumentTemplateSerializer(template).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def template_detail(request, pk):
    template = get_object_or_404(
        DocumentTemplate.objects.annotate(usage_count=Count('document_numbers')), pk=pk
    )

    if request.method == 'GET':
        data = DocumentTemplateSerializer(template).data
        data['recent_numbers'] = DocumentNumberSerializer(
            template.document_numbers.select_related('template', 'created_by')[:20], many=True
        ).data
        return Response(data)

    if not can_manage_templates(request.user):
        return Response({'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'PATCH':
        serializer = DocumentTemplateSerializer(template, data=request.data, partial=True)
        if serializer.is_valid():
            template = serializer.save()
            create_audit_log(request=request, action='update', model_name='DocumentTemplate',
                             object_id=template.id, object_name=template.template_name,
                             object_reference=template.template_code, changes=dict(request.data))
            return Response(DocumentTemplateSerializer(template).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE: templates that already issued numbers are only deactivated
    if template.usage_count:
        template.is_active = False
        template.save(update_fields=['is_active', 'updated_at'])
        create_audit_log(request=request, action='update', model_name='DocumentTemplate',
                         object_id=template.id, object_name=template.template_name,
                         object_reference=template.template_code, changes={'is_active': False})
        return Response({
            'message': 'Template has issued document numbers and was deactivated instead of deleted',
            'deactivated': True,
        })
    create_audit_log(request=request, action='delete', model_name='DocumentTemplate',
                     object_id=template.id, object_name=template.template_name,
                     object_reference=template.template_code)
    template.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def template_bulk_create(request):
    """
    Body: {"templates": [{template_name, template_code, prefix, revision_number, description}, ...]}

    Codes that already exist are skipped and reported; validation errors reject the whole batch.
    """
    if not can_manage_templates(request.user):
        return Response({'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)
    rows = request.data.get('templates')
    if not isinstance(rows, list) or not rows:
        return Response({'error': 'Templates array is required'}, status=status.HTTP_400_BAD_REQUEST)

    errors = []
    for index, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            errors.append(f'Template {index}: must be an object')
            continue
        for field in ('template_name', 'template_code', 'prefix'):
            if not str(row.get(field) or '').strip():
                errors.append(f'Template {index}: {field} is required')
        try:
            int(row.get('revision_number'))
        except (TypeError, ValueError):
            errors.append(f'Template {index}: revision_number must be a valid number')
    if errors:
        return Response({'error': 'Validation failed', 'details': errors}, status=status.HTTP_400_BAD_REQUEST)

    codes = [str(row['template_code']).strip().upper() for row in rows]
    existing = set(DocumentTemplate.objects.filter(template_code__in=codes).values_list('template_code', flat=True))
    created = []
    skipped = []
    today = timezone.localdate()
    with transaction.atomic():
        for row, code in zip(rows, codes):
            if code in existing:
                skipped.append({'template_code': code, 'reason': 'Template code already exists'})
                continue
            existing.add(code)
            created.append(DocumentTemplate.objects.create(
                template_name=str(row['template_name']).strip(),
                template_code=code,
                prefix=str(row['prefix']).strip(),
                description=row.get('description') or '',
                revision_number=int(row['revision_number']),
                year=today.year,
                effective_date=today,
                created_by=request.user,
            ))

    logger.info(f"Bulk template import by {request.user.username}: {len(created)} created, {len(skipped)} skipped")
    return Response({
        'message': f'Successfully created {len(created)} templates',
        'created': DocumentTemplateSerializer(created, many=True).data,
        'skipped': skipped,
        'count': len(created),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def document_number_generate(request):
    """Body: {"template_id": int, "project_id": optional int}"""
    template_id = request.data.get('template_id')
    if not template_id:
        return Response({'error': 'template_id is required'}, status=status.HTTP_400_BAD_REQUEST)
    project = None
    if request.data.get('project_id'):
        project = get_object_or_404(Project, pk=request.data['project_id'])

    try:
        number = generate_document_number(template_id, project=project, user=request.user)
    except DocumentNumberError as e:
        code = status.HTTP_404_NOT_FOUND if 'not found' in str(e) else status.HTTP_400_BAD_REQUEST
        return Response({'error': str(e)}, status=code)

    create_audit_log(request=request, action='document_number', model_name='DocumentNumber',
                     object_id=number.id, object_reference=number.document_number,
                     changes={'template_id': number.template_id, 'project_id': project.id if project else None})
    return Response(DocumentNumberSerializer(number).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def project_document_numbers(request, pk):
    project = get_object_or_404(Project, pk=pk)
    numbers = DocumentNumber.objects.filter(project=project).select_related('template', 'created_by')
    return Response(DocumentNumberSerializer(numbers, many=True).data)


def _parse_metadata(raw):
    if raw in (None, ''):
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def document_list_create(request):
    if request.method == 'GET':
        documents = Document.objects.select_related('project', 'owner', 'approved_by', 'document_number')
        project_id = request.query_params.get('project')
        if project_id:
            documents = documents.filter(project_id=project_id)
        status_filter = request.query_params.get('status')
        if status_filter:
            documents = documents.filter(status=status_filter)
        document_type = request.query_params.get('type')
        if document_type:
            documents = documents.filter(metadata__type=document_type)
        visible = filter_accessible(documents, request.user)
        return Response(DocumentSerializer(visible, many=True).data)

    if not has_permission(request.user, Permissions.DOCUMENT_CREATE):
        return Response({'error': 'Missing permission: document:create'}, status=status.HTTP_403_FORBIDDEN)
    upload = request.FILES.get('file')
    if upload is None:
        return Response({'error': 'No file provided'}, status=status.HTTP_400_BAD_REQUEST)
    if upload.size > settings.DOCUMENT_MAX_SIZE:
        limit_mb = settings.DOCUMENT_MAX_SIZE // (1024 * 1024)
        return Response({'error': f'File size exceeds {limit_mb}MB limit'}, status=status.HTTP_400_BAD_REQUEST)
    metadata = _parse_metadata(request.data.get('metadata'))
    if metadata is None:
        return Response({'error': 'metadata must be a JSON object'}, status=status.HTTP_400_BAD_REQUEST)

    project = None
    if request.data.get('project'):
        project = get_object_or_404(Project, pk=request.data['project'])
    document_number = None
    if request.data.get('document_number'):
        document_number = get_object_or_404(DocumentNumber, pk=request.data['document_number'])

    document = Document.objects.create(
        name=request.data.get('name') or upload.name,
        file=upload,
        file_size=upload.size,
        content_type=getattr(upload, 'content_type', '') or '',
        project=project,
        document_number=document_number,
        owner=request.user,
        department=(request.data.get('department') or request.user.department or '').upper(),
        metadata=metadata,
    )
    create_audit_log(request=request, action='create', model_name='Document', object_id=document.id,
                     object_name=document.name)
    return Response(DocumentSerializer(document).data, status=status.HTTP_201_CREATED)


def _get_accessible_document(request, pk):
    document = get_object_or_404(Document.objects.select_related('project', 'owner'), pk=pk)
    allowed, reason = check_document_access(document, request.user)
    return document, allowed, reason


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def document_detail(request, pk):
    document, allowed, reason = _get_accessible_document(request, pk)
    if not allowed:
        return Response({'error': reason}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        return Response(DocumentSerializer(document).data)

    if document.owner_id != request.user.id and not is_admin(request.user):
        return Response({'error': 'Only the owner can change this document'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'PATCH':
        serializer = DocumentSerializer(document, data=request.data, partial=True)
        if serializer.is_valid():
            document = serializer.save()
            return Response(DocumentSerializer(document).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='delete', model_name='Document', object_id=document.id,
                     object_name=document.name)
    document.file.delete(save=False)
    document.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def document_download(request, pk):
    document, allowed, reason = _get_accessible_document(request, pk)
    if not allowed:
        return Response({'error': reason}, status=status.HTTP_403_FORBIDDEN)
    try:
        handle = document.file.open('rb')
    except (FileNotFoundError, ValueError):
        logger.error(f"File for document {document.id} is missing from storage")
        return Response({'error': 'File not found'}, status=status.HTTP_404_NOT_FOUND)
    create_audit_log(request=request, action='view', model_name='Document', object_id=document.id,
                     object_name=document.name)
    return FileResponse(handle, as_attachment=True, filename=document.name,
                        content_type=document.content_type or 'application/octet-stream')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def document_approve(request, pk):
    """Body: {"action": "approve" | "reject", "reason": optional}"""
    if not has_permission(request.user, Permissions.PROJECT_APPROVE):
        return Response({'error': 'Missing permission: project:approve'}, status=status.HTTP_403_FORBIDDEN)
    action = request.data.get('action')
    if action not in ('approve', 'reject'):
        return Response({'error': "Invalid action. Must be 'approve' or 'reject'"},
                        status=status.HTTP_400_BAD_REQUEST)
    document = get_object_or_404(Document.objects.select_related('owner'), pk=pk)
    if document.status != 'PENDING':
        return Response({'error': f'Document is already {document.status.lower()}'},
                        status=status.HTTP_400_BAD_REQUEST)

    document.status = 'APPROVED' if action == 'approve' else 'REJECTED'
    document.approved_by = request.user
    document.approved_at = timezone.now()
    document.rejection_reason = (request.data.get('reason') or '') if action == 'reject' else ''
    document.save()

    verb = 'approved' if action == 'approve' else 'rejected'
    notify_user(document.owner, f'Document {verb}', f'"{document.name}" was {verb} by {request.user.display_name}',
                type='SUCCESS' if action == 'approve' else 'WARNING', link=f'/documents/{document.id}')
    create_audit_log(request=request, action=action, model_name='Document', object_id=document.id,
                     object_name=document.name, changes={'status': document.status})
    return Response(DocumentSerializer(document).data)
