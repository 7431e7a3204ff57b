import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from uxone.core.rbac import is_super_admin
from uxone.core.utils import create_audit_log, notify_user
from .demand_ids import generate_demand_id
from .erp import (
    ERPSubmissionError,
    generate_transformation_summary,
    submit_purchase_order,
    transform_demand_to_erp,
    validate_erp_data,
)
from .models import Demand
from .serializers import DemandSerializer

logger = logging.getLogger(__name__)


def can_approve_demand(user, demand):
    """Admins, managers and directors, supervisors of the demand's department, and procurement"""
    role = (user.role or '').upper()
    position = (user.position or '').upper()
    if 'ADMIN' in role or role == 'MANAGER':
        return True
    if 'MANAGER' in position or 'DIRECTOR' in position:
        return True
    if 'SUPERVISOR' in position and user.department == demand.department:
        return True
    return user.department == 'PROC'


def can_view_all_demands(user):
    role = (user.role or '').upper()
    return is_super_admin(user) or role == 'ADMIN' or user.department == 'PROC'


def can_access_demand(user, demand):
    return demand.requester_id == user.id or can_view_all_demands(user) or can_approve_demand(user, demand)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def demand_list_create(request):
    """List demands (own unless admin/procurement) or submit a new demand with lines"""
    if request.method == 'GET':
        demands = Demand.objects.select_related('requester').prefetch_related('lines')
        if not can_view_all_demands(request.user):
            demands = demands.filter(requester=request.user)
        for param, field in (('status', 'status'), ('department', 'department'), ('priority', 'priority_level')):
            value = request.query_params.get(param)
            if value:
                demands = demands.filter(**{field: value})
        return Response(DemandSerializer(demands, many=True).data)

    serializer = DemandSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            demand = serializer.save(
                id=generate_demand_id(),
                requester=request.user,
                user_department=request.user.department or request.user.central_department,
                status='PENDING',
            )
        logger.info(f"Demand {demand.id} submitted by {request.user.username}")
        create_audit_log(request=request, action='create', model_name='Demand', object_id=demand.id,
                         object_reference=demand.id, changes={'lines': demand.lines.count()})
        return Response(DemandSerializer(demand).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def demand_detail(request, pk):
    demand = get_object_or_404(Demand.objects.select_related('requester').prefetch_related('lines'), pk=pk)
    if not can_access_demand(request.user, demand):
        return Response({'error': 'You do not have access to this demand'}, status=status.HTTP_403_FORBIDDEN)
    return Response(DemandSerializer(demand).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def demand_approve(request, pk):
    """Body: {"action": "approve" | "reject", "comment": optional}"""
    action = request.data.get('action')
    comment = request.data.get('comment')
    if action not in ('approve', 'reject'):
        return Response({'error': "Invalid action. Must be 'approve' or 'reject'"},
                        status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        demand = get_object_or_404(Demand.objects.select_for_update(), pk=pk)
        if demand.status != 'PENDING':
            return Response({'error': 'Demand is not in pending status'}, status=status.HTTP_400_BAD_REQUEST)
        if not can_approve_demand(request.user, demand):
            return Response({'error': "Access denied. You don't have permission to approve this demand."},
                            status=status.HTTP_403_FORBIDDEN)

        new_status = 'APPROVED' if action == 'approve' else 'REJECTED'
        demand.status = new_status
        update_fields = ['status', 'updated_at']
        if action == 'approve':
            demand.approved_at = timezone.now()
            update_fields.append('approved_at')
        demand.save(update_fields=update_fields)
        demand.lines.update(status=new_status)

    verb = 'approved' if action == 'approve' else 'rejected'
    notify_user(
        demand.requester,
        f'Demand {verb.capitalize()}',
        f"Your demand {demand.id} has been {verb}{f' with comment: {comment}' if comment else ''}.",
        type='SUCCESS' if action == 'approve' else 'WARNING',
        link=f'/demands/{demand.id}',
    )
    logger.info(f"Demand {demand.id} {verb} by {request.user.username}")
    create_audit_log(request=request, action='approve' if action == 'approve' else 'reject',
                     model_name='Demand', object_id=demand.id, object_reference=demand.id,
                     changes={'status': new_status, 'comment': comment})
    demand.refresh_from_db()
    return Response({
        'success': True,
        'message': f'Demand successfully {verb}',
        'demand': DemandSerializer(demand).data,
    })


def _load_erp_options(source):
    return {
        'supplier_code': source.get('supplier_code'),
        'p4310_version': source.get('p4310_version'),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def demand_erp_integration(request):
    """
    GET previews the purchase order built from ?demand_id=...;
    POST {demand_id, supplier_code, p4310_version, custom_mappings} submits it to JDE.
    """
    source = request.query_params if request.method == 'GET' else request.data
    demand_id = source.get('demand_id')
    if not demand_id:
        return Response({'error': 'Demand ID is required'}, status=status.HTTP_400_BAD_REQUEST)
    demand = get_object_or_404(Demand.objects.prefetch_related('lines'), pk=demand_id)
    if not can_access_demand(request.user, demand):
        return Response({'error': 'You do not have access to this demand'}, status=status.HTTP_403_FORBIDDEN)

    custom_mappings = request.data.get('custom_mappings') if request.method == 'POST' else None
    try:
        erp_data = transform_demand_to_erp(demand, custom_mappings=custom_mappings, **_load_erp_options(source))
    except (TypeError, ValueError, KeyError) as e:
        return Response({'error': f'Invalid custom mappings: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)
    errors = validate_erp_data(erp_data)
    summary = generate_transformation_summary(demand, erp_data) if not errors else None

    if request.method == 'GET':
        return Response({
            'demand_id': demand.id,
            'erp_data': erp_data,
            'summary': summary,
            'validation': {'is_valid': not errors, 'errors': errors},
        })

    if not can_approve_demand(request.user, demand):
        return Response({'error': 'You do not have permission to submit this demand to ERP'},
                        status=status.HTTP_403_FORBIDDEN)
    if demand.status != 'APPROVED':
        return Response({'error': 'Only approved demands can be submitted to ERP'},
                        status=status.HTTP_400_BAD_REQUEST)
    if errors:
        return Response({'error': 'ERP data validation failed', 'details': errors},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        erp_response = submit_purchase_order(erp_data)
    except ERPSubmissionError as e:
        return Response({'error': 'Failed to integrate with ERP system', 'details': str(e)},
                        status=status.HTTP_503_SERVICE_UNAVAILABLE)

    department_specific = dict(demand.department_specific or {})
    department_specific['erp_integration'] = {
        'timestamp': timezone.now().isoformat(),
        'erp_data': erp_data,
        'summary': summary,
        'response': erp_response,
    }
    demand.department_specific = department_specific
    demand.status = 'ERP_PROCESSING'
    demand.save(update_fields=['department_specific', 'status', 'updated_at'])

    create_audit_log(request=request, action='erp_submit', model_name='Demand', object_id=demand.id,
                     object_reference=demand.id, changes={'summary': summary})
    return Response({
        'success': True,
        'message': 'Demand successfully integrated with ERP system',
        'data': {
            'demand_id': demand.id,
            'erp_data': erp_data,
            'summary': summary,
            'erp_response': erp_response,
        },
    })
