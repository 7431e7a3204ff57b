import hmac
import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q
from django.db.models.functions import TruncDate, TruncMonth
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from uxone.core.utils import create_audit_log, notify_user
from uxone.projects.models import Project, Task
from uxone.projects.serializers import TaskSerializer
from .email_intake import process_inbound_email, EmailIntakeError
from .models import Ticket, TicketComment
from .permissions import can, has_department_scope, helpdesk_permission
from .serializers import TicketSerializer, TicketCommentSerializer
from .ticket_numbers import generate_manual_ticket_number, get_numbering_config, save_numbering_config

logger = logging.getLogger(__name__)

User = get_user_model()

ALLOWED_TRANSITIONS = {
    'OPEN': {'IN_PROGRESS', 'PENDING', 'RESOLVED', 'CLOSED'},
    'IN_PROGRESS': {'OPEN', 'PENDING', 'RESOLVED', 'CLOSED'},
    'PENDING': {'OPEN', 'IN_PROGRESS', 'RESOLVED', 'CLOSED'},
    'RESOLVED': {'OPEN', 'IN_PROGRESS', 'CLOSED'},
    'CLOSED': {'OPEN'},
}

SUBTASK_TEMPLATES = [
    ('Investigate Issue', 'Analyze the root cause of the reported issue'),
    ('Develop Solution', 'Create the fix or solution for the issue'),
    ('Test Solution', 'Verify the solution works correctly'),
    ('Deploy Solution', 'Implement the solution in production'),
]


def scoped_tickets(user):
    """Tickets the user may see according to the department scope of their level"""
    queryset = Ticket.objects.select_related('assigned_to', 'created_by')
    if has_department_scope(user):
        return queryset
    return queryset.filter(
        Q(assigned_team=user.department) | Q(created_by=user) | Q(assigned_to=user)
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, helpdesk_permission('read')])
def ticket_list_create(request):
    """List tickets in the caller's scope or open a manual ticket"""
    if request.method == 'GET':
        tickets = scoped_tickets(request.user)
        for param in ('status', 'priority', 'category', 'assigned_team', 'source'):
            value = request.query_params.get(param)
            if value:
                tickets = tickets.filter(**{param: value})
        assignee = request.query_params.get('assigned_to')
        if assignee:
            tickets = tickets.filter(assigned_to_id=assignee)
        search = request.query_params.get('search', '').strip()
        if search:
            tickets = tickets.filter(
                Q(ticket_number__icontains=search) |
                Q(title__icontains=search) |
                Q(description__icontains=search) |
                Q(customer_name__icontains=search) |
                Q(customer_email__icontains=search)
            )
        return Response(TicketSerializer(tickets, many=True).data)

    if not can(request.user, 'create'):
        return Response({'error': 'You do not have permission to create tickets'}, status=status.HTTP_403_FORBIDDEN)

    serializer = TicketSerializer(data=request.data)
    if serializer.is_valid():
        assigned_to_id = serializer.validated_data.pop('assigned_to_id', None)
        assigned_to = get_object_or_404(User, pk=assigned_to_id) if assigned_to_id else None
        with transaction.atomic():
            ticket = serializer.save(
                ticket_number=generate_manual_ticket_number(),
                created_by=request.user,
                assigned_to=assigned_to,
                source='manual',
            )
        create_audit_log(request=request, action='create', model_name='Ticket', object_id=ticket.id,
                         object_name=ticket.title, object_reference=ticket.ticket_number)
        if assigned_to and assigned_to != request.user:
            notify_user(assigned_to, f'Ticket assigned: {ticket.ticket_number}', ticket.title,
                        link=f'/helpdesk/tickets/{ticket.id}')
        return Response(TicketSerializer(ticket).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, helpdesk_permission('read')])
def ticket_detail(request, pk):
    ticket = get_object_or_404(scoped_tickets(request.user), pk=pk)

    if request.method == 'GET':
        data = TicketSerializer(ticket).data
        comments = ticket.comments.select_related('author')
        if not can(request.user, 'update'):
            comments = comments.filter(is_internal=False)
        data['comments'] = TicketCommentSerializer(comments, many=True).data
        data['tasks'] = TaskSerializer(Task.objects.filter(id__in=ticket.related_tasks), many=True).data
        return Response(data)

    if request.method == 'DELETE':
        if not can(request.user, 'delete'):
            return Response({'error': 'You do not have permission to delete tickets'},
                            status=status.HTTP_403_FORBIDDEN)
        create_audit_log(request=request, action='delete', model_name='Ticket', object_id=ticket.id,
                         object_name=ticket.title, object_reference=ticket.ticket_number)
        ticket.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    # PATCH
    new_status = request.data.get('status')
    changes_fields = set(request.data.keys())
    if new_status and new_status != ticket.status:
        if new_status not in ALLOWED_TRANSITIONS.get(ticket.status, set()):
            return Response({'error': f'Invalid status transition from {ticket.status} to {new_status}'},
                            status=status.HTTP_400_BAD_REQUEST)
        needed = 'resolve' if new_status in ('RESOLVED', 'CLOSED') else 'update'
        if not can(request.user, needed):
            return Response({'error': f"Helpdesk permission '{needed}' required"}, status=status.HTTP_403_FORBIDDEN)
    if 'assigned_to_id' in changes_fields and not can(request.user, 'assign'):
        return Response({'error': "Helpdesk permission 'assign' required"}, status=status.HTTP_403_FORBIDDEN)
    other_fields = changes_fields - {'status', 'assigned_to_id'}
    if other_fields and not can(request.user, 'update'):
        return Response({'error': "Helpdesk permission 'update' required"}, status=status.HTTP_403_FORBIDDEN)

    old_status = ticket.status
    serializer = TicketSerializer(ticket, data=request.data, partial=True)
    if serializer.is_valid():
        extra = {}
        if 'assigned_to_id' in serializer.validated_data:
            assigned_to_id = serializer.validated_data.pop('assigned_to_id')
            extra['assigned_to'] = get_object_or_404(User, pk=assigned_to_id) if assigned_to_id else None
        target_status = serializer.validated_data.get('status', old_status)
        if target_status != old_status:
            if target_status == 'RESOLVED':
                extra['resolved_at'] = timezone.now()
            elif target_status == 'CLOSED':
                extra['closed_at'] = timezone.now()
                if not ticket.resolved_at:
                    extra['resolved_at'] = extra['closed_at']
            elif target_status == 'OPEN':
                extra['resolved_at'] = None
                extra['closed_at'] = None
        ticket = serializer.save(**extra)
        if target_status != old_status:
            create_audit_log(request=request, action='status_change', model_name='Ticket',
                             object_id=ticket.id, object_name=ticket.title,
                             object_reference=ticket.ticket_number,
                             changes={'status': {'from': old_status, 'to': target_status}})
        new_assignee = extra.get('assigned_to')
        if new_assignee and new_assignee != request.user:
            notify_user(new_assignee, f'Ticket assigned: {ticket.ticket_number}', ticket.title,
                        link=f'/helpdesk/tickets/{ticket.id}')
        return Response(TicketSerializer(ticket).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, helpdesk_permission('read')])
def ticket_comments(request, pk):
    ticket = get_object_or_404(scoped_tickets(request.user), pk=pk)

    if request.method == 'GET':
        comments = ticket.comments.select_related('author')
        if not can(request.user, 'update'):
            comments = comments.filter(is_internal=False)
        return Response(TicketCommentSerializer(comments, many=True).data)

    serializer = TicketCommentSerializer(data=request.data)
    if serializer.is_valid():
        if serializer.validated_data.get('is_internal') and not can(request.user, 'update'):
            return Response({'error': 'You cannot post internal comments'}, status=status.HTTP_403_FORBIDDEN)
        comment = serializer.save(ticket=ticket, author=request.user, author_type='USER')
        Ticket.objects.filter(pk=ticket.pk).update(updated_at=timezone.now())
        return Response(TicketCommentSerializer(comment).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated, helpdesk_permission('update')])
def ticket_convert_to_task(request, pk):
    """
    Create a task (optionally with the four standard subtasks) from a ticket.

    Body: project_id, assignee_id, priority, estimated_hours, create_subtasks,
    conversion_reason, task_type (all optional)
    """
    ticket = get_object_or_404(scoped_tickets(request.user), pk=pk)
    data = request.data
    conversion_reason = data.get('conversion_reason') or 'Converted from helpdesk ticket'
    task_type = data.get('task_type') or 'investigation'

    project = None
    if data.get('project_id'):
        project = get_object_or_404(Project, pk=data['project_id'])
    assignee = ticket.assigned_to
    if data.get('assignee_id'):
        assignee = get_object_or_404(User, pk=data['assignee_id'])
    priority = data.get('priority') or ticket.priority
    if priority not in dict(Task.PRIORITY_CHOICES):
        return Response({'error': f'Invalid priority: {priority}'}, status=status.HTTP_400_BAD_REQUEST)
    estimated_hours = data.get('estimated_hours')
    if estimated_hours not in (None, ''):
        try:
            estimated_hours = Decimal(str(estimated_hours))
        except InvalidOperation:
            return Response({'error': 'estimated_hours must be a number'}, status=status.HTTP_400_BAD_REQUEST)
    else:
        estimated_hours = None

    owner = ticket.assigned_to or request.user
    with transaction.atomic():
        task = Task.objects.create(
            title=f'[{ticket.ticket_number}] {ticket.title}',
            description=(
                f"Created from helpdesk ticket: {ticket.description}\n\n"
                f"**Ticket Details:**\n"
                f"- Customer: {ticket.customer_name} ({ticket.customer_email})\n"
                f"- Category: {ticket.category}\n"
                f"- Priority: {ticket.priority}\n"
                f"- Conversion Reason: {conversion_reason}"
            ),
            project=project,
            source_ticket=ticket,
            ticket_integration={
                'ticket_id': ticket.id,
                'converted_by': request.user.id,
                'conversion_reason': conversion_reason,
                'task_type': task_type,
                'estimated_effort': float(estimated_hours) if estimated_hours is not None else None,
                'original_ticket': {
                    'ticket_number': ticket.ticket_number,
                    'customer_name': ticket.customer_name,
                    'customer_email': ticket.customer_email,
                    'category': ticket.category,
                    'priority': ticket.priority,
                },
            },
            priority=priority,
            status='TODO',
            assignee=assignee,
            owner=owner,
            creator=request.user,
            estimated_hours=estimated_hours,
        )

        subtasks = []
        if data.get('create_subtasks') in (True, 'true', 'True', 1, '1'):
            for title, description in SUBTASK_TEMPLATES:
                subtasks.append(Task.objects.create(
                    title=title,
                    description=description,
                    status='TODO',
                    priority=task.priority,
                    project=project,
                    assignee=assignee,
                    owner=owner,
                    creator=request.user,
                    parent_task=task,
                    source_ticket=ticket,
                ))

        ticket.related_tasks = list(ticket.related_tasks or []) + [task.id]
        ticket.status = 'IN_PROGRESS'
        ticket.save(update_fields=['related_tasks', 'status', 'updated_at'])

        TicketComment.objects.create(
            ticket=ticket,
            author=request.user,
            author_type='SYSTEM',
            is_internal=True,
            content=(
                f"Ticket converted to task: [{task.title}](tasks/{task.id})\n\n"
                f"**Task Details:**\n"
                f"- Project: {project.name if project else 'No project assigned'}\n"
                f"- Assignee: {assignee.display_name if assignee else 'Unassigned'}\n"
                f"- Priority: {task.priority}\n"
                f"- Conversion Reason: {conversion_reason}"
            ),
        )

    create_audit_log(request=request, action='ticket_convert', model_name='Ticket', object_id=ticket.id,
                     object_name=ticket.title, object_reference=ticket.ticket_number,
                     changes={'task_id': task.id, 'subtasks': [s.id for s in subtasks]})
    return Response({
        'task': TaskSerializer(task).data,
        'subtasks': TaskSerializer(subtasks, many=True).data,
        'message': 'Ticket successfully converted to task',
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, helpdesk_permission('reports')])
def ticket_reports(request):
    """Ticket statistics; ?time_range=<days> bounds the resolution-time and daily series"""
    try:
        time_range = int(request.query_params.get('time_range', 30))
    except ValueError:
        return Response({'error': 'time_range must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    since = timezone.now() - timedelta(days=time_range)
    tickets = Ticket.objects.all()

    def grouped(field):
        return [
            {field: row[field], 'count': row['count']}
            for row in tickets.values(field).annotate(count=Count('id')).order_by('-count')
        ]

    resolved = tickets.filter(resolved_at__isnull=False, resolved_at__gte=since).only('created_at', 'resolved_at')
    durations = [(t.resolved_at - t.created_at).total_seconds() / 3600 for t in resolved]
    average_resolution = round(sum(durations) / len(durations), 1) if durations else 0

    by_month = (
        tickets.filter(created_at__gte=timezone.now() - timedelta(days=183))
        .annotate(month=TruncMonth('created_at'))
        .values('month')
        .annotate(count=Count('id'))
        .order_by('-month')
    )
    by_day = (
        tickets.filter(created_at__gte=since)
        .annotate(day=TruncDate('created_at'))
        .values('day')
        .annotate(count=Count('id'))
        .order_by('day')
    )
    top_assignees = (
        tickets.filter(assigned_to__isnull=False)
        .values('assigned_to__id', 'assigned_to__name', 'assigned_to__username')
        .annotate(count=Count('id'))
        .order_by('-count')[:5]
    )

    return Response({
        'total_tickets': tickets.count(),
        'open_tickets': tickets.filter(status='OPEN').count(),
        'resolved_tickets': tickets.filter(status='RESOLVED').count(),
        'closed_tickets': tickets.filter(status='CLOSED').count(),
        'average_resolution_hours': average_resolution,
        'tickets_by_status': grouped('status'),
        'tickets_by_priority': grouped('priority'),
        'tickets_by_category': grouped('category'),
        'tickets_by_month': [
            {'month': row['month'].strftime('%Y-%m'), 'count': row['count']} for row in by_month
        ],
        'tickets_per_day': [
            {'date': row['day'].isoformat(), 'count': row['count']} for row in by_day
        ],
        'top_assignees': [
            {'id': row['assigned_to__id'],
             'name': row['assigned_to__name'] or row['assigned_to__username'],
             'count': row['count']}
            for row in top_assignees
        ],
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, helpdesk_permission('admin')])
def ticket_numbering_config(request):
    """Read or replace the ticket numbering prefixes and padding"""
    if request.method == 'GET':
        return Response(get_numbering_config())

    with transaction.atomic():
        config, errors = save_numbering_config(request.data)
    if errors:
        return Response({'error': errors[0], 'errors': errors}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='update', model_name='Setting', object_id='ticket_numbering',
                     object_name='Ticket numbering', changes=config)
    return Response({
        'success': True,
        'message': 'Ticket numbering configuration updated successfully',
        'config': config,
    })


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def email_webhook(request):
    """Inbound email from the mail gateway; authenticated by a shared bearer secret"""
    secret = settings.EMAIL_WEBHOOK_SECRET
    if not secret:
        logger.error("Email webhook called but EMAIL_WEBHOOK_SECRET is not configured")
        return Response({'error': 'Email webhook is not configured'}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    provided = request.headers.get('Authorization', '')
    if not hmac.compare_digest(provided.encode(), f'Bearer {secret}'.encode()):
        return Response({'error': 'Unauthorized'}, status=status.HTTP_401_UNAUTHORIZED)

    payload = request.data
    if not isinstance(payload, dict):
        return Response({'error': 'Email payload must be a JSON object'}, status=status.HTTP_400_BAD_REQUEST)
    if not payload.get('from') or not payload.get('subject') or not (payload.get('text') or payload.get('html')):
        return Response({'error': 'Missing required email fields: from, subject, and content'},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        action, ticket, comment = process_inbound_email(payload)
    except EmailIntakeError as e:
        logger.error(f"Email webhook failed: {str(e)}")
        return Response({'error': str(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

    ticket_data = {
        'id': ticket.id,
        'ticket_number': ticket.ticket_number,
        'title': ticket.title,
        'status': ticket.status,
        'priority': ticket.priority,
        'category': ticket.category,
    }
    if action == 'reply_added':
        return Response({
            'success': True,
            'action': action,
            'ticket': ticket_data,
            'comment': {'id': comment.id, 'content': comment.content},
            'message': 'Email reply added to existing ticket',
        })
    return Response({
        'success': True,
        'action': action,
        'ticket': ticket_data,
        'message': 'Email successfully converted to ticket',
    }, status=status.HTTP_201_CREATED)
