import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Sum, Count, Q
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from uxone.core.cache_utils import get_cached_dashboard_kpis, cache_dashboard_kpis
from uxone.core.models import User
from uxone.projects.models import Task, Comment
from uxone.projects.utils import visible_projects, compute_project_kpi, is_admin

logger = logging.getLogger(__name__)

UPCOMING_DAYS = 7
TREND_DAYS = 7


def _time_range(request):
    try:
        days = int(request.query_params.get('time_range', 30))
    except ValueError:
        return None
    return days if days > 0 else None


def _task_row(task):
    return {
        'id': task.id,
        'title': task.title,
        'status': task.status,
        'priority': task.priority,
        'due_date': task.due_date,
        'updated_at': task.updated_at,
        'project': {'id': task.project_id, 'name': task.project.name} if task.project_id else None,
        'assignee': {'id': task.assignee_id, 'name': task.assignee.display_name} if task.assignee_id else None,
    }


def build_dashboard_kpis(user, days, project_id=None):
    now = timezone.now()
    start_date = now - timedelta(days=days)

    user_tasks = Task.objects.filter(Q(owner=user) | Q(assignee=user) | Q(creator=user))
    projects = visible_projects(user)
    if project_id:
        user_tasks = user_tasks.filter(project_id=project_id)
        projects = projects.filter(id=project_id)

    task_counts = dict(
        user_tasks.filter(created_at__gte=start_date).values_list('status').annotate(count=Count('id'))
    )
    project_counts = dict(
        projects.filter(created_at__gte=start_date).values_list('status').annotate(count=Count('id', distinct=True))
    )
    total_tasks = sum(task_counts.values())
    completed_tasks = task_counts.get('COMPLETED', 0)

    open_tasks = user_tasks.exclude(status='COMPLETED')
    overdue_tasks = open_tasks.filter(due_date__lt=now).count()
    upcoming = list(
        open_tasks.filter(due_date__gte=now, due_date__lte=now + timedelta(days=UPCOMING_DAYS))
        .select_related('project', 'assignee').order_by('due_date')[:10]
    )
    recent_tasks = list(
        user_tasks.filter(updated_at__gte=start_date)
        .select_related('project', 'assignee').order_by('-updated_at')[:10]
    )
    comments = Comment.objects.filter(author=user, created_at__gte=start_date).select_related('task')
    if project_id:
        comments = comments.filter(Q(task__project_id=project_id) | Q(project_id=project_id))
    recent_comments = [
        {
            'id': comment.id,
            'content': comment.content,
            'created_at': comment.created_at,
            'task': {'id': comment.task_id, 'title': comment.task.title} if comment.task_id else None,
        }
        for comment in comments.order_by('-created_at')[:10]
    ]

    trends = []
    today = timezone.localdate()
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        trends.append({
            'date': day.isoformat(),
            'completed_tasks': user_tasks.filter(status='COMPLETED', completed_at__date=day).count(),
        })

    hours = user_tasks.filter(created_at__gte=start_date).aggregate(
        estimated=Sum('estimated_hours'), actual=Sum('actual_hours')
    )
    estimated = hours['estimated'] or Decimal('0')
    actual = hours['actual'] or Decimal('0')

    return {
        'overview': {
            'total_tasks': total_tasks,
            'completed_tasks': completed_tasks,
            'in_progress_tasks': task_counts.get('IN_PROGRESS', 0),
            'review_tasks': task_counts.get('REVIEW', 0),
            'todo_tasks': task_counts.get('TODO', 0),
            'completion_rate': round(completed_tasks / total_tasks * 100, 1) if total_tasks else 0,
            'total_projects': sum(project_counts.values()),
            'active_projects': project_counts.get('ACTIVE', 0),
            'completed_projects': project_counts.get('COMPLETED', 0),
            'overdue_tasks': overdue_tasks,
            'upcoming_deadlines': len(upcoming),
        },
        'time_tracking': {
            'total_estimated_hours': float(estimated),
            'total_actual_hours': float(actual),
            'efficiency': round(float(actual) / float(estimated) * 100, 1) if estimated else 0,
            'hours_remaining': float(max(Decimal('0'), estimated - actual)),
        },
        'productivity': {
            'trends': trends,
            'average_daily_tasks': round(sum(day['completed_tasks'] for day in trends) / TREND_DAYS, 2),
        },
        'recent_activity': {
            'tasks': [_task_row(task) for task in recent_tasks],
            'comments': recent_comments,
        },
        'upcoming_deadlines': [_task_row(task) for task in upcoming],
        'time_range': days,
        'generated_at': now.isoformat(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_kpis(request):
    """Dashboard KPIs for the current user over the last time_range days (cached)"""
    days = _time_range(request)
    if days is None:
        return Response({'error': 'time_range must be a positive integer'}, status=status.HTTP_400_BAD_REQUEST)
    project_id = request.query_params.get('project_id') or None

    data, cache_key = get_cached_dashboard_kpis(request.user.id, days, project_id)
    if data is None:
        data = build_dashboard_kpis(request.user, days, project_id)
        cache_dashboard_kpis(cache_key, data)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def project_analytics(request):
    """Progress, budget and task breakdown of every project visible to the user"""
    projects = visible_projects(request.user)
    project_status = request.query_params.get('status')
    if project_status:
        projects = projects.filter(status=project_status)

    results = []
    for project in projects.order_by('name'):
        breakdown = dict(project.tasks.values_list('status').annotate(count=Count('id')))
        kpi = compute_project_kpi(project)
        results.append({
            'id': project.id,
            'name': project.name,
            'status': project.status,
            'budget': float(project.budget) if project.budget is not None else None,
            'start_date': project.start_date,
            'end_date': project.end_date,
            'progress': kpi['completion_percentage'],
            'kpi': kpi,
            'tasks_by_status': breakdown,
            'overdue_tasks': project.tasks.exclude(status='COMPLETED').filter(due_date__lt=timezone.now()).count(),
        })

    total_budget = sum(row['budget'] or 0 for row in results)
    return Response({
        'projects': results,
        'summary': {
            'total_projects': len(results),
            'total_budget': total_budget,
            'average_progress': round(sum(row['progress'] for row in results) / len(results), 1) if results else 0,
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def team_workload(request):
    """Open tasks per member of a department (defaults to the caller's department)"""
    department = (request.query_params.get('department') or request.user.department).upper()
    if department != request.user.department and not is_admin(request.user):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    now = timezone.now()
    open_filter = ~Q(assigned_tasks__status='COMPLETED')
    members = User.objects.filter(department=department, is_active=True).annotate(
        open_tasks=Count('assigned_tasks', filter=open_filter),
        overdue_tasks=Count('assigned_tasks', filter=open_filter & Q(assigned_tasks__due_date__lt=now)),
        in_progress_tasks=Count('assigned_tasks', filter=Q(assigned_tasks__status='IN_PROGRESS')),
        open_estimated_hours=Sum('assigned_tasks__estimated_hours', filter=open_filter),
    ).order_by('-open_tasks', 'username')

    workload = [
        {
            'user_id': member.id,
            'username': member.username,
            'name': member.display_name,
            'position': member.position,
            'open_tasks': member.open_tasks,
            'in_progress_tasks': member.in_progress_tasks,
            'overdue_tasks': member.overdue_tasks,
            'open_estimated_hours': float(member.open_estimated_hours or 0),
        }
        for member in members
    ]
    logger.debug(f"Team workload for {department}: {len(workload)} members")
    return Response({
        'department': department,
        'members': workload,
        'total_open_tasks': sum(row['open_tasks'] for row in workload),
    })
