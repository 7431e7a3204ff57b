import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.contrib.auth import get_user_model
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

from uxone.core.rbac import Permissions, has_permission
from uxone.core.utils import create_audit_log, notify_user
from .filters import ProjectFilter, TaskFilter
from .models import Project, ProjectMember, Task, TaskDependency, TaskAttachment, Comment
from .serializers import (
    ProjectSerializer, ProjectMemberSerializer, TaskSerializer,
    TaskAttachmentSerializer, CommentSerializer
)
from .utils import (
    visible_projects, visible_tasks, can_edit_project, can_access_task, is_admin,
    completion_blockers, compute_project_kpi, task_efficiency, creates_dependency_cycle,
    in_department
)

logger = logging.getLogger(__name__)

User = get_user_model()


def _annotated_projects(queryset):
    return queryset.select_related('owner').annotate(
        task_count=Count('tasks', distinct=True),
        completed_task_count=Count('tasks', filter=Q(tasks__status='COMPLETED'), distinct=True),
        document_count=Count('documents', distinct=True),
        comment_count=Count('comments', distinct=True),
        member_count=Count('members', distinct=True),
    )


def _project_payload(project, include_tasks=False, include_members=False, include_kpi=False):
    data = ProjectSerializer(project).data
    data['counts'] = {
        'tasks': getattr(project, 'task_count', None),
        'completed_tasks': getattr(project, 'completed_task_count', None),
        'documents': getattr(project, 'document_count', None),
        'comments': getattr(project, 'comment_count', None),
        'members': getattr(project, 'member_count', None),
    }
    if include_tasks:
        data['tasks'] = TaskSerializer(project.tasks.filter(parent_task__isnull=True), many=True).data
    if include_members:
        data['members'] = ProjectMemberSerializer(project.members.select_related('user'), many=True).data
    if include_kpi:
        data['kpi'] = compute_project_kpi(project)
    return data


def _flag(request, name):
    return request.query_params.get(name, '').lower() in ('1', 'true', 'yes')


# Project views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_list_create(request):
    """List visible projects or create a new one"""
    if request.method == 'GET':
        queryset = visible_projects(request.user)
        if _flag(request, 'mine'):
            queryset = queryset.filter(Q(owner=request.user) | Q(members__user=request.user)).distinct()
        project_filter = ProjectFilter(request.query_params, queryset=queryset)
        if not project_filter.is_valid():
            return Response(project_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        projects = _annotated_projects(project_filter.qs)
        include_tasks = _flag(request, 'include_tasks')
        include_members = _flag(request, 'include_members')
        include_kpi = _flag(request, 'include_kpi')
        return Response([
            _project_payload(p, include_tasks, include_members, include_kpi) for p in projects
        ])

    if not has_permission(request.user, Permissions.PROJECT_CREATE):
        return Response({'error': 'You do not have permission to create projects'},
                        status=status.HTTP_403_FORBIDDEN)

    team_members = request.data.get('team_members') or []
    if team_members:
        existing = set(User.objects.filter(id__in=team_members).values_list('id', flat=True))
        invalid = [m for m in team_members if m not in existing]
        if invalid:
            return Response({'error': 'Some team members do not exist', 'invalid_user_ids': invalid},
                            status=status.HTTP_400_BAD_REQUEST)

    serializer = ProjectSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        with transaction.atomic():
            project = serializer.save()
        create_audit_log(request=request, action='create', model_name='Project',
                         object_id=project.id, object_name=project.name,
                         changes={'departments': project.departments, 'team_members': team_members})
        project = _annotated_projects(Project.objects.filter(pk=project.pk)).get()
        return Response(_project_payload(project, include_members=True), status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def project_bulk(request):
    """
    PATCH: apply the same updates to several projects
        {"project_ids": [1, 2], "updates": {"status": "ACTIVE"}}
    DELETE: delete owned projects, ?project_ids=1,2
    """
    if request.method == 'PATCH':
        project_ids = request.data.get('project_ids')
        updates = request.data.get('updates')
        if not project_ids or not isinstance(project_ids, list):
            return Response({'error': 'Project IDs array is required'}, status=status.HTTP_400_BAD_REQUEST)
        if not updates or not isinstance(updates, dict):
            return Response({'error': 'Updates object is required'}, status=status.HTTP_400_BAD_REQUEST)

        projects = Project.objects.filter(id__in=project_ids).filter(
            Q(owner=request.user) | Q(members__user=request.user) | in_department(request.user.department)
        ).distinct()
        if is_admin(request.user):
            projects = Project.objects.filter(id__in=project_ids)

        if updates.get('status') == 'COMPLETED':
            for project in projects:
                blockers = completion_blockers(project)
                if blockers:
                    return Response(blockers, status=status.HTTP_400_BAD_REQUEST)

        updated = 0
        with transaction.atomic():
            for project in projects:
                serializer = ProjectSerializer(project, data=updates, partial=True)
                if not serializer.is_valid():
                    transaction.set_rollback(True)
                    return Response({'project_id': project.id, 'errors': serializer.errors},
                                    status=status.HTTP_400_BAD_REQUEST)
                serializer.save()
                updated += 1
                create_audit_log(request=request, action='update', model_name='Project',
                                 object_id=project.id, object_name=project.name, changes=updates)
        return Response({'updated': updated})

    raw_ids = request.query_params.get('project_ids', '')
    try:
        project_ids = [int(pid) for pid in raw_ids.split(',') if pid.strip()]
    except ValueError:
        return Response({'error': 'project_ids must be a comma separated list of integers'},
                        status=status.HTTP_400_BAD_REQUEST)
    if not project_ids:
        return Response({'error': 'Project IDs are required'}, status=status.HTTP_400_BAD_REQUEST)

    projects = Project.objects.filter(id__in=project_ids, owner=request.user)
    deleted = 0
    with transaction.atomic():
        for project in projects:
            create_audit_log(request=request, action='delete', model_name='Project',
                             object_id=project.id, object_name=project.name)
            project.delete()
            deleted += 1
    return Response({'deleted': deleted})


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def project_detail(request, pk):
    """Retrieve, update or delete a project"""
    project = get_object_or_404(visible_projects(request.user), pk=pk)

    if request.method == 'GET':
        project = _annotated_projects(Project.objects.filter(pk=project.pk)).get()
        return Response(_project_payload(project, include_tasks=True, include_members=True, include_kpi=True))

    if request.method == 'PATCH':
        if not can_edit_project(request.user, project):
            return Response({'error': 'Only project members can update the project'},
                            status=status.HTTP_403_FORBIDDEN)
        if request.data.get('status') == 'COMPLETED':
            blockers = completion_blockers(project)
            if blockers:
                return Response(blockers, status=status.HTTP_400_BAD_REQUEST)
        old_status = project.status
        serializer = ProjectSerializer(project, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Project',
                             object_id=project.id, object_name=project.name,
                             changes={'status': {'from': old_status, 'to': project.status}}
                             if old_status != project.status else dict(request.data))
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if project.owner_id != request.user.id and not has_permission(request.user, Permissions.PROJECT_DELETE):
        return Response({'error': 'Only the project owner can delete the project'},
                        status=status.HTTP_403_FORBIDDEN)
    create_audit_log(request=request, action='delete', model_name='Project',
                     object_id=project.id, object_name=project.name)
    project.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH', 'POST'])
@permission_classes([IsAuthenticated])
def project_approve(request, pk):
    """Record the caller's department decision: {"department": "QC", "action": "approved"}"""
    department = request.data.get('department')
    action = request.data.get('action')
    if not department or action not in ('approved', 'disapproved'):
        return Response({'error': 'Invalid request'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        project = get_object_or_404(Project.objects.select_for_update(), pk=pk)
        if request.user.department != department:
            return Response({'error': 'Not authorized for this department'}, status=status.HTTP_403_FORBIDDEN)
        if department not in project.departments:
            return Response({'error': f'Department {department} is not part of this project'},
                            status=status.HTTP_400_BAD_REQUEST)

        approval_state = dict(project.approval_state or {})
        approval_state[department] = action
        project.approval_state = approval_state
        if project.all_departments_approved():
            project.status = 'APPROVED'
        project.save(update_fields=['approval_state', 'status', 'updated_at'])

    create_audit_log(request=request, action='approve' if action == 'approved' else 'reject',
                     model_name='Project', object_id=project.id, object_name=project.name,
                     changes={'department': department, 'action': action, 'status': project.status})
    if project.owner_id != request.user.id:
        notify_user(project.owner, f'Project {action}',
                    f'{department} {action} project "{project.name}"',
                    type='SUCCESS' if action == 'approved' else 'WARNING',
                    link=f'/projects/{project.id}')
    return Response(ProjectSerializer(project).data)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def project_due_dates(request, pk):
    """Request date and per-department due dates; only the owner may change them"""
    project = get_object_or_404(Project, pk=pk)

    if request.method == 'GET':
        return Response({
            'request_date': project.request_date,
            'department_due_dates': project.department_due_dates,
        })

    if project.owner_id != request.user.id:
        return Response({'error': 'Only project owner can update due dates'}, status=status.HTTP_403_FORBIDDEN)

    request_date = request.data.get('request_date')
    due_dates = request.data.get('department_due_dates') or {}
    if not isinstance(due_dates, dict):
        return Response({'error': 'department_due_dates must be an object'}, status=status.HTTP_400_BAD_REQUEST)

    parsed_request_date = None
    if request_date:
        try:
            parsed_request_date = date.fromisoformat(str(request_date)[:10])
        except ValueError:
            return Response({'error': 'Invalid request date format'}, status=status.HTTP_400_BAD_REQUEST)

    cleaned = {}
    for dept, value in due_dates.items():
        if not value:
            continue
        try:
            cleaned[dept] = date.fromisoformat(str(value)[:10]).isoformat()
        except ValueError:
            return Response({'error': f'Invalid date format for department {dept}'},
                            status=status.HTTP_400_BAD_REQUEST)

    project.request_date = parsed_request_date
    project.department_due_dates = cleaned
    project.save(update_fields=['request_date', 'department_due_dates', 'updated_at'])
    return Response({
        'request_date': project.request_date,
        'department_due_dates': project.department_due_dates,
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_team(request, pk):
    """List team members or add one: {"user_id": 5, "role": "member"}"""
    project = get_object_or_404(visible_projects(request.user), pk=pk)

    if request.method == 'GET':
        return Response(ProjectMemberSerializer(project.members.select_related('user'), many=True).data)

    if project.owner_id != request.user.id and not is_admin(request.user):
        return Response({'error': 'Only the project owner can manage the team'}, status=status.HTTP_403_FORBIDDEN)

    user = get_object_or_404(User, pk=request.data.get('user_id'))
    role = request.data.get('role', 'member')
    if role not in ('owner', 'member'):
        return Response({'error': 'Invalid role'}, status=status.HTTP_400_BAD_REQUEST)
    member, created = ProjectMember.objects.get_or_create(project=project, user=user, defaults={'role': role})
    if not created:
        return Response({'error': 'User is already a team member'}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='member_add', model_name='Project', object_id=project.id,
                     object_name=project.name, changes={'user': user.username, 'role': role})
    notify_user(user, 'Added to project', f'You were added to project "{project.name}"',
                link=f'/projects/{project.id}')
    return Response(ProjectMemberSerializer(member).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def project_team_member(request, pk, user_id):
    project = get_object_or_404(Project, pk=pk)
    if project.owner_id != request.user.id and not is_admin(request.user):
        return Response({'error': 'Only the project owner can manage the team'}, status=status.HTTP_403_FORBIDDEN)
    if project.owner_id == user_id:
        return Response({'error': 'The project owner cannot be removed'}, status=status.HTTP_400_BAD_REQUEST)
    member = get_object_or_404(ProjectMember, project=project, user_id=user_id)
    member.delete()
    create_audit_log(request=request, action='member_remove', model_name='Project', object_id=project.id,
                     object_name=project.name, changes={'user_id': user_id})
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_comments(request, pk):
    project = get_object_or_404(visible_projects(request.user), pk=pk)

    if request.method == 'GET':
        comments = project.comments.select_related('author')
        return Response(CommentSerializer(comments, many=True).data)

    serializer = CommentSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(author=request.user, project=project)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Task views
def _save_task(serializer, request, **extra):
    assignee_id = serializer.validated_data.pop('assignee_id', None)
    if assignee_id is not None:
        extra['assignee'] = User.objects.get(pk=assignee_id)
    return serializer.save(**extra)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_list_create(request):
    """List tasks visible to the caller or create a task"""
    if request.method == 'GET':
        queryset = visible_tasks(request.user).select_related('project', 'owner', 'assignee', 'creator')
        if _flag(request, 'mine'):
            queryset = queryset.filter(
                Q(owner=request.user) | Q(assignee=request.user) | Q(creator=request.user)
            )
        task_filter = TaskFilter(request.query_params, queryset=queryset)
        if not task_filter.is_valid():
            return Response(task_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(TaskSerializer(task_filter.qs, many=True).data)

    serializer = TaskSerializer(data=request.data)
    if serializer.is_valid():
        project = serializer.validated_data.get('project')
        if project is not None and not can_edit_project(request.user, project):
            return Response({'error': 'Only project members can add tasks'}, status=status.HTTP_403_FORBIDDEN)
        parent = serializer.validated_data.get('parent_task')
        if parent is not None and project is None:
            serializer.validated_data['project'] = parent.project
        task = _save_task(serializer, request, owner=request.user, creator=request.user)
        create_audit_log(request=request, action='create', model_name='Task', object_id=task.id,
                         object_name=task.title)
        if task.assignee and task.assignee_id != request.user.id:
            notify_user(task.assignee, 'New task assigned', f'You were assigned "{task.title}"',
                        link=f'/tasks/{task.id}')
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def task_bulk(request):
    """
    PATCH: apply the same updates to several tasks the caller owns, is assigned or created
        {"task_ids": [1, 2], "updates": {"status": "IN_PROGRESS"}}
    DELETE: delete tasks the caller owns or created, ?task_ids=1,2
    """
    if request.method == 'PATCH':
        task_ids = request.data.get('task_ids')
        updates = request.data.get('updates')
        if not task_ids or not isinstance(task_ids, list):
            return Response({'error': 'Task IDs array is required'}, status=status.HTTP_400_BAD_REQUEST)
        if not updates or not isinstance(updates, dict):
            return Response({'error': 'Updates object is required'}, status=status.HTTP_400_BAD_REQUEST)

        tasks = Task.objects.filter(id__in=task_ids)
        if not is_admin(request.user):
            tasks = tasks.filter(
                Q(owner=request.user) | Q(assignee=request.user) | Q(creator=request.user)
            )

        updated = 0
        with transaction.atomic():
            for task in tasks:
                old_status = task.status
                serializer = TaskSerializer(task, data=updates, partial=True)
                if not serializer.is_valid():
                    transaction.set_rollback(True)
                    return Response({'task_id': task.id, 'errors': serializer.errors},
                                    status=status.HTTP_400_BAD_REQUEST)
                new_status = serializer.validated_data.get('status', old_status)
                extra = {}
                if new_status == 'COMPLETED' and old_status != 'COMPLETED':
                    extra['completed_at'] = timezone.now()
                elif new_status != 'COMPLETED' and old_status == 'COMPLETED':
                    extra['completed_at'] = None
                _save_task(serializer, request, **extra)
                updated += 1
                create_audit_log(request=request, action='update', model_name='Task',
                                 object_id=task.id, object_name=task.title, changes=updates)
        return Response({'updated': updated})

    raw_ids = request.query_params.get('task_ids', '')
    try:
        task_ids = [int(tid) for tid in raw_ids.split(',') if tid.strip()]
    except ValueError:
        return Response({'error': 'task_ids must be a comma separated list of integers'},
                        status=status.HTTP_400_BAD_REQUEST)
    if not task_ids:
        return Response({'error': 'Task IDs are required'}, status=status.HTTP_400_BAD_REQUEST)

    tasks = Task.objects.filter(id__in=task_ids)
    if not is_admin(request.user):
        tasks = tasks.filter(Q(owner=request.user) | Q(creator=request.user))
    deleted = 0
    with transaction.atomic():
        for task in tasks:
            create_audit_log(request=request, action='delete', model_name='Task', object_id=task.id,
                             object_name=task.title)
            task.delete()
            deleted += 1
    return Response({'deleted': deleted})


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def task_detail(request, pk):
    task = get_object_or_404(Task.objects.select_related('project'), pk=pk)
    if not can_access_task(request.user, task):
        return Response({'error': 'Task not found or access denied'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        data = TaskSerializer(task).data
        data['subtasks'] = TaskSerializer(task.subtasks.all(), many=True).data
        return Response(data)

    if request.method == 'PATCH':
        old_status = task.status
        serializer = TaskSerializer(task, data=request.data, partial=True)
        if serializer.is_valid():
            new_status = serializer.validated_data.get('status', old_status)
            extra = {}
            if new_status == 'COMPLETED' and old_status != 'COMPLETED':
                extra['completed_at'] = timezone.now()
            elif new_status != 'COMPLETED' and old_status == 'COMPLETED':
                extra['completed_at'] = None
            task = _save_task(serializer, request, **extra)
            if old_status != task.status:
                create_audit_log(request=request, action='status_change', model_name='Task',
                                 object_id=task.id, object_name=task.title,
                                 changes={'status': {'from': old_status, 'to': task.status}})
            return Response(TaskSerializer(task).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if task.creator_id != request.user.id and task.owner_id != request.user.id and not is_admin(request.user):
        return Response({'error': 'Only the task owner can delete the task'}, status=status.HTTP_403_FORBIDDEN)
    create_audit_log(request=request, action='delete', model_name='Task', object_id=task.id,
                     object_name=task.title)
    task.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_subtasks(request, pk):
    parent = get_object_or_404(Task, pk=pk)
    if not can_access_task(request.user, parent):
        return Response({'error': 'Task not found or access denied'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(TaskSerializer(parent.subtasks.all(), many=True).data)

    serializer = TaskSerializer(data=request.data)
    if serializer.is_valid():
        serializer.validated_data.pop('parent_task', None)
        serializer.validated_data.pop('project', None)
        subtask = _save_task(serializer, request, parent_task=parent, project=parent.project,
                             owner=request.user, creator=request.user)
        return Response(TaskSerializer(subtask).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_comments(request, pk):
    task = get_object_or_404(Task, pk=pk)
    if not can_access_task(request.user, task):
        return Response({'error': 'Task not found or access denied'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(CommentSerializer(task.comments.select_related('author'), many=True).data)

    serializer = CommentSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(author=request.user, task=task)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _task_brief(task):
    return {
        'id': task.id,
        'title': task.title,
        'status': task.status,
        'priority': task.priority,
        'assignee': {'id': task.assignee.id, 'name': task.assignee.display_name,
                     'username': task.assignee.username} if task.assignee else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_dependencies(request, pk):
    """
    GET: tasks this task depends on and tasks it blocks
    POST: {"blocking_task_id": 7} makes this task wait for task 7
    """
    task = get_object_or_404(Task, pk=pk)
    if not can_access_task(request.user, task):
        return Response({'error': 'Dependent task not found or access denied'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        depends_on = task.dependencies.select_related('blocking_task__assignee')
        blocking = task.blocking.select_related('dependent_task__assignee')
        return Response({
            'dependencies': [
                {'id': d.id, 'blocking_task': _task_brief(d.blocking_task), 'created_at': d.created_at}
                for d in depends_on
            ],
            'blocking_tasks': [
                {'id': d.id, 'dependent_task': _task_brief(d.dependent_task), 'created_at': d.created_at}
                for d in blocking
            ],
        })

    blocking_task_id = request.data.get('blocking_task_id')
    if not blocking_task_id:
        return Response({'error': 'Blocking task ID is required'}, status=status.HTTP_400_BAD_REQUEST)
    blocking_task = Task.objects.filter(pk=blocking_task_id).first()
    if blocking_task is None:
        return Response({'error': 'Blocking task not found'}, status=status.HTTP_404_NOT_FOUND)
    if blocking_task.pk == task.pk:
        return Response({'error': 'A task cannot depend on itself'}, status=status.HTTP_400_BAD_REQUEST)
    if TaskDependency.objects.filter(dependent_task=task, blocking_task=blocking_task).exists():
        return Response({'error': 'Dependency already exists'}, status=status.HTTP_400_BAD_REQUEST)
    if creates_dependency_cycle(task, blocking_task):
        return Response({'error': 'This dependency would create a circular dependency'},
                        status=status.HTTP_400_BAD_REQUEST)

    dependency = TaskDependency.objects.create(dependent_task=task, blocking_task=blocking_task)
    return Response({'id': dependency.id, 'blocking_task': _task_brief(blocking_task),
                     'created_at': dependency.created_at}, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def task_dependency_delete(request, pk, dependency_id):
    task = get_object_or_404(Task, pk=pk)
    if not can_access_task(request.user, task):
        return Response({'error': 'Task not found or access denied'}, status=status.HTTP_404_NOT_FOUND)
    dependency = get_object_or_404(TaskDependency, pk=dependency_id, dependent_task=task)
    dependency.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_time_tracking(request, pk):
    """
    GET: estimated/actual hours and efficiency
    POST: {"action": "update_estimate" | "update_actual" | "add_time", "hours": 1.5}
    """
    task = get_object_or_404(Task.objects.select_related('assignee'), pk=pk)
    if not can_access_task(request.user, task):
        return Response({'error': 'Task not found or access denied'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'POST':
        action = request.data.get('action')
        hours = request.data.get('hours')
        if not action:
            return Response({'error': 'Action is required'}, status=status.HTTP_400_BAD_REQUEST)
        if isinstance(hours, bool) or not isinstance(hours, (int, float, str)):
            return Response({'error': 'Invalid action or hours value'}, status=status.HTTP_400_BAD_REQUEST)
        try:
            hours = Decimal(str(hours))
        except InvalidOperation:
            return Response({'error': 'Invalid action or hours value'}, status=status.HTTP_400_BAD_REQUEST)
        if hours < 0:
            return Response({'error': 'Hours cannot be negative'}, status=status.HTTP_400_BAD_REQUEST)

        if action == 'update_estimate':
            task.estimated_hours = hours
        elif action == 'update_actual':
            task.actual_hours = hours
        elif action == 'add_time':
            task.actual_hours = (task.actual_hours or Decimal('0')) + hours
        else:
            return Response({'error': 'Invalid action or hours value'}, status=status.HTTP_400_BAD_REQUEST)
        task.save(update_fields=['estimated_hours', 'actual_hours', 'updated_at'])

    return Response({
        'task_id': task.id,
        'title': task.title,
        'estimated_hours': float(task.estimated_hours or 0),
        'actual_hours': float(task.actual_hours or 0),
        'status': task.status,
        'assignee': _task_brief(task)['assignee'],
        'efficiency': task_efficiency(task),
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def task_attachments(request, pk):
    task = get_object_or_404(Task, pk=pk)
    if not can_access_task(request.user, task):
        return Response({'error': 'Task not found or access denied'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(TaskAttachmentSerializer(task.attachments.select_related('uploaded_by'), many=True).data)

    upload = request.FILES.get('file')
    if upload is None:
        return Response({'error': 'No file provided'}, status=status.HTTP_400_BAD_REQUEST)
    if upload.size > settings.TASK_ATTACHMENT_MAX_SIZE:
        limit_mb = settings.TASK_ATTACHMENT_MAX_SIZE // (1024 * 1024)
        return Response({'error': f'File size exceeds {limit_mb}MB limit'}, status=status.HTTP_400_BAD_REQUEST)

    attachment = TaskAttachment.objects.create(
        task=task,
        file=upload,
        file_name=upload.name,
        file_size=upload.size,
        content_type=getattr(upload, 'content_type', '') or '',
        uploaded_by=request.user,
    )
    return Response(TaskAttachmentSerializer(attachment).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def task_attachment_detail(request, pk, attachment_id):
    """GET downloads the file, DELETE removes it (uploader, task owner or admin)"""
    attachment = get_object_or_404(TaskAttachment.objects.select_related('task'), pk=attachment_id, task_id=pk)
    if not can_access_task(request.user, attachment.task):
        return Response({'error': 'Task not found or access denied'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        try:
            handle = attachment.file.open('rb')
        except (FileNotFoundError, ValueError):
            logger.error(f"File for attachment {attachment.id} is missing from storage")
            return Response({'error': 'File not found'}, status=status.HTTP_404_NOT_FOUND)
        return FileResponse(handle, as_attachment=True, filename=attachment.file_name,
                            content_type=attachment.content_type or 'application/octet-stream')

    if attachment.uploaded_by_id != request.user.id and not is_admin(request.user) \
            and attachment.task.owner_id != request.user.id:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    attachment.file.delete(save=False)
    attachment.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
