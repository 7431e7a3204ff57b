"""Project and task helpers shared by the API views and reports"""
from decimal import Decimal

from django.db.models import Q

from uxone.core.models import UserRole
from .models import Project, Task, TaskDependency


def is_admin(user):
    return getattr(user, 'role', None) in (UserRole.SUPER_ADMIN, UserRole.ADMIN)


def in_department(code):
    """Q matching projects whose department list contains code"""
    # JSON containment is not available on every backend, match the quoted code instead
    return Q(departments__icontains=f'"{code}"')


def visible_projects(user):
    """Projects the user owns, belongs to, or whose departments include the user's department"""
    if is_admin(user):
        return Project.objects.all()
    return Project.objects.filter(
        Q(owner=user) | Q(members__user=user) | in_department(user.department)
    ).distinct()


def can_edit_project(user, project):
    return is_admin(user) or project.is_member(user)


def visible_tasks(user):
    if is_admin(user):
        return Task.objects.all()
    return Task.objects.filter(
        Q(owner=user) | Q(assignee=user) | Q(creator=user) |
        Q(project__owner=user) | Q(project__members__user=user)
    ).distinct()


def can_access_task(user, task):
    if is_admin(user):
        return True
    if user.id in (task.owner_id, task.assignee_id, task.creator_id):
        return True
    return task.project is not None and task.project.is_member(user)


def completion_blockers(project):
    """
    Error payload explaining why the project cannot be marked COMPLETED, or None.

    Unfinished main tasks are reported before unfinished sub-tasks.
    """
    pending = project.tasks.exclude(status='COMPLETED').only('id', 'title', 'parent_task_id')
    main_tasks = [{'id': t.id, 'title': t.title} for t in pending if t.parent_task_id is None]
    if main_tasks:
        return {
            'error': 'Cannot complete project with incomplete tasks',
            'project_id': project.id,
            'incomplete_tasks': main_tasks,
        }
    sub_tasks = [{'id': t.id, 'title': t.title} for t in pending if t.parent_task_id is not None]
    if sub_tasks:
        return {
            'error': 'Cannot complete project with incomplete sub-tasks',
            'project_id': project.id,
            'incomplete_sub_tasks': sub_tasks,
        }
    return None


def compute_project_kpi(project):
    tasks = list(project.tasks.all().only('status', 'estimated_hours', 'actual_hours'))
    total = len(tasks)
    completed = sum(1 for t in tasks if t.status == 'COMPLETED')
    estimated = sum((t.estimated_hours or Decimal('0')) for t in tasks)
    actual = sum((t.actual_hours or Decimal('0')) for t in tasks)
    return {
        'total_tasks': total,
        'completed_tasks': completed,
        'completion_percentage': round(completed / total * 100, 1) if total else 0,
        'estimated_hours': float(estimated),
        'actual_hours': float(actual),
        'efficiency': round(float(actual) / float(estimated) * 100, 1) if estimated else 0,
    }


def task_efficiency(task):
    """estimated / actual as a rounded percentage, None until both are known"""
    if not task.estimated_hours or not task.actual_hours:
        return None
    return round(float(task.estimated_hours) / float(task.actual_hours) * 100)


def creates_dependency_cycle(dependent_task, blocking_task):
    """
    True when making dependent_task wait for blocking_task would close a loop,
    i.e. blocking_task already (transitively) waits for dependent_task.
    """
    if dependent_task.pk == blocking_task.pk:
        return True
    seen = set()
    frontier = [blocking_task.pk]
    while frontier:
        current = frontier.pop()
        if current == dependent_task.pk:
            return True
        if current in seen:
            continue
        seen.add(current)
        frontier.extend(
            TaskDependency.objects.filter(dependent_task_id=current).values_list('blocking_task_id', flat=True)
        )
    return False
