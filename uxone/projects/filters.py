import django_filters
from django.db.models import Q

from .models import Project, Task


class ProjectFilter(django_filters.FilterSet):
    """Filters for the project list"""
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    owner = django_filters.NumberFilter(field_name='owner_id', lookup_expr='exact')
    member = django_filters.NumberFilter(method='filter_member', label='Member user ID')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = Project
        fields = ['status', 'owner', 'member', 'search']

    def filter_member(self, queryset, name, value):
        return queryset.filter(members__user_id=value).distinct()

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(description__icontains=value))


class TaskFilter(django_filters.FilterSet):
    """Filters for the task list"""
    project = django_filters.NumberFilter(field_name='project_id', lookup_expr='exact')
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    priority = django_filters.CharFilter(field_name='priority', lookup_expr='exact')
    assignee = django_filters.NumberFilter(field_name='assignee_id', lookup_expr='exact')
    parent = django_filters.NumberFilter(field_name='parent_task_id', lookup_expr='exact')
    top_level = django_filters.BooleanFilter(field_name='parent_task', lookup_expr='isnull')
    due_before = django_filters.DateFilter(field_name='due_date', lookup_expr='date__lte')
    due_after = django_filters.DateFilter(field_name='due_date', lookup_expr='date__gte')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = Task
        fields = ['project', 'status', 'priority', 'assignee', 'parent', 'top_level',
                  'due_before', 'due_after', 'search']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(title__icontains=value) | Q(description__icontains=value))
