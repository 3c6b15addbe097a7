import django_filters
from django.db.models import Q
from .models import Task


class TaskFilter(django_filters.FilterSet):
    """Task list filters"""
    status = django_filters.MultipleChoiceFilter(choices=Task.STATUS_CHOICES)
    task_type = django_filters.MultipleChoiceFilter(choices=Task.TASK_TYPE_CHOICES)
    project = django_filters.NumberFilter(field_name='project_id')
    technician = django_filters.NumberFilter(field_name='assigned_technician_id')
    unassigned = django_filters.BooleanFilter(field_name='assigned_technician', lookup_expr='isnull')
    due_from = django_filters.DateFilter(field_name='due_date', lookup_expr='gte')
    due_to = django_filters.DateFilter(field_name='due_date', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = Task
        fields = ['status', 'task_type', 'project', 'technician', 'unassigned', 'due_from', 'due_to', 'search']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(project__project_number__icontains=value)
            | Q(project__project_name__icontains=value)
            | Q(location_name__icontains=value)
        )
