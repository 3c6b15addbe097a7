import django_filters
from django.db.models import Q
from .models import Project


class ProjectFilter(django_filters.FilterSet):
    """Project list filters: free-text search over number/name and a creation date window"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    created_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Project
        fields = ['search', 'created_from', 'created_to']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(project_number__icontains=value) | Q(project_name__icontains=value))
