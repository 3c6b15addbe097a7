from django.contrib import admin
from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['project_number', 'project_name', 'created_by', 'created_at']
    list_filter = ['created_at']
    search_fields = ['project_number', 'project_name']
    ordering = ['-created_at']
    readonly_fields = ['project_number', 'created_at', 'updated_at']
