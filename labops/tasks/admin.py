from django.contrib import admin
from .models import Task, TaskHistory


class TaskHistoryInline(admin.TabularInline):
    model = TaskHistory
    extra = 0
    readonly_fields = ['timestamp', 'actor', 'actor_role', 'actor_name', 'action_type', 'note']
    can_delete = False


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['id', 'project', 'task_type', 'status', 'assigned_technician', 'scheduled_start_date', 'due_date']
    list_filter = ['status', 'task_type', 'field_completed', 'report_submitted']
    search_fields = ['project__project_number', 'project__project_name', 'location_name']
    # Status moves only through the workflow services
    readonly_fields = ['status', 'submitted_at', 'completed_at', 'last_edited_by', 'last_edited_by_role',
                       'last_edited_at', 'created_at', 'updated_at']
    inlines = [TaskHistoryInline]


@admin.register(TaskHistory)
class TaskHistoryAdmin(admin.ModelAdmin):
    list_display = ['task', 'action_type', 'actor_name', 'actor_role', 'timestamp']
    list_filter = ['action_type', 'actor_role']
    search_fields = ['actor_name', 'note']
    readonly_fields = ['task', 'timestamp', 'actor', 'actor_role', 'actor_name', 'action_type', 'note']
