from rest_framework import serializers
from .models import Task, TaskHistory
from .workflow import allowed_targets


class TaskSerializer(serializers.ModelSerializer):
    project_number = serializers.CharField(source='project.project_number', read_only=True)
    project_name = serializers.CharField(source='project.project_name', read_only=True)
    task_type_label = serializers.CharField(source='get_task_type_display', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    assigned_technician_name = serializers.SerializerMethodField()
    last_edited_by_name = serializers.SerializerMethodField()
    is_report_task = serializers.BooleanField(read_only=True)
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = Task
        fields = [
            'id', 'project', 'project_number', 'project_name', 'task_type', 'task_type_label',
            'is_report_task', 'status', 'status_label', 'allowed_transitions',
            'assigned_technician', 'assigned_technician_name',
            'scheduled_start_date', 'scheduled_end_date', 'due_date',
            'location_name', 'location_notes', 'engagement_notes',
            'rejection_remarks', 'resubmission_due_date',
            'field_completed', 'field_completed_at', 'report_submitted', 'submitted_at', 'completed_at',
            'last_edited_by', 'last_edited_by_name', 'last_edited_by_role', 'last_edited_at',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_assigned_technician_name(self, obj):
        return obj.assigned_technician.display_name if obj.assigned_technician else None

    def get_last_edited_by_name(self, obj):
        return obj.last_edited_by.display_name if obj.last_edited_by else None

    def get_allowed_transitions(self, obj):
        return allowed_targets(obj.status)


class ScheduleInputMixin(serializers.Serializer):
    scheduled_start_date = serializers.DateField(required=False, allow_null=True)
    scheduled_end_date = serializers.DateField(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    engagement_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    date_range = serializers.BooleanField(required=False)

    schedule_keys = ('scheduled_start_date', 'scheduled_end_date', 'due_date', 'engagement_notes', 'date_range')

    def pop_schedule(self, data):
        """Move the schedule keys present in `data` into their own dict"""
        return {key: data.pop(key) for key in self.schedule_keys if key in data}


class TaskCreateSerializer(ScheduleInputMixin):
    """Input for task creation; the project may come from the URL instead"""
    project = serializers.IntegerField(required=False)
    task_type = serializers.ChoiceField(choices=Task.TASK_TYPE_CHOICES)
    assigned_technician = serializers.IntegerField(required=False, allow_null=True)
    location_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    location_notes = serializers.CharField(required=False, allow_blank=True)


class TaskAssignSerializer(ScheduleInputMixin):
    technician_id = serializers.IntegerField()
    confirm_if_in_flight = serializers.BooleanField(required=False, default=False)


class TaskRejectSerializer(serializers.Serializer):
    # Content checks live in validators.clean_rejection so the service and API agree
    rejection_remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    resubmission_due_date = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class TaskUpdateSerializer(serializers.Serializer):
    location_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    location_notes = serializers.CharField(required=False, allow_blank=True)
    engagement_notes = serializers.CharField(required=False, allow_blank=True)


class TaskHistorySerializer(serializers.ModelSerializer):
    action_label = serializers.CharField(source='get_action_type_display', read_only=True)

    class Meta:
        model = TaskHistory
        fields = ['id', 'task', 'timestamp', 'actor', 'actor_role', 'actor_name', 'action_type', 'action_label', 'note']
        read_only_fields = fields
