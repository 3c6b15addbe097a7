from rest_framework import serializers
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    related_project_number = serializers.CharField(source='related_project.project_number', read_only=True, default=None)

    class Meta:
        model = Notification
        fields = ['id', 'message', 'type', 'is_read', 'related_task', 'related_project',
                  'related_project_number', 'created_at']
        read_only_fields = fields
