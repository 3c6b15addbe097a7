from rest_framework import serializers
from .models import Project
from .services import create_project


class ProjectSerializer(serializers.ModelSerializer):
    customer_emails = serializers.ListField(child=serializers.EmailField(), required=False)
    task_count = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = ['id', 'project_number', 'project_name', 'customer_emails', 'soil_specs',
                  'concrete_specs', 'task_count', 'created_by', 'created_at', 'updated_at']
        read_only_fields = ['project_number', 'created_by', 'created_at', 'updated_at']

    def get_task_count(self, obj):
        annotated = getattr(obj, 'annotated_task_count', None)
        if annotated is not None:
            return annotated
        return obj.tasks.count()

    def validate_project_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Project name cannot be empty.')
        return value

    def validate_customer_emails(self, value):
        if len({email.lower() for email in value}) != len(value):
            raise serializers.ValidationError('Duplicate emails are not allowed.')
        return value


class ProjectCreateSerializer(serializers.Serializer):
    """Input for project creation; project_number is optional and validated by the allocator"""
    project_name = serializers.CharField(max_length=255)
    project_number = serializers.CharField(max_length=100, required=False, allow_blank=False)
    customer_emails = serializers.ListField(child=serializers.EmailField(), required=False)
    soil_specs = serializers.DictField(required=False)
    concrete_specs = serializers.DictField(required=False)

    def create(self, validated_data):
        return create_project(**validated_data)
