from django.db import models
from labops.core.models import User


class Project(models.Model):
    """Customer engagement; its project number names report folders and PDFs"""
    project_number = models.CharField(max_length=100, unique=True, editable=False)
    project_name = models.CharField(max_length=255, unique=True)
    customer_emails = models.JSONField(default=list, blank=True)
    soil_specs = models.JSONField(default=dict, blank=True)
    concrete_specs = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_projects')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.project_number} - {self.project_name}"

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_project_created'),
        ]
