from django.db import models
from django.db.models import F, Q
from labops.core.models import User
from labops.projects.models import Project


class Task(models.Model):
    """One unit of field work or reporting assigned to a technician against a project"""
    TYPE_DENSITY_MEASUREMENT = 'DENSITY_MEASUREMENT'
    TYPE_PROCTOR = 'PROCTOR'
    TYPE_REBAR = 'REBAR'
    TYPE_COMPRESSIVE_STRENGTH = 'COMPRESSIVE_STRENGTH'
    TYPE_CYLINDER_PICKUP = 'CYLINDER_PICKUP'
    TASK_TYPE_CHOICES = [
        (TYPE_DENSITY_MEASUREMENT, 'Density Measurement'),
        (TYPE_PROCTOR, 'Proctor'),
        (TYPE_REBAR, 'Rebar'),
        (TYPE_COMPRESSIVE_STRENGTH, 'Compressive Strength'),
        (TYPE_CYLINDER_PICKUP, 'Cylinder Pickup'),
    ]
    # Types that produce a reviewable document; the rest are field/logistics work
    REPORT_TASK_TYPES = frozenset({TYPE_DENSITY_MEASUREMENT, TYPE_REBAR, TYPE_COMPRESSIVE_STRENGTH})

    STATUS_ASSIGNED = 'ASSIGNED'
    STATUS_IN_PROGRESS_TECH = 'IN_PROGRESS_TECH'
    STATUS_READY_FOR_REVIEW = 'READY_FOR_REVIEW'
    STATUS_APPROVED = 'APPROVED'
    STATUS_REJECTED_NEEDS_FIX = 'REJECTED_NEEDS_FIX'
    STATUS_CHOICES = [
        (STATUS_ASSIGNED, 'Assigned'),
        (STATUS_IN_PROGRESS_TECH, 'In Progress'),
        (STATUS_READY_FOR_REVIEW, 'Ready for Review'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED_NEEDS_FIX, 'Rejected - Needs Fix'),
    ]

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='tasks')
    task_type = models.CharField(max_length=40, choices=TASK_TYPE_CHOICES)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=STATUS_ASSIGNED)
    assigned_technician = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_tasks')

    # Field work window; the end date is only set in date-range mode
    scheduled_start_date = models.DateField(null=True, blank=True)
    scheduled_end_date = models.DateField(null=True, blank=True)
    # Report delivery deadline, independent of the field dates
    due_date = models.DateField(null=True, blank=True)

    location_name = models.CharField(max_length=255, blank=True)
    location_notes = models.TextField(blank=True)
    engagement_notes = models.TextField(blank=True)

    rejection_remarks = models.TextField(null=True, blank=True)
    resubmission_due_date = models.DateField(null=True, blank=True)

    field_completed = models.BooleanField(default=False)
    field_completed_at = models.DateTimeField(null=True, blank=True)
    report_submitted = models.BooleanField(default=False)
    submitted_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    last_edited_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    last_edited_by_role = models.CharField(max_length=20, blank=True)
    last_edited_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_report_task(self):
        return self.task_type in self.REPORT_TASK_TYPES

    @property
    def task_type_label(self):
        return self.get_task_type_display()

    def __str__(self):
        return f"{self.get_task_type_display()} #{self.pk} ({self.status})"

    class Meta:
        db_table = 'tasks'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status'], name='idx_task_status'),
            models.Index(fields=['assigned_technician', 'status'], name='idx_task_tech_status'),
            models.Index(fields=['due_date'], name='idx_task_due_date'),
            models.Index(fields=['scheduled_start_date', 'scheduled_end_date'], name='idx_task_schedule'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(scheduled_end_date__isnull=True)
                    | Q(scheduled_start_date__isnull=True)
                    | Q(scheduled_end_date__gte=F('scheduled_start_date'))
                ),
                name='task_schedule_end_after_start',
            ),
            models.CheckConstraint(
                condition=(
                    Q(rejection_remarks__isnull=True, resubmission_due_date__isnull=True)
                    | Q(rejection_remarks__isnull=False, resubmission_due_date__isnull=False)
                ),
                name='task_rejection_fields_together',
            ),
        ]


class TaskHistory(models.Model):
    """Audit trail entry for a task event"""
    ACTION_SUBMITTED = 'SUBMITTED'
    ACTION_APPROVED = 'APPROVED'
    ACTION_REJECTED = 'REJECTED'
    ACTION_REASSIGNED = 'REASSIGNED'
    ACTION_STATUS_CHANGED = 'STATUS_CHANGED'
    ACTION_CHOICES = [
        (ACTION_SUBMITTED, 'Submitted'),
        (ACTION_APPROVED, 'Approved'),
        (ACTION_REJECTED, 'Rejected'),
        (ACTION_REASSIGNED, 'Reassigned'),
        (ACTION_STATUS_CHANGED, 'Status Changed'),
    ]

    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='history')
    timestamp = models.DateTimeField(auto_now_add=True)
    actor = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='task_history')
    actor_role = models.CharField(max_length=20)
    actor_name = models.CharField(max_length=255)
    action_type = models.CharField(max_length=20, choices=ACTION_CHOICES)
    note = models.TextField(null=True, blank=True)

    def __str__(self):
        return f"{self.action_type} on task {self.task_id} by {self.actor_name}"

    class Meta:
        db_table = 'task_history'
        ordering = ['-timestamp', '-id']
        verbose_name_plural = 'task history'
        indexes = [
            models.Index(fields=['task', '-timestamp'], name='idx_history_task_time'),
            models.Index(fields=['action_type'], name='idx_history_action'),
        ]
