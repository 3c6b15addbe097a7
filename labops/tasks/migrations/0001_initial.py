import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('projects', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Task',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('task_type', models.CharField(choices=[('DENSITY_MEASUREMENT', 'Density Measurement'), ('PROCTOR', 'Proctor'), ('REBAR', 'Rebar'), ('COMPRESSIVE_STRENGTH', 'Compressive Strength'), ('CYLINDER_PICKUP', 'Cylinder Pickup')], max_length=40)),
                ('status', models.CharField(choices=[('ASSIGNED', 'Assigned'), ('IN_PROGRESS_TECH', 'In Progress'), ('READY_FOR_REVIEW', 'Ready for Review'), ('APPROVED', 'Approved'), ('REJECTED_NEEDS_FIX', 'Rejected - Needs Fix')], default='ASSIGNED', max_length=30)),
                ('scheduled_start_date', models.DateField(blank=True, null=True)),
                ('scheduled_end_date', models.DateField(blank=True, null=True)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('location_name', models.CharField(blank=True, max_length=255)),
                ('location_notes', models.TextField(blank=True)),
                ('engagement_notes', models.TextField(blank=True)),
                ('rejection_remarks', models.TextField(blank=True, null=True)),
                ('resubmission_due_date', models.DateField(blank=True, null=True)),
                ('field_completed', models.BooleanField(default=False)),
                ('field_completed_at', models.DateTimeField(blank=True, null=True)),
                ('report_submitted', models.BooleanField(default=False)),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('last_edited_by_role', models.CharField(blank=True, max_length=20)),
                ('last_edited_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_technician', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_tasks', to=settings.AUTH_USER_MODEL)),
                ('last_edited_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tasks', to='projects.project')),
            ],
            options={
                'db_table': 'tasks',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_task_status'),
                    models.Index(fields=['assigned_technician', 'status'], name='idx_task_tech_status'),
                    models.Index(fields=['due_date'], name='idx_task_due_date'),
                    models.Index(fields=['scheduled_start_date', 'scheduled_end_date'], name='idx_task_schedule'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('scheduled_end_date__isnull', True), ('scheduled_start_date__isnull', True), ('scheduled_end_date__gte', models.F('scheduled_start_date')), _connector='OR'), name='task_schedule_end_after_start'),
                    models.CheckConstraint(condition=models.Q(models.Q(('rejection_remarks__isnull', True), ('resubmission_due_date__isnull', True)), models.Q(('rejection_remarks__isnull', False), ('resubmission_due_date__isnull', False)), _connector='OR'), name='task_rejection_fields_together'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TaskHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('actor_role', models.CharField(max_length=20)),
                ('actor_name', models.CharField(max_length=255)),
                ('action_type', models.CharField(choices=[('SUBMITTED', 'Submitted'), ('APPROVED', 'Approved'), ('REJECTED', 'Rejected'), ('REASSIGNED', 'Reassigned'), ('STATUS_CHANGED', 'Status Changed')], max_length=20)),
                ('note', models.TextField(blank=True, null=True)),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='task_history', to=settings.AUTH_USER_MODEL)),
                ('task', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='tasks.task')),
            ],
            options={
                'verbose_name_plural': 'task history',
                'db_table': 'task_history',
                'ordering': ['-timestamp', '-id'],
                'indexes': [
                    models.Index(fields=['task', '-timestamp'], name='idx_history_task_time'),
                    models.Index(fields=['action_type'], name='idx_history_action'),
                ],
            },
        ),
    ]
