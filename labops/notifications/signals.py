"""
Task event notifications.

Receivers run after the task change has committed. A failure here is logged
and dropped; the task change stays committed.
"""
import logging
from django.dispatch import receiver
from labops.core.models import User
from labops.tasks.models import Task, TaskHistory
from labops.tasks.signals import task_transitioned
from .models import Notification

logger = logging.getLogger('labops.notifications')

EVENT_ASSIGNED = 'ASSIGNED'


def notify(users, message, type=Notification.TYPE_INFO, task=None):
    """Create one notification per user"""
    rows = [
        Notification(
            user=user,
            message=message,
            type=type,
            related_task=task,
            related_project_id=task.project_id if task else None,
        )
        for user in users
    ]
    return Notification.objects.bulk_create(rows)


def build_notifications(task, event, actor=None):
    """Return (recipients, message, type) for a task event, or None if nobody is told"""
    label = task.get_task_type_display()
    project_number = task.project.project_number
    technician = task.assigned_technician

    if event in (EVENT_ASSIGNED, TaskHistory.ACTION_REASSIGNED):
        if technician is None:
            return None
        verb = 'reassigned' if event == TaskHistory.ACTION_REASSIGNED else 'assigned'
        return [technician], f'Admin {verb} {label} for Project {project_number}', Notification.TYPE_INFO

    if event == TaskHistory.ACTION_SUBMITTED:
        admins = User.objects.filter(role=User.ROLE_ADMIN, is_active=True)
        who = actor.display_name if actor else (technician.display_name if technician else 'A technician')
        return list(admins), f'{who} completed {label} for Project {project_number}', Notification.TYPE_INFO

    if event == TaskHistory.ACTION_REJECTED:
        if technician is None:
            return None
        message = (
            f'Your task for Project {project_number} has been rejected. '
            f'Please review the remarks and resubmit.'
        )
        return [technician], message, Notification.TYPE_WARNING

    if event == TaskHistory.ACTION_APPROVED:
        if technician is None:
            return None
        return [technician], f'Your {label} for Project {project_number} has been approved.', Notification.TYPE_SUCCESS

    return None


@receiver(task_transitioned, sender=Task, dispatch_uid='labops.notifications.task_transitioned')
def notify_task_transitioned(sender, task, event, actor=None, previous_technician=None, **kwargs):
    try:
        built = build_notifications(task, event, actor)
        if built is None:
            return
        recipients, message, type = built
        notify(recipients, message, type=type, task=task)
        logger.info(f"Sent {len(recipients)} notification(s) for task {task.pk} ({event})")
    except Exception as e:
        logger.error(f"Failed to send notifications for task {task.pk} ({event}): {e}", exc_info=True)
