"""Helpers shared by the task workflow and assignment code"""
import logging
from django.db import transaction
from django.utils import timezone
from labops.core.exceptions import NotFound
from .models import Task, TaskHistory
from .signals import task_transitioned

logger = logging.getLogger('labops.tasks')

SYSTEM_ACTOR_NAME = 'System'


def lock_task(task_id):
    """Reload a task under a row lock. Must be called inside transaction.atomic()."""
    try:
        return Task.objects.select_for_update().get(pk=task_id)
    except Task.DoesNotExist:
        raise NotFound(f'Task {task_id} not found.')


def stamp_edit(task, actor):
    """Set the last-edited fields; returns their names for update_fields"""
    task.last_edited_by = actor
    task.last_edited_by_role = actor.role if actor else ''
    task.last_edited_at = timezone.now()
    return ['last_edited_by', 'last_edited_by_role', 'last_edited_at', 'updated_at']


def record_history(task, actor, action_type, note=None):
    """
    Append a history entry for a task.

    Runs inside the caller's transaction; if it fails the whole change is
    rolled back.
    """
    return TaskHistory.objects.create(
        task=task,
        actor=actor,
        actor_role=actor.role if actor else SYSTEM_ACTOR_NAME.upper(),
        actor_name=actor.display_name if actor else SYSTEM_ACTOR_NAME,
        action_type=action_type,
        note=note,
    )


def announce(task, event, actor=None, previous_technician=None):
    """
    Send task_transitioned once the current transaction commits.

    Receiver failures are logged and never reach the caller.
    """
    def send():
        results = task_transitioned.send_robust(
            sender=Task,
            task=task,
            event=event,
            actor=actor,
            previous_technician=previous_technician,
        )
        for receiver, result in results:
            if isinstance(result, Exception):
                logger.error(
                    f"task_transitioned receiver {getattr(receiver, '__name__', receiver)} failed "
                    f"for task {task.pk} ({event}): {result}"
                )

    transaction.on_commit(send, robust=True)
