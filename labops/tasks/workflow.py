"""
Task lifecycle.

    ASSIGNED -> IN_PROGRESS_TECH -> READY_FOR_REVIEW -> APPROVED
                                        |     ^
                                        v     |
                                  REJECTED_NEEDS_FIX

Every operation reloads the task under a row lock, checks the edge against
ALLOWED_TRANSITIONS and writes the status change together with its history
entry in one transaction. Notifications go out after commit.
"""
import logging
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied
from labops.core.exceptions import InvalidTransition
from .models import Task, TaskHistory
from .utils import announce, lock_task, record_history, stamp_edit
from .validators import clean_rejection

logger = logging.getLogger('labops.tasks')

ALLOWED_TRANSITIONS = frozenset({
    (Task.STATUS_ASSIGNED, Task.STATUS_IN_PROGRESS_TECH),
    (Task.STATUS_IN_PROGRESS_TECH, Task.STATUS_READY_FOR_REVIEW),
    (Task.STATUS_REJECTED_NEEDS_FIX, Task.STATUS_READY_FOR_REVIEW),
    (Task.STATUS_READY_FOR_REVIEW, Task.STATUS_APPROVED),
    (Task.STATUS_READY_FOR_REVIEW, Task.STATUS_REJECTED_NEEDS_FIX),
})
TERMINAL_STATUSES = frozenset({Task.STATUS_APPROVED})
IN_FLIGHT_STATUSES = frozenset({Task.STATUS_IN_PROGRESS_TECH, Task.STATUS_READY_FOR_REVIEW})


def can_transition(current_status, target_status):
    return (current_status, target_status) in ALLOWED_TRANSITIONS


def allowed_targets(current_status):
    return sorted(target for source, target in ALLOWED_TRANSITIONS if source == current_status)


def ensure_transition(task, target_status):
    if not can_transition(task.status, target_status):
        raise InvalidTransition(task.status, target_status)


def require_admin(actor):
    if actor is None or not actor.is_admin_role:
        raise PermissionDenied('Admin access required.')


def require_assigned_technician(task, actor, allow_admin=False):
    if actor is None:
        raise PermissionDenied('Authentication required.')
    if allow_admin and actor.is_admin_role:
        return
    if task.assigned_technician_id != actor.pk:
        raise PermissionDenied('Only the assigned technician can do this.')


def _commit_status(task, target_status, actor, extra_fields=()):
    previous_status = task.status
    task.status = target_status
    update_fields = ['status', *extra_fields, *stamp_edit(task, actor)]
    task.save(update_fields=update_fields)
    logger.info(f"Task {task.pk}: {previous_status} -> {target_status} by {actor.display_name}")
    return previous_status


def start_task(task_id, actor):
    """Assigned technician begins work: ASSIGNED -> IN_PROGRESS_TECH"""
    with transaction.atomic():
        task = lock_task(task_id)
        require_assigned_technician(task, actor)
        ensure_transition(task, Task.STATUS_IN_PROGRESS_TECH)
        _commit_status(task, Task.STATUS_IN_PROGRESS_TECH, actor)
        record_history(task, actor, TaskHistory.ACTION_STATUS_CHANGED, 'Work started')
    return task


def submit_task(task_id, actor):
    """
    Hand the work in for review: IN_PROGRESS_TECH or REJECTED_NEEDS_FIX -> READY_FOR_REVIEW.

    Records the submission time and notifies all admins.
    """
    with transaction.atomic():
        task = lock_task(task_id)
        require_assigned_technician(task, actor, allow_admin=True)
        ensure_transition(task, Task.STATUS_READY_FOR_REVIEW)
        task.submitted_at = timezone.now()
        task.report_submitted = True
        previous_status = _commit_status(
            task, Task.STATUS_READY_FOR_REVIEW, actor,
            extra_fields=['submitted_at', 'report_submitted'],
        )
        note = 'Resubmitted after rejection' if previous_status == Task.STATUS_REJECTED_NEEDS_FIX else None
        record_history(task, actor, TaskHistory.ACTION_SUBMITTED, note)
        announce(task, TaskHistory.ACTION_SUBMITTED, actor)
    return task


def approve_task(task_id, actor):
    """Admin accepts the work: READY_FOR_REVIEW -> APPROVED (terminal)"""
    with transaction.atomic():
        task = lock_task(task_id)
        require_admin(actor)
        ensure_transition(task, Task.STATUS_APPROVED)
        task.completed_at = timezone.now()
        task.rejection_remarks = None
        task.resubmission_due_date = None
        _commit_status(
            task, Task.STATUS_APPROVED, actor,
            extra_fields=['completed_at', 'rejection_remarks', 'resubmission_due_date'],
        )
        record_history(task, actor, TaskHistory.ACTION_APPROVED)
        announce(task, TaskHistory.ACTION_APPROVED, actor)
    return task


def reject_task(task_id, actor, remarks, resubmission_due_date):
    """
    Admin sends the work back: READY_FOR_REVIEW -> REJECTED_NEEDS_FIX.

    Remarks and the resubmission date are validated before any lock is taken;
    bad input leaves the task untouched.
    """
    remarks, due = clean_rejection(remarks, resubmission_due_date)

    with transaction.atomic():
        task = lock_task(task_id)
        require_admin(actor)
        ensure_transition(task, Task.STATUS_REJECTED_NEEDS_FIX)
        task.rejection_remarks = remarks
        task.resubmission_due_date = due
        _commit_status(
            task, Task.STATUS_REJECTED_NEEDS_FIX, actor,
            extra_fields=['rejection_remarks', 'resubmission_due_date'],
        )
        record_history(task, actor, TaskHistory.ACTION_REJECTED, remarks)
        announce(task, TaskHistory.ACTION_REJECTED, actor)
    return task


def mark_field_complete(task_id, actor):
    """Flag the on-site portion as done. Does not change status."""
    with transaction.atomic():
        task = lock_task(task_id)
        require_assigned_technician(task, actor, allow_admin=True)
        if task.status in TERMINAL_STATUSES:
            raise InvalidTransition(task.status, task.status, detail='Approved tasks cannot be edited.')
        if task.field_completed:
            return task
        task.field_completed = True
        task.field_completed_at = timezone.now()
        task.save(update_fields=['field_completed', 'field_completed_at', *stamp_edit(task, actor)])
        record_history(task, actor, TaskHistory.ACTION_STATUS_CHANGED, 'Field work marked as complete')
        logger.info(f"Task {task.pk}: field work completed by {actor.display_name}")
    return task
