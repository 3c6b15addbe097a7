"""
Task creation and technician (re)assignment.

A schedule is a dict with any of scheduled_start_date, scheduled_end_date,
due_date, engagement_notes and date_range. The end date is only kept in
date-range mode; date_range defaults to whether an end date was supplied.
"""
import logging
from django.db import transaction
from labops.core.exceptions import InvalidDateRange, InvalidTransition, NotFound, ReassignmentNotConfirmed, ValidationError
from labops.core.models import User
from labops.projects.models import Project
from .models import Task, TaskHistory
from .utils import announce, lock_task, record_history, stamp_edit
from .validators import parse_calendar_date
from .workflow import IN_FLIGHT_STATUSES, TERMINAL_STATUSES

logger = logging.getLogger('labops.tasks')

SCHEDULE_FIELDS = ('scheduled_start_date', 'scheduled_end_date', 'due_date', 'engagement_notes')


def get_technician(technician_id):
    try:
        return User.objects.get(pk=technician_id, role=User.ROLE_TECHNICIAN, is_active=True)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'Technician {technician_id} not found.')


def clean_schedule(schedule, task=None):
    """
    Validate a schedule dict and return the field values to store.

    Keys that are absent keep the task's current value, except the end date
    which is cleared whenever date-range mode is off.
    """
    schedule = schedule or {}
    unknown = set(schedule) - set(SCHEDULE_FIELDS) - {'date_range'}
    if unknown:
        raise ValidationError({'schedule': f"Unknown schedule fields: {', '.join(sorted(unknown))}"})

    values = {}
    if 'scheduled_start_date' in schedule:
        values['scheduled_start_date'] = parse_calendar_date(schedule['scheduled_start_date'], 'scheduled_start_date')
    if 'due_date' in schedule:
        values['due_date'] = parse_calendar_date(schedule['due_date'], 'due_date')
    if 'engagement_notes' in schedule:
        values['engagement_notes'] = (schedule['engagement_notes'] or '').strip()

    end = parse_calendar_date(schedule.get('scheduled_end_date'), 'scheduled_end_date')
    date_range = schedule.get('date_range')
    if date_range is None:
        date_range = end is not None
    values['scheduled_end_date'] = end if date_range else None

    start = values.get('scheduled_start_date', task.scheduled_start_date if task else None)
    end = values['scheduled_end_date']
    if end is not None:
        if start is None:
            raise InvalidDateRange('A date range needs a start date.')
        if end < start:
            raise InvalidDateRange()
    return values


def create_task(project_id, task_type, technician_id=None, schedule=None, location_name='',
                location_notes='', actor=None):
    """Create a task in ASSIGNED; the technician may be filled in later"""
    valid_types = {choice for choice, _ in Task.TASK_TYPE_CHOICES}
    if task_type not in valid_types:
        raise ValidationError({'task_type': f'"{task_type}" is not a valid task type.'})
    try:
        project = Project.objects.get(pk=project_id)
    except (Project.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'Project {project_id} not found.')
    technician = get_technician(technician_id) if technician_id is not None else None
    values = clean_schedule(schedule)

    with transaction.atomic():
        task = Task(
            project=project,
            task_type=task_type,
            status=Task.STATUS_ASSIGNED,
            assigned_technician=technician,
            location_name=(location_name or '').strip(),
            location_notes=(location_notes or '').strip(),
            **values,
        )
        if actor is not None:
            stamp_edit(task, actor)
        task.save()
        if technician is not None:
            announce(task, 'ASSIGNED', actor)

    logger.info(
        f"Created {task.task_type} task {task.pk} for project {project.project_number}"
        f"{f' assigned to {technician.display_name}' if technician else ''}"
    )
    return task


def reassign_task(task_id, technician_id, schedule=None, confirm_if_in_flight=False, actor=None):
    """
    Put a task on a technician's list, optionally replacing its schedule.

    Status is never changed. Moving an in-flight task (in progress or ready
    for review) away from its technician needs confirm_if_in_flight.
    """
    technician = get_technician(technician_id)

    with transaction.atomic():
        task = lock_task(task_id)
        if task.status in TERMINAL_STATUSES:
            raise InvalidTransition(task.status, task.status, detail='Approved tasks cannot be reassigned.')
        values = clean_schedule(schedule, task) if schedule is not None else {}

        previous_technician = task.assigned_technician
        changed = previous_technician is None or previous_technician.pk != technician.pk
        if changed and previous_technician is not None and task.status in IN_FLIGHT_STATUSES and not confirm_if_in_flight:
            raise ReassignmentNotConfirmed()

        task.assigned_technician = technician
        for field, value in values.items():
            setattr(task, field, value)
        task.save(update_fields=['assigned_technician', *values, *stamp_edit(task, actor)])

        if changed:
            if previous_technician is not None:
                note = f'Task reassigned from {previous_technician.display_name} to {technician.display_name}'
            else:
                note = f'Task assigned to {technician.display_name}'
            record_history(task, actor, TaskHistory.ACTION_REASSIGNED, note)
            event = TaskHistory.ACTION_REASSIGNED if previous_technician is not None else 'ASSIGNED'
            announce(task, event, actor, previous_technician=previous_technician)
            logger.info(f"Task {task.pk}: {note}")
    return task


assign_task = reassign_task


EDITABLE_DETAIL_FIELDS = ('location_name', 'location_notes', 'engagement_notes')


def update_task_details(task_id, actor, **fields):
    """Edit free-text task details. Technicians may only edit their own tasks."""
    unknown = set(fields) - set(EDITABLE_DETAIL_FIELDS)
    if unknown:
        raise ValidationError({field: 'This field cannot be changed here.' for field in sorted(unknown)})

    with transaction.atomic():
        task = lock_task(task_id)
        if not actor.is_admin_role and task.assigned_technician_id != actor.pk:
            raise NotFound(f'Task {task_id} not found.')
        if task.status in TERMINAL_STATUSES:
            raise InvalidTransition(task.status, task.status, detail='Approved tasks cannot be edited.')
        for field, value in fields.items():
            setattr(task, field, (value or '').strip())
        task.save(update_fields=[*fields, *stamp_edit(task, actor)])
    return task
