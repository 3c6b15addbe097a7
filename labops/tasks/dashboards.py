"""
Dashboard queries.

All date checks are date-only against timezone.localdate(). A task is "on" a
day when its due date is that day, its single field date is that day, or its
field date range covers that day.
"""
import datetime
from django.db.models import Case, IntegerField, Q, Value, When
from django.utils import timezone
from .models import Task, TaskHistory

UPCOMING_WINDOW_DAYS = 14


def on_date_q(day):
    return (
        Q(due_date=day)
        | Q(scheduled_end_date__isnull=True, scheduled_start_date=day)
        | Q(scheduled_start_date__lte=day, scheduled_end_date__gte=day)
    )


def in_window_q(first_day, last_day):
    return (
        Q(due_date__range=(first_day, last_day))
        | Q(scheduled_end_date__isnull=True, scheduled_start_date__range=(first_day, last_day))
        | Q(scheduled_start_date__lte=last_day, scheduled_end_date__gte=first_day)
    )


def _base(queryset=None):
    queryset = queryset if queryset is not None else Task.objects.all()
    return queryset.select_related('project', 'assigned_technician')


def _review_first(queryset):
    return queryset.annotate(
        review_rank=Case(
            When(status=Task.STATUS_READY_FOR_REVIEW, then=Value(0)),
            default=Value(1),
            output_field=IntegerField(),
        )
    ).order_by('review_rank', 'due_date', 'id')


def tasks_for_day(day, queryset=None):
    return _review_first(_base(queryset).filter(on_date_q(day)))


def today_tasks(queryset=None, today=None):
    return tasks_for_day(today or timezone.localdate(), queryset)


def tomorrow_tasks(queryset=None, today=None):
    return tasks_for_day((today or timezone.localdate()) + datetime.timedelta(days=1), queryset)


def upcoming_tasks(queryset=None, today=None, days=UPCOMING_WINDOW_DAYS):
    """Tasks touching tomorrow..today+days, excluding approved ones"""
    today = today or timezone.localdate()
    first_day = today + datetime.timedelta(days=1)
    last_day = today + datetime.timedelta(days=days)
    return (
        _base(queryset)
        .filter(in_window_q(first_day, last_day))
        .exclude(status=Task.STATUS_APPROVED)
        .order_by('due_date', 'scheduled_start_date', 'id')
    )


def overdue_tasks(queryset=None, today=None):
    today = today or timezone.localdate()
    return (
        _base(queryset)
        .filter(due_date__lt=today)
        .exclude(status=Task.STATUS_APPROVED)
        .order_by('due_date', 'id')
    )


def open_report_tasks(queryset=None):
    """Field work done, report still outstanding"""
    return (
        _base(queryset)
        .filter(field_completed=True, report_submitted=False)
        .exclude(status=Task.STATUS_APPROVED)
        .order_by('due_date', 'id')
    )


def activity_tasks(day=None, queryset=None):
    """Tasks submitted or approved on the given day (default yesterday)"""
    day = day or timezone.localdate() - datetime.timedelta(days=1)
    return (
        _base(queryset)
        .filter(Q(submitted_at__date=day) | Q(completed_at__date=day))
        .order_by('-submitted_at', 'id')
    )


def technician_activity(user, day=None):
    """History entries on the given day for tasks the user holds or acted on"""
    day = day or timezone.localdate() - datetime.timedelta(days=1)
    return (
        TaskHistory.objects
        .filter(timestamp__date=day)
        .filter(Q(task__assigned_technician=user) | Q(actor=user))
        .select_related('task', 'task__project')
        .distinct()
    )
