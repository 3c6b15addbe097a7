"""
Date and rejection input validation for tasks.

Schedule dates are calendar dates with no time component. Resubmission dates
arrive from the admin UI as either YYYY-MM-DD or MM-DD-YYYY and are stored as
plain dates.
"""
import datetime
import re
from django.utils import timezone
from labops.core.exceptions import ValidationError

ISO_DATE_RE = re.compile(r'^(\d{4})-(\d{1,2})-(\d{1,2})$')
US_DATE_RE = re.compile(r'^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$')


def _build_date(year, month, day, field, raw):
    try:
        return datetime.date(int(year), int(month), int(day))
    except ValueError:
        raise ValidationError({field: f'"{raw}" is not a valid calendar date.'})


def parse_calendar_date(value, field):
    """
    Parse a schedule date. Accepts a date, a YYYY-MM-DD string, or None/''.

    Datetimes are reduced to their date; a time-of-day never survives.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    raw = str(value).strip()
    match = ISO_DATE_RE.match(raw)
    if not match:
        raise ValidationError({field: f'"{raw}" is not a date in YYYY-MM-DD format.'})
    return _build_date(*match.groups(), field=field, raw=raw)


def normalize_resubmission_date(value, today=None):
    """
    Normalize a resubmission due date to a date.

    Accepts YYYY-MM-DD, MM-DD-YYYY or MM/DD/YYYY. Impossible dates such as
    02-30-2025 and dates before today are rejected.
    """
    field = 'resubmission_due_date'
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError({field: 'Resubmission due date is required.'})

    if isinstance(value, datetime.datetime):
        parsed = value.date()
    elif isinstance(value, datetime.date):
        parsed = value
    else:
        raw = str(value).strip()
        iso = ISO_DATE_RE.match(raw)
        us = US_DATE_RE.match(raw)
        if iso:
            parsed = _build_date(*iso.groups(), field=field, raw=raw)
        elif us:
            month, day, year = us.groups()
            parsed = _build_date(year, month, day, field=field, raw=raw)
        else:
            raise ValidationError({field: f'"{raw}" must be YYYY-MM-DD or MM-DD-YYYY.'})

    today = today or timezone.localdate()
    if parsed < today:
        raise ValidationError({field: 'Resubmission due date cannot be in the past.'})
    return parsed


def clean_rejection(remarks, resubmission_due_date, today=None):
    """Validate reject input; returns (stripped remarks, date)"""
    cleaned = (remarks or '').strip()
    if not cleaned:
        raise ValidationError({'rejection_remarks': 'Rejection remarks are required.'})
    return cleaned, normalize_resubmission_date(resubmission_due_date, today=today)
