"""
Project number allocation.

Format: PREFIX-YEAR-NNNN (e.g. MAK-2025-0412). Project numbers are used as
folder and file names for report storage, so admin-supplied numbers must not
contain characters that are unsafe in filesystem paths.
"""
import logging
import random
from django.conf import settings
from django.utils import timezone
from labops.core.exceptions import AllocationExhausted, ValidationError
from .models import Project

logger = logging.getLogger('labops.projects')

FORBIDDEN_PROJECT_NUMBER_CHARS = '\\/:*?"<>|'
DEFAULT_NUMBER_SPACE = 10000


def validate_project_number_candidate(candidate):
    """
    Clean an admin-supplied project number.

    Returns the stripped candidate, or raises ValidationError when it is empty
    or contains any of \\ / : * ? " < > |
    """
    value = (candidate or '').strip()
    if not value:
        raise ValidationError({'project_number': 'Project number cannot be empty.'})
    bad = sorted({ch for ch in value if ch in FORBIDDEN_PROJECT_NUMBER_CHARS})
    if bad:
        raise ValidationError({
            'project_number': f"Project number contains forbidden characters: {' '.join(bad)}"
        })
    return value


class ProjectNumberAllocator:
    """
    Produces project numbers that are unused at the moment of the check.

    The backing store is the `queryset` (defaults to all projects); the random
    draw, year and number space are injectable so callers and tests can force
    collisions. Retries are capped by `max_attempts`; running out raises
    AllocationExhausted.
    """

    def __init__(self, queryset=None, prefix=None, max_attempts=None, space=DEFAULT_NUMBER_SPACE,
                 number_source=None, year=None):
        self.queryset = queryset if queryset is not None else Project.objects.all()
        self.prefix = prefix or settings.PROJECT_NUMBER_PREFIX
        self.max_attempts = max_attempts if max_attempts is not None else settings.PROJECT_NUMBER_MAX_ATTEMPTS
        self.space = space
        self.number_source = number_source or (lambda: random.randrange(self.space))
        self.year = year

    def format_number(self, value):
        year = self.year or timezone.localdate().year
        return f"{self.prefix}-{year}-{value:04d}"

    def is_taken(self, project_number):
        return self.queryset.filter(project_number=project_number).exists()

    def allocate(self, candidate=None):
        if candidate is not None:
            project_number = validate_project_number_candidate(candidate)
            if self.is_taken(project_number):
                raise ValidationError({'project_number': 'Project number already exists.'})
            return project_number

        for attempt in range(1, self.max_attempts + 1):
            project_number = self.format_number(self.number_source())
            if not self.is_taken(project_number):
                return project_number
            logger.warning(
                f"Project number {project_number} already exists, retrying "
                f"(attempt {attempt}/{self.max_attempts})"
            )

        logger.error(f"Project number allocation exhausted after {self.max_attempts} attempts")
        raise AllocationExhausted()


def allocate_project_number(candidate=None, **allocator_options):
    """Allocate one project number; see ProjectNumberAllocator for options"""
    return ProjectNumberAllocator(**allocator_options).allocate(candidate)
