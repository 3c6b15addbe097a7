import logging
from django.db import IntegrityError, transaction
from labops.core.exceptions import AllocationExhausted, ValidationError
from .models import Project
from .utils import ProjectNumberAllocator

logger = logging.getLogger('labops.projects')

MAX_INSERT_ATTEMPTS = 5


def _clean_customer_emails(customer_emails):
    if customer_emails is None:
        return []
    if not isinstance(customer_emails, (list, tuple)):
        raise ValidationError({'customer_emails': 'customer_emails must be a list.'})
    emails = [str(email).strip() for email in customer_emails if str(email).strip()]
    if len({email.lower() for email in emails}) != len(emails):
        raise ValidationError({'customer_emails': 'Duplicate emails are not allowed.'})
    return emails


def create_project(project_name, customer_emails=None, soil_specs=None, concrete_specs=None,
                   project_number=None, created_by=None, allocator=None):
    """
    Create a project with a unique project number.

    Allocation and insert share one savepoint per attempt. The unique
    constraint on project_number catches a concurrent allocation of the same
    number; that attempt is discarded and a fresh number is drawn.
    """
    name = (project_name or '').strip()
    if not name:
        raise ValidationError({'project_name': 'Project name cannot be empty.'})
    emails = _clean_customer_emails(customer_emails)
    if Project.objects.filter(project_name=name).exists():
        raise ValidationError({'project_name': 'Project name already exists.'})

    allocator = allocator or ProjectNumberAllocator()
    fields = {
        'project_name': name,
        'customer_emails': emails,
        'soil_specs': soil_specs or {},
        'concrete_specs': concrete_specs or {},
        'created_by': created_by,
    }

    attempts = 1 if project_number is not None else MAX_INSERT_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                number = allocator.allocate(project_number)
                project = Project.objects.create(project_number=number, **fields)
        except IntegrityError:
            if Project.objects.filter(project_name=name).exists():
                raise ValidationError({'project_name': 'Project name already exists.'})
            if project_number is not None:
                raise ValidationError({'project_number': 'Project number already exists.'})
            logger.warning(f"Project number collided on insert (attempt {attempt}/{attempts}), retrying")
            continue

        logger.info(f"Created project {project.project_number} ({project.project_name})")
        return project

    raise AllocationExhausted()
