"""
Workflow error taxonomy shared by the projects and tasks apps.

All errors are DRF exceptions so function views can let them propagate and the
framework renders them; `labops_exception_handler` adds flat `error`/`code`
keys the frontend keys its messages on.
"""
from rest_framework import exceptions, status
from rest_framework.views import exception_handler


class ValidationError(exceptions.ValidationError):
    """Malformed input: bad date, empty required field, forbidden characters"""
    default_code = 'invalid'


class InvalidDateRange(ValidationError):
    default_detail = 'Scheduled end date cannot be before the start date.'
    default_code = 'invalid_date_range'


class NotFound(exceptions.NotFound):
    default_code = 'not_found'


class InvalidTransition(exceptions.APIException):
    """Attempted status change that is not an edge of the task state machine"""
    status_code = status.HTTP_409_CONFLICT
    default_code = 'invalid_transition'

    def __init__(self, current_status, attempted_status, detail=None):
        self.current_status = current_status
        self.attempted_status = attempted_status
        super().__init__(
            detail=detail or f'Cannot move task from {current_status} to {attempted_status}.'
        )


class ReassignmentNotConfirmed(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = (
        'This task is in progress or ready for review. '
        'Reassigning requires explicit confirmation.'
    )
    default_code = 'reassignment_not_confirmed'


class AllocationExhausted(exceptions.APIException):
    """Project number retry cap exceeded; safe to retry the whole operation later"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Could not allocate a unique project number. Try again later.'
    default_code = 'allocation_exhausted'


def _first_message(detail):
    if isinstance(detail, list):
        return _first_message(detail[0]) if detail else ''
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ''
    return str(detail)


def labops_exception_handler(exc, context):
    """DRF exception handler that adds `error` and `code` to every API error body"""
    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data if isinstance(response.data, dict) else {'errors': response.data}
    if isinstance(exc, exceptions.APIException):
        codes = exc.get_codes()
        data.setdefault('code', codes if isinstance(codes, str) else getattr(exc, 'default_code', 'error'))
        data.setdefault('error', _first_message(exc.detail))
    if isinstance(exc, InvalidTransition):
        data['current_status'] = exc.current_status
        data['attempted_status'] = exc.attempted_status
    response.data = data
    return response
