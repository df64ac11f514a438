"""
Exceptions raised by the editorial workflow.

Every workflow error is a DRF ``APIException`` so views can let them
propagate; ``api_exception_handler`` adds a machine-readable ``code`` to
each error response.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class WorkflowError(APIException):
    """Base class for refused workflow operations."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The requested operation is not allowed in the current state.'
    default_code = 'workflow_error'


class InvalidTransition(WorkflowError):
    """The requested status change is not an edge of the state machine."""

    default_code = 'invalid_transition'

    def __init__(self, from_status, to_status, detail=None):
        self.from_status = from_status
        self.to_status = to_status
        if detail is None:
            detail = f"Cannot move submission from {from_status} to {to_status}."
        super().__init__(detail=detail, code=self.default_code)


class PreconditionFailed(WorkflowError):
    """The edge exists but one of its preconditions is not met."""

    default_code = 'precondition_failed'

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail, code=code or self.default_code)


class WorkflowValidationError(APIException):
    """Input to a workflow operation is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'invalid'

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail, code=code or self.default_code)


class ExternalServiceError(APIException):
    """A third-party dependency (payment gateway) failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'An external service is unavailable.'
    default_code = 'external_service_error'


def _first_code(codes):
    if isinstance(codes, str):
        return codes
    if isinstance(codes, dict):
        for value in codes.values():
            return _first_code(value)
    if isinstance(codes, (list, tuple)) and codes:
        return _first_code(codes[0])
    return None


def api_exception_handler(exc, context):
    """DRF exception handler that adds ``code`` to every error body."""
    response = exception_handler(exc, context)
    if response is None:
        return None

    code = None
    if isinstance(exc, APIException):
        code = _first_code(exc.get_codes())
    elif response.status_code == status.HTTP_404_NOT_FOUND:
        code = 'not_found'
    elif response.status_code == status.HTTP_403_FORBIDDEN:
        code = 'permission_denied'

    if isinstance(response.data, dict):
        response.data.setdefault('code', code or 'error')
    else:
        response.data = {'detail': response.data, 'code': code or 'invalid'}

    if isinstance(exc, WorkflowError):
        view = context.get('view')
        logger.warning(f"Refused {view.__class__.__name__ if view else 'operation'}: {exc.detail}")
    return response
