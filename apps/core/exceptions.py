"""
Custom exception handler for DRF and project exception types.
"""
import logging
from django.conf import settings
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Custom exception handler that logs errors and returns consistent format.
    """
    # Map project exceptions onto their HTTP status first
    if isinstance(exc, UserManagementException):
        request = context.get('request')
        request_id = getattr(request, 'request_id', None) if request else None
        logger.warning(
            f"Request rejected: {exc.__class__.__name__}",
            extra={
                'exception': exc.message,
                'request_id': request_id,
                'path': request.path if request else None,
            }
        )
        return Response(
            {
                'error': exc.message,
                'code': exc.code,
                'details': exc.details,
                'request_id': request_id,
            },
            status=exc.status_code
        )

    # Call DRF's default exception handler
    response = exception_handler(exc, context)

    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    log_method = logger.error if response is None else logger.info
    log_method(
        f"API Exception: {exc.__class__.__name__}",
        extra={
            'exception': str(exc),
            'request_id': request_id,
            'path': request.path if request else None,
            'method': request.method if request else None,
        },
        exc_info=response is None
    )

    # If DRF didn't handle it, return a generic 500 error
    if response is None:
        return Response(
            {
                'error': 'Internal server error',
                'detail': str(exc) if settings.DEBUG else 'An unexpected error occurred',
                'request_id': request_id,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    # Add request_id to all error responses
    if request_id and isinstance(response.data, dict):
        response.data['request_id'] = request_id

    return response


class UserManagementException(Exception):
    """Base exception for user management errors."""

    status_code = 400
    code = 'ERROR'

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class RecordValidationError(UserManagementException):
    """Raised when a record fails validation; details carry per-field messages."""
    status_code = 400
    code = 'VALIDATION_ERROR'


class OperationRejected(UserManagementException):
    """Raised when a save or delete is refused by the user record guards."""
    status_code = 403
    code = 'OPERATION_REJECTED'


class AssignmentConflict(UserManagementException):
    """Raised when a role is already assigned to a user."""
    status_code = 409
    code = 'ALREADY_ASSIGNED'


class AssignmentFailed(UserManagementException):
    """Raised when a role assignment could not be stored."""
    status_code = 400
    code = 'ASSIGNMENT_FAILED'
