"""
API error taxonomy and the project-wide DRF exception handler.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

# Names used throughout the booking workflow
Unauthenticated = NotAuthenticated
Forbidden = PermissionDenied

__all__ = [
    'Unauthenticated', 'Forbidden', 'NotFound', 'ValidationError',
    'InsufficientSeats', 'InvalidCapacity', 'InvalidState',
    'BusinessRuleError', 'api_exception_handler',
]


class BusinessRuleError(APIException):
    """Base class for requests that are well-formed but break an inventory rule."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state.'
    default_code = 'conflict'


class InsufficientSeats(BusinessRuleError):
    default_detail = 'Not enough seats available.'
    default_code = 'insufficient_seats'


class InvalidCapacity(BusinessRuleError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = 'Total seats cannot be lower than the seats already booked.'
    default_code = 'invalid_capacity'


class InvalidState(BusinessRuleError):
    default_detail = 'This status transition is not allowed.'
    default_code = 'invalid_state'


def api_exception_handler(exc, context):
    """
    Render API errors as ``{"error": <code>, "detail": <message>}``.

    Field validation errors keep DRF's per-field mapping so clients can
    attach messages to inputs.
    """
    response = exception_handler(exc, context)
    if response is None or isinstance(exc, ValidationError):
        return response

    if isinstance(exc, BusinessRuleError):
        view = context.get('view')
        logger.warning(
            "%s rejected by %s: %s",
            exc.default_code, view.__class__.__name__ if view else 'unknown view', exc.detail,
        )

    # Http404 and Django's PermissionDenied arrive unconverted
    code = exc.get_codes() if isinstance(exc, APIException) else None
    if not isinstance(code, str):
        code = {404: 'not_found', 403: 'permission_denied'}.get(response.status_code, 'error')

    detail = response.data.get('detail', response.data) if isinstance(response.data, dict) else response.data
    response.data = {'error': code, 'detail': detail}
    return response
