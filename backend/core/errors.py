"""
Error taxonomy shared by every API endpoint.

Every failure is classified into one ErrorKind and rendered with the
failure envelope ``{"success": false, "error": ..., "details": ...}``.
"""
import enum
import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import set_rollback

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    VALIDATION = (status.HTTP_400_BAD_REQUEST, 'Validation error')
    AUTHENTICATION = (status.HTTP_401_UNAUTHORIZED, 'Authentication required')
    # Indistinguishable from NOT_FOUND on the wire
    AUTHORIZATION = (status.HTTP_404_NOT_FOUND, 'Entry not found or access denied')
    NOT_FOUND = (status.HTTP_404_NOT_FOUND, 'Not found')
    INTERNAL = (status.HTTP_500_INTERNAL_SERVER_ERROR, 'Internal server error')

    def __init__(self, status_code, default_message):
        self.status_code = status_code
        self.default_message = default_message


class ApiError(exceptions.APIException):
    kind = ErrorKind.INTERNAL

    def __init__(self, message=None, details=None, kind=None):
        if kind is not None:
            self.kind = kind
        self.message = message or self.kind.default_message
        self.details = details
        self.status_code = self.kind.status_code
        super().__init__(detail=self.message)


class ValidationFailed(ApiError):
    kind = ErrorKind.VALIDATION


class AuthenticationError(ApiError):
    kind = ErrorKind.AUTHENTICATION


class AccessDenied(ApiError):
    kind = ErrorKind.AUTHORIZATION


class NotFoundError(ApiError):
    kind = ErrorKind.NOT_FOUND


class CounterInvariantError(ApiError):
    """An entry's like/dislike counter would drop below zero."""
    kind = ErrorKind.INTERNAL


def error_body(message, details=None):
    body = {'success': False, 'error': message}
    if details is not None:
        body['details'] = details
    return body


def classify(exc):
    """Map any exception onto an ApiError without inspecting class names."""
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, exceptions.ValidationError):
        return ValidationFailed(details=exc.detail)
    if isinstance(exc, exceptions.ParseError):
        return ValidationFailed('Invalid JSON', details=str(exc.detail))
    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        return AuthenticationError(str(exc.detail))
    if isinstance(exc, (exceptions.PermissionDenied, DjangoPermissionDenied)):
        return AccessDenied()
    if isinstance(exc, (exceptions.NotFound, Http404)):
        return NotFoundError()
    return None


def envelope_exception_handler(exc, context):
    """DRF EXCEPTION_HANDLER rendering every failure with the error envelope."""
    error = classify(exc)

    if error is None and isinstance(exc, exceptions.APIException):
        # Method not allowed, unsupported media type and friends keep their status
        response = Response(error_body(str(exc.detail)), status=exc.status_code)
        if getattr(exc, 'wait', None):
            response['Retry-After'] = str(int(exc.wait))
        return response

    if error is None:
        view = context.get('view')
        logger.exception('Unhandled error in %s', type(view).__name__ if view else 'view')
        error = ApiError(details=repr(exc) if settings.DEBUG else None)

    set_rollback()
    response = Response(error_body(error.message, error.details), status=error.status_code)
    if error.kind is ErrorKind.AUTHENTICATION:
        response['WWW-Authenticate'] = 'Bearer'
    return response
