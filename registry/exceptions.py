"""
Errors raised by the registry services and the API exception handler
that renders them.

The service layer raises DRF exceptions directly, so a view can let them
propagate and the client still receives a stable ``code``.
"""
import structlog
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = structlog.get_logger(__name__)


class PatientNotFound(NotFound):
    """The patient id does not resolve inside the caller's tenant."""
    default_detail = 'patient not found'
    default_code = 'patient_not_found'


class TenantMismatch(PermissionDenied):
    """A referenced patient belongs to a different tenant."""
    default_detail = 'patient does not belong to this tenant'
    default_code = 'tenant_mismatch'


class InvalidOperation(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'cannot merge a patient with itself'
    default_code = 'invalid_operation'


class QueryFailed(APIException):
    """Candidate retrieval could not read the patient store."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'failed to find potential duplicates'
    default_code = 'query_failed'


class MergeFailed(APIException):
    """The merge transaction was rolled back; nothing was changed."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'patient merge failed and was rolled back'
    default_code = 'merge_failed'


def _error_code(exc) -> str:
    codes = exc.get_codes() if isinstance(exc, APIException) else None
    if isinstance(codes, str):
        return codes
    return getattr(exc, 'default_code', None) or 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('Unhandled API error', view=type(context.get('view')).__name__)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response({'ok': False, 'error': {'code': _error_code(exc), 'message': detail}}, status=resp.status_code)
