"""
DRF exception handler producing the uniform error envelope.

Every failed API response has the shape:

    {"success": false, "message": "<human readable>", "error_code": "<CODE>"}

Status mapping:
    400 - validation (DRF ValidationError)
    401 - unauthenticated (missing/invalid/expired bearer token)
    403 - unauthorized (not a participant, wrong role)
    404 - not found
    500 - unexpected errors (logged with traceback, message kept generic)

Configured in settings:
    REST_FRAMEWORK = {"EXCEPTION_HANDLER": "core.exception_handler.api_exception_handler"}
"""

from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def _flatten_detail(detail) -> str:
    """Reduce a DRF error detail (str, list or dict) to one readable line."""
    if isinstance(detail, dict):
        parts = []
        for field, value in detail.items():
            text = _flatten_detail(value)
            parts.append(text if field == "non_field_errors" else f"{field}: {text}")
        return "; ".join(parts)
    if isinstance(detail, list):
        return " ".join(_flatten_detail(item) for item in detail)
    return str(detail)


def api_exception_handler(exc, context):
    """
    Render exceptions as {success: false, message, error_code}.

    Domain errors (core.exceptions) carry their own status; DRF and Django
    errors go through DRF's default handler first so headers such as
    WWW-Authenticate are preserved.
    """
    if isinstance(exc, BaseApplicationError):
        if exc.status_code >= 500:
            logger.error(f"Application error: {exc}", exc_info=exc)
        return Response(exc.to_dict(), status=exc.status_code)

    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception(
            f"Unhandled error in {view.__class__.__name__ if view else 'view'}",
            exc_info=exc,
        )
        return Response(
            {
                "success": False,
                "message": "An unexpected error occurred",
                "error_code": "INTERNAL_ERROR",
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, Http404):
        error_code = "NOT_FOUND"
    elif isinstance(exc, PermissionDenied):
        error_code = "PERMISSION_DENIED"
    elif isinstance(exc, drf_exceptions.APIException):
        error_code = exc.default_code.upper()
    else:
        error_code = "ERROR"

    detail = response.data.get("detail", response.data) if isinstance(response.data, dict) else response.data
    body = {
        "success": False,
        "message": _flatten_detail(detail),
        "error_code": error_code,
    }
    if isinstance(exc, drf_exceptions.ValidationError) and isinstance(exc.detail, dict):
        body["errors"] = exc.detail
    response.data = body
    return response
