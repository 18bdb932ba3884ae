# backend/api_errors.py

"""
API ERROR NORMALIZATION

Every error leaving the API has the same shape:

    {"error": "<human readable message>"}

Status mapping:
- DomainError subclasses carry their own http_status
- DRF validation errors            -> 400
- NotAuthenticated / AuthFailed    -> 401
- PermissionDenied                 -> 403
- NotFound / Http404               -> 404
- anything unexpected              -> 500 (logged)
"""

from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERROR BASE
# ============================================================


class DomainError(Exception):
    """
    Base for all business-rule errors raised by service modules.

    Services raise these; views never translate them by hand.
    """

    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DomainValidationError(DomainError):
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class DomainPermissionError(DomainError):
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"


class DomainNotFoundError(DomainError):
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class DomainStateError(DomainError):
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not allowed in the current state"


class ExternalServiceError(DomainError):
    http_status = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service failed; please retry"


# ============================================================
# HELPERS
# ============================================================


def error_response(*, message: str, http_status: int) -> Response:
    """
    Canonical API error response.
    """
    return Response({"error": message}, status=http_status)


def _flatten_detail(detail) -> str:
    """
    Reduce DRF's nested error detail into one readable line.

    {"quantity": ["Ensure this value is greater than 0."]}
        -> "quantity: Ensure this value is greater than 0."
    """
    if isinstance(detail, dict):
        parts = []
        for field, value in detail.items():
            text = _flatten_detail(value)
            parts.append(text if field == "non_field_errors" else f"{field}: {text}")
        return "; ".join(parts)
    if isinstance(detail, (list, tuple)):
        return " ".join(_flatten_detail(item) for item in detail)
    return str(detail)


# ============================================================
# DRF EXCEPTION HANDLER
# ============================================================


def api_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        return error_response(message=exc.message, http_status=exc.http_status)

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)

    if response is not None:
        if isinstance(exc, exceptions.APIException):
            message = _flatten_detail(exc.detail)
        else:
            message = _flatten_detail(response.data)
        response.data = {"error": message}
        return response

    view = context.get("view") if context else None
    logger.exception(
        "Unhandled API error",
        extra={"view": view.__class__.__name__ if view else None},
    )
    return error_response(
        message="Internal server error",
        http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
