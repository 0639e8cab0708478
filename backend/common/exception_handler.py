"""DRF exception handler producing ``{"kind", "message"}`` error payloads."""

import logging

from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from services.exceptions import RideshareError

logger = logging.getLogger(__name__)

# DRF exception class -> payload kind
DRF_KINDS = {
    exceptions.ValidationError: "validation_error",
    exceptions.ParseError: "validation_error",
    exceptions.NotAuthenticated: "not_authenticated",
    exceptions.AuthenticationFailed: "not_authenticated",
    exceptions.PermissionDenied: "permission_denied",
    exceptions.NotFound: "not_found",
    exceptions.MethodNotAllowed: "method_not_allowed",
}


def _kind_for(exc) -> str:
    for exc_class, kind in DRF_KINDS.items():
        if isinstance(exc, exc_class):
            return kind
    return "error"


def api_exception_handler(exc, context):
    """
    Map core service errors and DRF errors to structured payloads.

    Core errors carry their own kind and status code; DRF errors keep DRF's
    status code, and field-level validation details go under ``errors``.
    """
    if isinstance(exc, RideshareError):
        logger.info("%s in %s: %s", exc.kind, context.get("view").__class__.__name__, exc.message)
        return Response(exc.as_payload(), status=exc.status_code)

    if isinstance(exc, Http404):
        return Response(
            {"kind": "not_found", "message": str(exc) or "Not found."},
            status=status.HTTP_404_NOT_FOUND,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    payload = {"kind": _kind_for(exc)}
    if isinstance(exc, exceptions.ValidationError):
        payload["message"] = "Invalid input."
        payload["errors"] = response.data
    else:
        detail = response.data.get("detail") if isinstance(response.data, dict) else None
        payload["message"] = str(detail or exc)

    response.data = payload
    return response
