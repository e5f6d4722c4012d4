# backend/errors.py

"""
Service error -> HTTP response mapping shared by the API views.

- CapabilityError             403
- Django ValidationError      400 with field messages
- anything else passed in     400 {"detail": str(exc)}
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from rest_framework import status
from rest_framework.response import Response

from permissions.context import CapabilityError


def error_response(exc: Exception) -> Response:
    if isinstance(exc, CapabilityError):
        return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)

    if isinstance(exc, ValidationError):
        detail = exc.message_dict if hasattr(exc, "error_dict") else exc.messages
        return Response({"detail": detail}, status=status.HTTP_400_BAD_REQUEST)

    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
