"""
shared/utils/errors.py
Application error hierarchy. Each error carries the HTTP status it maps to;
main.py registers a single handler for AppError.
"""

from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "An internal server error occurred"

    def __init__(
        self,
        detail: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.detail = detail if detail is not None else self.default_detail
        self.headers = headers
        super().__init__(str(self.detail))


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"

    def __init__(self, detail: Optional[Any] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class InternalError(AppError):
    """A server-side data or invariant failure. Details are never sent to clients."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
