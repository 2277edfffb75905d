"""
Typed API errors.

Services raise these instead of bare HTTPException so that the failure class
is explicit at the call site. `main.py` renders all of them as
{"success": false, "error": "..."}.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class ApiError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, *, headers: dict[str, str] | None = None) -> None:
        super().__init__(status_code=type(self).status_code, detail=detail, headers=headers)


class AuthenticationRequired(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationDenied(ApiError):
    status_code = status.HTTP_403_FORBIDDEN


class ValidationFailed(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT


class UpstreamFailure(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
