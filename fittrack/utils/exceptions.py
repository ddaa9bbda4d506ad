"""
Application exception hierarchy.

Every error the API deliberately reports derives from FitTrackError, which
carries the HTTP status, a machine-readable code and a user-safe message.
The global handler in main.py turns these into ErrorResponse bodies.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from fastapi import status


class FitTrackError(Exception):
    """
    Base class for all application errors.

    Attributes:
        status_code: HTTP status code returned to the client
        code: Application-specific error code for programmatic handling
        message: User-friendly error message safe for display
        detail: Optional internal detail, only exposed when DEBUG is on
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        detail: str | None = None,
        status_code: int | None = None,
        code: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class AuthenticationError(FitTrackError):
    """No valid caller identity was supplied."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Could not validate credentials", detail: str | None = None):
        super().__init__(message, detail=detail)


class ValidationError(FitTrackError):
    """Input violated a field constraint. `fields` names the offending fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, fields: list[str] | None = None, detail: str | None = None):
        super().__init__(message, detail=detail)
        self.fields = fields or []


class ResourceNotFoundError(FitTrackError):
    """
    The target does not exist or is owned by someone else.

    Both cases produce the same message so callers cannot probe for ids
    belonging to other users.
    """

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str | None = None):
        super().__init__(
            f"{resource} not found",
            detail=f"{resource} id={resource_id}" if resource_id else None,
        )
        self.resource = resource
        self.resource_id = resource_id


class StorageError(FitTrackError):
    """The storage backend failed. The message never carries backend internals."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORAGE_ERROR"

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        detail: str | None = None,
        code: str | None = None,
    ):
        super().__init__(message, detail=detail, code=code)


class ConsistencyError(StorageError):
    """
    The primary Progress write succeeded but recomputing the goal's current
    value did not. The Progress change is kept.
    """

    code = "CONSISTENCY_ERROR"

    def __init__(self, goal_id: str, detail: str | None = None):
        super().__init__(
            "Progress was saved but the goal's current value could not be updated. "
            "Please retry the recalculation.",
            detail=detail,
        )
        self.goal_id = goal_id
