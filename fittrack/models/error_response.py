"""
Standardized error response models for consistent API error handling.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response model for all API errors.

    Attributes:
        status_code: HTTP status code (e.g., 400, 401, 404, 500)
        code: Application-specific error code for programmatic handling
        message: User-friendly error message safe for display
        fields: Offending input fields, for validation errors
        detail: Optional internal details for debugging (excluded in production)
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status_code": 400,
                "code": "VALIDATION_ERROR",
                "message": "Validation error in field 'targetValue': Input should be greater than 0",
                "fields": ["targetValue"],
            }
        }
    )

    status_code: int = Field(..., description="HTTP status code")
    code: str = Field(..., description="Application-specific error code")
    message: str = Field(..., description="User-friendly error message")
    fields: list[str] | None = Field(
        None,
        description="Names of the input fields that failed validation",
    )
    detail: str | None = Field(
        None,
        description="Internal error details for debugging (may be excluded in production)",
    )
