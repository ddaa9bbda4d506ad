"""
Goal models for request/response schemas.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

GoalType = Literal["weight_loss", "muscle_gain", "endurance", "flexibility", "custom"]


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so every stored date is comparable."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class GoalCreate(BaseModel):
    """Schema for creating a new goal. currentValue is never accepted."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    targetValue: float = Field(..., gt=0, allow_inf_nan=False)
    unit: str = Field(..., min_length=1, max_length=50)
    goalType: GoalType
    startDate: datetime
    targetDate: datetime

    @field_validator("startDate", "targetDate")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class GoalUpdate(BaseModel):
    """Schema for partially updating a goal. Every field is optional."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    targetValue: float | None = Field(None, gt=0, allow_inf_nan=False)
    unit: str | None = Field(None, min_length=1, max_length=50)
    goalType: GoalType | None = None
    startDate: datetime | None = None
    targetDate: datetime | None = None

    @field_validator("startDate", "targetDate")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class GoalResponse(BaseModel):
    """Schema for goal response."""

    id: str
    userId: str
    title: str
    description: str | None = None
    targetValue: float
    currentValue: float
    unit: str
    goalType: str
    startDate: datetime
    targetDate: datetime
    createdAt: datetime
    updatedAt: datetime

    model_config = ConfigDict(from_attributes=True)


class GoalSummaryResponse(BaseModel):
    """Derived completion view of a goal, as shown on the dashboard."""

    goalId: str
    title: str
    unit: str
    currentValue: float
    targetValue: float
    percentComplete: float = Field(..., ge=0.0, le=100.0)
    daysRemaining: int
    entryCount: int
    latestEntryDate: datetime | None = None
