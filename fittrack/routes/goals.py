"""
Goal routes.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from datetime import datetime

from fastapi import APIRouter, Query, status

from ..dependencies import CurrentUser, DBDep
from ..models.goals import GoalCreate, GoalResponse, GoalSummaryResponse, GoalUpdate
from ..services import goal_service

router = APIRouter(prefix="/api/v1/goals", tags=["goals"])


@router.get("", response_model=list[GoalResponse])
async def list_goals(
    current_user: CurrentUser,
    db: DBDep,
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
):
    """List the caller's goals, newest first."""
    return await goal_service.list_goals(db, current_user.id, start_date, end_date)


@router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(data: GoalCreate, current_user: CurrentUser, db: DBDep):
    """Create a new goal."""
    return await goal_service.create_goal(db, current_user.id, data)


@router.get("/{goal_id}", response_model=GoalResponse)
async def get_goal(goal_id: str, current_user: CurrentUser, db: DBDep):
    """Get a specific goal by ID."""
    return await goal_service.get_goal(db, current_user.id, goal_id)


@router.patch("/{goal_id}", response_model=GoalResponse)
async def update_goal(goal_id: str, data: GoalUpdate, current_user: CurrentUser, db: DBDep):
    """Update a goal. currentValue is maintained by the system and cannot be set."""
    return await goal_service.update_goal(db, current_user.id, goal_id, data)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(goal_id: str, current_user: CurrentUser, db: DBDep):
    """Delete a goal and all of its progress entries."""
    await goal_service.delete_goal(db, current_user.id, goal_id)
    return None


@router.get("/{goal_id}/summary", response_model=GoalSummaryResponse)
async def get_goal_summary(goal_id: str, current_user: CurrentUser, db: DBDep):
    """Completion percentage, days remaining and entry stats for a goal."""
    return await goal_service.get_goal_summary(db, current_user.id, goal_id)


@router.post("/{goal_id}/recalculate", response_model=GoalResponse)
async def recalculate_goal(goal_id: str, current_user: CurrentUser, db: DBDep):
    """
    Recompute the goal's currentValue from its progress history.

    Safe to call any number of times; used to repair a value left stale by
    a failed recomputation.
    """
    return await goal_service.recalculate_goal(db, current_user.id, goal_id)
