"""
Progress entry routes.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from datetime import datetime

from fastapi import APIRouter, Query, status

from ..config import get_settings
from ..dependencies import CurrentUser, DBDep
from ..models.progress import ProgressCreate, ProgressRange, ProgressResponse, ProgressUpdate
from ..services import progress_service

router = APIRouter(prefix="/api/v1/progress", tags=["progress"])


@router.get("", response_model=list[ProgressResponse])
async def list_progress(
    current_user: CurrentUser,
    db: DBDep,
    goal_id: str = Query(..., alias="goalId"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    range_: ProgressRange | None = Query(None, alias="range"),
):
    """List a goal's progress entries in date order."""
    return await progress_service.list_progress(
        db,
        current_user.id,
        goal_id,
        start_date=start_date,
        end_date=end_date,
        range_=range_,
    )


@router.get("/recent", response_model=list[ProgressResponse])
async def list_recent_progress(
    current_user: CurrentUser,
    db: DBDep,
    limit: int | None = Query(None, ge=1, le=progress_service.MAX_RECENT_LIMIT),
):
    """Latest progress entries across all of the caller's goals."""
    if limit is None:
        limit = get_settings().RECENT_PROGRESS_DEFAULT_LIMIT
    return await progress_service.list_recent_progress(db, current_user.id, limit)


@router.post("", response_model=ProgressResponse, status_code=status.HTTP_201_CREATED)
async def create_progress(data: ProgressCreate, current_user: CurrentUser, db: DBDep):
    """Log a progress entry against one of the caller's goals."""
    return await progress_service.create_progress(db, current_user.id, data)


@router.get("/{progress_id}", response_model=ProgressResponse)
async def get_progress(progress_id: str, current_user: CurrentUser, db: DBDep):
    """Get a specific progress entry by ID."""
    return await progress_service.get_progress(db, current_user.id, progress_id)


@router.patch("/{progress_id}", response_model=ProgressResponse)
async def update_progress(
    progress_id: str,
    data: ProgressUpdate,
    current_user: CurrentUser,
    db: DBDep,
):
    """Update a progress entry's value, date or notes."""
    return await progress_service.update_progress(db, current_user.id, progress_id, data)


@router.delete("/{progress_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_progress(progress_id: str, current_user: CurrentUser, db: DBDep):
    """Delete a progress entry."""
    await progress_service.delete_progress(db, current_user.id, progress_id)
    return None
