"""
Service for Progress entry management.

Every mutation that can change which entry is latest for a goal, or the
latest entry's value, is followed by a currentValue recomputation while the
goal's lock is still held.
"""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from dateutil.relativedelta import relativedelta

from ..models.goals import as_utc
from ..models.progress import ProgressCreate, ProgressRange, ProgressUpdate
from ..utils.exceptions import ResourceNotFoundError
from ..utils.metrics import PROGRESS_MUTATIONS
from . import goal_service
from .consistency_service import goal_locks, recalculate_current_value

if TYPE_CHECKING:
    from prisma import Prisma

logger = logging.getLogger(__name__)

NULLABLE_PROGRESS_FIELDS = frozenset({"notes"})

# Fields whose change can move currentValue
TRACKED_FIELDS = ("value", "date")

RANGE_DELTAS = {
    "week": relativedelta(weeks=1),
    "month": relativedelta(months=1),
    "year": relativedelta(years=1),
}

MAX_RECENT_LIMIT = 100


def range_start(range_: ProgressRange, now: datetime | None = None) -> datetime:
    """Start of a week/month/year chart window ending now."""
    now = now or datetime.now(UTC)
    return now - RANGE_DELTAS[range_]


async def list_progress(
    db: "Prisma",
    user_id: str,
    goal_id: str,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    range_: ProgressRange | None = None,
    now: datetime | None = None,
) -> list[Any]:
    """
    List a goal's entries in date order, optionally bounded (inclusive).

    An explicit start_date wins over range_. Unknown or foreign goal ids
    raise ResourceNotFoundError instead of returning an empty list.
    """
    await goal_service.get_goal(db, user_id, goal_id)

    if start_date is None and range_ is not None:
        start_date = range_start(range_, now)

    where: dict[str, Any] = {"goalId": goal_id, "userId": user_id}
    date_filter = {}
    if start_date is not None:
        date_filter["gte"] = as_utc(start_date)
    if end_date is not None:
        date_filter["lte"] = as_utc(end_date)
    if date_filter:
        where["date"] = date_filter

    return await db.progress.find_many(
        where=where,
        order=[{"date": "asc"}, {"createdAt": "asc"}, {"id": "asc"}],
    )


async def list_recent_progress(db: "Prisma", user_id: str, limit: int) -> list[Any]:
    """The user's latest entries across all goals, newest measurement first."""
    return await db.progress.find_many(
        where={"userId": user_id},
        order=[{"date": "desc"}, {"createdAt": "desc"}, {"id": "desc"}],
        take=min(max(limit, 1), MAX_RECENT_LIMIT),
    )


async def get_progress(db: "Prisma", user_id: str, progress_id: str) -> Any:
    """Fetch one entry owned by the user, or raise ResourceNotFoundError."""
    entry = await db.progress.find_first(where={"id": progress_id, "userId": user_id})
    if entry is None:
        raise ResourceNotFoundError("Progress", progress_id)
    return entry


async def create_progress(db: "Prisma", user_id: str, data: ProgressCreate) -> Any:
    """
    Log a measurement against one of the user's goals.

    The entry's owner is always the goal's owner, since the goal lookup is
    scoped by user_id.
    """
    goal = await goal_service.get_goal(db, user_id, data.goalId)

    async with goal_locks.hold(goal.id):
        # The goal may have been deleted while we waited for its lock
        await goal_service.get_goal(db, user_id, goal.id)
        entry = await db.progress.create(
            data={
                "goalId": goal.id,
                "userId": user_id,
                "value": data.value,
                "date": data.date,
                "notes": data.notes,
            }
        )
        PROGRESS_MUTATIONS.labels(operation="create").inc()
        logger.info(
            "Progress entry created",
            extra={"progress_id": entry.id, "goal_id": goal.id, "user_id": user_id},
        )
        await recalculate_current_value(db, goal.id)

    return entry


def affects_current_value(entry: Any, update_data: dict[str, Any]) -> bool:
    return any(
        field in update_data and update_data[field] != getattr(entry, field)
        for field in TRACKED_FIELDS
    )


async def update_progress(
    db: "Prisma",
    user_id: str,
    progress_id: str,
    data: ProgressUpdate,
) -> Any:
    """
    Apply a partial update to an entry.

    Only a changed value or date triggers recomputation; a notes-only edit
    never touches the goal.
    """
    update_data = data.model_dump(exclude_unset=True)
    goal_service.reject_nulls(update_data, NULLABLE_PROGRESS_FIELDS)

    entry = await get_progress(db, user_id, progress_id)
    if not update_data:
        return entry

    async with goal_locks.hold(entry.goalId):
        # Compare against the entry as it is now, not as it was before the lock
        entry = await get_progress(db, user_id, progress_id)
        updated = await db.progress.update(where={"id": progress_id}, data=update_data)
        if updated is None:
            raise ResourceNotFoundError("Progress", progress_id)

        PROGRESS_MUTATIONS.labels(operation="update").inc()
        logger.info(
            "Progress entry updated",
            extra={
                "progress_id": progress_id,
                "goal_id": entry.goalId,
                "user_id": user_id,
                "fields": sorted(update_data),
            },
        )
        if affects_current_value(entry, update_data):
            await recalculate_current_value(db, entry.goalId)

    return updated


async def delete_progress(db: "Prisma", user_id: str, progress_id: str) -> None:
    """
    Delete an entry and recompute its goal from the remaining history.

    A second delete of the same id fails with ResourceNotFoundError and does
    not recompute.
    """
    entry = await get_progress(db, user_id, progress_id)

    async with goal_locks.hold(entry.goalId):
        deleted = await db.progress.delete(where={"id": progress_id})
        if deleted is None:
            raise ResourceNotFoundError("Progress", progress_id)

        PROGRESS_MUTATIONS.labels(operation="delete").inc()
        logger.info(
            "Progress entry deleted",
            extra={"progress_id": progress_id, "goal_id": entry.goalId, "user_id": user_id},
        )
        await recalculate_current_value(db, entry.goalId)
