"""
Service for Goal management.

All queries are scoped by the owning user id; a goal that exists under
another owner is reported exactly like a missing one.
"""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from ..models.goals import GoalCreate, GoalUpdate, as_utc
from ..utils.exceptions import ResourceNotFoundError, ValidationError
from .consistency_service import find_latest_progress, goal_locks, recalculate_current_value

if TYPE_CHECKING:
    from prisma import Prisma

logger = logging.getLogger(__name__)

NULLABLE_GOAL_FIELDS = frozenset({"description"})


def reject_nulls(update_data: dict[str, Any], nullable: frozenset[str]) -> None:
    """Raise ValidationError for required fields explicitly sent as null."""
    nulls = sorted(k for k, v in update_data.items() if v is None and k not in nullable)
    if nulls:
        raise ValidationError(
            f"Field(s) cannot be null: {', '.join(nulls)}",
            fields=nulls,
        )


def check_date_order(start_date: datetime, target_date: datetime) -> None:
    if target_date < start_date:
        raise ValidationError(
            "targetDate must not be earlier than startDate",
            fields=["targetDate"],
        )


async def list_goals(
    db: "Prisma",
    user_id: str,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[Any]:
    """
    List the user's goals, newest first.

    start_date/end_date bound the goal's own startDate, inclusively.
    """
    where: dict[str, Any] = {"userId": user_id}

    date_filter = {}
    if start_date is not None:
        date_filter["gte"] = as_utc(start_date)
    if end_date is not None:
        date_filter["lte"] = as_utc(end_date)
    if date_filter:
        where["startDate"] = date_filter

    return await db.goal.find_many(where=where, order=[{"createdAt": "desc"}, {"id": "desc"}])


async def get_goal(db: "Prisma", user_id: str, goal_id: str) -> Any:
    """Fetch one goal owned by the user, or raise ResourceNotFoundError."""
    goal = await db.goal.find_first(where={"id": goal_id, "userId": user_id})
    if goal is None:
        raise ResourceNotFoundError("Goal", goal_id)
    return goal


async def create_goal(db: "Prisma", user_id: str, data: GoalCreate) -> Any:
    """Create a goal. currentValue always starts at 0."""
    check_date_order(data.startDate, data.targetDate)

    goal_data = data.model_dump()
    goal_data["userId"] = user_id
    goal_data["currentValue"] = 0.0

    goal = await db.goal.create(data=goal_data)
    logger.info("Goal created", extra={"goal_id": goal.id, "user_id": user_id})
    return goal


async def update_goal(db: "Prisma", user_id: str, goal_id: str, data: GoalUpdate) -> Any:
    """
    Apply a partial update to a goal.

    currentValue is not part of GoalUpdate, so it can only change through
    the progress history.
    """
    update_data = data.model_dump(exclude_unset=True)
    reject_nulls(update_data, NULLABLE_GOAL_FIELDS)

    existing = await get_goal(db, user_id, goal_id)
    if not update_data:
        return existing

    check_date_order(
        update_data.get("startDate", existing.startDate),
        update_data.get("targetDate", existing.targetDate),
    )

    goal = await db.goal.update(where={"id": goal_id}, data=update_data)
    if goal is None:
        # Deleted between the ownership check and the write
        raise ResourceNotFoundError("Goal", goal_id)

    logger.info(
        "Goal updated",
        extra={"goal_id": goal_id, "user_id": user_id, "fields": sorted(update_data)},
    )
    return goal


async def delete_goal(db: "Prisma", user_id: str, goal_id: str) -> None:
    """
    Delete a goal together with all of its progress entries.

    Entries are removed explicitly before the goal, under the goal's lock,
    so no progress write can slip in between.
    """
    await get_goal(db, user_id, goal_id)

    async with goal_locks.hold(goal_id):
        removed = await db.progress.delete_many(where={"goalId": goal_id})
        goal = await db.goal.delete(where={"id": goal_id})

    if goal is None:
        raise ResourceNotFoundError("Goal", goal_id)

    logger.info(
        "Goal deleted",
        extra={"goal_id": goal_id, "user_id": user_id, "progress_removed": removed},
    )


async def recalculate_goal(db: "Prisma", user_id: str, goal_id: str) -> Any:
    """Re-run currentValue maintenance for one of the user's goals."""
    await get_goal(db, user_id, goal_id)
    async with goal_locks.hold(goal_id):
        await recalculate_current_value(db, goal_id)
    return await get_goal(db, user_id, goal_id)


def percent_complete(current_value: float, target_value: float) -> float:
    """Share of the target reached, clamped to [0, 100]."""
    if target_value <= 0:
        return 0.0
    return min(max(current_value / target_value * 100.0, 0.0), 100.0)


def days_remaining(target_date: datetime, now: datetime | None = None) -> int:
    """Whole calendar days until the target date; negative once overdue."""
    now = now or datetime.now(UTC)
    if target_date.tzinfo is None:
        target_date = target_date.replace(tzinfo=UTC)
    return (target_date.astimezone(UTC).date() - now.astimezone(UTC).date()).days


async def get_goal_summary(
    db: "Prisma",
    user_id: str,
    goal_id: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Completion view of a goal: percent done, days left, entry stats."""
    goal = await get_goal(db, user_id, goal_id)
    entry_count = await db.progress.count(where={"goalId": goal_id})
    latest = await find_latest_progress(db, goal_id)

    return {
        "goalId": goal.id,
        "title": goal.title,
        "unit": goal.unit,
        "currentValue": goal.currentValue,
        "targetValue": goal.targetValue,
        "percentComplete": round(percent_complete(goal.currentValue, goal.targetValue), 2),
        "daysRemaining": days_remaining(goal.targetDate, now),
        "entryCount": entry_count,
        "latestEntryDate": latest.date if latest else None,
    }
