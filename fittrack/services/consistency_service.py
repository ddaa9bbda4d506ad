"""
Goal currentValue maintenance.

A goal's currentValue is a cached copy of the value of its latest progress
entry (greatest `date`; ties go to the most recently created entry, then to
the greatest id), or 0 when the goal has no entries. Every progress mutation
re-runs the recomputation for its goal while holding that goal's lock.

The recomputation is idempotent: it reads the history and overwrites the
cached value, so re-running it after a failure is always safe.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from ..utils.exceptions import ConsistencyError
from ..utils.metrics import CONSISTENCY_RECALCULATIONS
from ..utils.retry import RetryConfig, retry_with_backoff

if TYPE_CHECKING:
    from prisma import Prisma

logger = logging.getLogger(__name__)

# Latest entry first: date, then creation time, then id
LATEST_FIRST: list[dict[str, str]] = [
    {"date": "desc"},
    {"createdAt": "desc"},
    {"id": "desc"},
]

RECONCILE_BATCH_SIZE = 100


class GoalLocks:
    """
    In-process locks keyed by goal id.

    Serialises "mutate progress, then recompute" per goal so two concurrent
    writers cannot interleave their reads and writes of currentValue. A lock
    is discarded once nobody holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, goal_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(goal_id, asyncio.Lock())
        self._users[goal_id] = self._users.get(goal_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[goal_id] -= 1
            if self._users[goal_id] == 0:
                del self._users[goal_id]
                del self._locks[goal_id]

    def __len__(self) -> int:
        return len(self._locks)


goal_locks = GoalLocks()


async def find_latest_progress(db: "Prisma", goal_id: str) -> Any | None:
    """Return the goal's latest progress entry, or None if it has none."""
    return await db.progress.find_first(where={"goalId": goal_id}, order=LATEST_FIRST)


async def _recompute(db: "Prisma", goal_id: str) -> float:
    latest = await find_latest_progress(db, goal_id)
    current_value = float(latest.value) if latest else 0.0
    await db.goal.update(where={"id": goal_id}, data={"currentValue": current_value})
    return current_value


async def recalculate_current_value(
    db: "Prisma",
    goal_id: str,
    config: RetryConfig | None = None,
) -> float:
    """
    Recompute and persist a goal's currentValue from its progress history.

    Storage failures are retried with backoff. When every attempt fails the
    triggering mutation is left in place and ConsistencyError is raised.

    Returns:
        The value written to the goal
    """
    try:
        current_value = await retry_with_backoff(
            _recompute,
            db,
            goal_id,
            config=config or RetryConfig.for_consistency(),
        )
    except Exception as e:
        CONSISTENCY_RECALCULATIONS.labels(outcome="failure").inc()
        logger.error(
            "Goal currentValue recomputation failed; value is stale",
            exc_info=True,
            extra={"goal_id": goal_id},
        )
        raise ConsistencyError(goal_id, detail=str(e)) from e

    CONSISTENCY_RECALCULATIONS.labels(outcome="success").inc()
    logger.debug(
        "Goal currentValue recomputed",
        extra={"goal_id": goal_id, "current_value": current_value},
    )
    return current_value


async def reconcile_all_goals(db: "Prisma", batch_size: int = RECONCILE_BATCH_SIZE) -> dict[str, int]:
    """
    Re-run the recomputation for every goal.

    Repairs values left stale by a ConsistencyError. Goals are walked in id
    order, one batch at a time, resuming after the last id seen so goals
    deleted mid-walk do not shift later ones out of the next batch.

    Returns:
        {"checked": goals visited, "corrected": goals whose value changed}
    """
    checked = 0
    corrected = 0
    last_id: str | None = None

    while True:
        goals = await db.goal.find_many(
            where={"id": {"gt": last_id}} if last_id is not None else None,
            order={"id": "asc"},
            take=batch_size,
        )
        if not goals:
            break

        for goal in goals:
            async with goal_locks.hold(goal.id):
                new_value = await recalculate_current_value(db, goal.id)
            checked += 1
            if new_value != goal.currentValue:
                corrected += 1
                logger.info(
                    "Corrected stale goal currentValue",
                    extra={
                        "goal_id": goal.id,
                        "previous_value": goal.currentValue,
                        "current_value": new_value,
                    },
                )

        last_id = goals[-1].id

    logger.info("Goal reconciliation finished", extra={"checked": checked, "corrected": corrected})
    return {"checked": checked, "corrected": corrected}
