import asyncio
import copy
import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from prisma.errors import PrismaError

from fittrack.core.database import get_db_client
from fittrack.core.security import create_access_token
from fittrack.main import app

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


# ============================================================================
# In-memory stand-in for the Prisma client
# ============================================================================


class Clock:
    """Strictly increasing timestamps so createdAt ordering is deterministic."""

    def __init__(self) -> None:
        self._now = datetime(2025, 1, 1, tzinfo=UTC)

    def tick(self) -> datetime:
        self._now += timedelta(milliseconds=1)
        return self._now


def _matches(row: dict[str, Any], where: dict[str, Any] | None) -> bool:
    for key, condition in (where or {}).items():
        value = row.get(key)
        if isinstance(condition, dict):
            for op, operand in condition.items():
                if op == "equals" and value != operand:
                    return False
                if op == "in" and value not in operand:
                    return False
                if op == "gte" and not value >= operand:
                    return False
                if op == "lte" and not value <= operand:
                    return False
                if op == "gt" and not value > operand:
                    return False
                if op == "lt" and not value < operand:
                    return False
        elif value != condition:
            return False
    return True


class InMemoryTable:
    """Implements the subset of a Prisma model actions the services use."""

    def __init__(self, clock: Clock, defaults: dict[str, Any]) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self._clock = clock
        self._defaults = defaults
        self._failures: dict[str, int] = {}
        self.calls: list[str] = []

    def fail_next(self, action: str, times: int = 1) -> None:
        """Make the next `times` calls of `action` raise a Prisma error."""
        self._failures[action] = times

    async def _record(self, action: str) -> None:
        # Yield like a real network round trip so concurrent requests interleave
        await asyncio.sleep(0)
        self.calls.append(action)
        remaining = self._failures.get(action, 0)
        if remaining:
            self._failures[action] = remaining - 1
            raise PrismaError(f"simulated storage failure in {action}")

    def _select(self, where=None, order=None) -> list[dict[str, Any]]:
        rows = [row for row in self.rows.values() if _matches(row, where)]
        if isinstance(order, dict):
            order = [order]
        for clause in reversed(order or []):
            ((key, direction),) = clause.items()
            rows.sort(key=lambda r: r[key], reverse=direction == "desc")
        return rows

    @staticmethod
    def _out(row: dict[str, Any] | None) -> SimpleNamespace | None:
        return SimpleNamespace(**copy.deepcopy(row)) if row is not None else None

    async def create(self, data: dict[str, Any]) -> SimpleNamespace:
        await self._record("create")
        now = self._clock.tick()
        row = {**self._defaults, "id": str(uuid.uuid4()), "createdAt": now, "updatedAt": now}
        row.update(data)
        self.rows[row["id"]] = row
        return self._out(row)

    async def find_first(self, where=None, order=None) -> SimpleNamespace | None:
        await self._record("find_first")
        rows = self._select(where, order)
        return self._out(rows[0] if rows else None)

    async def find_unique(self, where) -> SimpleNamespace | None:
        await self._record("find_unique")
        return self._out(self.rows.get(where["id"]))

    async def find_many(self, where=None, order=None, skip=None, take=None) -> list[SimpleNamespace]:
        await self._record("find_many")
        rows = self._select(where, order)
        start = skip or 0
        end = start + take if take is not None else None
        return [self._out(row) for row in rows[start:end]]

    async def count(self, where=None) -> int:
        await self._record("count")
        return len(self._select(where))

    async def update(self, where, data) -> SimpleNamespace | None:
        await self._record("update")
        row = self.rows.get(where["id"])
        if row is None:
            return None
        row.update(data)
        row["updatedAt"] = self._clock.tick()
        return self._out(row)

    async def delete(self, where) -> SimpleNamespace | None:
        await self._record("delete")
        return self._out(self.rows.pop(where["id"], None))

    async def delete_many(self, where=None) -> int:
        await self._record("delete_many")
        doomed = [row["id"] for row in self._select(where)]
        for row_id in doomed:
            del self.rows[row_id]
        return len(doomed)


class InMemoryPrisma:
    """Mock Prisma client backed by dictionaries."""

    def __init__(self) -> None:
        self.clock = Clock()
        self.goal = InMemoryTable(self.clock, {"description": None, "currentValue": 0.0})
        self.progress = InMemoryTable(self.clock, {"notes": None})

    async def query_raw(self, query: str):
        return [{"test": 1}]

    def is_connected(self) -> bool:
        return True


# ============================================================================
# Fixtures
# ============================================================================


def auth_headers_for(user_id: str) -> dict[str, str]:
    token = create_access_token({"sub": user_id, "email": f"{user_id}@example.com"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db() -> InMemoryPrisma:
    return InMemoryPrisma()


@pytest.fixture
async def client(db: InMemoryPrisma) -> AsyncGenerator[AsyncClient, None]:
    """
    Client wired to the in-memory database.
    The app lifespan is not run, so no real database connection is attempted.
    """

    async def override_get_db_client():
        yield db

    app.dependency_overrides[get_db_client] = override_get_db_client
    transport = ASGITransport(app=app, raise_app_exceptions=False)

    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return auth_headers_for(USER_ID)


@pytest.fixture
def other_headers() -> dict[str, str]:
    return auth_headers_for(OTHER_USER_ID)


@pytest.fixture
def goal_payload() -> dict[str, Any]:
    return {
        "title": "Run 10k",
        "description": "Build up to a 10k run",
        "targetValue": 10,
        "unit": "km",
        "goalType": "endurance",
        "startDate": "2025-01-01T00:00:00Z",
        "targetDate": "2025-06-30T00:00:00Z",
    }


@pytest.fixture
def create_goal(client: AsyncClient, auth_headers, goal_payload):
    """Create a goal through the API and return its JSON body."""

    async def _create(headers: dict[str, str] | None = None, **overrides) -> dict[str, Any]:
        response = await client.post(
            "/api/v1/goals",
            json={**goal_payload, **overrides},
            headers=headers or auth_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def log_progress(client: AsyncClient, auth_headers):
    """Log a progress entry through the API and return its JSON body."""

    async def _log(
        goal_id: str,
        value: float,
        date: str,
        headers: dict[str, str] | None = None,
        **extra,
    ) -> dict[str, Any]:
        response = await client.post(
            "/api/v1/progress",
            json={"goalId": goal_id, "value": value, "date": date, **extra},
            headers=headers or auth_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _log


@pytest.fixture
def fetch_goal(client: AsyncClient, auth_headers):
    """Fetch a goal's current JSON through the API."""

    async def _fetch(goal_id: str) -> dict[str, Any]:
        response = await client.get(f"/api/v1/goals/{goal_id}", headers=auth_headers)
        assert response.status_code == 200, response.text
        return response.json()

    return _fetch
