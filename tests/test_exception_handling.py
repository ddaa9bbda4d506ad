"""Tests for the exception handling system and the error response format."""

import pytest
from httpx import AsyncClient

from fittrack.config import get_settings
from fittrack.services import goal_service
from fittrack.utils.exceptions import (
    AuthenticationError,
    ConsistencyError,
    FitTrackError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
)


class TestErrorResponseFormat:
    """Every error body carries status_code, code and message."""

    @pytest.mark.asyncio
    async def test_not_found_format(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/goals/missing", headers=auth_headers)

        assert response.status_code == 404
        data = response.json()
        assert data == {"status_code": 404, "code": "NOT_FOUND", "message": "Goal not found"}

    @pytest.mark.asyncio
    async def test_validation_error_format(self, client: AsyncClient, auth_headers, goal_payload):
        response = await client.post(
            "/api/v1/goals", json={**goal_payload, "unit": ""}, headers=auth_headers
        )

        assert response.status_code == 400
        data = response.json()
        assert data["status_code"] == 400
        assert data["code"] == "VALIDATION_ERROR"
        assert data["fields"] == ["unit"]
        assert "unit" in data["message"]

    @pytest.mark.asyncio
    async def test_multiple_validation_errors(self, client: AsyncClient, auth_headers, goal_payload):
        response = await client.post(
            "/api/v1/goals",
            json={**goal_payload, "unit": "", "targetValue": -1},
            headers=auth_headers,
        )

        data = response.json()
        assert data["fields"] == ["targetValue", "unit"]
        assert "2 error(s)" in data["message"]

    @pytest.mark.asyncio
    async def test_malformed_json(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/v1/goals",
            content=b"{not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_detail_hidden_without_debug(self, client: AsyncClient, auth_headers):
        assert get_settings().DEBUG is False

        response = await client.get("/api/v1/progress/missing", headers=auth_headers)
        assert "detail" not in response.json()


class TestStorageErrors:
    @pytest.mark.asyncio
    async def test_storage_failure_is_storage_error(self, client: AsyncClient, db, auth_headers):
        db.goal.fail_next("find_many")

        response = await client.get("/api/v1/goals", headers=auth_headers)

        assert response.status_code == 500
        data = response.json()
        assert data["status_code"] == 500
        assert data["code"] == "STORAGE_ERROR"
        # Backend internals never leak
        assert "simulated" not in data["message"]
        assert "detail" not in data

    @pytest.mark.asyncio
    async def test_failed_progress_write_leaves_goal_alone(
        self, client: AsyncClient, db, auth_headers, create_goal, fetch_goal
    ):
        goal = await create_goal()
        db.progress.fail_next("create")

        response = await client.post(
            "/api/v1/progress",
            json={"goalId": goal["id"], "value": 4, "date": "2025-01-01T00:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 500
        assert response.json()["code"] == "STORAGE_ERROR"
        assert db.progress.rows == {}
        assert (await fetch_goal(goal["id"]))["currentValue"] == 0


class TestUnhandledErrors:
    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic_500(
        self, client: AsyncClient, auth_headers, monkeypatch
    ):
        async def broken_list_goals(*args, **kwargs):
            raise KeyError("internal bookkeeping bug")

        monkeypatch.setattr(goal_service, "list_goals", broken_list_goals)

        response = await client.get("/api/v1/goals", headers=auth_headers)

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "INTERNAL_SERVER_ERROR"
        assert "bookkeeping" not in data["message"]
        assert "detail" not in data


class TestExceptionClasses:
    def test_base_defaults(self):
        exc = FitTrackError("Something broke")
        assert exc.status_code == 500
        assert exc.code == "INTERNAL_SERVER_ERROR"
        assert exc.message == "Something broke"
        assert exc.detail is None

    def test_overrides(self):
        exc = FitTrackError("Teapot", detail="short and stout", status_code=418, code="TEAPOT")
        assert exc.status_code == 418
        assert exc.code == "TEAPOT"
        assert exc.detail == "short and stout"

    def test_authentication_error(self):
        exc = AuthenticationError()
        assert exc.status_code == 401
        assert exc.code == "UNAUTHENTICATED"

    def test_validation_error_fields(self):
        exc = ValidationError("Bad", fields=["title"])
        assert exc.status_code == 400
        assert exc.fields == ["title"]
        assert ValidationError("Bad").fields == []

    def test_not_found_message_hides_id(self):
        exc = ResourceNotFoundError("Progress", "abc")
        assert exc.status_code == 404
        assert exc.message == "Progress not found"
        assert "abc" in exc.detail

    def test_consistency_error_is_storage_error(self):
        exc = ConsistencyError("goal-1", detail="timeout")
        assert isinstance(exc, StorageError)
        assert exc.status_code == 500
        assert exc.code == "CONSISTENCY_ERROR"
        assert exc.goal_id == "goal-1"
        assert StorageError().code == "STORAGE_ERROR"
