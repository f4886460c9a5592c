"""Tests for API endpoints."""

from unittest.mock import AsyncMock

import pytest

from leadsync.config import get_settings
from leadsync.services.sync_lease import SyncLeaseManager

SYNC_URL = "/api/v1/sync/leads"


@pytest.fixture
def sync_secret(monkeypatch):
    """Require a bearer token on the sync endpoints."""
    monkeypatch.setattr(get_settings(), "sync_api_secret", "s3cret")
    return "s3cret"


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client):
        """Test health endpoint returns sync status."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["leads"]["lead_count"] == 0
        assert data["leads"]["last_synced_at"] is None

    @pytest.mark.asyncio
    async def test_ready_and_live(self, client):
        assert (await client.get("/ready")).json() == {"status": "ready"}
        assert (await client.get("/live")).json() == {"status": "alive"}


class TestRootEndpoint:
    """Tests for root endpoint."""

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client):
        """Test root endpoint returns API info."""
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Lead Sync API"
        assert "version" in data
        assert "docs" in data


class TestSyncAuth:
    """Tests for bearer auth on sync endpoints."""

    @pytest.mark.asyncio
    async def test_missing_token_rejected(self, client, sync_secret):
        response = await client.post(f"{SYNC_URL}/daily")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_token_rejected(self, client, sync_secret):
        response = await client.post(
            f"{SYNC_URL}/daily", headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_correct_token_accepted(self, client, accounts, sync_secret):
        response = await client.post(
            f"{SYNC_URL}/daily", headers={"Authorization": f"Bearer {sync_secret}"}
        )

        assert response.status_code == 200


class TestSyncTriggers:
    """Tests for the sync trigger endpoints."""

    @pytest.mark.asyncio
    async def test_daily_get_alias_returns_camel_case_summary(self, client, accounts):
        response = await client.get(f"{SYNC_URL}/daily")

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "daily"
        assert data["message"] == "No new leads to sync"
        assert data["processed"] == 0
        assert "executionTimeMs" in data
        assert "errorDetails" in data
        assert "fromDate" in data

    @pytest.mark.asyncio
    async def test_incremental_trigger(self, client, accounts):
        response = await client.post(SYNC_URL)

        assert response.status_code == 200
        assert response.json()["mode"] == "incremental"

    @pytest.mark.asyncio
    async def test_source_down_is_503(self, client, source_client, accounts):
        source_client.test_connection = AsyncMock(return_value=False)

        response = await client.post(f"{SYNC_URL}/daily")

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_running_sync_is_409(self, client, db_session, accounts):
        await SyncLeaseManager(db_session, "mysql_leads", holder="other-process").acquire()

        response = await client.post(f"{SYNC_URL}/daily")

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_no_accounts_is_500(self, client):
        response = await client.post(f"{SYNC_URL}/daily")

        assert response.status_code == 500


class TestCheckpointEndpoints:
    """Tests for checkpoint inspection and reset."""

    @pytest.mark.asyncio
    async def test_missing_checkpoint_is_404(self, client):
        response = await client.get(f"{SYNC_URL}/checkpoint")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_checkpoint_after_run_then_clear(self, client, accounts):
        await client.post(f"{SYNC_URL}/daily")

        response = await client.get(f"{SYNC_URL}/checkpoint")
        assert response.status_code == 200
        data = response.json()
        assert data["sourceType"] == "mysql_leads"
        assert data["recordsCount"] == 0

        response = await client.delete(f"{SYNC_URL}/checkpoint")
        assert response.json() == {"message": "Lead sync checkpoint cleared", "deleted": True}

        response = await client.delete(f"{SYNC_URL}/checkpoint")
        assert response.json()["deleted"] is False


class TestRunHistoryEndpoint:
    """Tests for the recorded run history."""

    @pytest.mark.asyncio
    async def test_runs_empty(self, client):
        response = await client.get(f"{SYNC_URL}/runs")

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_runs_include_failures_newest_first(self, client, source_client, accounts):
        await client.post(f"{SYNC_URL}/daily")
        source_client.test_connection = AsyncMock(return_value=False)
        await client.post(f"{SYNC_URL}/daily")

        response = await client.get(f"{SYNC_URL}/runs", params={"limit": 5})

        assert response.status_code == 200
        runs = response.json()
        assert [run["status"] for run in runs] == ["failed", "success"]
        assert runs[0]["mode"] == "daily"
        assert "durationMs" in runs[0]
        assert "finishedAt" in runs[0]

    @pytest.mark.asyncio
    async def test_runs_require_token(self, client, sync_secret):
        response = await client.get(f"{SYNC_URL}/runs")

        assert response.status_code == 401
