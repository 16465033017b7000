import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.db.models import NotificationQueue, Subscription, SubscriptionTier
from app.db.session import get_async_session
from app.main import app
from app.services.notifications.registry import JobRegistry
from conftest import NOW

WEBHOOK_SECRET = "Bearer rc-test-secret"


@pytest_asyncio.fixture
async def client(db_session: AsyncSession):
    async def override_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_session
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver"
    ) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "healthy"
        assert response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_request_id_header_is_echoed(self, client: AsyncClient):
        request_id = str(uuid.uuid4())
        response = await client.get("/health", headers={"X-Request-ID": request_id})

        assert response.headers["X-Request-ID"] == request_id
        assert response.json()["requestId"] == request_id


class TestJobsRouter:
    @pytest.mark.asyncio
    async def test_lists_registered_jobs(self, client: AsyncClient):
        response = await client.get(settings.JOBS_PREFIX)

        assert response.status_code == 200
        assert set(response.json()["data"]["jobs"]) == set(
            JobRegistry.list_registered_jobs()
        )

    @pytest.mark.asyncio
    async def test_trigger_runs_job_at_given_time(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        make_profile,
        make_subscription,
    ):
        profile = await make_profile()
        await make_subscription(profile, expires_at=NOW + timedelta(hours=20))

        response = await client.post(
            f"{settings.JOBS_PREFIX}/trial_expiration_reminders",
            json={"now": NOW.isoformat()},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["totalQueued"] == 1
        assert {"tier": "1_day", "queued": 1} in body["results"]

        rows = await db_session.execute(select(NotificationQueue))
        assert len(rows.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_unknown_job_is_404(self, client: AsyncClient):
        response = await client.post(f"{settings.JOBS_PREFIX}/does_not_exist")

        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_aborted_run_is_500(self, client: AsyncClient):
        with patch(
            "app.tasks.cron.trial_expiration_reminders.select_expiring_trials",
            side_effect=RuntimeError("connection refused"),
        ):
            response = await client.post(
                f"{settings.JOBS_PREFIX}/trial_expiration_reminders"
            )

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "connection refused"


class TestRevenueCatWebhook:
    def _payload(self, profile, event_type="INITIAL_PURCHASE", **overrides):
        event = {
            "id": str(uuid.uuid4()),
            "type": event_type,
            "app_user_id": str(profile.user_id),
            "product_id": "accord_platinum_monthly",
            "period_type": "NORMAL",
            "purchased_at_ms": 1_773_100_800_000,
            "expiration_at_ms": 1_775_779_200_000,
            "entitlement_ids": ["platinum"],
            "store": "PLAY_STORE",
        }
        event.update(overrides)
        return {"api_version": "1.0", "event": event}

    @pytest.mark.asyncio
    async def test_rejects_bad_authorization(self, client: AsyncClient, make_profile):
        profile = await make_profile()

        with patch.object(settings, "REVENUECAT_WEBHOOK_SECRET", WEBHOOK_SECRET):
            missing = await client.post(
                f"{settings.WEBHOOK_PREFIX}/revenuecat", json=self._payload(profile)
            )
            wrong = await client.post(
                f"{settings.WEBHOOK_PREFIX}/revenuecat",
                json=self._payload(profile),
                headers={"Authorization": "Bearer nope"},
            )

        assert missing.status_code == 401
        assert wrong.status_code == 401

    @pytest.mark.asyncio
    async def test_purchase_activates_subscription(
        self, client: AsyncClient, db_session: AsyncSession, make_profile
    ):
        profile = await make_profile()

        with patch.object(settings, "REVENUECAT_WEBHOOK_SECRET", WEBHOOK_SECRET):
            response = await client.post(
                f"{settings.WEBHOOK_PREFIX}/revenuecat",
                json=self._payload(profile),
                headers={"Authorization": WEBHOOK_SECRET},
            )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "eventType": "INITIAL_PURCHASE",
            "action": "activated",
        }
        result = await db_session.execute(
            select(Subscription).where(Subscription.profile_id == profile.id)
        )
        assert result.scalar_one().tier is SubscriptionTier.PLATINUM

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self, client: AsyncClient, make_profile):
        profile = await make_profile()
        payload = self._payload(profile, app_user_id="$RCAnonymousID:abc")

        with patch.object(settings, "REVENUECAT_WEBHOOK_SECRET", WEBHOOK_SECRET):
            response = await client.post(
                f"{settings.WEBHOOK_PREFIX}/revenuecat",
                json=payload,
                headers={"Authorization": WEBHOOK_SECRET},
            )

        assert response.status_code == 404
