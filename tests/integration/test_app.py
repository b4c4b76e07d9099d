import pytest

from repurposer.config.settings import SENTINEL_USER_ID


@pytest.mark.integration
class TestAppFactory:
    async def test_app_creates_successfully(self, app) -> None:
        assert app.title == "Repurposer"

    async def test_health_endpoint(self, client) -> None:
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["database"] == "disabled"

    async def test_request_id_header(self, client) -> None:
        resp = await client.get("/api/health")
        assert "x-request-id" in resp.headers

    async def test_404_for_unknown_route(self, client) -> None:
        resp = await client.get("/api/nonexistent")
        assert resp.status_code == 404


@pytest.mark.integration
class TestErrorEnvelope:
    async def test_domain_error_shape(self, client) -> None:
        resp = await client.get("/api/projects/missing")
        assert resp.status_code == 404
        assert resp.json() == {
            "error": "Project not found",
            "code": "NOT_FOUND",
            "details": {"project_id": "missing"},
        }

    async def test_schema_error_is_validation_error(self, client) -> None:
        resp = await client.post("/api/projects", json={"postsPerPlatform": 9})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"]

    async def test_rate_limit_sets_retry_after(self, client) -> None:
        for _ in range(20):
            resp = await client.patch("/api/projects/missing", json={"title": "x"})
            assert resp.status_code == 404

        resp = await client.patch("/api/projects/missing", json={"title": "x"})

        assert resp.status_code == 429
        body = resp.json()
        assert body["code"] == "RATE_LIMITED"
        assert 1 <= body["retryAfterSeconds"] <= 60
        assert resp.headers["retry-after"] == str(body["retryAfterSeconds"])


@pytest.mark.integration
class TestSubscriptionFeatures:
    async def test_trial_features(self, client) -> None:
        resp = await client.get("/api/subscription/features")
        assert resp.status_code == 200
        data = resp.json()
        assert data["plan"] == "trial"
        assert data["canUseSeries"] is True
        assert data["audioLimits"] == {"audioMinutesPerPeriod": 30, "maxAudioFileSizeMb": 25}

    async def test_paid_plan_features(self, client, app_state) -> None:
        from repurposer.models.domain import SubscriptionRecord

        await app_state.accounts.ensure_user(SENTINEL_USER_ID)
        await app_state.accounts.save_subscription(
            SubscriptionRecord(user_id=SENTINEL_USER_ID, plan="max")
        )
        data = (await client.get("/api/subscription/features")).json()
        assert data["plan"] == "max"
        assert data["canUseSeries"] is False
        assert data["canUseBrandVoice"] is True
        assert data["maxVariationsPerGeneration"] == 5
