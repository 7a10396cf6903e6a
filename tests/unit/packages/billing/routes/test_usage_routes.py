"""
Unit tests for usage and quota API routes.
"""

import pytest
from sqlalchemy import select

from packages.billing.models.database.usage import UsageLogEntity
from packages.billing.models.domain.enums import UsageAction
from packages.teams.models.database.team import TeamEntity


@pytest.mark.asyncio
class TestQuotaCheckRoute:
    async def test_check_allowed(self, client, usage_log_factory, test_user):
        await usage_log_factory(
            UsageAction.SPEC_GENERATED, count=2, user_id=test_user.user_id
        )

        response = await client.post(
            "/api/v1/usage/check", json={"action": "spec_generated"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["allowed"] is True
        assert data["current_usage"] == 2
        assert data["limit"] == 5
        assert data["remaining"] == 3

    async def test_check_denied_is_not_an_error(
        self, client, usage_log_factory, test_user
    ):
        await usage_log_factory(
            UsageAction.SPEC_GENERATED, count=5, user_id=test_user.user_id
        )

        response = await client.post(
            "/api/v1/usage/check", json={"action": "spec_generated"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["allowed"] is False
        assert data["reason"] == "Monthly specification limit reached"
        assert data["remaining"] == 0

    async def test_check_records_nothing(self, client, test_db):
        await client.post("/api/v1/usage/check", json={"action": "ai_generation"})

        result = await test_db.execute(select(UsageLogEntity))
        assert result.scalars().all() == []

    async def test_check_for_team(self, client, sample_team):
        response = await client.post(
            "/api/v1/usage/check",
            json={"action": "spec_generated", "team_id": sample_team.id},
        )

        assert response.status_code == 200
        assert response.json()["limit"] == 5

    async def test_check_for_foreign_team(self, client, test_db, second_user_entity):
        team = TeamEntity(name="Other Team", owner_user_id=second_user_entity.id)
        test_db.add(team)
        await test_db.commit()

        response = await client.post(
            "/api/v1/usage/check",
            json={"action": "spec_generated", "team_id": team.id},
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Not a member of this team"

    async def test_check_unknown_action(self, client):
        response = await client.post(
            "/api/v1/usage/check", json={"action": "teleport"}
        )

        assert response.status_code == 422


@pytest.mark.asyncio
class TestUsageStatsRoutes:
    async def test_user_stats(self, client, sample_subscription, usage_log_factory):
        await usage_log_factory(
            UsageAction.SPEC_GENERATED,
            count=5,
            user_id=sample_subscription.owner_user_id,
        )

        response = await client.get("/api/v1/usage/user/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["tier"] == "STARTER"
        assert data["usage"]["specifications"] == 5
        assert data["percentages"]["specifications"] == 10

    async def test_user_stats_with_range(self, client):
        response = await client.get(
            "/api/v1/usage/user/stats",
            params={
                "start_date": "2025-01-01T00:00:00+00:00",
                "end_date": "2025-01-31T23:59:59+00:00",
            },
        )

        assert response.status_code == 200
        assert response.json()["period"]["start"].startswith("2025-01-01")

    async def test_team_stats(self, client, sample_team):
        response = await client.get(f"/api/v1/usage/team/{sample_team.id}/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["actor_type"] == "team"
        assert data["usage"]["team_members"] == 1

    async def test_team_stats_for_non_member(self, admin_client, sample_team):
        response = await admin_client.get(f"/api/v1/usage/team/{sample_team.id}/stats")

        assert response.status_code == 403

    async def test_summary_requires_admin(self, client):
        response = await client.get("/api/v1/usage/summary")

        assert response.status_code == 403

    async def test_summary_for_admin(
        self, admin_client, sample_user_entity, usage_log_factory
    ):
        await usage_log_factory(
            UsageAction.SPEC_GENERATED, count=3, user_id=sample_user_entity.id
        )

        response = await admin_client.get("/api/v1/usage/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["total_users"] == 2
        assert data["active_users"] == 1
        assert data["total_specifications"] == 3
