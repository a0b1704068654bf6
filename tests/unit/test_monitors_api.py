"""监控目标与活跃度视图 API 测试（ASGITransport + 依赖覆盖）。"""

from unittest.mock import patch

import pytest

from src.core.config import settings
from src.modules.monitors.domain.entities import ActivityLevel, ObservedStatus

pytestmark = pytest.mark.anyio

API = settings.API_V1_STR


class TestMonitorsApi:
    async def test_create_and_get(self, async_client, mock_reconcile_queue) -> None:
        response = await async_client.post(
            f"{API}/monitors",
            json={"name": "frieren", "anime_id": 52991, "polling_interval_sec": 120},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["data"]["name"] == "frieren"
        assert body["data"]["mode"] == "single_item"
        mock_reconcile_queue.enqueue.assert_awaited_once_with("frieren")

        response = await async_client.get(f"{API}/monitors/frieren")
        assert response.status_code == 200
        assert response.json()["data"]["polling_interval_sec"] == 120

    async def test_create_rejects_short_interval(self, async_client) -> None:
        response = await async_client.post(
            f"{API}/monitors", json={"name": "frieren", "polling_interval_sec": 5}
        )
        assert response.status_code == 422

    async def test_create_rejects_invalid_name(self, async_client) -> None:
        response = await async_client.post(f"{API}/monitors", json={"name": "Bad Name"})
        assert response.status_code == 422

    async def test_duplicate_is_conflict(
        self, async_client, monitor_repository, make_monitor
    ) -> None:
        monitor_repository.add(make_monitor())

        response = await async_client.post(f"{API}/monitors", json={"name": "frieren"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_ENTITY"

    async def test_get_missing(self, async_client) -> None:
        response = await async_client.get(f"{API}/monitors/ghost")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_list(self, async_client, monitor_repository, make_monitor) -> None:
        monitor_repository.add(make_monitor("a"))
        monitor_repository.add(make_monitor("b", anime_id=None))

        response = await async_client.get(f"{API}/monitors", params={"page_size": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["meta"]["total"] == 2
        assert [item["name"] for item in body["data"]] == ["a"]

    async def test_update(self, async_client, monitor_repository, make_monitor) -> None:
        monitor_repository.add(make_monitor())

        response = await async_client.put(
            f"{API}/monitors/frieren", json={"webhook_url": "https://hook.test"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["webhook_url"] == "https://hook.test"
        assert response.json()["data"]["resource_version"] == 2

    async def test_update_rejects_conflicting_anime_fields(self, async_client) -> None:
        response = await async_client.put(
            f"{API}/monitors/frieren", json={"anime_id": 1, "clear_anime_id": True}
        )
        assert response.status_code == 422

    async def test_delete(self, async_client, monitor_repository, make_monitor) -> None:
        monitor_repository.add(make_monitor())

        response = await async_client.delete(f"{API}/monitors/frieren")

        assert response.status_code == 200
        assert response.json()["data"] == {"deleted": True}
        assert await monitor_repository.get_by_name("frieren") is None

    async def test_write_requires_api_key_when_configured(self, async_client) -> None:
        with patch.object(settings, "ADMIN_API_KEY", "secret"):
            denied = await async_client.post(f"{API}/monitors", json={"name": "x"})
            allowed = await async_client.post(
                f"{API}/monitors",
                json={"name": "x"},
                headers={"X-API-Key": "secret"},
            )
            # 读接口不校验
            read = await async_client.get(f"{API}/monitors")

        assert denied.status_code == 401
        assert allowed.status_code == 201
        assert read.status_code == 200


class TestActivityApi:
    async def test_overall_placeholder(self, async_client) -> None:
        response = await async_client.get(f"{API}/activity")

        assert response.status_code == 200
        assert response.json()["activityLevel"] == "Unknown"
        assert response.json()["lastUpdated"] is None

    async def test_anime_activity(
        self, async_client, monitor_repository, make_monitor
    ) -> None:
        monitor_repository.add(
            make_monitor(status=ObservedStatus(activity_level=ActivityLevel.CRITICAL))
        )

        response = await async_client.get(f"{API}/anime/52991")

        assert response.status_code == 200
        assert response.json()["activityLevel"] == "Critical"
        assert response.json()["animeId"] == 52991

    async def test_anime_not_monitored(self, async_client) -> None:
        response = await async_client.get(f"{API}/anime/1")

        assert response.status_code == 404
        assert response.json()["error"] == {
            "code": "ANIME_NOT_MONITORED",
            "message": "Anime not being monitored",
        }

    async def test_all_trending_seasonal(self, async_client) -> None:
        all_activity = await async_client.get(f"{API}/activity/all")
        trending = await async_client.get(f"{API}/trending")
        seasonal = await async_client.get(f"{API}/seasonal")

        assert all_activity.json() == {"monitors": []}
        assert trending.json() == {"trending": []}
        assert seasonal.json()["seasonal"] == []
        assert seasonal.json()["season"]
