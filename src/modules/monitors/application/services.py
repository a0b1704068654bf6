"""Monitor application services."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from src.core.domain.base_entity import utc_now
from src.modules.monitors.application.models import MonitorData, MonitorListData
from src.modules.monitors.application.notifier import build_activity_payload
from src.modules.monitors.domain.entities import AnimeMonitor
from src.modules.monitors.domain.exceptions import (
    AnimeNotMonitoredError,
    MonitorNotFoundError,
)
from src.modules.monitors.domain.repository import MonitorRepository
from src.modules.monitors.domain.season import current_season

NO_DATA_STATUS = "No data available yet"


class MonitorQueryService:
    """Monitor query service for list/detail views."""

    def __init__(self, repository: MonitorRepository) -> None:
        self.repository = repository

    @staticmethod
    def build_monitor_data(monitor: AnimeMonitor) -> MonitorData:
        return MonitorData(
            id=monitor.id,
            name=monitor.name,
            mode=monitor.mode,
            anime_id=monitor.anime_id,
            anime_name=monitor.anime_name,
            polling_interval_sec=monitor.polling_interval_sec,
            high_activity_threshold=monitor.high_activity_threshold,
            medium_activity_threshold=monitor.medium_activity_threshold,
            notify_on_high_activity=monitor.notify_on_high_activity,
            webhook_url=monitor.webhook_url,
            status=monitor.status,
            resource_version=monitor.resource_version,
            next_reconcile_at=monitor.next_reconcile_at,
            created_at=monitor.created_at,
            updated_at=monitor.updated_at,
        )

    async def list_monitors(self, page: int, page_size: int) -> MonitorListData:
        monitors, total = await self.repository.list_all(page=page, page_size=page_size)
        return MonitorListData(
            items=[self.build_monitor_data(m) for m in monitors],
            total=total,
            page=page,
            page_size=page_size,
        )

    async def get_monitor(self, name: str) -> MonitorData:
        monitor = await self.repository.get_by_name(name)
        if not monitor:
            raise MonitorNotFoundError(name)
        return self.build_monitor_data(monitor)


class ActivityQueryService:
    """Read-only views over the pre-computed activity status.

    返回结构与 KV 中存放的文档一致（camelCase），展示层可以在两者之间无缝切换。
    只有至少成功调和过一次（activity_level 已设置）的目标才会被视为有数据。
    """

    def __init__(
        self,
        repository: MonitorRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.clock = clock

    @staticmethod
    def _document(monitor: AnimeMonitor | None) -> dict[str, Any] | None:
        if monitor is None or monitor.status is None:
            return None
        if monitor.status.activity_level is None:
            return None
        return build_activity_payload(monitor, monitor.status).to_wire()

    async def get_overall(self) -> dict[str, Any]:
        document = self._document(await self.repository.get_aggregate())
        if document is None:
            return {
                "activityLevel": "Unknown",
                "weebcastStatus": NO_DATA_STATUS,
                "lastUpdated": None,
            }
        return document

    async def list_all(self, limit: int) -> dict[str, Any]:
        monitors, _ = await self.repository.list_all(page=1, page_size=limit)
        documents = [self._document(m) for m in monitors]
        return {"monitors": [d for d in documents if d is not None]}

    async def get_anime(self, anime_id: int) -> dict[str, Any]:
        document = self._document(await self.repository.get_by_anime_id(anime_id))
        if document is None:
            raise AnimeNotMonitoredError(anime_id)
        return document

    async def get_trending(self) -> dict[str, Any]:
        document = self._document(await self.repository.get_aggregate())
        if document is None:
            return {"trending": []}
        return {"trending": document.get("trendingAnime", [])}

    async def get_seasonal(self) -> dict[str, Any]:
        document = self._document(await self.repository.get_aggregate())
        if document is None:
            return {"seasonal": [], "season": current_season(self.clock())}
        return {
            "seasonal": document.get("seasonalAnime", []),
            "season": document.get("currentSeason") or current_season(self.clock()),
        }
