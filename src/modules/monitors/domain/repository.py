"""AnimeMonitor repository interface."""

from abc import abstractmethod
from datetime import datetime

from src.core.domain.repository import BaseRepository
from src.modules.monitors.domain.entities import (
    AnimeMonitor,
    MonitorSnapshot,
    ObservedStatus,
)


class MonitorRepository(BaseRepository[AnimeMonitor]):
    """AnimeMonitor repository interface.

    每次配置更新与状态提交都会递增 resource_version，
    patch_status 以调和开始时读到的版本做 compare-and-swap。
    """

    @abstractmethod
    async def get_by_name(self, name: str) -> AnimeMonitor | None:
        """Get monitor by name."""
        pass

    @abstractmethod
    async def get_by_anime_id(self, anime_id: int) -> AnimeMonitor | None:
        """Get the first live single-item monitor for an anime."""
        pass

    @abstractmethod
    async def get_aggregate(self) -> AnimeMonitor | None:
        """Get the first live aggregate monitor."""
        pass

    @abstractmethod
    async def exists_by_name(self, name: str) -> bool:
        """Check if a live monitor with name exists."""
        pass

    @abstractmethod
    async def get_snapshot(self, name: str) -> MonitorSnapshot | None:
        """Read target, current status and resource version in one go."""
        pass

    @abstractmethod
    async def patch_status(
        self, name: str, resource_version: int, status: ObservedStatus
    ) -> int:
        """Replace the whole status object.

        Returns:
            新的 resource_version

        Raises:
            StatusConflictError: resource_version 已过期
        """
        pass

    @abstractmethod
    async def schedule_reconcile(self, name: str, at: datetime) -> None:
        """Set next_reconcile_at without touching resource_version."""
        pass

    @abstractmethod
    async def get_due_for_reconcile(
        self,
        before_time: datetime | None = None,
        limit: int = 50,
    ) -> list[AnimeMonitor]:
        """Get monitors whose next_reconcile_at has passed."""
        pass
