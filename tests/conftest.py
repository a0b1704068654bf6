"""
pytest 配置和共享 fixtures。

使用方法：
    # 运行所有测试
    uv run pytest

    # 只运行单元测试
    uv run pytest tests/unit/

    # 运行带覆盖率
    uv run pytest --cov=src --cov-report=html
"""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.modules.monitors.domain.entities import (
    AnimeMonitor,
    MonitorSnapshot,
    ObservedStatus,
)
from src.modules.monitors.domain.exceptions import StatusConflictError
from src.modules.monitors.domain.repository import MonitorRepository

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# ============================================
# 内存仓储
# ============================================


class InMemoryMonitorRepository(MonitorRepository):
    """In-memory monitor repository for unit tests.

    行为与 PostgreSQL 实现保持一致：update/patch_status/delete 都会递增 resource_version，
    patch_status 做 compare-and-swap。
    """

    def __init__(self) -> None:
        self._monitors: dict[str, AnimeMonitor] = {}
        self.status_patches: list[tuple[str, int]] = []
        self.schedules: dict[str, datetime] = {}

    def _live(self) -> list[AnimeMonitor]:
        return sorted(
            (m for m in self._monitors.values() if not m.is_deleted),
            key=lambda m: m.name,
        )

    def _copy(self, monitor: AnimeMonitor | None) -> AnimeMonitor | None:
        return monitor.model_copy(deep=True) if monitor else None

    def _by_name(self, name: str) -> AnimeMonitor | None:
        for monitor in self._live():
            if monitor.name == name:
                return monitor
        return None

    def add(self, monitor: AnimeMonitor) -> AnimeMonitor:
        self._monitors[monitor.id] = monitor.model_copy(deep=True)
        return monitor

    def stored(self, name: str) -> AnimeMonitor | None:
        return self._by_name(name)

    async def get_by_id(self, monitor_id: str) -> AnimeMonitor | None:
        monitor = self._monitors.get(monitor_id)
        if monitor is None or monitor.is_deleted:
            return None
        return self._copy(monitor)

    async def get_by_name(self, name: str) -> AnimeMonitor | None:
        return self._copy(self._by_name(name))

    async def get_by_anime_id(self, anime_id: int) -> AnimeMonitor | None:
        for monitor in self._live():
            if monitor.anime_id == anime_id:
                return self._copy(monitor)
        return None

    async def get_aggregate(self) -> AnimeMonitor | None:
        for monitor in self._live():
            if monitor.anime_id is None:
                return self._copy(monitor)
        return None

    async def exists_by_name(self, name: str) -> bool:
        return self._by_name(name) is not None

    async def get_snapshot(self, name: str) -> MonitorSnapshot | None:
        monitor = self._copy(self._by_name(name))
        if monitor is None:
            return None
        return MonitorSnapshot(
            target=monitor,
            status=monitor.status or ObservedStatus(),
            resource_version=monitor.resource_version,
        )

    async def patch_status(
        self, name: str, resource_version: int, status: ObservedStatus
    ) -> int:
        monitor = self._by_name(name)
        if monitor is None or monitor.resource_version != resource_version:
            raise StatusConflictError(name, resource_version)
        monitor.status = status.model_copy(deep=True)
        monitor.resource_version += 1
        self.status_patches.append((name, resource_version))
        return monitor.resource_version

    async def schedule_reconcile(self, name: str, at: datetime) -> None:
        monitor = self._by_name(name)
        if monitor is not None:
            monitor.next_reconcile_at = at
            self.schedules[name] = at

    async def get_due_for_reconcile(
        self,
        before_time: datetime | None = None,
        limit: int = 50,
    ) -> list[AnimeMonitor]:
        before_time = before_time or datetime.now(UTC)
        due = [
            m
            for m in self._live()
            if m.next_reconcile_at is None or m.next_reconcile_at <= before_time
        ]
        return [self._copy(m) for m in due[:limit]]

    async def create(self, entity: AnimeMonitor) -> AnimeMonitor:
        self.add(entity)
        return self._copy(entity)

    async def update(self, entity: AnimeMonitor) -> AnimeMonitor:
        stored = self._monitors[entity.id]
        updated = entity.model_copy(
            deep=True,
            update={
                "status": stored.status,
                "resource_version": stored.resource_version + 1,
            },
        )
        self._monitors[entity.id] = updated
        return self._copy(updated)

    async def delete(self, entity: AnimeMonitor | str) -> bool:
        monitor_id = entity.id if isinstance(entity, AnimeMonitor) else entity
        monitor = self._monitors.get(monitor_id)
        if monitor is None or monitor.is_deleted:
            return False
        monitor.is_deleted = True
        monitor.status = None
        monitor.resource_version += 1
        return True

    async def list_all(
        self,
        page: int = 1,
        page_size: int = 10,
        include_deleted: bool = False,
    ) -> tuple[list[AnimeMonitor], int]:
        monitors = (
            sorted(self._monitors.values(), key=lambda m: m.name)
            if include_deleted
            else self._live()
        )
        start = (page - 1) * page_size
        return [self._copy(m) for m in monitors[start : start + page_size]], len(
            monitors
        )


@pytest.fixture
def monitor_repository() -> InMemoryMonitorRepository:
    return InMemoryMonitorRepository()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """固定时间，用于测试时间敏感逻辑。"""
    return lambda: FIXED_NOW


@pytest.fixture
def make_monitor() -> Callable[..., AnimeMonitor]:
    def _make(name: str = "frieren", **overrides: Any) -> AnimeMonitor:
        fields: dict[str, Any] = {"name": name, "anime_id": 52991}
        fields.update(overrides)
        return AnimeMonitor(**fields)

    return _make


@pytest.fixture
def mock_reconcile_queue() -> AsyncMock:
    queue = AsyncMock()
    queue.enqueue = AsyncMock()
    return queue


# ============================================
# Catalog 样例数据
# ============================================


def anime_payload(mal_id: int = 52991, **overrides: Any) -> dict[str, Any]:
    """Jikan /anime/{id}/full 响应中的 data 部分。"""
    data: dict[str, Any] = {
        "mal_id": mal_id,
        "url": f"https://myanimelist.net/anime/{mal_id}",
        "title": "Sousou no Frieren",
        "title_english": "Frieren: Beyond Journey's End",
        "images": {"jpg": {"image_url": f"https://cdn.example/{mal_id}.jpg"}},
        "score": 9.3,
        "scored_by": 600_000,
        "rank": 1,
        "popularity": 150,
        "members": 1_200_000,
        "favorites": 60_000,
        "status": "Finished Airing",
        "airing": False,
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_anime_payload() -> Callable[..., dict[str, Any]]:
    return anime_payload


# ============================================
# HTTP Client Fixtures
# ============================================


@pytest.fixture
async def async_client(
    monitor_repository: InMemoryMonitorRepository,
    mock_reconcile_queue: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """异步 HTTP 客户端（用于 API 测试），仓储与调和队列替换为内存实现。"""
    from main import app
    from src.modules.monitors.application import dependencies as monitors_app_deps

    saved = dict(app.dependency_overrides)
    app.dependency_overrides[monitors_app_deps.get_monitor_repository] = (
        lambda: monitor_repository
    )
    app.dependency_overrides[monitors_app_deps.get_reconcile_queue] = (
        lambda: mock_reconcile_queue
    )

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
    app.dependency_overrides.update(saved)
