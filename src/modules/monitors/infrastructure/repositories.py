"""AnimeMonitor repository implementations."""

from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from src.modules.monitors.domain.entities import (
    AnimeMonitor,
    MonitorSnapshot,
    ObservedStatus,
)
from src.modules.monitors.domain.exceptions import (
    MonitorNotFoundError,
    StatusConflictError,
)
from src.modules.monitors.domain.repository import MonitorRepository
from src.modules.monitors.infrastructure.mappers import AnimeMonitorMapper, dump_status
from src.modules.monitors.infrastructure.models import AnimeMonitorModel


class PostgreSQLMonitorRepository(MonitorRepository):
    """PostgreSQL AnimeMonitor repository implementation."""

    def __init__(self, session: AsyncSession, mapper: AnimeMonitorMapper):
        self.session = session
        self.mapper = mapper

    def _live(self):
        return select(AnimeMonitorModel).where(
            col(AnimeMonitorModel.is_deleted).is_(False)
        )

    async def _first(self, statement) -> AnimeMonitor | None:
        result = await self.session.execute(statement)
        model = result.scalars().first()
        return self.mapper.to_domain(model) if model else None

    async def get_by_id(self, monitor_id: str) -> AnimeMonitor | None:
        return await self._first(self._live().where(AnimeMonitorModel.id == monitor_id))

    async def get_by_name(self, name: str) -> AnimeMonitor | None:
        return await self._first(self._live().where(AnimeMonitorModel.name == name))

    async def get_by_anime_id(self, anime_id: int) -> AnimeMonitor | None:
        statement = (
            self._live()
            .where(AnimeMonitorModel.anime_id == anime_id)
            .order_by(AnimeMonitorModel.created_at)
        )
        return await self._first(statement)

    async def get_aggregate(self) -> AnimeMonitor | None:
        statement = (
            self._live()
            .where(col(AnimeMonitorModel.anime_id).is_(None))
            .order_by(AnimeMonitorModel.created_at)
        )
        return await self._first(statement)

    async def exists_by_name(self, name: str) -> bool:
        return await self.get_by_name(name) is not None

    async def get_snapshot(self, name: str) -> MonitorSnapshot | None:
        monitor = await self.get_by_name(name)
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
        new_version = resource_version + 1
        statement = (
            update(AnimeMonitorModel)
            .where(
                col(AnimeMonitorModel.name) == name,
                col(AnimeMonitorModel.resource_version) == resource_version,
                col(AnimeMonitorModel.is_deleted).is_(False),
            )
            .values(
                status=dump_status(status),
                resource_version=new_version,
                updated_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        if result.rowcount == 0:
            logger.info(
                f"Status patch for '{name}' rejected: resource_version {resource_version} is stale"
            )
            raise StatusConflictError(name, resource_version)
        return new_version

    async def schedule_reconcile(self, name: str, at: datetime) -> None:
        statement = (
            update(AnimeMonitorModel)
            .where(
                col(AnimeMonitorModel.name) == name,
                col(AnimeMonitorModel.is_deleted).is_(False),
            )
            .values(next_reconcile_at=at)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(statement)

    async def get_due_for_reconcile(
        self,
        before_time: datetime | None = None,
        limit: int = 50,
    ) -> list[AnimeMonitor]:
        if before_time is None:
            before_time = datetime.now(UTC)

        statement = (
            self._live()
            .where(
                (col(AnimeMonitorModel.next_reconcile_at).is_(None))
                | (col(AnimeMonitorModel.next_reconcile_at) <= before_time)
            )
            .order_by(col(AnimeMonitorModel.next_reconcile_at).asc().nullsfirst())
            .limit(limit)
        )
        result = await self.session.execute(statement)
        return self.mapper.to_domain_list(list(result.scalars().all()))

    async def create(self, monitor: AnimeMonitor) -> AnimeMonitor:
        model = self.mapper.to_model(monitor)
        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)
        return self.mapper.to_domain(model)

    async def update(self, monitor: AnimeMonitor) -> AnimeMonitor:
        """更新目标配置（不含 status），递增 resource_version。"""
        statement = self._live().where(AnimeMonitorModel.id == monitor.id)
        result = await self.session.execute(statement)
        existing = result.scalar_one_or_none()
        if not existing:
            raise MonitorNotFoundError(monitor.name)

        existing.anime_id = monitor.anime_id
        existing.anime_name = monitor.anime_name
        existing.polling_interval_sec = monitor.polling_interval_sec
        existing.high_activity_threshold = monitor.high_activity_threshold
        existing.medium_activity_threshold = monitor.medium_activity_threshold
        existing.notify_on_high_activity = monitor.notify_on_high_activity
        existing.webhook_url = monitor.webhook_url
        existing.next_reconcile_at = monitor.next_reconcile_at
        existing.updated_at = monitor.updated_at
        existing.resource_version = existing.resource_version + 1

        self.session.add(existing)
        await self.session.flush()
        await self.session.refresh(existing)
        return self.mapper.to_domain(existing)

    async def delete(self, monitor: AnimeMonitor | str) -> bool:
        """软删除目标，同时丢弃其 status。"""
        monitor_id = monitor.id if isinstance(monitor, AnimeMonitor) else monitor
        statement = self._live().where(AnimeMonitorModel.id == monitor_id)
        result = await self.session.execute(statement)
        model = result.scalar_one_or_none()
        if not model:
            return False

        model.is_deleted = True
        model.status = None
        model.next_reconcile_at = None
        model.resource_version = model.resource_version + 1
        model.updated_at = datetime.now(UTC)
        self.session.add(model)
        await self.session.flush()
        return True

    async def list_all(
        self,
        page: int = 1,
        page_size: int = 10,
        include_deleted: bool = False,
    ) -> tuple[list[AnimeMonitor], int]:
        statement = select(
            AnimeMonitorModel,
            func.count(AnimeMonitorModel.id).over().label("total_count"),
        )
        if not include_deleted:
            statement = statement.where(col(AnimeMonitorModel.is_deleted).is_(False))

        statement = (
            statement.order_by(AnimeMonitorModel.name)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.session.execute(statement)
        rows = result.all()
        if not rows:
            return [], 0

        total_count = rows[0].total_count
        models = [row.AnimeMonitorModel for row in rows]
        return self.mapper.to_domain_list(models), total_count
