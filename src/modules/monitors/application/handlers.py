"""Monitor command handlers.

创建与更新目标后都会立即投递一次调和，这是除"上一次调和返回的延迟"之外唯一的触发来源。
"""

from loguru import logger

from src.core.config import settings
from src.core.infrastructure.logging import get_business_logger
from src.modules.monitors.application.commands import (
    CreateMonitorCommand,
    DeleteMonitorCommand,
    UpdateMonitorCommand,
)
from src.modules.monitors.domain.entities import (
    DEFAULT_HIGH_ACTIVITY_THRESHOLD,
    DEFAULT_MEDIUM_ACTIVITY_THRESHOLD,
    AnimeMonitor,
)
from src.modules.monitors.domain.exceptions import (
    MonitorAlreadyExistsError,
    MonitorNotFoundError,
)
from src.modules.monitors.domain.ports import ReconcileQueue
from src.modules.monitors.domain.repository import MonitorRepository


def _or_default(value: int | None, default: int) -> int:
    return default if value is None else value


class CreateMonitorHandler:
    """Handle monitor creation."""

    def __init__(self, repository: MonitorRepository, reconcile_queue: ReconcileQueue):
        self.repository = repository
        self.reconcile_queue = reconcile_queue

    async def handle(self, command: CreateMonitorCommand) -> AnimeMonitor:
        if await self.repository.exists_by_name(command.name):
            raise MonitorAlreadyExistsError(command.name)

        monitor = AnimeMonitor(
            name=command.name,
            anime_id=command.anime_id,
            anime_name=command.anime_name or None,
            polling_interval_sec=_or_default(
                command.polling_interval_sec, settings.DEFAULT_POLLING_INTERVAL_SEC
            ),
            high_activity_threshold=_or_default(
                command.high_activity_threshold, DEFAULT_HIGH_ACTIVITY_THRESHOLD
            ),
            medium_activity_threshold=_or_default(
                command.medium_activity_threshold, DEFAULT_MEDIUM_ACTIVITY_THRESHOLD
            ),
            notify_on_high_activity=command.notify_on_high_activity,
            webhook_url=command.webhook_url or None,
        )
        monitor.request_reconcile()

        created = await self.repository.create(monitor)
        await self.reconcile_queue.enqueue(created.name)

        logger.info(f"Created monitor: {created.name} ({created.mode})")
        get_business_logger().info(
            "monitor_created",
            monitor_name=created.name,
            mode=str(created.mode),
            anime_id=created.anime_id,
        )
        return created


class UpdateMonitorHandler:
    """Handle monitor update."""

    def __init__(self, repository: MonitorRepository, reconcile_queue: ReconcileQueue):
        self.repository = repository
        self.reconcile_queue = reconcile_queue

    async def handle(self, command: UpdateMonitorCommand) -> AnimeMonitor:
        monitor = await self.repository.get_by_name(command.name)
        if not monitor:
            raise MonitorNotFoundError(command.name)

        monitor.update_settings(
            anime_id=command.anime_id,
            clear_anime_id=command.clear_anime_id,
            anime_name=command.anime_name,
            polling_interval_sec=command.polling_interval_sec,
            high_activity_threshold=command.high_activity_threshold,
            medium_activity_threshold=command.medium_activity_threshold,
            notify_on_high_activity=command.notify_on_high_activity,
            webhook_url=command.webhook_url,
        )
        updated = await self.repository.update(monitor)
        await self.reconcile_queue.enqueue(updated.name)

        logger.info(f"Updated monitor: {updated.name}")
        return updated


class DeleteMonitorHandler:
    """Handle monitor deletion. 状态随目标一起丢弃。"""

    def __init__(self, repository: MonitorRepository):
        self.repository = repository

    async def handle(self, command: DeleteMonitorCommand) -> None:
        monitor = await self.repository.get_by_name(command.name)
        if not monitor:
            raise MonitorNotFoundError(command.name)

        await self.repository.delete(monitor)
        logger.info(f"Deleted monitor: {command.name}")
        get_business_logger().info("monitor_deleted", monitor_name=command.name)

