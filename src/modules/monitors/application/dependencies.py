"""Monitor module application dependencies."""

from typing import NoReturn

from fastapi import Depends

from src.modules.monitors.application.handlers import (
    CreateMonitorHandler,
    DeleteMonitorHandler,
    UpdateMonitorHandler,
)
from src.modules.monitors.application.services import (
    ActivityQueryService,
    MonitorQueryService,
)
from src.modules.monitors.domain.ports import ReconcileQueue
from src.modules.monitors.domain.repository import MonitorRepository


def _missing_dependency(name: str) -> NoReturn:
    raise RuntimeError(f"Missing dependency override for {name}")


async def get_monitor_repository() -> MonitorRepository:
    _missing_dependency("MonitorRepository")


async def get_reconcile_queue() -> ReconcileQueue:
    _missing_dependency("ReconcileQueue")


async def get_create_monitor_handler(
    repository: MonitorRepository = Depends(get_monitor_repository),
    reconcile_queue: ReconcileQueue = Depends(get_reconcile_queue),
) -> CreateMonitorHandler:
    return CreateMonitorHandler(repository, reconcile_queue)


async def get_update_monitor_handler(
    repository: MonitorRepository = Depends(get_monitor_repository),
    reconcile_queue: ReconcileQueue = Depends(get_reconcile_queue),
) -> UpdateMonitorHandler:
    return UpdateMonitorHandler(repository, reconcile_queue)


async def get_delete_monitor_handler(
    repository: MonitorRepository = Depends(get_monitor_repository),
) -> DeleteMonitorHandler:
    return DeleteMonitorHandler(repository)


async def get_monitor_query_service(
    repository: MonitorRepository = Depends(get_monitor_repository),
) -> MonitorQueryService:
    return MonitorQueryService(repository)


async def get_activity_query_service(
    repository: MonitorRepository = Depends(get_monitor_repository),
) -> ActivityQueryService:
    return ActivityQueryService(repository)
