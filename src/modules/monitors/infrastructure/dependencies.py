"""Monitor module dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.infrastructure.database.session import get_db_session
from src.modules.monitors.application.notifier import NotificationService
from src.modules.monitors.application.reconciler import ReconcileService
from src.modules.monitors.application.synthesizer import StatusSynthesizer
from src.modules.monitors.infrastructure.jikan_client import JikanCatalogClient
from src.modules.monitors.infrastructure.mappers import AnimeMonitorMapper
from src.modules.monitors.infrastructure.reconcile_queue import CeleryReconcileQueue
from src.modules.monitors.infrastructure.repositories import (
    PostgreSQLMonitorRepository,
)
from src.modules.monitors.infrastructure.sinks import (
    CloudflareKVSink,
    HttpWebhookSender,
)


def get_monitor_mapper() -> AnimeMonitorMapper:
    return AnimeMonitorMapper()


async def get_monitor_repository(
    session: AsyncSession = Depends(get_db_session),
    mapper: AnimeMonitorMapper = Depends(get_monitor_mapper),
) -> PostgreSQLMonitorRepository:
    return PostgreSQLMonitorRepository(session, mapper)


async def get_reconcile_queue() -> CeleryReconcileQueue:
    return CeleryReconcileQueue()


def build_notification_service() -> NotificationService:
    # KV 未配置凭据时 push 会抛 SinkNotConfiguredError，由通知服务记为 skipped
    return NotificationService(
        kv_sink=CloudflareKVSink.from_settings(),
        webhook_sender=HttpWebhookSender(),
    )


def build_reconcile_service(session: AsyncSession) -> ReconcileService:
    """组装一次调和所需的全部依赖（Celery 任务中使用）。"""
    return ReconcileService(
        repository=PostgreSQLMonitorRepository(session, get_monitor_mapper()),
        synthesizer=StatusSynthesizer(JikanCatalogClient()),
        notifier=build_notification_service(),
        commit=session.commit,
        pass_timeout_sec=settings.RECONCILE_PASS_TIMEOUT_SEC,
    )
