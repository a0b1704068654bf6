"""监控调和 Celery 任务。

包含：
- 周期性分发到期的调和任务（Beat）
- 单个目标的调和任务
"""

import asyncio
from datetime import UTC, datetime, timedelta

from celery import shared_task
from kombu.exceptions import OperationalError
from loguru import logger
from redis.exceptions import RedisError

from src.core.config import settings
from src.core.infrastructure.celery.queues import Queues
from src.core.infrastructure.celery.retry import (
    DEFAULT_RETRYABLE_EXCEPTIONS,
    RetryableTaskError,
)
from src.core.infrastructure.logging import BusinessEvents, get_business_logger


@shared_task(
    name="src.modules.monitors.tasks.dispatch_due_reconciles",
    bind=True,
    max_retries=0,  # 调度任务不重试，下一轮 Beat 会再次扫描
    queue=Queues.RECONCILE,
)
def dispatch_due_reconciles(_self: object, batch_size: int | None = None) -> int:
    """检查并分发到期的调和任务。

    查找 next_reconcile_at <= now 的目标，为每个目标投递一次调和。
    """
    return asyncio.run(
        _dispatch_due_reconciles_async(batch_size or settings.RECONCILE_DISPATCH_BATCH)
    )


async def _dispatch_due_reconciles_async(batch_size: int) -> int:
    from src.core.infrastructure.database.session import get_async_session
    from src.modules.monitors.infrastructure.mappers import AnimeMonitorMapper
    from src.modules.monitors.infrastructure.repositories import (
        PostgreSQLMonitorRepository,
    )

    business_log = get_business_logger()
    dispatched = 0

    async with get_async_session() as session:
        repository = PostgreSQLMonitorRepository(session, AnimeMonitorMapper())
        now = datetime.now(UTC)
        monitors = await repository.get_due_for_reconcile(before_time=now, limit=batch_size)

        if not monitors:
            logger.debug("No monitors due for reconcile")
            return 0

        logger.info(f"Dispatching reconcile for {len(monitors)} monitors")

        for monitor in monitors:
            # 先把下次调和时间推后一个锁周期，防止下一轮 Beat 重复分发；
            # 调和结束时会写入真正的 requeue 时间
            previous = monitor.next_reconcile_at
            await repository.schedule_reconcile(
                monitor.name, now + timedelta(seconds=settings.RECONCILE_LOCK_TTL_SEC)
            )
            await session.commit()

            try:
                reconcile_monitor.delay(monitor_name=monitor.name)
            except OperationalError as e:
                logger.exception(f"Failed to enqueue reconcile for '{monitor.name}': {e}")
                await repository.schedule_reconcile(monitor.name, previous or now)
                await session.commit()
                raise

            dispatched += 1
            business_log.info(
                "reconcile_scheduled",
                monitor_name=monitor.name,
                polling_interval_sec=monitor.effective_polling_interval,
            )

    return dispatched


@shared_task(
    name="src.modules.monitors.tasks.reconcile_monitor",
    bind=True,
    max_retries=3,
    default_retry_delay=settings.RECONCILE_ERROR_BACKOFF_SEC,
    autoretry_for=DEFAULT_RETRYABLE_EXCEPTIONS,
    retry_backoff=True,
    retry_backoff_max=600,
    queue=Queues.RECONCILE,
)
def reconcile_monitor(_self: object, monitor_name: str) -> None:
    """对单个监控目标执行一次调和。

    Args:
        monitor_name: 监控目标名称
    """
    asyncio.run(_reconcile_monitor_async(monitor_name))


async def run_reconcile_pass(monitor_name: str):
    """执行一次调和并写入下次调和时间（不加锁）。

    状态提交冲突时基于新快照立即重试，次数用尽后交给 Celery 重试。

    Returns:
        ReconcileResult
    """
    from tenacity import (
        AsyncRetrying,
        RetryError,
        retry_if_exception_type,
        stop_after_attempt,
    )

    from src.core.infrastructure.database.session import get_async_session
    from src.modules.monitors.domain.exceptions import StatusConflictError
    from src.modules.monitors.infrastructure.dependencies import (
        build_reconcile_service,
    )
    from src.modules.monitors.infrastructure.mappers import AnimeMonitorMapper
    from src.modules.monitors.infrastructure.repositories import (
        PostgreSQLMonitorRepository,
    )

    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(StatusConflictError),
            stop=stop_after_attempt(settings.RECONCILE_CONFLICT_MAX_ATTEMPTS),
        ):
            with attempt:
                async with get_async_session() as session:
                    service = build_reconcile_service(session)
                    result = await service.reconcile(monitor_name)

                    if result.requeue_after_sec is not None:
                        await PostgreSQLMonitorRepository(
                            session, AnimeMonitorMapper()
                        ).schedule_reconcile(
                            monitor_name,
                            datetime.now(UTC)
                            + timedelta(seconds=result.requeue_after_sec),
                        )
                    await session.commit()
    except RetryError as e:
        raise RetryableTaskError(
            f"Status for '{monitor_name}' kept conflicting after "
            f"{settings.RECONCILE_CONFLICT_MAX_ATTEMPTS} attempts"
        ) from e

    return result


async def _schedule_after_timeout(monitor_name: str) -> None:
    from src.core.infrastructure.database.session import get_async_session
    from src.modules.monitors.infrastructure.mappers import AnimeMonitorMapper
    from src.modules.monitors.infrastructure.repositories import (
        PostgreSQLMonitorRepository,
    )

    backoff = settings.RECONCILE_ERROR_BACKOFF_SEC
    async with get_async_session() as session:
        repository = PostgreSQLMonitorRepository(session, AnimeMonitorMapper())
        await repository.schedule_reconcile(
            monitor_name, datetime.now(UTC) + timedelta(seconds=backoff)
        )
        await session.commit()

    BusinessEvents.reconcile_failed(
        monitor_name=monitor_name,
        error=f"reconcile pass exceeded {settings.RECONCILE_PASS_TIMEOUT_SEC}s",
        requeue_after_sec=backoff,
        error_code="RECONCILE_TIMEOUT",
    )


async def _reconcile_monitor_async(monitor_name: str) -> None:
    from src.core.infrastructure.redis import RedisClient, RedisUnavailableError

    # 分布式锁保证同一目标同一时刻只有一次调和在执行
    redis_client = RedisClient()
    lock_token: str | None = None
    redis_available = True

    try:
        try:
            async with redis_client.ensure_available(
                timeout=settings.REDIS_CLIENT_TIMEOUT_SEC,
                close_on_exit=False,
            ):
                lock_token = await redis_client.acquire_reconcile_lock(monitor_name)
        except (RedisUnavailableError, RedisError) as e:
            # Redis 不可用时降级为无锁执行
            logger.warning(f"Failed to acquire reconcile lock for '{monitor_name}': {e}")
            BusinessEvents.feature_degraded(
                feature="reconcile_lock",
                reason=str(e),
                monitor_name=monitor_name,
            )
            redis_available = False

        if redis_available and lock_token is None:
            logger.info(
                f"Skipping reconcile for '{monitor_name}': another pass is in flight"
            )
            BusinessEvents.reconcile_skipped(monitor_name=monitor_name, reason="lock_held")
            return

        try:
            await run_reconcile_pass(monitor_name)
        except TimeoutError:
            # 超时只覆盖到状态提交为止，此时没有任何状态落盘，按错误退避重新调度
            logger.error(
                f"Reconcile for '{monitor_name}' timed out after "
                f"{settings.RECONCILE_PASS_TIMEOUT_SEC}s"
            )
            await _schedule_after_timeout(monitor_name)

    finally:
        if lock_token is not None:
            try:
                await redis_client.release_reconcile_lock(monitor_name, lock_token)
            except RedisError as e:
                logger.warning(
                    f"Failed to release reconcile lock for '{monitor_name}': {e}"
                )
        # 降级路径下 ping 失败时连接池同样已经创建
        await redis_client.close()
