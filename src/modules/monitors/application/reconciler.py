"""调和循环（单次执行）。

一次调和：
1. 读取快照（目标配置 + 当前状态 + resource_version），目标不存在则直接返回
2. phase 先置为 Monitoring
3. 按模式合成状态
4. 失败：phase=Error，Ready=False/MonitoringFailed，提交，固定 60 秒后重试
5. 成功：Ready=True/MonitoringActive，提交，按轮询间隔重新调度
6. 提交成功后做下游通知（尽力而为）

状态提交基于第 1 步读到的 resource_version 做 compare-and-swap，
冲突时抛出 StatusConflictError，由任务层重新读取快照后重试。
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from loguru import logger

from src.core.config import settings
from src.core.domain.base_entity import utc_now
from src.core.infrastructure.logging import BusinessEvents
from src.modules.monitors.application.notifier import NotificationService
from src.modules.monitors.application.synthesizer import StatusSynthesizer
from src.modules.monitors.domain.entities import (
    CONDITION_READY,
    REASON_MONITORING_ACTIVE,
    REASON_MONITORING_FAILED,
    AnimeMonitor,
    ConditionStatus,
    MonitorMode,
    MonitorPhase,
    ObservedStatus,
)
from src.modules.monitors.domain.exceptions import AnimeNotFoundError, CatalogError
from src.modules.monitors.domain.repository import MonitorRepository

READY_MESSAGE = "Successfully fetched MAL activity data"


class ReconcileOutcome(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ReconcileResult:
    """单次调和结果。

    requeue_after_sec 为 None 表示不再调度（目标已删除）。
    """

    monitor_name: str
    outcome: ReconcileOutcome
    requeue_after_sec: int | None
    status: ObservedStatus | None = None
    resource_version: int | None = None
    error: str | None = None


def describe_failure(target: AnimeMonitor, error: CatalogError) -> str:
    if target.mode == MonitorMode.SINGLE_ITEM:
        return f"fetching anime {target.anime_id}: {error}"
    return f"fetching overall activity: {error}"


class ReconcileService:
    """Run one reconciliation pass for a monitor target."""

    def __init__(
        self,
        repository: MonitorRepository,
        synthesizer: StatusSynthesizer,
        notifier: NotificationService,
        clock: Callable[[], datetime] = utc_now,
        error_backoff_sec: int | None = None,
        commit: Callable[[], Awaitable[None]] | None = None,
        pass_timeout_sec: float | None = None,
    ):
        self.repository = repository
        self.synthesizer = synthesizer
        self.notifier = notifier
        self.clock = clock
        self.error_backoff_sec = error_backoff_sec or settings.RECONCILE_ERROR_BACKOFF_SEC
        # 状态补丁落盘后才做通知；为空时由调用方自行提交
        self.commit = commit
        # None 表示不限时
        self.pass_timeout_sec = pass_timeout_sec

    async def reconcile(self, name: str) -> ReconcileResult:
        """执行一次调和。

        超时只覆盖读取、合成与提交；提交之后的通知不受其约束，
        超时抛出 TimeoutError 时不会有任何状态落盘。
        """
        async with asyncio.timeout(self.pass_timeout_sec):
            snapshot = await self.repository.get_snapshot(name)
            if snapshot is None:
                logger.debug(f"Monitor '{name}' no longer exists, nothing to reconcile")
                BusinessEvents.reconcile_skipped(
                    monitor_name=name, reason="target_not_found"
                )
                return ReconcileResult(
                    monitor_name=name,
                    outcome=ReconcileOutcome.SKIPPED,
                    requeue_after_sec=None,
                )

            target = snapshot.target
            # 在副本上合成，失败时保留上一次的有效数据
            status = snapshot.status.model_copy(deep=True)
            status.phase = MonitorPhase.MONITORING

            try:
                synthesis = await self.synthesizer.synthesize(target, status)
            except AnimeNotFoundError as e:
                logger.info(
                    f"Anime {e.anime_id} for monitor '{name}' not found, skipping pass"
                )
                BusinessEvents.reconcile_skipped(
                    monitor_name=name,
                    reason="anime_not_found",
                    anime_id=e.anime_id,
                )
                return ReconcileResult(
                    monitor_name=name,
                    outcome=ReconcileOutcome.SKIPPED,
                    requeue_after_sec=target.effective_polling_interval,
                    error=str(e),
                )
            except CatalogError as e:
                return await self._commit_failure(
                    snapshot.resource_version, target, status, e
                )

            status.set_condition(
                CONDITION_READY,
                ConditionStatus.TRUE,
                REASON_MONITORING_ACTIVE,
                READY_MESSAGE,
                self.clock(),
            )
            new_version = await self.repository.patch_status(
                name, snapshot.resource_version, status
            )
            if self.commit is not None:
                await self.commit()

        if synthesis.level_changed:
            BusinessEvents.activity_level_changed(
                monitor_name=name,
                previous_level=synthesis.previous_level,
                new_level=synthesis.activity_level,
                activity_score=synthesis.activity_score,
            )

        await self.notifier.notify(target, status)

        requeue_after = target.effective_polling_interval
        logger.info(
            f"Reconciled monitor '{name}': level={status.activity_level}, "
            f"requeue in {requeue_after}s"
        )
        BusinessEvents.reconcile_completed(
            monitor_name=name,
            activity_level=str(status.activity_level),
            requeue_after_sec=requeue_after,
            activity_score=synthesis.activity_score,
        )
        return ReconcileResult(
            monitor_name=name,
            outcome=ReconcileOutcome.SUCCEEDED,
            requeue_after_sec=requeue_after,
            status=status,
            resource_version=new_version,
        )

    async def _commit_failure(
        self,
        resource_version: int,
        target: AnimeMonitor,
        status: ObservedStatus,
        error: CatalogError,
    ) -> ReconcileResult:
        detail = describe_failure(target, error)
        logger.error(f"Failed to reconcile monitor '{target.name}': {detail}")

        status.phase = MonitorPhase.ERROR
        status.message = f"Error: {detail}"
        status.set_condition(
            CONDITION_READY,
            ConditionStatus.FALSE,
            REASON_MONITORING_FAILED,
            detail,
            self.clock(),
        )
        new_version = await self.repository.patch_status(
            target.name, resource_version, status
        )
        if self.commit is not None:
            await self.commit()

        BusinessEvents.reconcile_failed(
            monitor_name=target.name,
            error=detail,
            requeue_after_sec=self.error_backoff_sec,
            error_code=error.error_code,
        )
        return ReconcileResult(
            monitor_name=target.name,
            outcome=ReconcileOutcome.FAILED,
            requeue_after_sec=self.error_backoff_sec,
            status=status,
            resource_version=new_version,
            error=detail,
        )
