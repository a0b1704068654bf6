"""调和循环单元测试。

测试覆盖：
- 目标不存在：跳过且不再调度
- 成功：phase/条件/提交/通知/按轮询间隔重新调度
- 目录失败：phase=Error，固定 60 秒退避，保留上一次的有效数据
- 条目 404：跳过本轮，不提交
- resource_version 冲突：抛出 StatusConflictError，不通知
- 超时：只覆盖到提交为止，通知耗时不影响结果
"""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.modules.monitors.application.reconciler import (
    READY_MESSAGE,
    ReconcileOutcome,
    ReconcileService,
)
from src.modules.monitors.application.synthesizer import (
    StatusSynthesizer,
    SynthesisResult,
)
from src.modules.monitors.domain.catalog import AnimeData
from src.modules.monitors.domain.entities import (
    CONDITION_READY,
    REASON_MONITORING_ACTIVE,
    REASON_MONITORING_FAILED,
    ActivityLevel,
    ConditionStatus,
    MonitorPhase,
    ObservedStatus,
)
from src.modules.monitors.domain.exceptions import (
    AnimeNotFoundError,
    CatalogRateLimitedError,
    CatalogTransportError,
    StatusConflictError,
)

pytestmark = pytest.mark.anyio

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


async def _synthesize_high(_target, status: ObservedStatus) -> SynthesisResult:
    previous = status.activity_level
    status.activity_level = ActivityLevel.HIGH
    status.weebcast_status = "storm"
    status.last_checked = NOW
    return SynthesisResult(
        activity_score=1_500,
        previous_level=previous,
        activity_level=ActivityLevel.HIGH,
    )


@pytest.fixture
def synthesizer() -> AsyncMock:
    synthesizer = AsyncMock()
    synthesizer.synthesize = AsyncMock(side_effect=_synthesize_high)
    return synthesizer


@pytest.fixture
def notifier() -> AsyncMock:
    notifier = AsyncMock()
    notifier.notify = AsyncMock()
    return notifier


@pytest.fixture
def commit() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(monitor_repository, synthesizer, notifier, commit) -> ReconcileService:
    return ReconcileService(
        repository=monitor_repository,
        synthesizer=synthesizer,
        notifier=notifier,
        clock=lambda: NOW,
        error_backoff_sec=60,
        commit=commit,
    )


class TestReconcileMissingTarget:
    async def test_skips_without_requeue(
        self, service: ReconcileService, synthesizer: AsyncMock
    ) -> None:
        result = await service.reconcile("ghost")

        assert result.outcome == ReconcileOutcome.SKIPPED
        assert result.requeue_after_sec is None
        synthesizer.synthesize.assert_not_awaited()


class TestReconcileSuccess:
    async def test_commits_ready_status(
        self, service, monitor_repository, make_monitor, commit
    ) -> None:
        monitor_repository.add(make_monitor(polling_interval_sec=120))

        result = await service.reconcile("frieren")

        assert result.outcome == ReconcileOutcome.SUCCEEDED
        assert result.requeue_after_sec == 120
        assert result.resource_version == 2

        stored = monitor_repository.stored("frieren")
        assert stored.resource_version == 2
        assert stored.status.phase == MonitorPhase.MONITORING
        assert stored.status.activity_level == ActivityLevel.HIGH
        ready = stored.status.get_condition(CONDITION_READY)
        assert ready.status == ConditionStatus.TRUE
        assert ready.reason == REASON_MONITORING_ACTIVE
        assert ready.message == READY_MESSAGE
        assert ready.last_transition_time == NOW
        commit.assert_awaited_once()

    async def test_default_poll_interval(
        self, service, monitor_repository, make_monitor
    ) -> None:
        monitor_repository.add(make_monitor(polling_interval_sec=0))

        result = await service.reconcile("frieren")

        assert result.requeue_after_sec == 300

    async def test_notifies_after_commit(
        self, service, monitor_repository, make_monitor, notifier
    ) -> None:
        monitor_repository.add(make_monitor())

        result = await service.reconcile("frieren")

        notifier.notify.assert_awaited_once()
        target, status = notifier.notify.await_args.args
        assert target.name == "frieren"
        assert status == result.status

    async def test_works_without_commit_hook(
        self, monitor_repository, synthesizer, notifier, make_monitor
    ) -> None:
        service = ReconcileService(
            repository=monitor_repository,
            synthesizer=synthesizer,
            notifier=notifier,
            clock=lambda: NOW,
        )
        monitor_repository.add(make_monitor())

        result = await service.reconcile("frieren")

        assert result.outcome == ReconcileOutcome.SUCCEEDED


class TestReconcileFailure:
    async def test_item_failure_sets_error_phase(
        self, service, monitor_repository, make_monitor, synthesizer, notifier
    ) -> None:
        monitor_repository.add(make_monitor())
        synthesizer.synthesize.side_effect = CatalogRateLimitedError(
            "rate limited by MAL API, retry later"
        )

        result = await service.reconcile("frieren")

        assert result.outcome == ReconcileOutcome.FAILED
        assert result.requeue_after_sec == 60
        stored = monitor_repository.stored("frieren")
        assert stored.status.phase == MonitorPhase.ERROR
        assert stored.status.message == (
            "Error: fetching anime 52991: rate limited by MAL API, retry later"
        )
        ready = stored.status.get_condition(CONDITION_READY)
        assert ready.status == ConditionStatus.FALSE
        assert ready.reason == REASON_MONITORING_FAILED
        notifier.notify.assert_not_awaited()

    async def test_aggregate_failure_message(
        self, service, monitor_repository, make_monitor, synthesizer
    ) -> None:
        monitor_repository.add(make_monitor("overall", anime_id=None))
        synthesizer.synthesize.side_effect = CatalogTransportError("down")

        await service.reconcile("overall")

        stored = monitor_repository.stored("overall")
        assert stored.status.message == "Error: fetching overall activity: down"

    async def test_aggregate_failure_uses_fixed_backoff(
        self, service, monitor_repository, make_monitor, synthesizer
    ) -> None:
        monitor_repository.add(
            make_monitor("overall", anime_id=None, polling_interval_sec=900)
        )
        synthesizer.synthesize.side_effect = CatalogTransportError("down")

        result = await service.reconcile("overall")

        assert result.outcome == ReconcileOutcome.FAILED
        assert result.requeue_after_sec == 60
        assert monitor_repository.stored("overall").status.phase == MonitorPhase.ERROR

    async def test_failure_keeps_previous_data(
        self, service, monitor_repository, make_monitor, synthesizer
    ) -> None:
        monitor_repository.add(make_monitor())
        await service.reconcile("frieren")

        synthesizer.synthesize.side_effect = CatalogTransportError("down")
        await service.reconcile("frieren")

        stored = monitor_repository.stored("frieren")
        assert stored.status.activity_level == ActivityLevel.HIGH
        assert stored.status.weebcast_status == "storm"
        assert stored.resource_version == 3

    async def test_flip_updates_transition_time(
        self, monitor_repository, synthesizer, notifier, make_monitor
    ) -> None:
        clock_values = iter([NOW, NOW + timedelta(minutes=5)])
        service = ReconcileService(
            repository=monitor_repository,
            synthesizer=synthesizer,
            notifier=notifier,
            clock=lambda: next(clock_values),
            error_backoff_sec=60,
        )
        monitor_repository.add(make_monitor())
        await service.reconcile("frieren")

        synthesizer.synthesize.side_effect = CatalogTransportError("down")
        await service.reconcile("frieren")

        ready = monitor_repository.stored("frieren").status.get_condition(
            CONDITION_READY
        )
        assert ready.status == ConditionStatus.FALSE
        assert ready.last_transition_time == NOW + timedelta(minutes=5)

    async def test_anime_not_found_skips_pass(
        self, service, monitor_repository, make_monitor, synthesizer, commit
    ) -> None:
        monitor_repository.add(make_monitor(polling_interval_sec=600))
        synthesizer.synthesize.side_effect = AnimeNotFoundError(52991)

        result = await service.reconcile("frieren")

        assert result.outcome == ReconcileOutcome.SKIPPED
        assert result.requeue_after_sec == 600
        assert monitor_repository.status_patches == []
        assert monitor_repository.stored("frieren").status is None
        commit.assert_not_awaited()


class TestReconcileConflict:
    async def test_stale_version_raises(
        self, service, monitor_repository, make_monitor, synthesizer, notifier
    ) -> None:
        monitor_repository.add(make_monitor())

        async def _concurrent_update(target, status):
            # 合成期间目标被其他写入者修改
            monitor_repository.stored("frieren").resource_version += 1
            return await _synthesize_high(target, status)

        synthesizer.synthesize.side_effect = _concurrent_update

        with pytest.raises(StatusConflictError):
            await service.reconcile("frieren")

        notifier.notify.assert_not_awaited()
        assert monitor_repository.stored("frieren").status is None


class TestReconcileTimeout:
    async def test_slow_synthesis_commits_nothing(
        self, monitor_repository, synthesizer, notifier, commit, make_monitor
    ) -> None:
        async def _slow(_target, _status):
            await asyncio.sleep(1)

        synthesizer.synthesize.side_effect = _slow
        service = ReconcileService(
            repository=monitor_repository,
            synthesizer=synthesizer,
            notifier=notifier,
            clock=lambda: NOW,
            commit=commit,
            pass_timeout_sec=0.05,
        )
        monitor_repository.add(make_monitor())

        with pytest.raises(TimeoutError):
            await service.reconcile("frieren")

        assert monitor_repository.status_patches == []
        commit.assert_not_awaited()
        notifier.notify.assert_not_awaited()

    async def test_slow_notification_keeps_committed_success(
        self, monitor_repository, synthesizer, notifier, commit, make_monitor
    ) -> None:
        async def _slow_notify(_target, _status):
            await asyncio.sleep(0.2)

        notifier.notify.side_effect = _slow_notify
        service = ReconcileService(
            repository=monitor_repository,
            synthesizer=synthesizer,
            notifier=notifier,
            clock=lambda: NOW,
            commit=commit,
            pass_timeout_sec=0.05,
        )
        monitor_repository.add(make_monitor(polling_interval_sec=120))

        result = await service.reconcile("frieren")

        assert result.outcome == ReconcileOutcome.SUCCEEDED
        assert result.requeue_after_sec == 120
        assert monitor_repository.status_patches == [("frieren", 1)]
        commit.assert_awaited_once()


class TestReconcileWithCatalog:
    async def test_statistics_failure_still_monitoring(
        self, monitor_repository, notifier, make_monitor
    ) -> None:
        catalog = AsyncMock()
        catalog.get_anime = AsyncMock(
            return_value=AnimeData(
                mal_id=52991,
                title="Sousou no Frieren",
                members=2_000_000,
                favorites=150_000,
                score=8.5,
            )
        )
        catalog.get_anime_statistics = AsyncMock(
            side_effect=CatalogTransportError("statistics down")
        )
        service = ReconcileService(
            repository=monitor_repository,
            synthesizer=StatusSynthesizer(catalog, clock=lambda: NOW),
            notifier=notifier,
            clock=lambda: NOW,
        )
        monitor_repository.add(make_monitor())

        result = await service.reconcile("frieren")

        assert result.outcome == ReconcileOutcome.SUCCEEDED
        stored = monitor_repository.stored("frieren").status
        assert stored.phase == MonitorPhase.MONITORING
        assert stored.activity_level == ActivityLevel.CRITICAL
        assert stored.metrics.active_users == 0
        assert stored.get_condition(CONDITION_READY).status == ConditionStatus.TRUE
