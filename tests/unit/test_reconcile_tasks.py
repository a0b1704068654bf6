"""调和任务编排测试：冲突重试、requeue 调度、锁与超时处理。"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.infrastructure.celery.retry import RetryableTaskError
from src.modules.monitors import tasks
from src.modules.monitors.application.reconciler import (
    ReconcileOutcome,
    ReconcileResult,
)
from src.modules.monitors.domain.exceptions import StatusConflictError

pytestmark = pytest.mark.anyio

SESSION_PATH = "src.core.infrastructure.database.session.get_async_session"
BUILD_PATH = "src.modules.monitors.infrastructure.dependencies.build_reconcile_service"
REPO_PATH = (
    "src.modules.monitors.infrastructure.repositories.PostgreSQLMonitorRepository"
)


def _session_factory(session: AsyncMock):
    @asynccontextmanager
    async def _get_async_session():
        yield session

    return _get_async_session


def _result(requeue_after_sec: int | None = 300) -> ReconcileResult:
    return ReconcileResult(
        monitor_name="frieren",
        outcome=ReconcileOutcome.SUCCEEDED,
        requeue_after_sec=requeue_after_sec,
    )


class TestRunReconcilePass:
    async def test_schedules_requeue_and_commits(self) -> None:
        session = AsyncMock()
        service = AsyncMock()
        service.reconcile.return_value = _result(300)
        repository = AsyncMock()

        with (
            patch(SESSION_PATH, _session_factory(session)),
            patch(BUILD_PATH, return_value=service),
            patch(REPO_PATH, return_value=repository),
        ):
            result = await tasks.run_reconcile_pass("frieren")

        assert result.requeue_after_sec == 300
        repository.schedule_reconcile.assert_awaited_once()
        assert repository.schedule_reconcile.await_args.args[0] == "frieren"
        session.commit.assert_awaited()

    async def test_deleted_target_is_not_rescheduled(self) -> None:
        session = AsyncMock()
        service = AsyncMock()
        service.reconcile.return_value = _result(None)
        repository = AsyncMock()

        with (
            patch(SESSION_PATH, _session_factory(session)),
            patch(BUILD_PATH, return_value=service),
            patch(REPO_PATH, return_value=repository),
        ):
            await tasks.run_reconcile_pass("frieren")

        repository.schedule_reconcile.assert_not_awaited()

    async def test_conflict_is_retried_with_fresh_snapshot(self) -> None:
        session = AsyncMock()
        service = AsyncMock()
        service.reconcile.side_effect = [
            StatusConflictError("frieren", 3),
            _result(300),
        ]

        with (
            patch(SESSION_PATH, _session_factory(session)),
            patch(BUILD_PATH, return_value=service) as build,
            patch(REPO_PATH, return_value=AsyncMock()),
        ):
            result = await tasks.run_reconcile_pass("frieren")

        assert result.outcome == ReconcileOutcome.SUCCEEDED
        assert service.reconcile.await_count == 2
        assert build.call_count == 2

    async def test_timeout_is_not_retried(self) -> None:
        session = AsyncMock()
        service = AsyncMock()
        service.reconcile.side_effect = TimeoutError
        repository = AsyncMock()

        with (
            patch(SESSION_PATH, _session_factory(session)),
            patch(BUILD_PATH, return_value=service),
            patch(REPO_PATH, return_value=repository),
            pytest.raises(TimeoutError),
        ):
            await tasks.run_reconcile_pass("frieren")

        assert service.reconcile.await_count == 1
        repository.schedule_reconcile.assert_not_awaited()
        session.commit.assert_not_awaited()

    async def test_persistent_conflict_escalates_to_retryable(self) -> None:
        service = AsyncMock()
        service.reconcile.side_effect = StatusConflictError("frieren", 3)

        with (
            patch(SESSION_PATH, _session_factory(AsyncMock())),
            patch(BUILD_PATH, return_value=service),
            patch.object(tasks.settings, "RECONCILE_CONFLICT_MAX_ATTEMPTS", 2),
            pytest.raises(RetryableTaskError),
        ):
            await tasks.run_reconcile_pass("frieren")

        assert service.reconcile.await_count == 2


class FakeRedisClient:
    def __init__(self, token: str | None = "token", fail: Exception | None = None):
        self.token = token
        self.fail = fail
        self.released: list[tuple[str, str]] = []
        self.closed = False

    @asynccontextmanager
    async def ensure_available(self, timeout: float, close_on_exit: bool = True):
        if self.fail is not None:
            raise self.fail
        yield self

    async def acquire_reconcile_lock(self, monitor_name: str) -> str | None:
        return self.token

    async def release_reconcile_lock(self, monitor_name: str, token: str) -> bool:
        self.released.append((monitor_name, token))
        return True

    async def close(self) -> None:
        self.closed = True


class TestReconcileMonitorTask:
    async def test_runs_pass_under_lock(self) -> None:
        fake = FakeRedisClient()

        with (
            patch("src.core.infrastructure.redis.RedisClient", return_value=fake),
            patch.object(tasks, "run_reconcile_pass", AsyncMock()) as run_pass,
        ):
            await tasks._reconcile_monitor_async("frieren")

        run_pass.assert_awaited_once_with("frieren")
        assert fake.released == [("frieren", "token")]
        assert fake.closed

    async def test_skips_when_lock_held(self) -> None:
        fake = FakeRedisClient(token=None)

        with (
            patch("src.core.infrastructure.redis.RedisClient", return_value=fake),
            patch.object(tasks, "run_reconcile_pass", AsyncMock()) as run_pass,
        ):
            await tasks._reconcile_monitor_async("frieren")

        run_pass.assert_not_awaited()
        assert fake.released == []

    async def test_redis_outage_degrades_to_unlocked_pass(self) -> None:
        from src.core.infrastructure.redis import RedisUnavailableError

        fake = FakeRedisClient(fail=RedisUnavailableError("down"))

        with (
            patch("src.core.infrastructure.redis.RedisClient", return_value=fake),
            patch.object(tasks, "run_reconcile_pass", AsyncMock()) as run_pass,
        ):
            await tasks._reconcile_monitor_async("frieren")

        run_pass.assert_awaited_once_with("frieren")
        assert fake.released == []
        assert fake.closed

    async def test_timeout_schedules_error_backoff(self) -> None:
        fake = FakeRedisClient()
        run_pass = AsyncMock(side_effect=TimeoutError)

        with (
            patch("src.core.infrastructure.redis.RedisClient", return_value=fake),
            patch.object(tasks, "run_reconcile_pass", run_pass),
            patch.object(tasks, "_schedule_after_timeout", AsyncMock()) as schedule,
        ):
            await tasks._reconcile_monitor_async("frieren")

        schedule.assert_awaited_once_with("frieren")
        assert fake.released == [("frieren", "token")]


class TestDispatchDueReconciles:
    async def test_pushes_schedule_forward_and_enqueues(self, make_monitor) -> None:
        session = AsyncMock()
        repository = AsyncMock()
        repository.get_due_for_reconcile.return_value = [make_monitor()]
        delay = MagicMock()

        with (
            patch(SESSION_PATH, _session_factory(session)),
            patch(REPO_PATH, return_value=repository),
            patch.object(tasks.reconcile_monitor, "delay", delay),
        ):
            dispatched = await tasks._dispatch_due_reconciles_async(10)

        assert dispatched == 1
        delay.assert_called_once_with(monitor_name="frieren")
        repository.schedule_reconcile.assert_awaited_once()
        session.commit.assert_awaited()

    async def test_nothing_due(self) -> None:
        repository = AsyncMock()
        repository.get_due_for_reconcile.return_value = []

        with (
            patch(SESSION_PATH, _session_factory(AsyncMock())),
            patch(REPO_PATH, return_value=repository),
        ):
            assert await tasks._dispatch_due_reconciles_async(10) == 0
