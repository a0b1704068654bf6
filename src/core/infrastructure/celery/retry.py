"""Celery task retry helpers."""

from __future__ import annotations

from kombu.exceptions import OperationalError as KombuOperationalError
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError


class RetryableTaskError(RuntimeError):
    """Explicitly retryable task error."""


# 调和锁在 Redis 不可用时会降级为无锁执行，因此不把 RedisUnavailableError 列入
DEFAULT_RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    RetryableTaskError,
    RedisError,
    KombuOperationalError,
    SQLAlchemyError,
)
