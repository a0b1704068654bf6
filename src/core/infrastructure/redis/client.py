"""Redis 客户端封装。

提供统一的 Redis 访问接口，支持：
- 连接可用性检查（降级判断）
- 健康检查
- 基于 token 的调和互斥锁
"""

from __future__ import annotations

import asyncio
import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import redis.asyncio as aioredis
from loguru import logger

if TYPE_CHECKING:
    from redis.asyncio import Redis

from src.core.config import settings
from src.core.infrastructure.health import ComponentHealth, HealthStatus
from src.core.infrastructure.redis.keys import RedisKeys

# 只有持有者才能释放锁，避免 TTL 过期后误删他人的锁
_RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisUnavailableError(RuntimeError):
    """Redis 不可用（连接失败/超时等）。"""


class RedisClient:
    """Redis 客户端封装类。"""

    def __init__(self, url: str | None = None):
        self._url = url or settings.REDIS_URL
        self._client: Redis | None = None

    @property
    def client(self) -> Redis:
        """获取 Redis 客户端实例（延迟初始化）。"""
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=10.0,
                socket_connect_timeout=5.0,
                retry_on_timeout=True,
            )
        return self._client

    async def close(self) -> None:
        """关闭 Redis 连接。"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        try:
            return await self.client.ping()
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    @asynccontextmanager
    async def ensure_available(
        self,
        *,
        timeout: float = 5.0,
        close_on_exit: bool = False,
    ) -> AsyncGenerator[RedisClient, None]:
        """确保进入上下文时 Redis 连接可用。

        Usage:
            try:
                async with client.ensure_available(timeout=2.0, close_on_exit=True):
                    ...
            except RedisUnavailableError:
                # 按需降级
                ...
        """
        try:
            ok = await asyncio.wait_for(self.client.ping(), timeout=timeout)
            if not ok:
                raise RedisUnavailableError("Redis ping returned falsy result")
        except TimeoutError as e:
            if close_on_exit:
                await self.close()
            raise RedisUnavailableError("Redis ping timeout") from e
        except RedisUnavailableError:
            if close_on_exit:
                await self.close()
            raise
        except Exception as e:
            if close_on_exit:
                await self.close()
            raise RedisUnavailableError(f"Redis ping failed: {e}") from e

        try:
            yield self
        finally:
            if close_on_exit:
                await self.close()

    async def health_check(self) -> ComponentHealth:
        """执行 Redis 健康检查。"""
        try:
            is_connected = await self.ping()
            info = await self.client.info("server") if is_connected else {}
            return ComponentHealth(
                status=HealthStatus.OK if is_connected else HealthStatus.ERROR,
                connected=is_connected,
                version=info.get("redis_version", "unknown"),
            )
        except Exception as e:
            return ComponentHealth(
                status=HealthStatus.ERROR,
                connected=False,
                error=str(e),
            )

    # ============ 调和锁 ============

    async def acquire_reconcile_lock(
        self,
        monitor_name: str,
        ttl: int | None = None,
    ) -> str | None:
        """尝试获取监控目标的调和锁。

        Args:
            monitor_name: 监控目标名称
            ttl: 锁过期时间（秒），默认 RECONCILE_LOCK_TTL_SEC

        Returns:
            获取成功返回锁 token（释放时需要），否则返回 None
        """
        token = secrets.token_hex(16)
        acquired = await self.client.set(
            RedisKeys.reconcile_lock(monitor_name),
            token,
            ex=ttl or settings.RECONCILE_LOCK_TTL_SEC,
            nx=True,
        )
        return token if acquired else None

    async def release_reconcile_lock(self, monitor_name: str, token: str) -> bool:
        """释放调和锁，仅当 token 匹配时生效。"""
        released = await self.client.eval(
            _RELEASE_LOCK_SCRIPT,
            1,
            RedisKeys.reconcile_lock(monitor_name),
            token,
        )
        return bool(released)


@asynccontextmanager
async def get_async_redis_client(
    *,
    timeout: float | None = None,
    url: str | None = None,
) -> AsyncGenerator[RedisClient, None]:
    """获取可用的 RedisClient（上下文管理器）。

    退出上下文时自动关闭连接，避免 Celery 中 asyncio.run() 跨事件循环复用连接。
    """
    client = RedisClient(url=url)
    async with client.ensure_available(
        timeout=timeout or settings.REDIS_CLIENT_TIMEOUT_SEC,
        close_on_exit=True,
    ):
        yield client


redis_client = RedisClient()


def get_redis_client() -> RedisClient:
    """获取 Redis 客户端依赖。"""
    return redis_client
