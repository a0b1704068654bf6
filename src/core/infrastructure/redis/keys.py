"""Redis Key 命名规范。

Redis 只承担两类职责：
- Celery broker / result backend
- 调和互斥锁：同一个监控目标同一时刻只允许一个调和任务在跑
"""


class RedisKeys:
    """Redis Key 命名空间管理。"""

    # lock:reconcile:{monitor_name}
    LOCK_PREFIX = "lock"
    RECONCILE_LOCK_SCOPE = "reconcile"

    HEALTH_CHECK_KEY = "health:ping"

    @classmethod
    def lock(cls, resource: str) -> str:
        """生成锁 key。"""
        return f"{cls.LOCK_PREFIX}:{resource}"

    @classmethod
    def reconcile_lock(cls, monitor_name: str) -> str:
        """生成监控目标调和锁 key。

        Args:
            monitor_name: 监控目标名称（唯一键）
        """
        return cls.lock(f"{cls.RECONCILE_LOCK_SCOPE}:{monitor_name}")
