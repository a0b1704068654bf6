"""Celery 队列定义。

- q_reconcile: 监控目标调和任务（单次调和 + 到期分发）
"""

from enum import StrEnum


class Queues(StrEnum):
    """Celery 队列枚举。"""

    RECONCILE = "q_reconcile"

    @classmethod
    def all_queues(cls) -> list[str]:
        """返回所有队列名称列表。"""
        return [q.value for q in cls]


# 任务名称模式 -> 队列
TASK_ROUTES = {
    "src.modules.monitors.tasks.*": {"queue": Queues.RECONCILE},
}
