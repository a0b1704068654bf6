"""Reconcile queue adapter."""

from src.modules.monitors.domain.ports import ReconcileQueue
from src.modules.monitors.tasks import reconcile_monitor


class CeleryReconcileQueue(ReconcileQueue):
    """Celery-backed reconcile queue."""

    async def enqueue(self, monitor_name: str) -> None:
        reconcile_monitor.delay(monitor_name=monitor_name)
