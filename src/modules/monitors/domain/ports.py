"""Monitor module ports."""

from typing import Protocol

from src.modules.monitors.domain.payload import ActivityPayload


class ActivitySink(Protocol):
    """Port for pushing an activity document to a downstream consumer.

    未配置时抛出 SinkNotConfiguredError，投递失败时抛出 SinkDeliveryError。
    """

    name: str

    async def push(self, key: str, payload: ActivityPayload) -> None: ...


class WebhookSender(Protocol):
    """Port for posting an activity document to a target-specific webhook."""

    async def send(self, url: str, payload: ActivityPayload) -> None: ...


class ReconcileQueue(Protocol):
    """Port for enqueuing a reconciliation pass."""

    async def enqueue(self, monitor_name: str) -> None:
        """Enqueue a reconciliation pass for the named target."""
        ...
