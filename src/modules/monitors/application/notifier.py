"""下游通知（尽力而为）。

状态提交成功后把活跃度文档推送到：
- Cloudflare Workers KV（未配置凭据时整体跳过）
- 目标自身配置的 webhook

任何投递失败只记录日志与业务事件，不会让调和失败或重试。
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from src.core.domain.base_entity import utc_now
from src.core.infrastructure.logging import BusinessEvents
from src.modules.monitors.domain.entities import (
    ActivityLevel,
    AnimeMonitor,
    MonitorMode,
    ObservedStatus,
    TrendingEntry,
)
from src.modules.monitors.domain.exceptions import SinkNotConfiguredError
from src.modules.monitors.domain.payload import (
    ActivityPayload,
    PayloadEntry,
    PayloadMetrics,
)
from src.modules.monitors.domain.ports import ActivitySink, WebhookSender

AGGREGATE_KV_KEY = "mal-overall"
WEBHOOK_SINK = "webhook"


def kv_key_for(target: AnimeMonitor) -> str:
    """展示层按这些 key 读取：单条目 anime-<id>，聚合 mal-overall。"""
    if target.mode == MonitorMode.SINGLE_ITEM:
        return f"anime-{target.anime_id}"
    return AGGREGATE_KV_KEY


def _payload_entry(entry: TrendingEntry) -> PayloadEntry:
    return PayloadEntry(
        id=entry.id,
        title=entry.title,
        score=entry.score,
        members=entry.members,
        activity_level=entry.activity_level,
        image_url=entry.image_url,
    )


def build_activity_payload(
    target: AnimeMonitor,
    status: ObservedStatus,
    now: datetime | None = None,
) -> ActivityPayload:
    metrics = status.metrics
    return ActivityPayload(
        monitor_name=target.name,
        anime_id=target.anime_id,
        anime_name=target.anime_name,
        activity_level=status.activity_level or ActivityLevel.LOW,
        weebcast_status=status.weebcast_status,
        metrics=PayloadMetrics(
            active_users=metrics.active_users,
            watching_count=metrics.watching_count,
            members=metrics.members,
            score=metrics.score,
            rank=metrics.rank,
            favorites=metrics.favorites,
        ),
        trending_anime=[_payload_entry(e) for e in status.trending_anime],
        seasonal_anime=[_payload_entry(e) for e in status.seasonal_anime],
        current_season=status.current_season,
        last_updated=status.last_checked or now or utc_now(),
    )


def should_send_webhook(target: AnimeMonitor, status: ObservedStatus) -> bool:
    if not target.webhook_url:
        return False
    if not target.notify_on_high_activity:
        return True
    level = status.activity_level
    return level is not None and level >= ActivityLevel.HIGH


@dataclass
class NotificationReport:
    delivered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class NotificationService:
    """Fan an activity document out to the configured sinks."""

    def __init__(
        self,
        kv_sink: ActivitySink | None = None,
        webhook_sender: WebhookSender | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.kv_sink = kv_sink
        self.webhook_sender = webhook_sender
        self.clock = clock

    async def notify(
        self, target: AnimeMonitor, status: ObservedStatus
    ) -> NotificationReport:
        report = NotificationReport()
        payload = build_activity_payload(target, status, self.clock())

        if self.kv_sink is not None:
            await self._push_kv(target, payload, report)

        if self.webhook_sender is not None and should_send_webhook(target, status):
            await self._send_webhook(target, payload, report)
        else:
            report.skipped.append(WEBHOOK_SINK)

        return report

    async def _push_kv(
        self,
        target: AnimeMonitor,
        payload: ActivityPayload,
        report: NotificationReport,
    ) -> None:
        sink_name = self.kv_sink.name
        key = kv_key_for(target)
        try:
            await self.kv_sink.push(key, payload)
        except SinkNotConfiguredError:
            logger.debug(f"{sink_name} not configured, skipping push for '{target.name}'")
            report.skipped.append(sink_name)
            return
        except Exception as e:
            logger.warning(f"Failed to push activity for '{target.name}' to {sink_name}: {e}")
            BusinessEvents.sink_delivery_failed(
                monitor_name=target.name, sink=sink_name, error=str(e), key=key
            )
            report.failed.append(sink_name)
            return

        BusinessEvents.sink_delivered(monitor_name=target.name, sink=sink_name, key=key)
        report.delivered.append(sink_name)

    async def _send_webhook(
        self,
        target: AnimeMonitor,
        payload: ActivityPayload,
        report: NotificationReport,
    ) -> None:
        try:
            await self.webhook_sender.send(target.webhook_url, payload)
        except Exception as e:
            logger.warning(f"Webhook delivery failed for '{target.name}': {e}")
            BusinessEvents.sink_delivery_failed(
                monitor_name=target.name, sink=WEBHOOK_SINK, error=str(e)
            )
            report.failed.append(WEBHOOK_SINK)
            return

        BusinessEvents.sink_delivered(monitor_name=target.name, sink=WEBHOOK_SINK)
        report.delivered.append(WEBHOOK_SINK)
