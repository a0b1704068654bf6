"""Monitor domain entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from src.core.domain.base_entity import BaseEntity, utc_now

if TYPE_CHECKING:
    from src.modules.monitors.domain.classifier import ActivityThresholds

DEFAULT_POLLING_INTERVAL_SEC = 300
DEFAULT_HIGH_ACTIVITY_THRESHOLD = 1000
DEFAULT_MEDIUM_ACTIVITY_THRESHOLD = 500

CONDITION_READY = "Ready"
REASON_MONITORING_ACTIVE = "MonitoringActive"
REASON_MONITORING_FAILED = "MonitoringFailed"


class ActivityLevel(StrEnum):
    """活跃度等级，Low < Medium < High < Critical。"""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]

    # str 的字典序比较与等级顺序不一致，这里按 rank 比较
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ActivityLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ActivityLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ActivityLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ActivityLevel):
            return NotImplemented
        return self.rank >= other.rank


_LEVEL_RANKS = {
    ActivityLevel.LOW: 0,
    ActivityLevel.MEDIUM: 1,
    ActivityLevel.HIGH: 2,
    ActivityLevel.CRITICAL: 3,
}


class MonitorMode(StrEnum):
    """监控模式，由 anime_id 是否存在推导，不单独存储。"""

    SINGLE_ITEM = "single_item"
    AGGREGATE = "aggregate"


class MonitorPhase(StrEnum):
    INITIALIZING = "Initializing"
    MONITORING = "Monitoring"
    ERROR = "Error"


class ConditionStatus(StrEnum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ActivityMetrics(BaseModel):
    """活跃度指标。0 是合法值，不表示错误。"""

    active_users: int = 0
    watching_count: int = 0
    completed_count: int = 0
    dropped_count: int = 0
    plan_to_watch_count: int = 0
    score: float = 0.0
    scored_by_count: int = 0
    rank: int = 0
    popularity: int = 0
    members: int = 0
    favorites: int = 0


class TrendingEntry(BaseModel):
    """热门/当季条目摘要。"""

    id: int
    title: str
    score: float = 0.0
    members: int = 0
    activity_level: ActivityLevel = ActivityLevel.LOW
    image_url: str = ""


class Condition(BaseModel):
    """状态条件，每个 type 至多一条。"""

    type: str
    status: ConditionStatus
    reason: str
    message: str
    last_transition_time: datetime


class ObservedStatus(BaseModel):
    """调和循环写回的观测状态，每次整体覆盖写入。"""

    phase: MonitorPhase = MonitorPhase.INITIALIZING
    activity_level: ActivityLevel | None = None
    weebcast_status: str = ""
    metrics: ActivityMetrics = Field(default_factory=ActivityMetrics)
    trending_anime: list[TrendingEntry] = Field(default_factory=list)
    seasonal_anime: list[TrendingEntry] = Field(default_factory=list)
    current_season: str | None = None
    last_checked: datetime | None = None
    last_activity_change: datetime | None = None
    message: str = ""
    conditions: list[Condition] = Field(default_factory=list)

    def get_condition(self, condition_type: str) -> Condition | None:
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None

    def set_condition(
        self,
        condition_type: str,
        status: ConditionStatus,
        reason: str,
        message: str,
        now: datetime,
    ) -> None:
        """写入条件。

        已存在同类型条件时原地更新 reason/message，
        只有 status 翻转时才更新 last_transition_time。
        """
        existing = self.get_condition(condition_type)
        if existing is None:
            self.conditions.append(
                Condition(
                    type=condition_type,
                    status=status,
                    reason=reason,
                    message=message,
                    last_transition_time=now,
                )
            )
            return

        if existing.status != status:
            existing.status = status
            existing.last_transition_time = now
        existing.reason = reason
        existing.message = message


class AnimeMonitor(BaseEntity):
    """AnimeMonitor - 一个被监控的目标（单个条目或整体聚合）。"""

    name: str = Field(..., min_length=1, description="目标唯一名称")
    anime_id: int | None = Field(default=None, gt=0, description="条目ID，为空表示聚合模式")
    anime_name: str | None = Field(default=None, description="显示名称")
    polling_interval_sec: int = Field(
        default=DEFAULT_POLLING_INTERVAL_SEC, ge=0, description="轮询间隔（秒），0 表示未设置"
    )
    high_activity_threshold: int = Field(
        default=DEFAULT_HIGH_ACTIVITY_THRESHOLD, ge=0, description="高活跃阈值"
    )
    medium_activity_threshold: int = Field(
        default=DEFAULT_MEDIUM_ACTIVITY_THRESHOLD, ge=0, description="中活跃阈值"
    )
    notify_on_high_activity: bool = Field(default=False, description="仅在高活跃时触发 webhook")
    webhook_url: str | None = Field(default=None, description="webhook 地址")
    status: ObservedStatus | None = Field(default=None, description="观测状态")
    resource_version: int = Field(default=1, ge=1, description="乐观并发版本号")
    next_reconcile_at: datetime | None = Field(default=None, description="下次调和时间")

    @property
    def mode(self) -> MonitorMode:
        if self.anime_id is None:
            return MonitorMode.AGGREGATE
        return MonitorMode.SINGLE_ITEM

    @property
    def effective_polling_interval(self) -> int:
        return self.polling_interval_sec or DEFAULT_POLLING_INTERVAL_SEC

    def thresholds(self) -> ActivityThresholds:
        from src.modules.monitors.domain.classifier import ActivityThresholds

        return ActivityThresholds(
            high=self.high_activity_threshold,
            medium=self.medium_activity_threshold,
        )

    def update_settings(
        self,
        *,
        anime_id: int | None = None,
        anime_name: str | None = None,
        polling_interval_sec: int | None = None,
        high_activity_threshold: int | None = None,
        medium_activity_threshold: int | None = None,
        notify_on_high_activity: bool | None = None,
        webhook_url: str | None = None,
        clear_anime_id: bool = False,
    ) -> None:
        """更新监控配置并安排立即调和。"""
        if clear_anime_id:
            self.anime_id = None
        elif anime_id is not None:
            self.anime_id = anime_id
        if anime_name is not None:
            self.anime_name = anime_name or None
        if polling_interval_sec is not None:
            self.polling_interval_sec = polling_interval_sec
        if high_activity_threshold is not None:
            self.high_activity_threshold = high_activity_threshold
        if medium_activity_threshold is not None:
            self.medium_activity_threshold = medium_activity_threshold
        if notify_on_high_activity is not None:
            self.notify_on_high_activity = notify_on_high_activity
        if webhook_url is not None:
            self.webhook_url = webhook_url or None
        self.request_reconcile()
        self._update_timestamp()

    def request_reconcile(self, now: datetime | None = None) -> None:
        self.next_reconcile_at = now or utc_now()

    def schedule_next_reconcile(self, delay_sec: int, now: datetime | None = None) -> None:
        self.next_reconcile_at = (now or utc_now()) + timedelta(seconds=delay_sec)


@dataclass(frozen=True)
class MonitorSnapshot:
    """调和开始时读取的快照，提交时以 resource_version 做 compare-and-swap。"""

    target: AnimeMonitor
    status: ObservedStatus
    resource_version: int
