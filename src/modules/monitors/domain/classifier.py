"""活跃度评分与分级。

纯函数，无 I/O。评分公式：

    单条目: active_users * 10 + watching * 5 + members // 1000 + favorites // 100
            （score > 8.0 额外 +500）
    聚合:   total_active_users + total_members // 1000

分级阈值：critical 固定为 high 的两倍，不可单独配置。
"""

from dataclasses import dataclass

from src.modules.monitors.domain.entities import (
    DEFAULT_HIGH_ACTIVITY_THRESHOLD,
    DEFAULT_MEDIUM_ACTIVITY_THRESHOLD,
    ActivityLevel,
    ActivityMetrics,
)

HIGH_SCORE_BONUS_CUTOFF = 8.0
HIGH_SCORE_BONUS = 500

# 按 members 给列表条目打的展示等级，与目标自身的阈值无关
DISPLAY_HIGH_MEMBERS = 1_000_000
DISPLAY_MEDIUM_MEMBERS = 500_000


@dataclass(frozen=True)
class ActivityThresholds:
    """配置的阈值，0 表示未设置（使用默认值）。"""

    high: int = 0
    medium: int = 0

    @property
    def effective_high(self) -> int:
        return self.high or DEFAULT_HIGH_ACTIVITY_THRESHOLD

    @property
    def effective_medium(self) -> int:
        return self.medium or DEFAULT_MEDIUM_ACTIVITY_THRESHOLD

    @property
    def critical(self) -> int:
        return self.effective_high * 2


def item_activity_score(metrics: ActivityMetrics) -> int:
    score = (
        metrics.active_users * 10
        + metrics.watching_count * 5
        + metrics.members // 1000
        + metrics.favorites // 100
    )
    if metrics.score > HIGH_SCORE_BONUS_CUTOFF:
        score += HIGH_SCORE_BONUS
    return score


def aggregate_activity_score(total_active_users: int, total_members: int) -> int:
    return total_active_users + total_members // 1000


def level_for_score(score: int, thresholds: ActivityThresholds) -> ActivityLevel:
    """按阈值分级，无平滑、无滞回。"""
    if score >= thresholds.critical:
        return ActivityLevel.CRITICAL
    if score >= thresholds.effective_high:
        return ActivityLevel.HIGH
    if score >= thresholds.effective_medium:
        return ActivityLevel.MEDIUM
    return ActivityLevel.LOW


def classify(metrics: ActivityMetrics, thresholds: ActivityThresholds) -> ActivityLevel:
    return level_for_score(item_activity_score(metrics), thresholds)


def display_level_for_members(members: int) -> ActivityLevel:
    if members > DISPLAY_HIGH_MEMBERS:
        return ActivityLevel.HIGH
    if members > DISPLAY_MEDIUM_MEMBERS:
        return ActivityLevel.MEDIUM
    return ActivityLevel.LOW
