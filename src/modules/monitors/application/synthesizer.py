"""状态合成服务。

把目录数据折叠成 ActivityMetrics + ActivityLevel + 文案，写入 ObservedStatus。

失败策略：
- 主数据源（单条目详情 / 聚合模式的热播 Top 25）失败会抛出 CatalogError，由调和循环处理
- 次要数据源（统计、Trending、当季）失败只降级为部分数据，不改变 phase

所有上游请求在修改 status 之前完成，主数据源失败时传入的 status 保持原样。
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from src.core.config import settings
from src.core.domain.base_entity import utc_now
from src.core.infrastructure.logging import BusinessEvents
from src.modules.monitors.domain.catalog import AnimeCatalog, AnimeData, AnimeStatistics
from src.modules.monitors.domain.classifier import (
    aggregate_activity_score,
    display_level_for_members,
    item_activity_score,
    level_for_score,
)
from src.modules.monitors.domain.entities import (
    ActivityLevel,
    ActivityMetrics,
    AnimeMonitor,
    MonitorMode,
    ObservedStatus,
    TrendingEntry,
)
from src.modules.monitors.domain.exceptions import CatalogError
from src.modules.monitors.domain.forecast import weebcast_forecast
from src.modules.monitors.domain.season import current_season


@dataclass(frozen=True)
class AggregateActivity:
    """聚合模式下由热播 Top N 折叠出的整体指标。"""

    total_members: int
    total_active_users: int
    average_score: float
    # 已计算但不写入 ActivityMetrics
    total_watching: int
    sample_size: int

    @classmethod
    def from_items(cls, items: list[AnimeData]) -> "AggregateActivity":
        total_members = sum(item.members for item in items)
        # favorites 作为"活跃用户"的代理指标
        total_active_users = sum(item.favorites for item in items)
        scored = [item.score for item in items if item.score > 0]
        average_score = sum(scored) / len(scored) if scored else 0.0
        return cls(
            total_members=total_members,
            total_active_users=total_active_users,
            average_score=average_score,
            total_watching=total_members // 20,
            sample_size=len(items),
        )


@dataclass(frozen=True)
class SynthesisResult:
    activity_score: int
    previous_level: ActivityLevel | None
    activity_level: ActivityLevel

    @property
    def level_changed(self) -> bool:
        return self.previous_level != self.activity_level


def build_trending_entry(anime: AnimeData) -> TrendingEntry:
    return TrendingEntry(
        id=anime.mal_id,
        title=anime.title,
        score=anime.score,
        members=anime.members,
        activity_level=display_level_for_members(anime.members),
        image_url=anime.image_url,
    )


class StatusSynthesizer:
    """Fold catalog data into an ObservedStatus.

    Args:
        catalog: 目录客户端
        clock: 当前时间来源，测试时可替换
    """

    def __init__(
        self,
        catalog: AnimeCatalog,
        clock: Callable[[], datetime] = utc_now,
        aggregate_sample_size: int | None = None,
        trending_limit: int | None = None,
        seasonal_limit: int | None = None,
    ):
        self.catalog = catalog
        self.clock = clock
        self.aggregate_sample_size = aggregate_sample_size or settings.AGGREGATE_SAMPLE_SIZE
        self.trending_limit = trending_limit or settings.TRENDING_LIMIT
        self.seasonal_limit = seasonal_limit or settings.SEASONAL_LIMIT

    async def synthesize(
        self, target: AnimeMonitor, status: ObservedStatus
    ) -> SynthesisResult:
        """按目标模式合成状态，原地修改 status。

        Raises:
            CatalogError: 主数据源失败
        """
        if target.mode == MonitorMode.SINGLE_ITEM:
            return await self.synthesize_single_item(target, status)
        return await self.synthesize_aggregate(target, status)

    async def synthesize_single_item(
        self, target: AnimeMonitor, status: ObservedStatus
    ) -> SynthesisResult:
        anime_id = target.anime_id
        if anime_id is None:
            raise ValueError(f"monitor '{target.name}' has no anime_id")

        anime = await self.catalog.get_anime(anime_id)
        statistics = await self._fetch_statistics(target, anime_id)

        metrics = ActivityMetrics(
            score=anime.score,
            scored_by_count=anime.scored_by,
            rank=anime.rank,
            popularity=anime.popularity,
            members=anime.members,
            favorites=anime.favorites,
        )
        if statistics is not None:
            metrics.watching_count = statistics.watching
            metrics.completed_count = statistics.completed
            metrics.dropped_count = statistics.dropped
            metrics.plan_to_watch_count = statistics.plan_to_watch
            # 粗略估计，不是精确的在线人数
            metrics.active_users = statistics.watching + statistics.completed // 10

        activity_score = item_activity_score(metrics)
        display_name = target.anime_name or anime.title
        # 聚合模式专用字段；目标从聚合切换为单条目时不能残留
        status.trending_anime = []
        status.seasonal_anime = []
        status.current_season = None
        result = self._apply(
            target,
            status,
            metrics=metrics,
            activity_score=activity_score,
            display_name=display_name,
        )
        status.message = (
            f"Monitoring '{anime.title}' - {anime.members} members, "
            f"{anime.score:.2f} score"
        )
        return result

    async def synthesize_aggregate(
        self, target: AnimeMonitor, status: ObservedStatus
    ) -> SynthesisResult:
        sample = await self.catalog.get_top_anime("airing", self.aggregate_sample_size)
        aggregate = AggregateActivity.from_items(sample)

        trending = await self._fetch_optional_list(
            target,
            "trending",
            lambda: self.catalog.get_top_anime("airing", self.trending_limit),
        )
        seasonal = await self._fetch_optional_list(
            target,
            "seasonal",
            lambda: self.catalog.get_season_now(self.seasonal_limit),
        )

        metrics = ActivityMetrics(
            active_users=aggregate.total_active_users,
            members=aggregate.total_members,
            score=aggregate.average_score,
        )
        activity_score = aggregate_activity_score(
            aggregate.total_active_users, aggregate.total_members
        )
        now = self.clock()
        status.trending_anime = [build_trending_entry(anime) for anime in trending]
        status.seasonal_anime = [build_trending_entry(anime) for anime in seasonal]
        status.current_season = current_season(now)

        result = self._apply(
            target,
            status,
            metrics=metrics,
            activity_score=activity_score,
            display_name=None,
            now=now,
        )
        status.message = (
            f"Overall MAL Activity: {aggregate.total_active_users} active users "
            f"across {aggregate.total_members} members, tracking {len(trending)} "
            f"trending + {len(seasonal)} seasonal anime"
        )
        return result

    def _apply(
        self,
        target: AnimeMonitor,
        status: ObservedStatus,
        *,
        metrics: ActivityMetrics,
        activity_score: int,
        display_name: str | None,
        now: datetime | None = None,
    ) -> SynthesisResult:
        now = now or self.clock()
        previous_level = status.activity_level
        level = level_for_score(activity_score, target.thresholds())

        status.metrics = metrics
        status.activity_level = level
        if previous_level != level:
            status.last_activity_change = now
        status.weebcast_status = weebcast_forecast(level, display_name)
        status.last_checked = now

        logger.debug(
            f"Synthesized '{target.name}': score={activity_score}, "
            f"level={previous_level} -> {level}"
        )
        return SynthesisResult(
            activity_score=activity_score,
            previous_level=previous_level,
            activity_level=level,
        )

    async def _fetch_statistics(
        self, target: AnimeMonitor, anime_id: int
    ) -> AnimeStatistics | None:
        try:
            return await self.catalog.get_anime_statistics(anime_id)
        except CatalogError as e:
            logger.info(
                f"Could not fetch statistics for anime {anime_id}, using basic data: {e}"
            )
            BusinessEvents.feature_degraded(
                feature="anime_statistics",
                reason=str(e),
                monitor_name=target.name,
                anime_id=anime_id,
            )
            return None

    async def _fetch_optional_list(
        self,
        target: AnimeMonitor,
        feature: str,
        fetch: Callable,
    ) -> list[AnimeData]:
        try:
            return await fetch()
        except CatalogError as e:
            logger.info(f"Could not fetch {feature} anime: {e}")
            BusinessEvents.feature_degraded(
                feature=f"{feature}_anime",
                reason=str(e),
                monitor_name=target.name,
            )
            return []
