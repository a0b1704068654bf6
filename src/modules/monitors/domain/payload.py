"""下游投递的活跃度文档。

字段在线上统一使用 camelCase（展示层 Worker 直接读取），Python 侧保持 snake_case。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.modules.monitors.domain.entities import ActivityLevel


class _PayloadModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PayloadMetrics(_PayloadModel):
    active_users: int
    watching_count: int
    members: int
    score: float
    rank: int
    favorites: int


class PayloadEntry(_PayloadModel):
    id: int
    title: str
    score: float
    members: int
    activity_level: ActivityLevel
    image_url: str


class ActivityPayload(_PayloadModel):
    monitor_name: str
    anime_id: int | None = None
    anime_name: str | None = None
    activity_level: ActivityLevel
    weebcast_status: str
    metrics: PayloadMetrics
    trending_anime: list[PayloadEntry]
    seasonal_anime: list[PayloadEntry]
    current_season: str | None = None
    last_updated: datetime

    def to_wire(self) -> dict:
        """序列化为线上 JSON 结构，未设置的可选字段（animeId 等）不输出。"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
