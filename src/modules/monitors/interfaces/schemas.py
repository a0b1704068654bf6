"""Monitor API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from src.core.config import settings
from src.modules.monitors.domain.entities import MonitorMode, ObservedStatus

_NAME_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"


class CreateMonitorRequest(BaseModel):
    """Create monitor request.

    不填 anime_id 即为聚合模式（监控整体热播活跃度）。
    """

    name: str = Field(
        ..., min_length=1, max_length=63, pattern=_NAME_PATTERN, description="目标名称"
    )
    anime_id: int | None = Field(None, gt=0, description="MAL 条目 ID")
    anime_name: str | None = Field(None, max_length=255, description="展示名称")
    polling_interval_sec: int | None = Field(
        None, ge=settings.MIN_POLLING_INTERVAL_SEC, description="轮询间隔（秒）"
    )
    high_activity_threshold: int | None = Field(None, ge=0, description="高活跃阈值")
    medium_activity_threshold: int | None = Field(None, ge=0, description="中活跃阈值")
    notify_on_high_activity: bool = Field(False, description="仅在高活跃时推送 webhook")
    webhook_url: str | None = Field(None, max_length=2048, description="Webhook 地址")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "frieren",
                "anime_id": 52991,
                "anime_name": "Sousou no Frieren",
                "polling_interval_sec": 300,
            }
        }


class UpdateMonitorRequest(BaseModel):
    """Update monitor request. 未提供的字段保持不变。"""

    anime_id: int | None = Field(None, gt=0, description="MAL 条目 ID")
    clear_anime_id: bool = Field(False, description="切换为聚合模式")
    anime_name: str | None = Field(None, max_length=255, description="展示名称")
    polling_interval_sec: int | None = Field(
        None, ge=settings.MIN_POLLING_INTERVAL_SEC, description="轮询间隔（秒）"
    )
    high_activity_threshold: int | None = Field(None, ge=0, description="高活跃阈值")
    medium_activity_threshold: int | None = Field(None, ge=0, description="中活跃阈值")
    notify_on_high_activity: bool | None = Field(None, description="仅在高活跃时推送")
    webhook_url: str | None = Field(None, max_length=2048, description="Webhook 地址")

    @model_validator(mode="after")
    def _check_anime_id(self) -> "UpdateMonitorRequest":
        if self.clear_anime_id and self.anime_id is not None:
            raise ValueError("anime_id and clear_anime_id are mutually exclusive")
        return self


class MonitorResponse(BaseModel):
    """Monitor response."""

    id: str = Field(..., description="目标ID")
    name: str = Field(..., description="目标名称")
    mode: MonitorMode = Field(..., description="监控模式")
    anime_id: int | None = Field(None, description="MAL 条目 ID")
    anime_name: str | None = Field(None, description="展示名称")
    polling_interval_sec: int = Field(..., description="轮询间隔（秒）")
    high_activity_threshold: int = Field(..., description="高活跃阈值")
    medium_activity_threshold: int = Field(..., description="中活跃阈值")
    notify_on_high_activity: bool = Field(..., description="仅在高活跃时推送")
    webhook_url: str | None = Field(None, description="Webhook 地址")
    status: ObservedStatus | None = Field(None, description="观测状态")
    resource_version: int = Field(..., description="资源版本")
    next_reconcile_at: datetime | None = Field(None, description="下次调和时间")
    created_at: datetime = Field(..., description="创建时间")
    updated_at: datetime = Field(..., description="更新时间")

    class Config:
        from_attributes = True
