"""AnimeMonitor database models."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, text
from sqlmodel import Field

from src.core.infrastructure.database.base_model import BaseModel


class AnimeMonitorModel(BaseModel, table=True):
    """AnimeMonitor database model.

    status 整体以 JSON 存储，每次调和整体覆盖；resource_version 用于乐观并发控制。
    """

    __tablename__ = "anime_monitors"
    __table_args__ = (
        # 软删除后允许同名目标重新创建
        Index(
            "uq_anime_monitors_name_live",
            "name",
            unique=True,
            postgresql_where=text("is_deleted = false"),
        ),
    )

    name: str = Field(nullable=False, index=True)
    anime_id: int | None = Field(default=None, nullable=True, index=True)
    anime_name: str | None = Field(default=None, nullable=True)
    polling_interval_sec: int = Field(default=300, nullable=False)
    high_activity_threshold: int = Field(default=1000, nullable=False)
    medium_activity_threshold: int = Field(default=500, nullable=False)
    notify_on_high_activity: bool = Field(default=False, nullable=False)
    webhook_url: str | None = Field(default=None, nullable=True)
    status: dict | None = Field(default=None, sa_type=JSON, nullable=True)
    resource_version: int = Field(default=1, nullable=False)
    next_reconcile_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),
        nullable=True,
        index=True,
    )
