"""Monitor application data models."""

from datetime import datetime

from pydantic import BaseModel

from src.modules.monitors.domain.entities import MonitorMode, ObservedStatus


class MonitorData(BaseModel):
    """Monitor data for queries."""

    id: str
    name: str
    mode: MonitorMode
    anime_id: int | None = None
    anime_name: str | None = None
    polling_interval_sec: int
    high_activity_threshold: int
    medium_activity_threshold: int
    notify_on_high_activity: bool
    webhook_url: str | None = None
    status: ObservedStatus | None = None
    resource_version: int
    next_reconcile_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class MonitorListData(BaseModel):
    """Monitor list query result."""

    items: list[MonitorData]
    total: int
    page: int
    page_size: int
