"""Monitor application commands."""

from pydantic import BaseModel


class CreateMonitorCommand(BaseModel):
    """Create a new monitor target."""

    name: str
    anime_id: int | None = None
    anime_name: str | None = None
    polling_interval_sec: int | None = None
    high_activity_threshold: int | None = None
    medium_activity_threshold: int | None = None
    notify_on_high_activity: bool = False
    webhook_url: str | None = None


class UpdateMonitorCommand(BaseModel):
    """Update an existing monitor target. None 表示保持不变。"""

    name: str
    anime_id: int | None = None
    clear_anime_id: bool = False
    anime_name: str | None = None
    polling_interval_sec: int | None = None
    high_activity_threshold: int | None = None
    medium_activity_threshold: int | None = None
    notify_on_high_activity: bool | None = None
    webhook_url: str | None = None


class DeleteMonitorCommand(BaseModel):
    name: str
