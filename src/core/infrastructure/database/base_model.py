"""Base SQLModel for all database models."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from src.core.domain.base_entity import utc_now


class BaseModel(SQLModel):
    """Base model with common fields.

    时间戳统一使用带时区的 UTC，与 domain/base_entity.py 保持一致。
    """

    model_config = {"arbitrary_types_allowed": True}

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )

    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )

    is_deleted: bool = Field(default=False, nullable=False)
