"""AnimeMonitor entity-model mappers."""

from src.core.infrastructure.database.mapper import BaseMapper
from src.modules.monitors.domain.entities import AnimeMonitor, ObservedStatus
from src.modules.monitors.infrastructure.models import AnimeMonitorModel


def dump_status(status: ObservedStatus | None) -> dict | None:
    if status is None:
        return None
    return status.model_dump(mode="json")


def load_status(raw: dict | None) -> ObservedStatus | None:
    if raw is None:
        return None
    return ObservedStatus.model_validate(raw)


class AnimeMonitorMapper(BaseMapper[AnimeMonitor, AnimeMonitorModel]):
    """AnimeMonitor entity-model mapper."""

    def to_domain(self, model: AnimeMonitorModel) -> AnimeMonitor:
        return AnimeMonitor(
            id=model.id,
            name=model.name,
            anime_id=model.anime_id,
            anime_name=model.anime_name,
            polling_interval_sec=model.polling_interval_sec,
            high_activity_threshold=model.high_activity_threshold,
            medium_activity_threshold=model.medium_activity_threshold,
            notify_on_high_activity=model.notify_on_high_activity,
            webhook_url=model.webhook_url,
            status=load_status(model.status),
            resource_version=model.resource_version,
            next_reconcile_at=model.next_reconcile_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
            is_deleted=model.is_deleted,
        )

    def to_model(self, entity: AnimeMonitor) -> AnimeMonitorModel:
        return AnimeMonitorModel(
            id=entity.id,
            name=entity.name,
            anime_id=entity.anime_id,
            anime_name=entity.anime_name,
            polling_interval_sec=entity.polling_interval_sec,
            high_activity_threshold=entity.high_activity_threshold,
            medium_activity_threshold=entity.medium_activity_threshold,
            notify_on_high_activity=entity.notify_on_high_activity,
            webhook_url=entity.webhook_url,
            status=dump_status(entity.status),
            resource_version=entity.resource_version,
            next_reconcile_at=entity.next_reconcile_at,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            is_deleted=entity.is_deleted,
        )
