"""Monitor domain exceptions."""

from fastapi import status

from src.core.domain.exceptions import (
    ConfigurationError,
    DomainException,
    DuplicateEntityError,
    EntityNotFoundError,
)


class MonitorNotFoundError(EntityNotFoundError):
    """Raised when a monitor target is not found."""

    def __init__(self, name: str):
        super().__init__("AnimeMonitor", name)


class MonitorAlreadyExistsError(DuplicateEntityError):
    """Raised when a monitor with the same name already exists."""

    def __init__(self, name: str):
        super().__init__("AnimeMonitor", "name", name)


class StatusConflictError(DomainException):
    """Raised when a status commit is based on a stale resource version.

    可重试：重新读取快照后再执行一次调和即可。
    """

    http_status_code = status.HTTP_409_CONFLICT
    error_code = "STATUS_CONFLICT"

    def __init__(self, name: str, expected_version: int):
        self.name = name
        self.expected_version = expected_version
        super().__init__(
            f"AnimeMonitor '{name}' was modified concurrently "
            f"(expected resource_version {expected_version})"
        )


# ============ 目录（上游 API）错误 ============


class CatalogError(DomainException):
    """Base class for catalog failures."""

    http_status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "CATALOG_ERROR"


class CatalogTransportError(CatalogError):
    """Network, DNS, timeout or unexpected HTTP status."""

    error_code = "CATALOG_TRANSPORT_ERROR"


class CatalogRateLimitedError(CatalogError):
    """Upstream answered 429."""

    http_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "CATALOG_RATE_LIMITED"

    def __init__(self, message: str = "rate limited by MAL API"):
        super().__init__(message)


class CatalogDecodeError(CatalogError):
    """Malformed JSON or schema mismatch."""

    error_code = "CATALOG_DECODE_ERROR"


class AnimeNotFoundError(CatalogError):
    """Upstream has no anime with the requested id."""

    http_status_code = status.HTTP_404_NOT_FOUND
    error_code = "ANIME_NOT_FOUND"

    def __init__(self, anime_id: int):
        self.anime_id = anime_id
        super().__init__(f"anime {anime_id} not found")


# ============ 下游投递错误 ============


class SinkNotConfiguredError(ConfigurationError):
    """Raised when a sink is missing its credentials; the sink is skipped."""

    def __init__(self, sink: str):
        self.sink = sink
        super().__init__(f"{sink} sink is not configured")


class SinkDeliveryError(DomainException):
    """Raised by a sink adapter when the downstream rejects or drops a push."""

    http_status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "SINK_DELIVERY_FAILED"

    def __init__(self, sink: str, message: str):
        self.sink = sink
        super().__init__(f"{sink}: {message}")


class AnimeNotMonitoredError(DomainException):
    """Raised when no monitor with published data exists for an anime."""

    http_status_code = status.HTTP_404_NOT_FOUND
    error_code = "ANIME_NOT_MONITORED"

    def __init__(self, anime_id: int):
        self.anime_id = anime_id
        super().__init__("Anime not being monitored")
