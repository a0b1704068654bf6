"""Application configuration."""

import warnings
from typing import Annotated, Any, Literal, Self

from pydantic import (
    AnyUrl,
    BeforeValidator,
    HttpUrl,
    computed_field,
    model_validator,
)
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "weebcast-monitor"
    SERVER_PORT: int = 8000
    ROOTPATH: str = ""
    API_V1_STR: str = "/api/v1"
    FRONTEND_HOST: str = "http://localhost:3000"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "UTC"
    # 写接口（创建/更新/删除监控）使用的管理密钥，为空时不校验
    ADMIN_API_KEY: str | None = None

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    # Sentry
    SENTRY_DSN: HttpUrl | None = None

    # PostgreSQL
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "weebcast"

    @computed_field
    @property
    def database_url_object(self) -> MultiHostUrl:
        return MultiHostUrl.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        return str(self.database_url_object)

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CLIENT_TIMEOUT_SEC: float = 2.0

    # Catalog (Jikan v4)
    CATALOG_API_BASE_URL: str = "https://api.jikan.moe/v4"
    CATALOG_TIMEOUT_SEC: float = 30.0
    CATALOG_USER_AGENT: str = "weebcast-monitor/0.1"
    AGGREGATE_SAMPLE_SIZE: int = 25  # 聚合模式采样的热播条目数
    TRENDING_LIMIT: int = 10
    SEASONAL_LIMIT: int = 10

    # Reconcile Settings
    DEFAULT_POLLING_INTERVAL_SEC: int = 300  # 5 minutes
    MIN_POLLING_INTERVAL_SEC: int = 60
    RECONCILE_ERROR_BACKOFF_SEC: int = 60  # 固定退避，不做指数增长
    RECONCILE_PASS_TIMEOUT_SEC: int = 120  # 单次调和总超时
    RECONCILE_LOCK_TTL_SEC: int = 180  # 需大于单次调和超时
    RECONCILE_CONFLICT_MAX_ATTEMPTS: int = 3
    RECONCILE_DISPATCH_INTERVAL_SEC: int = 30
    RECONCILE_DISPATCH_BATCH: int = 50

    # Notification Sinks
    NOTIFY_TIMEOUT_SEC: float = 10.0
    CLOUDFLARE_API_BASE_URL: str = "https://api.cloudflare.com/client/v4"
    CLOUDFLARE_ACCOUNT_ID: str | None = None
    CLOUDFLARE_KV_NAMESPACE_ID: str | None = None
    CLOUDFLARE_API_TOKEN: str | None = None

    @computed_field
    @property
    def kv_sink_enabled(self) -> bool:
        return bool(
            self.CLOUDFLARE_API_TOKEN
            and self.CLOUDFLARE_ACCOUNT_ID
            and self.CLOUDFLARE_KV_NAMESPACE_ID
        )

    # Pagination
    DEFAULT_PAGE: int = 1
    MONITORS_PAGE_SIZE: int = 20
    ACTIVITY_LIST_LIMIT: int = 200  # /activity/all 单次最多返回的目标数

    # Celery Settings
    CELERY_BROKER_URL: str | None = None  # 默认使用 REDIS_URL
    CELERY_RESULT_BACKEND: str | None = None  # 默认使用 REDIS_URL
    CELERY_TASK_SERIALIZER: str = "json"
    CELERY_RESULT_SERIALIZER: str = "json"
    CELERY_ACCEPT_CONTENT: list[str] = ["json"]
    CELERY_TASK_DEFAULT_RETRY_DELAY: int = 60
    CELERY_TASK_MAX_RETRIES: int = 3

    # Worker Concurrency
    WORKER_RECONCILE_CONCURRENCY: int = 4

    @computed_field
    @property
    def celery_broker_url(self) -> str:
        """获取 Celery Broker URL，默认使用 Redis URL。"""
        return self.CELERY_BROKER_URL or self.REDIS_URL

    @computed_field
    @property
    def celery_result_backend(self) -> str:
        """获取 Celery Result Backend URL，默认使用 Redis URL。"""
        return self.CELERY_RESULT_BACKEND or self.REDIS_URL

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("ADMIN_API_KEY", self.ADMIN_API_KEY)
        self._check_default_secret("CLOUDFLARE_API_TOKEN", self.CLOUDFLARE_API_TOKEN)
        return self

    @model_validator(mode="after")
    def _validate_reconcile_timing(self) -> Self:
        if self.RECONCILE_LOCK_TTL_SEC <= self.RECONCILE_PASS_TIMEOUT_SEC:
            raise ValueError(
                "RECONCILE_LOCK_TTL_SEC must be greater than RECONCILE_PASS_TIMEOUT_SEC"
            )
        return self


settings = Settings()
