"""weebcast-monitor - 动画社区活跃度监控服务入口。"""

import sentry_sdk
from fastapi import FastAPI
from fastapi.concurrency import asynccontextmanager
from fastapi.routing import APIRoute
from loguru import logger
from starlette.middleware.cors import CORSMiddleware

from src.core.config import settings
from src.core.domain.exceptions import DomainException
from src.core.infrastructure.database.session import check_db_health, init_db
from src.core.infrastructure.health import overall_status
from src.core.infrastructure.logging import setup_logging
from src.core.infrastructure.redis import redis_client
from src.core.interfaces.http.exceptions import (
    domain_exception_handler,
    global_exception_handler,
)
from src.core.interfaces.http.routers import api_router
from src.modules.monitors.application import dependencies as monitors_app_deps
from src.modules.monitors.infrastructure import dependencies as monitors_infra_deps

VERSION = "0.1.0"


def custom_generate_unique_id(route: APIRoute) -> str:
    """Generate unique operation IDs for OpenAPI."""
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


# Initialize Sentry if configured
if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(
        dsn=str(settings.SENTRY_DSN),
        enable_tracing=True,
        environment=settings.ENVIRONMENT,
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting weebcast-monitor...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    logger.info("Initializing database connection...")
    await init_db()

    if not settings.kv_sink_enabled:
        logger.warning("Cloudflare KV credentials not configured, KV push disabled")

    yield

    await redis_client.close()
    logger.info("Shutting down weebcast-monitor...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=(
        "动画社区活跃度监控 - 周期性调和 MyAnimeList 数据并推送活跃度文档\n\n"
        "## 认证方式\n\n"
        "写接口需在 X-API-Key 请求头中传递管理密钥（未配置 ADMIN_API_KEY 时不校验）"
    ),
    version=VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    root_path=settings.ROOTPATH,
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)

# Dependency overrides (application -> infrastructure)
app.dependency_overrides[monitors_app_deps.get_monitor_repository] = (
    monitors_infra_deps.get_monitor_repository
)
app.dependency_overrides[monitors_app_deps.get_reconcile_queue] = (
    monitors_infra_deps.get_reconcile_queue
)

# Exception handlers
app.add_exception_handler(DomainException, domain_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# CORS middleware
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint.

    检查关键依赖的健康状态：
    - PostgreSQL 数据库连接
    - Redis 连接（调和锁与 Celery broker）
    """
    db_health_result = await check_db_health()
    redis_health_result = await redis_client.health_check()

    return {
        "status": overall_status(db_health_result, redis_health_result),
        "environment": settings.ENVIRONMENT,
        "version": VERSION,
        "components": {
            "database": db_health_result.to_dict(),
            "redis": redis_health_result.to_dict(),
        },
        "feature_flags": {
            "kv_sink_enabled": settings.kv_sink_enabled,
        },
    }


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to weebcast-monitor API",
        "docs": f"{settings.API_V1_STR}/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.SERVER_PORT,
        reload=settings.ENVIRONMENT == "local",
    )
