"""Database session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.config import settings
from src.core.infrastructure.health import ComponentHealth, HealthStatus

async_engine = create_async_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    echo=settings.ENVIRONMENT == "local",
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session with automatic transaction management."""
    async with AsyncSessionLocal() as session:
        async with session.begin():
            yield session


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """获取异步数据库会话（上下文管理器版本）。

    用于非 FastAPI 依赖注入场景（Celery 任务、命令行脚本），需要调用方自行 commit。
    """
    session = AsyncSessionLocal()
    try:
        yield session
    except BaseException:
        # 调和被取消（超时/CancelledError）时同样需要回滚，不能留下半提交的状态
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db() -> None:
    """Initialize database connection."""
    try:
        async with async_engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection established successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        raise


async def check_db_health() -> ComponentHealth:
    """检查数据库连接与版本。"""
    try:
        async with async_engine.connect() as conn:
            result = await conn.execute(text("SELECT version()"))
            version = result.scalar()
            return ComponentHealth(
                status=HealthStatus.OK,
                connected=True,
                version=version.split(",")[0] if version else "unknown",
            )
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return ComponentHealth(
            status=HealthStatus.ERROR,
            connected=False,
            error=str(e),
        )
