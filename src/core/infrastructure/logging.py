"""Logging configuration with structlog integration.

提供两种日志记录方式：
1. loguru: 用于一般调试日志
2. structlog: 用于关键业务事件（调和、等级变化、下游投递）的结构化日志
"""

import sys
from typing import Any

import structlog
from loguru import logger

from src.core.config import settings


def setup_logging() -> None:
    """Configure application logging with structlog and loguru."""
    _configure_structlog()
    _configure_loguru()

    logger.info(f"Logging configured with level: {settings.LOG_LEVEL}")


def _configure_structlog() -> None:
    """配置 structlog 处理器链。"""
    # 本地开发使用人类可读格式，其余环境输出 JSON
    if settings.ENVIRONMENT == "local":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _get_log_level_number(settings.LOG_LEVEL)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _configure_loguru() -> None:
    """配置 loguru。"""
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    if settings.ENVIRONMENT != "local":
        logger.add(
            "logs/weebcast_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="14 days",
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )


def _get_log_level_number(level: str) -> int:
    """将日志级别字符串转换为数字。"""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


# ============================================================================
# 业务事件日志记录器
# ============================================================================

def get_business_logger() -> structlog.BoundLogger:
    """获取业务事件日志记录器。

    Usage:
        log = get_business_logger()
        log.info("monitor_created", monitor_name="frieren")
    """
    return structlog.get_logger("business")


class BusinessEvents:
    """业务事件日志助手类。

    提供统一的业务事件日志记录接口，确保事件名与字段稳定，便于下游检索。

    Usage:
        BusinessEvents.reconcile_completed(monitor_name="overall", activity_level="High", ...)
    """

    _log = structlog.get_logger("business.events")

    @classmethod
    def reconcile_completed(
        cls,
        monitor_name: str,
        activity_level: str,
        requeue_after_sec: int,
        **extra: Any,
    ) -> None:
        """记录一次成功的调和。"""
        cls._log.info(
            "reconcile_completed",
            event_type="reconcile",
            monitor_name=monitor_name,
            activity_level=activity_level,
            requeue_after_sec=requeue_after_sec,
            **extra,
        )

    @classmethod
    def reconcile_failed(
        cls,
        monitor_name: str,
        error: str,
        requeue_after_sec: int,
        **extra: Any,
    ) -> None:
        """记录调和失败（进入 Error 阶段）。"""
        cls._log.warning(
            "reconcile_failed",
            event_type="reconcile_error",
            monitor_name=monitor_name,
            error=error,
            requeue_after_sec=requeue_after_sec,
            **extra,
        )

    @classmethod
    def reconcile_skipped(
        cls,
        monitor_name: str,
        reason: str,
        **extra: Any,
    ) -> None:
        """记录被跳过的调和。"""
        cls._log.info(
            "reconcile_skipped",
            event_type="reconcile",
            monitor_name=monitor_name,
            reason=reason,
            **extra,
        )

    @classmethod
    def activity_level_changed(
        cls,
        monitor_name: str,
        previous_level: str | None,
        new_level: str,
        activity_score: int,
        **extra: Any,
    ) -> None:
        """记录活跃度等级变化。"""
        cls._log.info(
            "activity_level_changed",
            event_type="activity",
            monitor_name=monitor_name,
            previous_level=previous_level,
            new_level=new_level,
            activity_score=activity_score,
            **extra,
        )

    @classmethod
    def sink_delivered(
        cls,
        monitor_name: str,
        sink: str,
        **extra: Any,
    ) -> None:
        """记录下游投递成功。"""
        cls._log.info(
            "sink_delivered",
            event_type="notify",
            monitor_name=monitor_name,
            sink=sink,
            **extra,
        )

    @classmethod
    def sink_delivery_failed(
        cls,
        monitor_name: str,
        sink: str,
        error: str,
        **extra: Any,
    ) -> None:
        """记录下游投递失败。"""
        cls._log.warning(
            "sink_delivery_failed",
            event_type="notify_error",
            monitor_name=monitor_name,
            sink=sink,
            error=error,
            **extra,
        )

    @classmethod
    def feature_degraded(
        cls,
        feature: str,
        reason: str,
        **extra: Any,
    ) -> None:
        """记录功能降级事件（次要数据源失败等）。"""
        cls._log.warning(
            "feature_degraded",
            event_type="degradation",
            feature=feature,
            reason=reason,
            **extra,
        )
