#!/usr/bin/env python
"""在命令行中同步执行一次调和。

不经过 Celery，也不获取 Redis 调和锁，适合排查单个目标的数据问题。

用法:
    uv run python scripts/reconcile_monitor.py --name <monitor_name>
    uv run python scripts/reconcile_monitor.py --all
"""

import argparse
import asyncio
import sys
from pathlib import Path


def _ensure_project_root_on_path() -> None:
    """确保项目根目录在 Python 路径中，便于直接运行脚本。"""
    project_root = Path(__file__).parent.parent
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_path()


async def reconcile_one(name: str) -> None:
    """执行单个目标的调和并打印结果。"""
    from src.modules.monitors.tasks import run_reconcile_pass

    result = await run_reconcile_pass(name)
    level = result.status.activity_level if result.status else None
    print(
        f"{result.monitor_name}: outcome={result.outcome} level={level} "
        f"requeue_after={result.requeue_after_sec}s"
    )
    if result.error:
        print(f"  error: {result.error}")


async def reconcile_all(page_size: int) -> None:
    """依次调和所有目标。"""
    from loguru import logger

    from src.core.infrastructure.database.session import get_async_session
    from src.modules.monitors.infrastructure.mappers import AnimeMonitorMapper
    from src.modules.monitors.infrastructure.repositories import (
        PostgreSQLMonitorRepository,
    )

    async with get_async_session() as session:
        repository = PostgreSQLMonitorRepository(session, AnimeMonitorMapper())
        monitors, total = await repository.list_all(page=1, page_size=page_size)

    logger.info(f"Reconciling {len(monitors)} of {total} monitors")
    for monitor in monitors:
        await reconcile_one(monitor.name)


def main():
    from src.core.config import settings
    from src.core.infrastructure.logging import setup_logging

    parser = argparse.ArgumentParser(description="同步执行监控目标调和")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--name", type=str, help="监控目标名称")
    group.add_argument("--all", action="store_true", help="调和所有目标")
    parser.add_argument(
        "--limit",
        type=int,
        default=settings.ACTIVITY_LIST_LIMIT,
        help="--all 时最多调和的目标数",
    )

    args = parser.parse_args()
    setup_logging()

    if args.all:
        asyncio.run(reconcile_all(args.limit))
    else:
        asyncio.run(reconcile_one(args.name))


if __name__ == "__main__":
    main()
