"""Celery 应用配置。

- 使用 JSON 序列化
- 调和任务走独立队列
- 任务完成后才确认（acks_late），Worker 丢失时任务会重新投递
- Beat 周期性分发到期的调和任务
"""

from celery import Celery
from kombu import Exchange, Queue

from src.core.config import settings
from src.core.infrastructure.celery.queues import TASK_ROUTES, Queues

celery_app = Celery("weebcast")

celery_app.conf.update(
    # Broker & Backend
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    # 序列化配置
    task_serializer=settings.CELERY_TASK_SERIALIZER,
    result_serializer=settings.CELERY_RESULT_SERIALIZER,
    accept_content=settings.CELERY_ACCEPT_CONTENT,
    # 时区配置
    timezone=settings.TIMEZONE,
    enable_utc=True,
    # 任务配置：硬超时需覆盖单次调和超时与锁释放
    task_track_started=True,
    task_time_limit=settings.RECONCILE_LOCK_TTL_SEC,
    task_soft_time_limit=settings.RECONCILE_PASS_TIMEOUT_SEC + 30,
    # 重试配置
    task_default_retry_delay=settings.CELERY_TASK_DEFAULT_RETRY_DELAY,
    task_max_retries=settings.CELERY_TASK_MAX_RETRIES,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # 结果配置
    result_expires=3600,
    # Worker 配置
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.WORKER_RECONCILE_CONCURRENCY,
)

default_exchange = Exchange("default", type="direct")
celery_app.conf.task_queues = (
    Queue(Queues.RECONCILE, default_exchange, routing_key=Queues.RECONCILE),
)

celery_app.conf.task_routes = TASK_ROUTES
celery_app.conf.task_default_queue = Queues.RECONCILE

# 定时任务配置（Celery Beat）
celery_app.conf.beat_schedule = {
    # 调和分发：周期性检查到期的监控目标
    "dispatch-due-reconciles": {
        "task": "src.modules.monitors.tasks.dispatch_due_reconciles",
        "schedule": float(settings.RECONCILE_DISPATCH_INTERVAL_SEC),
        "options": {"queue": Queues.RECONCILE},
        "args": (settings.RECONCILE_DISPATCH_BATCH,),
    },
}

celery_app.autodiscover_tasks(
    ["src.modules.monitors"],
    related_name="tasks",
)
