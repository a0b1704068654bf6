"""Monitor API routes."""

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from src.core.application.security import require_admin_api_key
from src.core.config import settings
from src.core.interfaces.http.response import ApiResponse, PaginatedResponse
from src.modules.monitors.application.commands import (
    CreateMonitorCommand,
    DeleteMonitorCommand,
    UpdateMonitorCommand,
)
from src.modules.monitors.application.dependencies import (
    get_activity_query_service,
    get_create_monitor_handler,
    get_delete_monitor_handler,
    get_monitor_query_service,
    get_update_monitor_handler,
)
from src.modules.monitors.application.handlers import (
    CreateMonitorHandler,
    DeleteMonitorHandler,
    UpdateMonitorHandler,
)
from src.modules.monitors.application.models import MonitorData
from src.modules.monitors.application.services import (
    ActivityQueryService,
    MonitorQueryService,
)
from src.modules.monitors.interfaces.schemas import (
    CreateMonitorRequest,
    MonitorResponse,
    UpdateMonitorRequest,
)

router = APIRouter(prefix="/monitors", tags=["monitors"])

# 只读活跃度视图，返回结构与 KV 文档一致，不包裹 ApiResponse
activity_router = APIRouter(tags=["activity"])


def _to_monitor_response(monitor: MonitorData) -> MonitorResponse:
    return MonitorResponse(
        id=monitor.id,
        name=monitor.name,
        mode=monitor.mode,
        anime_id=monitor.anime_id,
        anime_name=monitor.anime_name,
        polling_interval_sec=monitor.polling_interval_sec,
        high_activity_threshold=monitor.high_activity_threshold,
        medium_activity_threshold=monitor.medium_activity_threshold,
        notify_on_high_activity=monitor.notify_on_high_activity,
        webhook_url=monitor.webhook_url,
        status=monitor.status,
        resource_version=monitor.resource_version,
        next_reconcile_at=monitor.next_reconcile_at,
        created_at=monitor.created_at,
        updated_at=monitor.updated_at,
    )


@router.get(
    "",
    response_model=PaginatedResponse[MonitorResponse],
    summary="获取监控目标列表",
)
async def list_monitors(
    page: int = Query(settings.DEFAULT_PAGE, ge=1, description="页码"),
    page_size: int = Query(
        settings.MONITORS_PAGE_SIZE, ge=1, le=100, description="每页数量"
    ),
    service: MonitorQueryService = Depends(get_monitor_query_service),
) -> PaginatedResponse[MonitorResponse]:
    """List monitor targets."""
    result = await service.list_monitors(page=page, page_size=page_size)
    return PaginatedResponse.create(
        items=[_to_monitor_response(item) for item in result.items],
        total=result.total,
        page=page,
        page_size=page_size,
    )


@router.post(
    "",
    response_model=ApiResponse[MonitorResponse],
    status_code=status.HTTP_201_CREATED,
    summary="创建监控目标",
    description="创建后立即投递一次调和",
    dependencies=[Depends(require_admin_api_key)],
)
async def create_monitor(
    request: CreateMonitorRequest,
    handler: CreateMonitorHandler = Depends(get_create_monitor_handler),
) -> ApiResponse[MonitorResponse]:
    """Create a monitor target."""
    command = CreateMonitorCommand(
        name=request.name,
        anime_id=request.anime_id,
        anime_name=request.anime_name,
        polling_interval_sec=request.polling_interval_sec,
        high_activity_threshold=request.high_activity_threshold,
        medium_activity_threshold=request.medium_activity_threshold,
        notify_on_high_activity=request.notify_on_high_activity,
        webhook_url=request.webhook_url,
    )
    monitor = await handler.handle(command)

    return ApiResponse.success(
        data=_to_monitor_response(MonitorQueryService.build_monitor_data(monitor)),
        message="Monitor created successfully",
    )


@router.get(
    "/{name}",
    response_model=ApiResponse[MonitorResponse],
    summary="获取监控目标详情",
)
async def get_monitor(
    name: str,
    service: MonitorQueryService = Depends(get_monitor_query_service),
) -> ApiResponse[MonitorResponse]:
    """Get monitor target by name."""
    monitor = await service.get_monitor(name)
    return ApiResponse.success(data=_to_monitor_response(monitor))


@router.put(
    "/{name}",
    response_model=ApiResponse[MonitorResponse],
    summary="更新监控目标",
    description="更新配置后立即投递一次调和",
    dependencies=[Depends(require_admin_api_key)],
)
async def update_monitor(
    name: str,
    request: UpdateMonitorRequest,
    handler: UpdateMonitorHandler = Depends(get_update_monitor_handler),
) -> ApiResponse[MonitorResponse]:
    """Update a monitor target."""
    command = UpdateMonitorCommand(
        name=name,
        anime_id=request.anime_id,
        clear_anime_id=request.clear_anime_id,
        anime_name=request.anime_name,
        polling_interval_sec=request.polling_interval_sec,
        high_activity_threshold=request.high_activity_threshold,
        medium_activity_threshold=request.medium_activity_threshold,
        notify_on_high_activity=request.notify_on_high_activity,
        webhook_url=request.webhook_url,
    )
    monitor = await handler.handle(command)

    return ApiResponse.success(
        data=_to_monitor_response(MonitorQueryService.build_monitor_data(monitor)),
        message="Monitor updated successfully",
    )


@router.delete(
    "/{name}",
    response_model=ApiResponse[dict[str, bool]],
    summary="删除监控目标",
    description="删除目标，同时丢弃其观测状态",
    dependencies=[Depends(require_admin_api_key)],
)
async def delete_monitor(
    name: str,
    handler: DeleteMonitorHandler = Depends(get_delete_monitor_handler),
) -> ApiResponse[dict[str, bool]]:
    """Delete a monitor target."""
    await handler.handle(DeleteMonitorCommand(name=name))
    return ApiResponse.success(
        data={"deleted": True},
        message="Monitor deleted successfully",
    )


# ============================================
# 活跃度视图
# ============================================


@activity_router.get("/activity", summary="整体活跃度")
async def get_overall_activity(
    service: ActivityQueryService = Depends(get_activity_query_service),
) -> dict[str, Any]:
    return await service.get_overall()


@activity_router.get("/activity/all", summary="所有目标的活跃度")
async def list_all_activity(
    service: ActivityQueryService = Depends(get_activity_query_service),
) -> dict[str, Any]:
    return await service.list_all(limit=settings.ACTIVITY_LIST_LIMIT)


@activity_router.get("/anime/{anime_id}", summary="单个条目的活跃度")
async def get_anime_activity(
    anime_id: int,
    service: ActivityQueryService = Depends(get_activity_query_service),
) -> dict[str, Any]:
    return await service.get_anime(anime_id)


@activity_router.get("/trending", summary="热播条目")
async def get_trending(
    service: ActivityQueryService = Depends(get_activity_query_service),
) -> dict[str, Any]:
    return await service.get_trending()


@activity_router.get("/seasonal", summary="当季条目")
async def get_seasonal(
    service: ActivityQueryService = Depends(get_activity_query_service),
) -> dict[str, Any]:
    return await service.get_seasonal()
