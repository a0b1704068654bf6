"""健康检查结果类型。

数据库与 Redis 的健康检查都返回这里定义的模型，由 /health 接口统一汇总。
"""

from enum import StrEnum

from pydantic import BaseModel, Field


class HealthStatus(StrEnum):
    """健康检查状态枚举。"""

    OK = "ok"
    ERROR = "error"
    DEGRADED = "degraded"


class ComponentHealth(BaseModel):
    """单个基础设施组件的健康状态。"""

    status: HealthStatus = Field(..., description="健康状态")
    connected: bool = Field(..., description="是否已连接")
    version: str | None = Field(None, description="服务端版本")
    error: str | None = Field(None, description="错误信息")

    def to_dict(self) -> dict[str, str | bool | None]:
        return self.model_dump(mode="json", exclude_none=False)


def overall_status(database: ComponentHealth, *others: ComponentHealth) -> str:
    """汇总整体状态。

    - healthy: 所有依赖正常
    - degraded: 数据库正常但其他依赖异常（调和会降级为无锁执行）
    - unhealthy: 数据库异常
    """
    if database.status != HealthStatus.OK:
        return "unhealthy"
    if any(c.status != HealthStatus.OK for c in others):
        return "degraded"
    return "healthy"
