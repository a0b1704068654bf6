"""HTTP exception handlers.

将领域异常转换为标准 HTTP 响应。
各模块的异常类通过定义 http_status_code 和 error_code 类属性来自定义响应。
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from src.core.domain.exceptions import DomainException


def _error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


async def domain_exception_handler(
    _request: Request, exc: DomainException
) -> JSONResponse:
    """Handle domain exceptions.

    通过读取异常类的 http_status_code 和 error_code 类属性来确定响应，
    这样各模块可以定义自己的异常类而不需要修改 core 层代码。
    """
    status_code = getattr(exc, "http_status_code", 400)
    error_code = getattr(exc, "error_code", "DOMAIN_ERROR")
    if status_code >= 500:
        logger.warning(f"Domain error surfaced as {status_code}: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content=_error_body(error_code, exc.message),
    )


async def global_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("INTERNAL_ERROR", "An internal error occurred"),
    )
