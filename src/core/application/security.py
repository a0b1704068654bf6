"""Application-level security dependencies.

写接口（监控目标的增删改）通过 ``X-API-Key`` 请求头携带管理密钥。
未配置 ADMIN_API_KEY 时视为本地开发模式，不做校验。
"""

import secrets

from fastapi import HTTPException, Request, status

from src.core.config import settings

API_KEY_HEADER = "X-API-Key"


async def require_admin_api_key(request: Request) -> None:
    """Reject the request unless ``X-API-Key`` matches ADMIN_API_KEY."""
    expected = settings.ADMIN_API_KEY
    if not expected:
        return

    provided = request.headers.get(API_KEY_HEADER)
    if not provided:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Authentication required. Provide the {API_KEY_HEADER} header.",
        )
    if not secrets.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
