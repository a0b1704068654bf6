"""Jikan v4 catalog client.

Jikan 是 MyAnimeList 的只读 HTTP+JSON 封装。响应统一包在 {"data": ...} 中。

错误映射：
- 429 -> CatalogRateLimitedError（不缓存，下次调和重新请求）
- 404 -> AnimeNotFoundError（仅单条目接口）
- 其它非 200 / 网络错误 / 超时 -> CatalogTransportError
- JSON 解析失败或结构不符 -> CatalogDecodeError
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.core.config import settings
from src.modules.monitors.domain.catalog import (
    AnimeData,
    AnimeStatistics,
    TopAnimeFilter,
)
from src.modules.monitors.domain.exceptions import (
    AnimeNotFoundError,
    CatalogDecodeError,
    CatalogRateLimitedError,
    CatalogTransportError,
)

_ANIME_LIST = TypeAdapter(list[AnimeData])


class JikanCatalogClient:
    """AnimeCatalog implementation backed by the Jikan REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.CATALOG_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.CATALOG_TIMEOUT_SEC
        self._transport = transport

    async def get_anime(self, anime_id: int) -> AnimeData:
        data = await self._get_data(f"/anime/{anime_id}/full", not_found_id=anime_id)
        return self._decode(AnimeData.model_validate, data, f"anime {anime_id}")

    async def get_anime_statistics(self, anime_id: int) -> AnimeStatistics:
        data = await self._get_data(f"/anime/{anime_id}/statistics")
        return self._decode(
            AnimeStatistics.model_validate, data, f"anime {anime_id} statistics"
        )

    async def get_top_anime(
        self, filter: TopAnimeFilter = "airing", limit: int = 25
    ) -> list[AnimeData]:
        data = await self._get_data(
            "/top/anime", params={"filter": filter, "limit": limit}
        )
        return self._decode(_ANIME_LIST.validate_python, data, "top anime")

    async def get_season_now(self, limit: int = 10) -> list[AnimeData]:
        data = await self._get_data("/seasons/now", params={"limit": limit})
        return self._decode(_ANIME_LIST.validate_python, data, "current season")

    async def _get_data(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        not_found_id: int | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(
                    url,
                    params=params,
                    headers={
                        "User-Agent": settings.CATALOG_USER_AGENT,
                        "Accept": "application/json",
                    },
                )
        except httpx.TimeoutException as exc:
            logger.warning(f"Catalog request timeout for {path}: {exc}")
            raise CatalogTransportError(f"timeout requesting {path}") from exc
        except httpx.HTTPError as exc:
            logger.warning(f"Catalog request failed for {path}: {exc}")
            raise CatalogTransportError(f"executing request: {exc}") from exc

        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise CatalogRateLimitedError("rate limited by MAL API, retry later")
        if response.status_code == httpx.codes.NOT_FOUND and not_found_id is not None:
            raise AnimeNotFoundError(not_found_id)
        if response.status_code != httpx.codes.OK:
            raise CatalogTransportError(
                f"unexpected status code: {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogDecodeError(f"decoding response: {exc}") from exc

        if not isinstance(payload, dict) or "data" not in payload:
            raise CatalogDecodeError(f"decoding response: missing data field in {path}")
        return payload["data"]

    @staticmethod
    def _decode(validate: Any, data: Any, what: str) -> Any:
        try:
            return validate(data)
        except PydanticValidationError as exc:
            raise CatalogDecodeError(
                f"decoding {what}: {exc.error_count()} invalid field(s)"
            ) from exc
