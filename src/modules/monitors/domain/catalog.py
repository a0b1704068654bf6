"""Anime catalog domain models and ports.

上游目录（Jikan v4 对 MyAnimeList 的只读封装）返回的字段经常为 null，
这里统一把数值型的 null 归一为 0，避免在评分时到处判空。
"""

from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

TopAnimeFilter = Literal["airing", "upcoming", "bypopularity", "favorite"]


class _CatalogModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is not None:
            return value
        field = cls.model_fields[info.field_name]
        if field.is_required():
            return value
        return field.get_default(call_default_factory=True)


class ImageSet(_CatalogModel):
    image_url: str = ""
    small_image_url: str = ""
    large_image_url: str = ""


class AnimeImages(_CatalogModel):
    jpg: ImageSet = Field(default_factory=ImageSet)


class AnimeData(_CatalogModel):
    """单个条目的详细信息。"""

    mal_id: int
    url: str = ""
    title: str = ""
    title_english: str = ""
    images: AnimeImages = Field(default_factory=AnimeImages)
    score: float = 0.0
    scored_by: int = 0
    rank: int = 0
    popularity: int = 0
    members: int = 0
    favorites: int = 0
    status: str = ""
    airing: bool = False

    @property
    def image_url(self) -> str:
        return self.images.jpg.image_url


class AnimeStatistics(_CatalogModel):
    """观看状态统计。"""

    watching: int = 0
    completed: int = 0
    on_hold: int = 0
    dropped: int = 0
    plan_to_watch: int = 0
    total: int = 0


class AnimeCatalog(Protocol):
    """Port for reading the public anime catalog.

    所有方法失败时抛出 CatalogError 的子类；429 不做缓存，下一次调用会重新请求。
    """

    async def get_anime(self, anime_id: int) -> AnimeData: ...

    async def get_anime_statistics(self, anime_id: int) -> AnimeStatistics: ...

    async def get_top_anime(
        self, filter: TopAnimeFilter = "airing", limit: int = 25
    ) -> list[AnimeData]: ...

    async def get_season_now(self, limit: int = 10) -> list[AnimeData]: ...
