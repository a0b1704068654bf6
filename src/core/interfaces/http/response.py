"""Standard API response models."""

from typing import Self

from pydantic import BaseModel, ConfigDict


class ApiResponse[T](BaseModel):
    """Standard API response model."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    code: int = 200
    message: str = "Operation successful"
    data: T | None = None
    meta: dict | None = None

    @classmethod
    def success(
        cls,
        data: T | None = None,
        message: str = "Operation successful",
        code: int = 200,
        meta: dict | None = None,
    ) -> Self:
        return cls(code=code, message=message, data=data, meta=meta)


class PaginatedResponse[T](ApiResponse[list[T]]):
    """Paginated API response model."""

    data: list[T] | None = None
    meta: dict = {"total": 0, "page": 1, "page_size": 10}

    @classmethod
    def create(
        cls,
        items: list[T],
        total: int,
        page: int = 1,
        page_size: int = 10,
    ) -> Self:
        return cls(
            data=items,
            meta={
                "total": total,
                "page": page,
                "page_size": page_size,
                "total_pages": (total + page_size - 1) // page_size,
            },
        )
