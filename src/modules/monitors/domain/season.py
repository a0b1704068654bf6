"""季度标签。"""

from datetime import datetime

_SEASONS = (
    ((1, 2, 3), "Winter"),
    ((4, 5, 6), "Spring"),
    ((7, 8, 9), "Summer"),
    ((10, 11, 12), "Fall"),
)


def current_season(now: datetime) -> str:
    """按月份返回 "<Season> <year>"，例如 "Fall 2026"。"""
    for months, label in _SEASONS:
        if now.month in months:
            return f"{label} {now.year}"
    raise ValueError(f"invalid month: {now.month}")
