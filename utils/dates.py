from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def current_academic_year(today: Optional[date] = None) -> str:
    """
    Academic year label for the given day
    - July~December -> "2024/2025" for 2024
    - January~June  -> "2023/2024" for 2024
    """
    today = today or date.today()
    if today.month >= 7:
        return f"{today.year}/{today.year + 1}"
    return f"{today.year - 1}/{today.year}"


def duration_in_months(start: Optional[date], end: Optional[date]) -> int:
    """Calendar month difference between two dates, never negative."""
    if not start or not end:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    return max(0, months)
