"""
타임존 유틸리티

DB 드라이버에 따라 timezone 정보가 빠진 datetime이 돌아올 수 있으므로
모든 계산은 UTC aware datetime으로 통일합니다.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """현재 UTC 시간을 반환합니다."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """naive datetime은 UTC로 간주하여 tzinfo를 붙입니다."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def from_unix_seconds(ts: int) -> datetime:
    """블록 타임스탬프(초)를 UTC datetime으로 변환합니다."""
    return datetime.fromtimestamp(int(ts), tz=timezone.utc)
