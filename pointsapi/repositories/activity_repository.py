from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from pointsapi.models.activity import ActivityLog
from pointsapi.repositories.base import BaseRepository
from pointsapi.schemas.activity import ActivityLogEntry


class ActivityRepository(BaseRepository[ActivityLog, ActivityLogEntry]):
    """사용자 활동 로그 (정보성 기록, 포인트와 무관)"""

    def __init__(self, db: Session):
        super().__init__(ActivityLog, ActivityLogEntry, db)

    def log(
        self,
        user_id: int,
        activity_type: str,
        description: str,
        meta: Optional[Dict[str, Any]] = None,
    ) -> ActivityLogEntry:
        """활동 기록 추가 (flush 만 수행, 호출자 트랜잭션에 포함)"""
        return self.create(
            commit=False,
            user_id=user_id,
            activity_type=activity_type,
            description=description,
            meta=meta,
        )

    def list_by_user(self, user_id: int, limit: int = 50) -> List[ActivityLogEntry]:
        entries = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .order_by(desc(self.model_class.created_at), desc(self.model_class.id))
            .limit(limit)
            .all()
        )
        return self._to_schemas(entries)
