import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from pointsapi.database.connection import SessionLocal

logger = logging.getLogger(__name__)


def _discard_uncommitted(db: Session, origin: str) -> None:
    # 서비스가 commit 하지 않은 원장 쓰기는 요청 종료 시 버린다
    if db.new or db.dirty or db.deleted:
        logger.warning(f"{origin}: discarding uncommitted ledger changes")
        db.rollback()


def get_db() -> Iterator[Session]:
    """요청 단위 세션. commit 은 각 서비스의 작업 단위에서 수행한다."""
    db = SessionLocal()
    try:
        yield db
    finally:
        _discard_uncommitted(db, "request")
        db.close()


@contextmanager
def get_db_context(commit: bool = True) -> Iterator[Session]:
    """배치 스크립트용 세션. 정상 종료 시 commit, 예외 시 rollback 후 재전파"""
    db = SessionLocal()
    try:
        yield db
        if commit:
            db.commit()
    except Exception:
        logger.exception("batch session failed, rolling back")
        db.rollback()
        raise
    finally:
        _discard_uncommitted(db, "batch")
        db.close()
