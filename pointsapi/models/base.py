from sqlalchemy import BigInteger, Column, DateTime, Integer, MetaData, func
from sqlalchemy.orm import declarative_base, declared_attr

# 멱등 키/tx_hash 유니크 제약 이름을 방언과 무관하게 고정
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))

# SQLite only autoincrements "INTEGER PRIMARY KEY"
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


class LedgerTimestampMixin:
    """원장 행 생성/갱신 시각 (DB 서버 시계 기준)"""

    @declared_attr
    def created_at(cls):
        return Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @declared_attr
    def updated_at(cls):
        return Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class BaseModel(Base, LedgerTimestampMixin):
    __abstract__ = True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={getattr(self, 'id', None)}>"
