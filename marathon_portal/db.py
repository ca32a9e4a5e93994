from __future__ import annotations

import logging
from dataclasses import fields, replace
from datetime import date
from enum import Enum
from typing import Any, Generic, Hashable, Optional, TypeVar

from sqlalchemy import Date, ForeignKey, Integer, String, UniqueConstraint, create_engine, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from .errors import Conflict, Internal
from .models import Marathon, Participation, User
from .storage import Collection, Storage

logger = logging.getLogger(__name__)

R = TypeVar("R")


class Base(DeclarativeBase):
    pass


class MarathonRow(Base):
    __tablename__ = "marathons"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    race_name: Mapped[str] = mapped_column(String(200), nullable=False)
    race_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Active")


class UserRow(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="PARTICIPANT")
    nationality: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sex: Mapped[str | None] = mapped_column(String(10), nullable=True)
    birth_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    passport_no: Mapped[str | None] = mapped_column(String(50), nullable=True, unique=True)
    mobile: Mapped[str | None] = mapped_column(String(50), nullable=True, unique=True)
    current_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    best_record: Mapped[str | None] = mapped_column(String(20), nullable=True)


class ParticipationRow(Base):
    __tablename__ = "participations"
    marathon_id: Mapped[int] = mapped_column(ForeignKey("marathons.id"), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    # pending entries hold -user_id, so this stays unique per marathon
    entry_number: Mapped[int] = mapped_column(Integer, nullable=False)
    hotel: Mapped[str | None] = mapped_column(String(200), nullable=True)
    time_record: Mapped[str | None] = mapped_column(String(8), nullable=True)
    standings: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("marathon_id", "entry_number", name="uq_entry_number_per_marathon"),
    )


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SqlCollection(Collection[R], Generic[R]):
    def __init__(self, storage: "SqlStorage", row_cls: type, record_cls: type):
        self._storage = storage
        self._row_cls = row_cls
        self._record_cls = record_cls
        self._field_names = [f.name for f in fields(record_cls)]

    def _to_record(self, row) -> R:
        return self._record_cls(**{name: getattr(row, name) for name in self._field_names})

    def _session(self) -> Session:
        return self._storage.session()

    def _commit(self, session: Session) -> None:
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise Conflict(f"{self._row_cls.__tablename__}: unique constraint violated") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise Internal(f"{self._row_cls.__tablename__}: storage failure") from e

    def list(self, **filters: Any) -> list[R]:
        stmt = select(self._row_cls).filter_by(
            **{k: _column_value(v) for k, v in filters.items()}
        )
        with self._session() as session:
            return [self._to_record(row) for row in session.execute(stmt).scalars().all()]

    def get(self, key: Hashable) -> Optional[R]:
        with self._session() as session:
            row = session.get(self._row_cls, key)
            return self._to_record(row) if row else None

    def insert(self, record: R) -> R:
        values = {name: _column_value(getattr(record, name)) for name in self._field_names}
        if values.get("id", 0) is None:
            values.pop("id")
        with self._session() as session:
            row = self._row_cls(**values)
            session.add(row)
            self._commit(session)
            session.refresh(row)
            return self._to_record(row)

    def update(self, key: Hashable, **changes: Any) -> Optional[R]:
        with self._session() as session:
            row = session.get(self._row_cls, key)
            if not row:
                return None
            # go through the record so changes get the same coercion as inserts
            record = replace(self._to_record(row), **changes)
            for name in changes:
                setattr(row, name, _column_value(getattr(record, name)))
            self._commit(session)
            session.refresh(row)
            return self._to_record(row)

    def delete(self, key: Hashable) -> bool:
        with self._session() as session:
            row = session.get(self._row_cls, key)
            if not row:
                return False
            session.delete(row)
            self._commit(session)
            return True


class SqlStorage(Storage):
    def __init__(self, db_url: str):
        super().__init__()
        self.db_url = db_url
        self._engine = None
        self._SessionLocal = None
        self.marathons = SqlCollection(self, MarathonRow, Marathon)
        self.users = SqlCollection(self, UserRow, User)
        self.participations = SqlCollection(self, ParticipationRow, Participation)

    def open(self) -> None:
        if self._engine is not None:
            return
        connect_args = {"check_same_thread": False} if self.db_url.startswith("sqlite") else {}
        self._engine = create_engine(self.db_url, future=True, echo=False, connect_args=connect_args)
        self._SessionLocal = sessionmaker(bind=self._engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(bind=self._engine)
        logger.info("SQL store opened at %s", self._engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._SessionLocal = None
        logger.info("SQL store closed")

    def session(self) -> Session:
        if self._SessionLocal is None:
            raise Internal("SQL store is not open")
        return self._SessionLocal()
