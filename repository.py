# repository.py
from __future__ import annotations

import logging
import threading
from typing import List, Optional

from sqlalchemy import Column, JSON, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, Field, Session, create_engine, select

from domain import MonthlyRecord
from exceptions import DeleteFailure, ReadFailure, StorageUnavailable, WriteFailure

logger = logging.getLogger(__name__)


class AttendanceRecordDB(SQLModel, table=True):
    __tablename__ = "attendance"

    month: str = Field(primary_key=True)  # YYYY-MM
    working_days: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    holidays: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    attendance_percentage: int = 0


def build_engine(db_url: str, echo: bool = False):
    is_sqlite = db_url.startswith("sqlite")
    kwargs = {
        "echo": echo,
        "pool_pre_ping": True,
        "future": True,
        "connect_args": {},
    }
    if is_sqlite:
        # Debounced saves run on timer threads
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # Serverless PG (Neon/Supabase): no local pool, bounded connect
        kwargs["poolclass"] = NullPool
        kwargs["connect_args"] = {"connect_timeout": 10}
        if "sslmode=" not in db_url:
            db_url += ("&" if "?" in db_url else "?") + "sslmode=require"
    return create_engine(db_url, **kwargs)


def _to_row(r: MonthlyRecord) -> AttendanceRecordDB:
    return AttendanceRecordDB(
        month=r.month,
        working_days=sorted(r.working_days),
        holidays=sorted(r.holidays),
        attendance_percentage=int(r.attendance_percentage),
    )


def _to_record(row: AttendanceRecordDB) -> MonthlyRecord:
    return MonthlyRecord(
        month=row.month,
        working_days=set(row.working_days or []),
        holidays=set(row.holidays or []),
        attendance_percentage=int(row.attendance_percentage or 0),
    )


class AttendanceRepository:
    """Keyed store of monthly attendance records, one row per 'YYYY-MM'.

    The table is created on first access; an existing table only ever gains
    columns, it is never dropped or recreated.
    """
    def __init__(self, url: str = "sqlite:///attendance.db", echo: bool = False):
        self.url = url
        self.echo = echo
        self.engine = None
        self._ready = False
        self._init_lock = threading.Lock()

    def _ensure_ready(self) -> None:
        if self._ready:
            return
        with self._init_lock:
            if self._ready:
                return
            try:
                if self.engine is None:
                    self.engine = build_engine(self.url, echo=self.echo)
                SQLModel.metadata.create_all(self.engine, tables=[AttendanceRecordDB.__table__])
                self._add_missing_columns()
            except (SQLAlchemyError, ImportError, OSError) as e:
                logger.exception("Could not open attendance store")
                raise StorageUnavailable(f"Could not open attendance store: {e}") from e
            self._ready = True
            logger.debug("Attendance store ready at %s", self.engine.url)

    def _add_missing_columns(self) -> None:
        table = AttendanceRecordDB.__table__
        existing = {c["name"] for c in inspect(self.engine).get_columns(table.name)}
        missing = [c for c in table.columns if c.name not in existing]
        if not missing:
            return
        with self.engine.begin() as conn:
            for col in missing:
                ddl = col.type.compile(dialect=self.engine.dialect)
                conn.execute(text(f"ALTER TABLE {table.name} ADD COLUMN {col.name} {ddl}"))
                logger.info("Added column %s.%s", table.name, col.name)

    def upsert(self, record: MonthlyRecord) -> None:
        self._ensure_ready()
        clean = record.filtered()
        if clean.is_empty:
            self.delete(clean.month)
            return
        try:
            with Session(self.engine) as session:
                session.merge(_to_row(clean))
                session.commit()
        except SQLAlchemyError as e:
            logger.exception("Error saving record for month %s", clean.month)
            raise WriteFailure(f"Could not save {clean.month}: {e}") from e
        logger.info(
            "Saved %s: %d working days, %d holidays, %d%%",
            clean.month, len(clean.working_days), len(clean.holidays), clean.attendance_percentage,
        )

    def get(self, month: str) -> Optional[MonthlyRecord]:
        self._ensure_ready()
        try:
            with Session(self.engine) as session:
                row = session.get(AttendanceRecordDB, month)
                record = _to_record(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.exception("Error reading record for month %s", month)
            raise ReadFailure(f"Could not read {month}: {e}") from e
        logger.debug("Retrieved record for month %s: %s", month, record)
        return record

    def delete(self, month: str) -> None:
        self._ensure_ready()
        try:
            with Session(self.engine) as session:
                row = session.get(AttendanceRecordDB, month)
                if row is not None:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as e:
            logger.exception("Error deleting record for month %s", month)
            raise DeleteFailure(f"Could not delete {month}: {e}") from e
        logger.info("Deleted record for month %s", month)

    def get_all(self) -> List[MonthlyRecord]:
        self._ensure_ready()
        try:
            with Session(self.engine) as session:
                rows = session.exec(select(AttendanceRecordDB)).all()
                records = [_to_record(r) for r in rows]
        except SQLAlchemyError as e:
            logger.exception("Error reading all records")
            raise ReadFailure(f"Could not read attendance records: {e}") from e
        logger.debug("Retrieved %d records", len(records))
        return records

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()


__all__ = ["AttendanceRecordDB", "AttendanceRepository", "build_engine"]
