# File: src/smartpark/infrastructure/repositories.py
"""
Token audit trail for the SmartPark parking management system

Every successful park is appended to an audit log as a TokenRecord
(token id, slot id, registration). The log is write-only as far as the
parking core is concerned: it is never read back into active state.

Storage Implementations:
- FileTokenAuditLog - one comma-separated line per token (tokens.txt)
- SQLAlchemyTokenAuditLog - a token_audit table in any SQLAlchemy database
- InMemoryTokenAuditLog - for testing and development

AsyncAuditWriter moves appends onto a background worker so a slow or failing
store can never stall or fail a parking operation.
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, Future
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Set, Union
import logging
import threading

from sqlalchemy import create_engine, Column, Integer, String, DateTime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .messaging import EventHandler, EventType, DomainEvent


@dataclass(frozen=True)
class TokenRecord:
    """Audit record written for each issued token"""
    token_id: str
    slot_id: str
    registration: str

    def to_line(self) -> str:
        return f"{self.token_id},{self.slot_id},{self.registration}"

    @classmethod
    def from_line(cls, line: str) -> 'TokenRecord':
        token_id, slot_id, registration = line.rstrip("\n").split(",", 2)
        return cls(token_id, slot_id, registration)


# ============================================================================
# AUDIT LOG INTERFACE
# ============================================================================

class TokenAuditLog(ABC):
    """Append-only store for issued tokens"""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def append(self, record: TokenRecord) -> None:
        """Persist one record; raise on failure"""
        pass

    @abstractmethod
    def records(self) -> List[TokenRecord]:
        """All records in insertion order (inspection and tests only)"""
        pass

    def close(self) -> None:
        pass


class InMemoryTokenAuditLog(TokenAuditLog):
    """In-memory audit log for testing"""

    def __init__(self):
        super().__init__()
        self._records: List[TokenRecord] = []
        self._lock = threading.Lock()

    def append(self, record: TokenRecord) -> None:
        with self._lock:
            self._records.append(record)

    def records(self) -> List[TokenRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class FileTokenAuditLog(TokenAuditLog):
    """Flat-file audit log: one token_id,slot_id,registration line per park"""

    DEFAULT_PATH = "tokens.txt"

    def __init__(self, path: Union[str, Path] = DEFAULT_PATH):
        super().__init__()
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, record: TokenRecord) -> None:
        with self._lock:
            if self.path.parent != Path("."):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(record.to_line() + "\n")
        self.logger.debug(f"Appended token {record.token_id} to {self.path}")

    def records(self) -> List[TokenRecord]:
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as fh:
            return [TokenRecord.from_line(line) for line in fh if line.strip()]


# ============================================================================
# SQLALCHEMY AUDIT LOG
# ============================================================================

Base = declarative_base()


class TokenAuditModel(Base):
    """ORM model for the token_audit table"""
    __tablename__ = "token_audit"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token_id = Column(String(36), nullable=False, unique=True, index=True)
    slot_id = Column(String(64), nullable=False)
    registration = Column(String(32), nullable=False, index=True)
    recorded_at = Column(DateTime, nullable=False, default=datetime.now)


class SQLAlchemyTokenAuditLog(TokenAuditLog):
    """Audit log stored in a relational database through SQLAlchemy"""

    def __init__(self, database_url: str = "sqlite:///smartpark_audit.db", echo: bool = False):
        super().__init__()
        self.database_url = database_url

        engine_kwargs = {"echo": echo}
        if database_url.startswith("sqlite"):
            # writes come from the background audit worker thread
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(database_url, **engine_kwargs)
        Base.metadata.create_all(self.engine)
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def append(self, record: TokenRecord) -> None:
        session = self.session_factory()
        try:
            session.add(TokenAuditModel(
                token_id=record.token_id,
                slot_id=record.slot_id,
                registration=record.registration,
            ))
            session.commit()
            self.logger.debug(f"Stored token {record.token_id} in token_audit")
        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()

    def records(self) -> List[TokenRecord]:
        session = self.session_factory()
        try:
            rows = session.query(TokenAuditModel).order_by(TokenAuditModel.id).all()
            return [TokenRecord(row.token_id, row.slot_id, row.registration) for row in rows]
        finally:
            session.close()

    def close(self) -> None:
        self.engine.dispose()


# ============================================================================
# NON-BLOCKING WRITER
# ============================================================================

class AsyncAuditWriter:
    """
    Fire-and-forget writer in front of a TokenAuditLog

    Appends run on a single background worker, so records keep their order.
    Failures are logged and otherwise ignored.
    """

    def __init__(self, audit_log: TokenAuditLog):
        self.audit_log = audit_log
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="smartpark-audit")
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False
        self.logger = logging.getLogger(self.__class__.__name__)

    def submit(self, record: TokenRecord) -> Optional[Future]:
        with self._lock:
            if self._closed:
                self.logger.warning(f"Audit writer closed; dropping token {record.token_id}")
                return None
            future = self._executor.submit(self.audit_log.append, record)
            self._pending.add(future)
        future.add_done_callback(lambda f, r=record: self._on_done(f, r))
        return future

    def _on_done(self, future: Future, record: TokenRecord) -> None:
        with self._lock:
            self._pending.discard(future)
        error = future.exception()
        if error is not None:
            self.logger.error(f"Failed to write audit record for token {record.token_id}: {error}")

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait until every submitted record has been attempted"""
        with self._lock:
            pending = list(self._pending)
        for future in pending:
            try:
                future.result(timeout=timeout)
            except Exception:
                # already logged by _on_done
                pass

    def close(self) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)
        self.audit_log.close()


class TokenAuditHandler(EventHandler):
    """Writes a TokenRecord for every VEHICLE_PARKED event"""

    def __init__(self, writer: AsyncAuditWriter):
        self.writer = writer

    def can_handle(self, event: DomainEvent) -> bool:
        return event.event_type == EventType.VEHICLE_PARKED

    def handle(self, event: DomainEvent) -> None:
        data = event.data
        self.writer.submit(TokenRecord(
            token_id=data["token_id"],
            slot_id=data["slot_id"],
            registration=data["registration"],
        ))
