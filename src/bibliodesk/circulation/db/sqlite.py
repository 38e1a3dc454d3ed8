"""SQLite storage for circulation.

Owns the engine and sessions, plus members and the audit log.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generator, Optional

from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from .models import AuditLog, Base, Member
from .schemas import AuditAction, MemberCreate

if TYPE_CHECKING:
    from ..auth import CurrentUser

logger = logging.getLogger(__name__)


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Engine, sessions and shared records of the circulation store."""

    def __init__(self, db_path: Optional[str] = None):
        """Open the store.

        Args:
            db_path: Path to SQLite database file. If None, uses
                     BIBLIODESK_DB_PATH env var or default location.
        """
        if db_path is None:
            db_path = str(get_config().db_path)

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        engine_options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        # One shared connection, or every session would see its own empty database
        if self._is_memory:
            engine_options["poolclass"] = StaticPool
        self.engine = create_engine(f"sqlite:///{db_path}", **engine_options)
        event.listen(self.engine, "connect", _enable_foreign_keys)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Create the parent directory of the database file."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create every table that does not exist yet."""
        # Registers the remaining tables on Base.metadata
        from ..loans.models import Loan  # noqa: F401
        from ..settings.models import Settings  # noqa: F401

        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """Drop every table, data included."""
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session scoped to one unit of work.

        Commits when the block exits normally, rolls back and re-raises
        on any exception, and always closes the session.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.debug("Rolled back session after %s", type(e).__name__)
            raise
        finally:
            session.close()

    # ========================================================================
    # Member Operations
    # ========================================================================

    def create_member(self, member: MemberCreate, session: Optional[Session] = None) -> Member:
        """Create a new member record."""

        def _create(s: Session) -> Member:
            db_member = Member(full_name=member.full_name, email=member.email)
            if member.id:
                db_member.id = member.id
            s.add(db_member)
            s.flush()
            return db_member

        if session:
            return _create(session)
        else:
            with self.get_session() as s:
                db_member = _create(s)
                s.refresh(db_member)
                s.expunge(db_member)
                return db_member

    def get_member(self, member_id: str, session: Optional[Session] = None) -> Optional[Member]:
        """Get a member by ID."""

        def _get(s: Session) -> Optional[Member]:
            return s.get(Member, member_id)

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                db_member = _get(s)
                if db_member:
                    s.expunge(db_member)
                return db_member

    # ========================================================================
    # Audit Log Operations
    # ========================================================================

    def audit(
        self,
        session: Session,
        entity_name: str,
        entity_id: str,
        action: AuditAction,
        current_user: Optional["CurrentUser"] = None,
        values: Optional[dict[str, Any]] = None,
    ) -> AuditLog:
        """Record a write in the audit log, inside the caller's session."""
        entry = AuditLog(
            entity_name=entity_name,
            entity_id=entity_id,
            action=action.value,
            created_by_id=current_user.id if current_user else None,
        )
        entry.set_values(values or {})
        session.add(entry)
        return entry

    def list_audit_logs(
        self,
        entity_name: Optional[str] = None,
        entity_id: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> list[AuditLog]:
        """List audit log entries, oldest first."""

        def _list(s: Session) -> list[AuditLog]:
            stmt = select(AuditLog).order_by(AuditLog.id)
            if entity_name:
                stmt = stmt.where(AuditLog.entity_name == entity_name)
            if entity_id:
                stmt = stmt.where(AuditLog.entity_id == entity_id)
            return list(s.execute(stmt).scalars().all())

        if session:
            return _list(session)
        else:
            with self.get_session() as s:
                entries = _list(s)
                for entry in entries:
                    s.expunge(entry)
                return entries


# Shared instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Shared database, created with its tables on first use."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Forget the shared database so the next get_db opens a fresh one."""
    global _db
    _db = None
