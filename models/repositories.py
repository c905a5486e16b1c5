"""
SQLAlchemy implementations of the repository ports.

Each repository works on the thread's scoped session from DBStorage and
commits its own writes. IntegrityErrors caused by uniqueness constraints are
translated into DuplicateKeyError; everything else propagates.
"""
from __future__ import annotations

import logging
import secrets
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, undefer

from models.checkin import CheckIn, ACTIVE_CHECKIN_CONSTRAINT
from models.base_model import utcnow
from models.db_storage import DBStorage
from models.errors import DuplicateKeyError
from models.event import Event
from models.participant import Participant, ParticipantStatus
from models.user import User
from services.ports import (
    CheckInRepository,
    EventRepository,
    ParticipantRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

QR_CODE_BYTES = 24


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def is_unique_violation(err: IntegrityError, constraint: Optional[str] = None, columns: Tuple[str, ...] = ()) -> bool:
    """
    True if `err` is a uniqueness violation, optionally of a specific
    constraint. PostgreSQL reports SQLSTATE 23505 and the constraint name;
    SQLite only reports "UNIQUE constraint failed: table.col, ...".
    Both psycopg2 (pgcode) and psycopg 3 (sqlstate) are understood.
    """
    orig = getattr(err, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode is not None:
        if pgcode != "23505":
            return False
        if constraint is None:
            return True
        diag = getattr(orig, "diag", None)
        name = getattr(diag, "constraint_name", None)
        return name == constraint or constraint in str(orig)

    message = str(orig if orig is not None else err).lower()
    if "unique constraint" not in message and "unique violation" not in message:
        return False
    if constraint is None and not columns:
        return True
    if constraint and constraint.lower() in message:
        return True
    return bool(columns) and all(col.lower() in message for col in columns)


class _SQLRepository:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    def _save(self, obj, constraint: Optional[str] = None, columns: Tuple[str, ...] = ()):
        self.storage.new(obj)
        try:
            self.storage.save()
        except IntegrityError as exc:
            if is_unique_violation(exc, constraint, columns):
                raise DuplicateKeyError(
                    f"{obj.__class__.__name__} violates a uniqueness constraint", constraint=constraint
                ) from exc
            raise


class SQLUserRepository(_SQLRepository, UserRepository):
    def _active(self):
        return self.session.query(User).filter(User.deleted_at.is_(None))

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self._active().filter(User.id == user_id).first()

    def find_by_email(self, email: str) -> Optional[User]:
        return self._active().filter(func.lower(User.email) == email.strip().lower()).first()

    def find_by_email_with_password(self, email: str) -> Optional[User]:
        return (
            self._active()
            .options(undefer(User.password_hash))
            .filter(func.lower(User.email) == email.strip().lower())
            .first()
        )

    def exists_by_email(self, email: str) -> bool:
        # Includes soft-deleted rows; their emails are anonymized placeholders.
        stmt = select(User.id).where(func.lower(User.email) == email.strip().lower()).limit(1)
        return self.session.execute(stmt).first() is not None

    def create(self, user: User) -> None:
        user.email = user.email.strip().lower()
        self._save(user, columns=("users.email",))

    def soft_delete(self, user_id: str, deleted_by: Optional[str]) -> bool:
        user = self.find_by_id(user_id)
        if user is None:
            return False
        user.anonymize(deleted_by=deleted_by)
        self.storage.new(user)
        self.storage.save()
        logger.info("user soft-deleted and anonymized: %s (by %s)", user_id, deleted_by)
        return True

    def list_active(self, page: int, limit: int) -> Tuple[List[User], int]:
        query = self._active()
        total = query.count()
        rows = query.order_by(User.created_at.desc(), User.id).offset((page - 1) * limit).limit(limit).all()
        return rows, total


class SQLEventRepository(_SQLRepository, EventRepository):
    def find_by_id(self, event_id: str) -> Optional[Event]:
        return self.storage.get(Event, event_id)

    def create(self, event: Event) -> None:
        self._save(event)

    def update(self, event: Event) -> None:
        self._save(event)

    def delete(self, event: Event) -> None:
        # participants and check-ins go with it (ON DELETE CASCADE)
        self.storage.delete(event)
        self.storage.save()

    def list(
        self, page: int, limit: int, organizer_id: Optional[str] = None, search: Optional[str] = None
    ) -> Tuple[List[Event], int]:
        query = self.session.query(Event)
        if organizer_id is not None:
            query = query.filter(Event.organizer_id == organizer_id)
        if search:
            query = query.filter(Event.name.ilike(f"%{_escape_like(search)}%", escape="\\"))
        total = query.count()
        rows = (
            query.order_by(Event.created_at.desc(), Event.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total


class SQLParticipantRepository(_SQLRepository, ParticipantRepository):
    def find_by_id(self, participant_id: str) -> Optional[Participant]:
        return self.storage.get(Participant, participant_id)

    def find_by_qr_code(self, event_id: str, qr_code: str) -> Optional[Participant]:
        return (
            self.session.query(Participant)
            .filter(Participant.event_id == event_id, Participant.qr_code == qr_code)
            .first()
        )

    def create(self, participant: Participant) -> None:
        if not participant.qr_code:
            participant.qr_code = secrets.token_urlsafe(QR_CODE_BYTES)
        self._save(participant, constraint="uq_participants_event_email",
                     columns=("participants.event_id", "participants.email"))

    def update(self, participant: Participant) -> None:
        self._save(participant, constraint="uq_participants_event_email",
                   columns=("participants.event_id", "participants.email"))

    def delete(self, participant: Participant) -> None:
        # check-ins go with it (ON DELETE CASCADE)
        self.storage.delete(participant)
        self.storage.save()

    def list_by_event(
        self,
        event_id: str,
        page: int,
        limit: int,
        status: Optional[ParticipantStatus] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Participant], int]:
        query = self.session.query(Participant).filter(Participant.event_id == event_id)
        if status is not None:
            query = query.filter(Participant.status == status)
        if search:
            pattern = f"%{_escape_like(search)}%"
            query = query.filter(
                or_(Participant.name.ilike(pattern, escape="\\"), Participant.email.ilike(pattern, escape="\\"))
            )
        total = query.count()
        rows = query.order_by(Participant.created_at, Participant.id).offset((page - 1) * limit).limit(limit).all()
        return rows, total


class SQLCheckInRepository(_SQLRepository, CheckInRepository):
    def create(self, checkin: CheckIn) -> None:
        # No existence pre-check: the partial unique index decides.
        self._save(
            checkin,
            constraint=ACTIVE_CHECKIN_CONSTRAINT,
            columns=("checkins.event_id", "checkins.participant_id"),
        )

    def find_by_id(self, checkin_id: str) -> Optional[CheckIn]:
        return (
            self.session.query(CheckIn)
            .options(joinedload(CheckIn.participant))
            .filter(CheckIn.id == checkin_id)
            .first()
        )

    def find_active_by_participant(self, participant_id: str) -> Optional[CheckIn]:
        return (
            self.session.query(CheckIn)
            .options(joinedload(CheckIn.participant))
            .filter(CheckIn.participant_id == participant_id, CheckIn.cancelled_at.is_(None))
            .first()
        )

    def cancel(self, checkin_id: str, cancelled_by: Optional[str]) -> bool:
        stmt = (
            update(CheckIn)
            .where(CheckIn.id == checkin_id, CheckIn.cancelled_at.is_(None))
            .values(cancelled_at=utcnow(), cancelled_by=cancelled_by)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        self.storage.save()
        return result.rowcount == 1

    def list_by_event(self, event_id: str, page: int, limit: int) -> Tuple[List[CheckIn], int]:
        query = self.session.query(CheckIn).filter(CheckIn.event_id == event_id, CheckIn.cancelled_at.is_(None))
        total = query.count()
        rows = (
            query.options(joinedload(CheckIn.participant))
            .order_by(CheckIn.checked_in_at.desc(), CheckIn.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total

    def stats_for_event(self, event_id: str) -> Dict[str, int]:
        total = self.session.query(func.count(Participant.id)).filter(Participant.event_id == event_id).scalar()
        checked_in = (
            self.session.query(func.count(CheckIn.id))
            .filter(CheckIn.event_id == event_id, CheckIn.cancelled_at.is_(None))
            .scalar()
        )
        return {"total_participants": int(total or 0), "checked_in_count": int(checked_in or 0)}
