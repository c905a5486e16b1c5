"""
Capability interfaces the services depend on.

Concrete adapters live in models.repositories (SQLAlchemy) and
models.revocation_store (Redis / in-memory).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple


class RevocationStore(ABC):
    """Key-existence store with per-entry TTL for revoked tokens."""

    @abstractmethod
    def add(self, token: str, ttl: timedelta) -> None:
        """Reject `token` for at least `ttl`. Idempotent."""

    @abstractmethod
    def add_if_absent(self, token: str, ttl: timedelta) -> bool:
        """Like add(), but return False if the token was already revoked."""

    @abstractmethod
    def is_revoked(self, token: str) -> bool:
        ...

    def ping(self) -> None:
        """Raise if the store is unreachable."""


class UserRepository(ABC):
    @abstractmethod
    def find_by_id(self, user_id: str):
        """Active (not soft-deleted) user or None."""

    @abstractmethod
    def find_by_email(self, email: str):
        """Active user without the password hash loaded, or None."""

    @abstractmethod
    def find_by_email_with_password(self, email: str):
        """Active user with the password hash loaded, or None."""

    @abstractmethod
    def exists_by_email(self, email: str) -> bool:
        ...

    @abstractmethod
    def create(self, user) -> None:
        """Persist; raises DuplicateKeyError on an email collision."""

    @abstractmethod
    def soft_delete(self, user_id: str, deleted_by: Optional[str]) -> bool:
        ...

    @abstractmethod
    def list_active(self, page: int, limit: int) -> Tuple[List[Any], int]:
        ...


class EventRepository(ABC):
    @abstractmethod
    def find_by_id(self, event_id: str):
        ...

    @abstractmethod
    def create(self, event) -> None:
        ...

    @abstractmethod
    def update(self, event) -> None:
        ...

    @abstractmethod
    def delete(self, event) -> None:
        """Hard delete; the event's participants and check-ins go with it."""

    @abstractmethod
    def list(
        self, page: int, limit: int, organizer_id: Optional[str] = None, search: Optional[str] = None
    ) -> Tuple[List[Any], int]:
        """One page of events, optionally only those of `organizer_id`, and the total."""


class ParticipantRepository(ABC):
    @abstractmethod
    def find_by_id(self, participant_id: str):
        ...

    @abstractmethod
    def find_by_qr_code(self, event_id: str, qr_code: str):
        """Participant of `event_id` holding `qr_code`, or None."""

    @abstractmethod
    def create(self, participant) -> None:
        ...

    @abstractmethod
    def update(self, participant) -> None:
        """Persist changes; raises DuplicateKeyError if the email is taken in the event."""

    @abstractmethod
    def delete(self, participant) -> None:
        ...

    @abstractmethod
    def list_by_event(
        self, event_id: str, page: int, limit: int, status=None, search: Optional[str] = None
    ) -> Tuple[List[Any], int]:
        ...


class CheckInRepository(ABC):
    @abstractmethod
    def create(self, checkin) -> None:
        """Insert; raises DuplicateKeyError if an active check-in exists."""

    @abstractmethod
    def find_by_id(self, checkin_id: str):
        ...

    @abstractmethod
    def find_active_by_participant(self, participant_id: str):
        ...

    @abstractmethod
    def cancel(self, checkin_id: str, cancelled_by: Optional[str]) -> bool:
        """Mark an active check-in cancelled; False if none was active."""

    @abstractmethod
    def list_by_event(self, event_id: str, page: int, limit: int) -> Tuple[List[Any], int]:
        ...

    @abstractmethod
    def stats_for_event(self, event_id: str) -> Dict[str, int]:
        ...
