"""
Participant registration and management for an event.

Every operation is limited to the event's organizer or an admin. A
participant's email is unique within its event; the database constraint
decides, and a clash surfaces as 409 (or as a per-row error in bulk).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from marshmallow import ValidationError as SchemaValidationError

from models.errors import DuplicateKeyError
from models.participant import Participant
from models.schemas.participant import ParticipantCreateSchema
from services.errors import ConflictError, NotFoundError, ValidationError
from services.event_service import load_event_for_actor
from services.ports import EventRepository, ParticipantRepository

logger = logging.getLogger(__name__)

MAX_BULK_ROWS = 1000
DUPLICATE_MESSAGE = "participant already registered for this event"

_row_schema = ParticipantCreateSchema()


@dataclass
class BulkResult:
    participants: List[Participant] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.participants)

    @property
    def failed_count(self) -> int:
        return len(self.errors)


class ParticipantService:
    def __init__(self, participants: ParticipantRepository, events: EventRepository):
        self.participants = participants
        self.events = events

    def _load_for_actor(self, participant_id: str, actor_id: str, is_admin: bool, denied: str) -> Participant:
        participant = self.participants.find_by_id(participant_id)
        if participant is None:
            raise NotFoundError("participant not found")
        load_event_for_actor(self.events, participant.event_id, actor_id, is_admin, denied=denied)
        return participant

    def get(self, participant_id: str, actor_id: str, is_admin: bool) -> Participant:
        return self._load_for_actor(
            participant_id, actor_id, is_admin, "you do not have permission to view this participant"
        )

    def register(self, event_id: str, actor_id: str, is_admin: bool, data: Mapping[str, Any]) -> Participant:
        event = load_event_for_actor(self.events, event_id, actor_id, is_admin)
        participant = Participant(event_id=event.id, **data)
        try:
            self.participants.create(participant)
        except DuplicateKeyError:
            raise ConflictError(DUPLICATE_MESSAGE)
        logger.info("participant %s registered for event %s", participant.id, event.id)
        return participant

    def bulk_register(
        self, event_id: str, actor_id: str, is_admin: bool, rows: Sequence[Mapping[str, Any]]
    ) -> BulkResult:
        """
        Register each row independently. Invalid or duplicate rows are
        reported by index and do not stop the others.
        """
        event = load_event_for_actor(self.events, event_id, actor_id, is_admin)
        if not rows:
            raise ValidationError("Invalid input", detail={"participants": ["at least one participant is required."]})
        if len(rows) > MAX_BULK_ROWS:
            raise ValidationError(
                "Invalid input", detail={"participants": [f"at most {MAX_BULK_ROWS} participants per request."]}
            )

        result = BulkResult()
        for index, row in enumerate(rows):
            email = row.get("email") if isinstance(row, Mapping) else None
            try:
                data = _row_schema.load(row)
            except SchemaValidationError as exc:
                result.errors.append({"index": index, "email": email, "message": _first_message(exc.messages)})
                continue

            participant = Participant(event_id=event.id, **data)
            try:
                self.participants.create(participant)
            except DuplicateKeyError:
                result.errors.append({"index": index, "email": data["email"], "message": DUPLICATE_MESSAGE})
                continue
            result.participants.append(participant)

        logger.info(
            "bulk registration for event %s: %d created, %d failed",
            event.id, result.created_count, result.failed_count,
        )
        return result

    def list_for_event(
        self,
        event_id: str,
        actor_id: str,
        is_admin: bool,
        page: int,
        limit: int,
        status=None,
        search: Optional[str] = None,
    ) -> Tuple[List[Participant], int]:
        load_event_for_actor(
            self.events, event_id, actor_id, is_admin,
            denied="you do not have permission to view participants for this event",
        )
        return self.participants.list_by_event(event_id, page, limit, status=status, search=search)

    def update(self, participant_id: str, actor_id: str, is_admin: bool, changes: Mapping[str, Any]) -> Participant:
        participant = self._load_for_actor(
            participant_id, actor_id, is_admin, "you do not have permission to update this participant"
        )
        for name, value in changes.items():
            setattr(participant, name, value)
        try:
            self.participants.update(participant)
        except DuplicateKeyError:
            raise ConflictError(DUPLICATE_MESSAGE)
        logger.info("participant %s updated by %s", participant.id, actor_id)
        return participant

    def delete(self, participant_id: str, actor_id: str, is_admin: bool) -> None:
        participant = self._load_for_actor(
            participant_id, actor_id, is_admin, "you do not have permission to delete this participant"
        )
        self.participants.delete(participant)
        logger.info("participant %s deleted by %s", participant_id, actor_id)


def _first_message(messages) -> str:
    if isinstance(messages, dict):
        name, errors = next(iter(messages.items()))
        text = errors[0] if isinstance(errors, list) and errors else str(errors)
        return f"{name}: {text}"
    if isinstance(messages, list) and messages:
        return str(messages[0])
    return "invalid row"
