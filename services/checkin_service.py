"""
Check-in coordinator.

Exactly one active check-in per (event, participant). The arbitration is the
storage layer's partial unique index; this service never selects before
inserting, it maps the duplicate-key signal onto a 409.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from models.checkin import CheckIn, CheckInMethod
from models.errors import DuplicateKeyError
from models.participant import ParticipantStatus
from services.errors import BadRequestError, ConflictError, NotFoundError, ValidationError
from services.event_service import load_event_for_actor
from services.ports import CheckInRepository, EventRepository, ParticipantRepository

logger = logging.getLogger(__name__)

@dataclass
class CheckInStatus:
    participant_id: str
    event_id: str
    checked_in: bool
    checkin: Optional[CheckIn] = None


class CheckInService:
    def __init__(self, checkins: CheckInRepository, participants: ParticipantRepository, events: EventRepository):
        self.checkins = checkins
        self.participants = participants
        self.events = events

    # -- authorization ---------------------------------------------------------

    def load_event_for_actor(self, event_id: str, actor_id: Optional[str], is_admin: bool):
        """Return the event if the actor organizes it or is an admin."""
        return load_event_for_actor(self.events, event_id, actor_id, is_admin)

    # -- operations ------------------------------------------------------------

    def check_in(
        self,
        event_id: str,
        actor_id: str,
        is_admin: bool,
        method,
        qr_code: Optional[str] = None,
        participant_id: Optional[str] = None,
        device_info: Optional[Dict[str, Any]] = None,
    ) -> CheckIn:
        event = self.load_event_for_actor(event_id, actor_id, is_admin)

        try:
            method = CheckInMethod(method)
        except ValueError:
            raise ValidationError("Invalid input", detail={"method": ["Must be one of: qrcode, manual."]})

        if method is CheckInMethod.QRCODE:
            if not qr_code:
                raise ValidationError("Invalid input", detail={"qr_code": ["qr_code is required for qrcode check-in."]})
            participant = self.participants.find_by_qr_code(event.id, qr_code)
        else:
            if not participant_id:
                raise ValidationError(
                    "Invalid input", detail={"participant_id": ["participant_id is required for manual check-in."]}
                )
            participant = self.participants.find_by_id(participant_id)
            if participant is not None and participant.event_id != event.id:
                participant = None
        if participant is None:
            raise NotFoundError("participant not found")

        if not participant.can_check_in:
            raise BadRequestError(f"participant status is {ParticipantStatus(participant.status).value}")

        checkin = CheckIn(
            event_id=event.id,
            participant_id=participant.id,
            method=method,
            checked_in_by=actor_id if method is CheckInMethod.MANUAL else None,
            device_info=device_info,
        )
        checkin.participant = participant
        try:
            self.checkins.create(checkin)
        except DuplicateKeyError:
            logger.info("duplicate check-in rejected: participant %s event %s", participant.id, event.id)
            raise ConflictError("participant has already checked in")

        logger.info("participant %s checked in to event %s via %s", participant.id, event.id, method.value)
        return checkin

    def cancel(self, checkin_id: str, actor_id: str, is_admin: bool) -> None:
        checkin = self.checkins.find_by_id(checkin_id)
        if checkin is None or not checkin.is_active:
            raise NotFoundError("check-in not found")
        self.load_event_for_actor(checkin.event_id, actor_id, is_admin)

        # Conditional update; a concurrent cancel of the same row loses here.
        if not self.checkins.cancel(checkin_id, actor_id):
            raise NotFoundError("check-in not found")
        logger.info("check-in %s cancelled by %s", checkin_id, actor_id)

    def get_status(self, participant_id: str, actor_id: Optional[str] = None, is_admin: bool = False) -> CheckInStatus:
        participant = self.participants.find_by_id(participant_id)
        if participant is None:
            raise NotFoundError("participant not found")
        if actor_id is not None or is_admin:
            self.load_event_for_actor(participant.event_id, actor_id, is_admin)

        checkin = self.checkins.find_active_by_participant(participant.id)
        return CheckInStatus(
            participant_id=participant.id,
            event_id=participant.event_id,
            checked_in=checkin is not None,
            checkin=checkin,
        )

    def list_for_event(
        self, event_id: str, actor_id: str, is_admin: bool, page: int = 1, limit: int = 20
    ) -> Tuple[List[CheckIn], int]:
        self.load_event_for_actor(event_id, actor_id, is_admin)
        return self.checkins.list_by_event(event_id, page, limit)

    def stats(self, event_id: str, actor_id: str, is_admin: bool) -> Dict[str, Any]:
        self.load_event_for_actor(event_id, actor_id, is_admin)
        counts = self.checkins.stats_for_event(event_id)
        total = counts["total_participants"]
        checked_in = counts["checked_in_count"]
        rate = round(checked_in * 100.0 / total, 2) if total else 0.0
        return {
            "event_id": event_id,
            "total_participants": total,
            "checked_in_count": checked_in,
            "not_checked_in_count": total - checked_in,
            "checkin_rate": rate,
        }
