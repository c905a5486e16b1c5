"""
Event management: listing, partial update and hard delete.

Only the event's organizer or an admin may change an event. Deleting takes
its participants and check-ins with it, and is refused while the event is
running.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from models.base_model import as_utc, utcnow
from services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from services.ports import EventRepository

logger = logging.getLogger(__name__)

MANAGE_DENIED = "you do not have permission to manage this event"


def load_event_for_actor(
    events: EventRepository,
    event_id: str,
    actor_id: Optional[str],
    is_admin: bool,
    denied: str = MANAGE_DENIED,
):
    """Return the event if the actor organizes it or is an admin."""
    event = events.find_by_id(event_id)
    if event is None:
        raise NotFoundError("event not found")
    if not is_admin and (actor_id is None or event.organizer_id != actor_id):
        logger.warning("user %s denied access to event %s", actor_id, event_id)
        raise ForbiddenError(denied)
    return event


class EventService:
    def __init__(self, events: EventRepository, clock: Callable[[], datetime] = utcnow):
        self.events = events
        self._clock = clock

    def list(
        self,
        actor_id: str,
        is_admin: bool,
        page: int,
        limit: int,
        search: Optional[str] = None,
        organizer_id: Optional[str] = None,
    ) -> Tuple[List[Any], int]:
        # Organizers only ever see their own events; admins may narrow by organizer.
        owner = organizer_id if is_admin else actor_id
        return self.events.list(page, limit, organizer_id=owner, search=search)

    def update(self, event_id: str, actor_id: str, is_admin: bool, changes: Dict[str, Any]):
        event = load_event_for_actor(
            self.events, event_id, actor_id, is_admin, denied="you do not have permission to update this event"
        )
        if "name" in changes and not changes["name"]:
            raise ValidationError("Invalid input", detail={"name": ["name cannot be empty."]})

        starts = changes.get("starts_at", event.starts_at)
        ends = changes.get("ends_at", event.ends_at)
        if starts is not None and ends is not None and as_utc(ends) < as_utc(starts):
            raise ValidationError("Invalid input", detail={"ends_at": ["ends_at must not be before starts_at."]})

        for field, value in changes.items():
            setattr(event, field, value)
        self.events.update(event)
        logger.info("event %s updated by %s", event.id, actor_id)
        return event

    def delete(self, event_id: str, actor_id: str, is_admin: bool) -> None:
        event = load_event_for_actor(
            self.events, event_id, actor_id, is_admin, denied="you do not have permission to delete this event"
        )
        if event.is_ongoing(self._clock()):
            raise ConflictError("cannot delete an event that is in progress")
        self.events.delete(event)
        logger.info("event %s deleted by %s", event_id, actor_id)

