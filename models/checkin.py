"""
CheckIn model.

At most one *active* check-in exists per (event, participant). The partial
unique index below is the arbiter for concurrent check-ins; cancelled rows
keep their history and drop out of the index, so a later check-in is a new
row.
"""
from enum import Enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, JSON, text
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from models.base_model import BaseModel, Base, utcnow

ACTIVE_CHECKIN_CONSTRAINT = "uq_checkins_event_participant_active"


class CheckInMethod(str, Enum):
    QRCODE = "qrcode"
    MANUAL = "manual"


class CheckIn(BaseModel, Base):
    __tablename__ = "checkins"

    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(String(36), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    checked_in_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    method = Column(
        SAEnum(CheckInMethod, name="checkin_method", native_enum=False,
               values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CheckInMethod.QRCODE,
    )
    device_info = Column(JSON, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    participant = relationship("Participant")

    __table_args__ = (
        Index(
            ACTIVE_CHECKIN_CONSTRAINT,
            "event_id",
            "participant_id",
            unique=True,
            sqlite_where=text("cancelled_at IS NULL"),
            postgresql_where=text("cancelled_at IS NULL"),
        ),
        Index("ix_checkins_event_id", "event_id"),
        Index("ix_checkins_checked_in_at", "checked_in_at"),
    )

    @property
    def is_active(self) -> bool:
        return self.cancelled_at is None
