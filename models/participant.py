from enum import Enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from models.base_model import BaseModel, Base, utcnow


class ParticipantStatus(str, Enum):
    TENTATIVE = "tentative"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    DECLINED = "declined"


class Participant(BaseModel, Base):
    __tablename__ = "participants"

    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    status = Column(
        SAEnum(ParticipantStatus, name="participant_status", native_enum=False,
               values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ParticipantStatus.TENTATIVE,
    )
    qr_code = Column(String(255), nullable=False, unique=True)
    qr_code_generated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    event = relationship("Event", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("event_id", "email", name="uq_participants_event_email"),
        Index("ix_participants_event_id", "event_id"),
    )

    @property
    def can_check_in(self) -> bool:
        return self.status not in (ParticipantStatus.CANCELLED, ParticipantStatus.DECLINED)
