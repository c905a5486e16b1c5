from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, as_utc


class Event(BaseModel, Base):
    __tablename__ = "events"

    organizer_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)

    participants = relationship(
        "Participant", back_populates="event", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_events_organizer_id", "organizer_id"),
    )

    def is_ongoing(self, now) -> bool:
        """True between starts_at and ends_at; needs both ends of the window."""
        if self.starts_at is None or self.ends_at is None:
            return False
        return as_utc(self.starts_at) <= now <= as_utc(self.ends_at)

