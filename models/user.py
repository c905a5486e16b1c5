from enum import Enum

from sqlalchemy import Column, String, Boolean, ForeignKey
from sqlalchemy.orm import deferred
from sqlalchemy.types import Enum as SAEnum

from models.base_model import Base, BaseModel, SoftDeleteMixin

ANONYMIZED_EMAIL_DOMAIN = "anonymized.local"
ANONYMIZED_NAME = "Deleted User"


class UserRole(str, Enum):
    ADMIN = "admin"
    ORGANIZER = "organizer"
    STAFF = "staff"


class User(SoftDeleteMixin, BaseModel, Base):
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    # Only loaded by the credential lookup (undefer); never serialised.
    password_hash = deferred(Column(String(255), nullable=False))
    name = Column(String(255), nullable=False)
    role = Column(SAEnum(UserRole, name="user_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
                  nullable=False, default=UserRole.ORGANIZER)
    deleted_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_anonymized = Column(Boolean, nullable=False, default=False)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def anonymize(self, deleted_by: str | None = None):
        """Soft delete and overwrite PII with per-principal placeholders."""
        self.soft_delete()
        self.deleted_by = deleted_by
        self.email = anonymized_email(self.id)
        self.name = ANONYMIZED_NAME
        self.is_anonymized = True


def anonymized_email(user_id: str) -> str:
    return f"deleted_{user_id}@{ANONYMIZED_EMAIL_DOMAIN}"
