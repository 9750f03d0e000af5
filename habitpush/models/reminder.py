"""
Reminder Model
A scheduled push notification attached to one progression
"""
import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, Index, Enum as SQLEnum, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database import Base
from habitpush.models.types import UTCDateTime


class Recurrence(str, enum.Enum):
    """Recurrence rule applied when a reminder fires"""
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


class Reminder(Base):
    """
    Reminder Model

    scheduled_at_utc is the next fire instant. timezone is only used to
    compute the following occurrence in local time (DST-safe).
    """
    __tablename__ = "reminders"
    __table_args__ = (
        # At most one active reminder per progression
        Index(
            "uq_reminders_active_progression",
            "progression_id",
            unique=True,
            postgresql_where=text("is_active = true"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("ix_reminders_due", "is_active", "scheduled_at_utc"),
    )

    id = Column(Integer, primary_key=True, index=True)
    progression_id = Column(Integer, ForeignKey("progressions.id", ondelete="CASCADE"), nullable=False, index=True)

    scheduled_at_utc = Column(UTCDateTime, nullable=False)
    # Stored by name; unknown values raise when the row is loaded
    recurrence = Column(
        SQLEnum(Recurrence, native_enum=False, length=16, validate_strings=True),
        nullable=False,
        default=Recurrence.NONE,
    )
    timezone = Column(String(64), nullable=True)  # IANA zone, ex: Europe/Paris
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, onupdate=func.now())

    # Relationships
    progression = relationship("Progression", back_populates="reminders")

    def __repr__(self):
        return (
            f"<Reminder(id={self.id}, progression_id={self.progression_id}, "
            f"scheduled_at_utc={self.scheduled_at_utc}, recurrence={self.recurrence})>"
        )
