"""
Challenge tracking models
Read models for the entities owned by the wider challenge application.
The reminder engine only reads them (user id, challenge name, ownership).
"""
import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Text, Boolean, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database import Base
from habitpush.models.types import UTCDateTime


class ProgressionStatus(str, enum.Enum):
    """Progression status"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(180), nullable=False, unique=True)
    username = Column(String(255), nullable=False, unique=True)
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)

    progressions = relationship("Progression", back_populates="user")
    notification_preference = relationship("NotificationPreference", back_populates="user", uselist=False)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"


class Challenge(Base):
    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    progressions = relationship("Progression", back_populates="challenge")

    def __repr__(self):
        return f"<Challenge(id={self.id}, name={self.name})>"


class Progression(Base):
    """
    A user's attempt at a challenge.
    Reminders hang off progressions, at most one active reminder each.
    """
    __tablename__ = "progressions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        SQLEnum(ProgressionStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        nullable=False,
        default=ProgressionStatus.PENDING,
    )
    started_at = Column(UTCDateTime, nullable=True)

    user = relationship("User", back_populates="progressions")
    challenge = relationship("Challenge", back_populates="progressions")
    reminders = relationship("Reminder", back_populates="progression")

    def __repr__(self):
        return f"<Progression(id={self.id}, user_id={self.user_id}, challenge_id={self.challenge_id})>"


class NotificationPreference(Base):
    """Per-user opt-in for broadcast notifications"""
    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    new_challenge = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="notification_preference")
