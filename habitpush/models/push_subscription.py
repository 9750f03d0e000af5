"""
Push Subscription Model
Stores web push notification subscriptions for users
"""
import hashlib
from sqlalchemy import Column, Integer, String, ForeignKey, Text, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database import Base
from habitpush.models.types import UTCDateTime


DEFAULT_CONTENT_ENCODING = "aes128gcm"


def hash_endpoint(endpoint: str) -> str:
    """SHA-256 hex digest of a push endpoint, used as the subscription identity"""
    return hashlib.sha256(endpoint.encode("utf-8")).hexdigest()


class PushSubscription(Base):
    """
    Push Subscription Model
    One row per browser endpoint. Endpoints can be arbitrarily long, so the
    unique key is the endpoint hash rather than the endpoint itself.
    """
    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Push subscription endpoint and keys (from Push API)
    endpoint = Column(Text, nullable=False)
    endpoint_hash = Column(String(64), nullable=False, unique=True)
    p256dh = Column(String(255), nullable=False)  # Public key
    auth = Column(String(255), nullable=False)  # Auth secret
    encoding = Column(String(32), nullable=False, default=DEFAULT_CONTENT_ENCODING)

    # Additional subscription metadata
    user_agent = Column(String(500), nullable=True)

    # Subscription status
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, onupdate=func.now())

    # Relationships
    user = relationship("User", backref="push_subscriptions")

    def set_endpoint(self, endpoint: str) -> None:
        self.endpoint = endpoint
        self.endpoint_hash = hash_endpoint(endpoint)

    def __repr__(self):
        return f"<PushSubscription(id={self.id}, user_id={self.user_id}, endpoint={self.endpoint[:50]}...)>"
