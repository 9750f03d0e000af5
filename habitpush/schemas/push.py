"""
Push Subscription Schemas
Mirrors the PushSubscription JSON produced by the browser Push API.
"""
from typing import Optional
from pydantic import BaseModel, Field

from habitpush.schemas.base import CamelModel


class SubscriptionKeys(BaseModel):
    p256dh: str = ""
    auth: str = ""

class PushSubscribeRequest(CamelModel):
    """
    Subscription sent by the service worker.
    endpoint is optional here so a missing one is answered with a plain 400.
    """
    endpoint: Optional[str] = None
    keys: SubscriptionKeys = Field(default_factory=SubscriptionKeys)
    content_encoding: Optional[str] = Field(None, max_length=32)

class PushSubscriptionCreated(CamelModel):
    id: int

class VapidPublicKeyResponse(CamelModel):
    public_key: Optional[str] = None
    enabled: bool

class AnnounceResponse(CamelModel):
    queued: int
