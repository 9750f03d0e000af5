"""
Push Notification Service
Delivers Web Push notifications and retires subscriptions the push service
reports as gone.
"""
import asyncio
import base64
import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from pywebpush import webpush, WebPushException
from sqlalchemy import update

from config import settings
from database import AsyncSessionLocal
from habitpush.core.error_handling import DeliveryError, log_error
from habitpush.models.push_subscription import PushSubscription, DEFAULT_CONTENT_ENCODING

logger = logging.getLogger(__name__)

# Push service answers meaning the endpoint will never accept messages again
EXPIRED_STATUSES = (404, 410)

DISABLED_REASON = "Push service disabled"


@dataclass
class DeliveryReport:
    """Outcome of one delivery attempt to one subscription"""
    endpoint: str
    success: bool
    status: Optional[int] = None
    reason: Optional[str] = None
    expired: bool = False
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def decode_private_key(private_key: str) -> str:
    """
    Keys produced by generate_vapid_keys.py are base64url-encoded PEM text.
    pywebpush accepts PEM directly, as well as raw base64url keys, so anything
    that does not decode to PEM is passed through unchanged.
    """
    if not private_key or private_key.startswith("-----BEGIN"):
        return private_key
    try:
        padded = private_key + "=" * (-len(private_key) % 4)
        decoded = base64.urlsafe_b64decode(padded).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return private_key
    return decoded if decoded.startswith("-----BEGIN") else private_key


class PushService:
    """Service for sending web push notifications"""

    def __init__(
        self,
        vapid_public_key: Optional[str] = None,
        vapid_private_key: Optional[str] = None,
        vapid_email: Optional[str] = None,
        sender: Optional[Callable[..., Any]] = None,
        session_factory=None,
        ttl: Optional[int] = None,
    ):
        self.vapid_public_key = settings.VAPID_PUBLIC_KEY if vapid_public_key is None else vapid_public_key
        self.vapid_private_key = decode_private_key(
            settings.VAPID_PRIVATE_KEY if vapid_private_key is None else vapid_private_key
        )
        self.vapid_email = vapid_email or settings.VAPID_EMAIL
        self.sender = sender or webpush
        self.session_factory = session_factory or AsyncSessionLocal
        self.ttl = settings.PUSH_TTL_SECONDS if ttl is None else ttl

        self.enabled = bool(self.vapid_public_key and self.vapid_private_key)

        if not self.enabled:
            logger.warning("Push notification service is disabled. VAPID keys not configured.")

    def is_enabled(self) -> bool:
        """Check if push service is enabled"""
        return self.enabled

    def get_vapid_public_key(self) -> str:
        """Get VAPID public key for frontend subscription"""
        return self.vapid_public_key

    def _post(self, subscription: PushSubscription, data: str) -> Optional[int]:
        """
        Blocking transport call, run in a worker thread.
        Raises DeliveryError carrying the push service status.
        """
        subscription_info = {
            "endpoint": subscription.endpoint,
            "keys": {
                "p256dh": subscription.p256dh,
                "auth": subscription.auth,
            },
        }
        try:
            response = self.sender(
                subscription_info=subscription_info,
                data=data,
                vapid_private_key=self.vapid_private_key,
                # pywebpush adds aud/exp to the claims dict, so never share it
                vapid_claims={"sub": self.vapid_email},
                content_encoding=subscription.encoding or DEFAULT_CONTENT_ENCODING,
                ttl=self.ttl,
            )
        except WebPushException as e:
            # requests.Response is falsy for error statuses, compare with None
            status = e.response.status_code if e.response is not None else None
            raise DeliveryError(str(e), status=status, expired=status in EXPIRED_STATUSES) from e
        return getattr(response, "status_code", None)

    async def _deactivate(self, subscription: PushSubscription) -> None:
        """Mark an expired subscription inactive and commit right away"""
        subscription.is_active = False
        async with self.session_factory() as session:
            await session.execute(
                update(PushSubscription)
                .where(PushSubscription.id == subscription.id)
                .values(is_active=False, updated_at=datetime.now(timezone.utc))
            )
            await session.commit()
        logger.info(f"Push subscription {subscription.id} expired, deactivated")

    async def deliver(self, subscription: PushSubscription, payload: Dict[str, Any]) -> DeliveryReport:
        """
        Deliver one payload to one subscription.
        Never raises: every failure is turned into a report.
        """
        endpoint = subscription.endpoint
        if not self.enabled:
            return DeliveryReport(endpoint=endpoint, success=False, reason=DISABLED_REASON)

        try:
            status = await asyncio.to_thread(self._post, subscription, json.dumps(payload))
        except DeliveryError as e:
            logger.warning(f"Push failed for subscription {subscription.id} (status={e.status}): {e.message}")
            report = DeliveryReport(
                endpoint=endpoint,
                success=False,
                status=e.status,
                reason=e.message,
                expired=e.expired,
            )
            if e.expired:
                try:
                    await self._deactivate(subscription)
                except Exception as db_error:
                    log_error(db_error, context={"subscription_id": subscription.id})
            return report
        except Exception as e:
            logger.error(f"Push exception for subscription {subscription.id}: {str(e)}")
            return DeliveryReport(
                endpoint=endpoint,
                success=False,
                reason=str(e),
                exception=type(e).__name__,
            )

        return DeliveryReport(endpoint=endpoint, success=True, status=status)

    async def send_with_report(
        self,
        subscriptions: Iterable[PushSubscription],
        payload: Dict[str, Any],
    ) -> List[DeliveryReport]:
        """One request per subscription, in order, reporting each"""
        reports = []
        for subscription in subscriptions:
            reports.append(await self.deliver(subscription, payload))
        return reports

    async def send(self, subscriptions: Iterable[PushSubscription], payload: Dict[str, Any]) -> int:
        """
        Fire-and-forget broadcast: queue every subscription and flush them
        concurrently. Returns how many were queued.
        """
        queued = [self.deliver(subscription, payload) for subscription in subscriptions]
        if not queued:
            return 0

        results = await asyncio.gather(*queued, return_exceptions=True)
        failed = sum(1 for r in results if isinstance(r, Exception) or not r.success)
        if failed:
            logger.info(f"Broadcast flushed {len(queued)} notification(s), {failed} failed")
        return len(queued)


# Global push service instance
push_service = PushService()


def get_push_service() -> PushService:
    """FastAPI dependency for the shared push service"""
    return push_service
