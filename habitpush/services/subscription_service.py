"""
Push subscription store
Reads and writes the browser endpoints registered by users.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from habitpush.models import PushSubscription, NotificationPreference, hash_endpoint
from habitpush.models.push_subscription import DEFAULT_CONTENT_ENCODING

logger = logging.getLogger(__name__)


async def get_active_subscriptions(db: AsyncSession, user_id: int) -> List[PushSubscription]:
    """Active subscriptions of one user, oldest first"""
    result = await db.execute(
        select(PushSubscription)
        .where(
            PushSubscription.user_id == user_id,
            PushSubscription.is_active == True,  # noqa: E712
        )
        .order_by(PushSubscription.id)
    )
    return list(result.scalars().all())


async def get_all_active_subscriptions(db: AsyncSession) -> List[PushSubscription]:
    result = await db.execute(
        select(PushSubscription)
        .where(PushSubscription.is_active == True)  # noqa: E712
        .order_by(PushSubscription.id)
    )
    return list(result.scalars().all())


async def get_new_challenge_subscriptions(db: AsyncSession) -> List[PushSubscription]:
    """Active subscriptions whose owner opted in to new challenge announcements"""
    result = await db.execute(
        select(PushSubscription)
        .join(NotificationPreference, NotificationPreference.user_id == PushSubscription.user_id)
        .where(
            PushSubscription.is_active == True,  # noqa: E712
            NotificationPreference.new_challenge == True,  # noqa: E712
        )
        .order_by(PushSubscription.id)
    )
    return list(result.scalars().all())


async def find_subscription(db: AsyncSession, endpoint: str) -> Optional[PushSubscription]:
    result = await db.execute(
        select(PushSubscription).where(PushSubscription.endpoint_hash == hash_endpoint(endpoint))
    )
    return result.scalar_one_or_none()


def _take_over(
    subscription: PushSubscription,
    user_id: int,
    p256dh: str,
    auth: str,
    encoding: Optional[str],
    user_agent: Optional[str],
) -> None:
    subscription.user_id = user_id
    subscription.p256dh = p256dh
    subscription.auth = auth
    subscription.encoding = encoding or DEFAULT_CONTENT_ENCODING
    subscription.is_active = True
    if user_agent:
        subscription.user_agent = user_agent[:500]


async def upsert_subscription(
    db: AsyncSession,
    user_id: int,
    endpoint: str,
    p256dh: str,
    auth: str,
    encoding: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Tuple[PushSubscription, bool]:
    """
    Register an endpoint for a user, keyed by the endpoint hash.
    An existing row is taken over (owner, keys, encoding) and reactivated.
    Returns (subscription, created).
    """
    subscription = await find_subscription(db, endpoint)
    created = subscription is None

    if created:
        subscription = PushSubscription()
        subscription.set_endpoint(endpoint)
        db.add(subscription)

    _take_over(subscription, user_id, p256dh, auth, encoding, user_agent)

    try:
        await db.commit()
    except IntegrityError:
        # Lost the race on uq_push_subscriptions_endpoint_hash
        await db.rollback()
        subscription = await find_subscription(db, endpoint)
        if subscription is None:
            raise
        created = False
        _take_over(subscription, user_id, p256dh, auth, encoding, user_agent)
        await db.commit()

    await db.refresh(subscription)

    logger.info(
        f"Push subscription {subscription.id} {'created' if created else 'updated'} for user {user_id}"
    )
    return subscription, created


async def deactivate_user_subscriptions(db: AsyncSession, user_id: int) -> int:
    """Deactivate every active subscription of a user, returns how many changed"""
    result = await db.execute(
        update(PushSubscription)
        .where(
            PushSubscription.user_id == user_id,
            PushSubscription.is_active == True,  # noqa: E712
        )
        .values(is_active=False, updated_at=datetime.now(timezone.utc))
    )
    await db.commit()
    return result.rowcount or 0
