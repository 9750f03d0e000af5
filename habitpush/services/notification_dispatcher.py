"""
Notification Dispatcher Service
Broadcast notifications that are not tied to a reminder, restricted to the
users whose notification preferences opt in.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from habitpush.core.error_handling import NotFoundException
from habitpush.models import Challenge
from habitpush.services.push_service import PushService
from habitpush.services.subscription_service import get_new_challenge_subscriptions

logger = logging.getLogger(__name__)


def build_new_challenge_payload(challenge: Challenge, frontend_base_url: Optional[str] = None) -> Dict[str, Any]:
    base_url = (settings.FRONTEND_BASE_URL if frontend_base_url is None else frontend_base_url).rstrip("/")
    return {
        "title": "New challenge available",
        "body": challenge.name,
        "data": {"url": f"{base_url}/challenges/", "challengeId": challenge.id},
    }


async def announce_new_challenge(db: AsyncSession, challenge_id: int, push_service: PushService) -> int:
    """
    Tell every opted-in user about a new challenge.
    Fire-and-forget through PushService.send, returns how many were queued.
    """
    challenge = await db.get(Challenge, challenge_id)
    if challenge is None:
        raise NotFoundException("Challenge not found")

    subscriptions = await get_new_challenge_subscriptions(db)
    if not subscriptions:
        logger.info(f"No opted-in subscriptions for challenge {challenge_id} announcement")
        return 0

    queued = await push_service.send(subscriptions, build_new_challenge_payload(challenge))
    logger.info(f"Challenge {challenge_id} announced to {queued} subscription(s)")
    return queued
