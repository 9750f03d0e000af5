"""
Push Endpoints
Browser subscription management and broadcast announcements.
"""
import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_async_session
from habitpush.core.auth import get_current_user
from habitpush.core.error_handling import AppException
from habitpush.models import User
from habitpush.schemas.push import (
    PushSubscribeRequest,
    PushSubscriptionCreated,
    VapidPublicKeyResponse,
    AnnounceResponse,
)
from habitpush.services.push_service import PushService, get_push_service
from habitpush.services.notification_dispatcher import announce_new_challenge
from habitpush.services.subscription_service import upsert_subscription, deactivate_user_subscriptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/push", tags=["Push"])


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
async def get_vapid_public_key(push_service: PushService = Depends(get_push_service)):
    """Public key the browser needs for PushManager.subscribe()"""
    return VapidPublicKeyResponse(
        public_key=push_service.get_vapid_public_key() or None,
        enabled=push_service.is_enabled(),
    )


@router.post("/subscribe", response_model=PushSubscriptionCreated, status_code=status.HTTP_201_CREATED)
async def subscribe(
    data: PushSubscribeRequest,
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Register the caller's browser endpoint.
    201 for a new endpoint, 200 when an existing one was updated.
    """
    if not data.endpoint:
        raise AppException("Missing endpoint", status_code=status.HTTP_400_BAD_REQUEST)

    subscription, created = await upsert_subscription(
        db,
        user_id=current_user.id,
        endpoint=data.endpoint,
        p256dh=data.keys.p256dh,
        auth=data.keys.auth,
        encoding=data.content_encoding,
        user_agent=request.headers.get("user-agent"),
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return PushSubscriptionCreated(id=subscription.id)


@router.post("/unsubscribe", status_code=status.HTTP_204_NO_CONTENT)
async def unsubscribe(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    count = await deactivate_user_subscriptions(db, current_user.id)
    logger.info(f"Deactivated {count} push subscription(s) for user {current_user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/announce/challenges/{challenge_id}",
    response_model=AnnounceResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def announce_challenge(
    challenge_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    push_service: PushService = Depends(get_push_service),
):
    """Broadcast a new challenge to users who opted in"""
    queued = await announce_new_challenge(db, challenge_id, push_service)
    return AnnounceResponse(queued=queued)
