from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from zenpanel.config import settings
from zenpanel.database import get_db
from zenpanel.models.user import User
from zenpanel.schemas.user import UserLinksResponse
from zenpanel.services.user_service import get_user_by_uuid, share_inbounds
from zenpanel.utils.auth import subscription_key_valid
from zenpanel.utils.links import all_share_urls, subscription, subscription_url, subscription_userinfo

router = APIRouter(prefix="/api/sub", tags=["public"])


def subscription_response(user: User, inbounds) -> PlainTextResponse:
    return PlainTextResponse(
        subscription(user, inbounds),
        headers={
            "Profile-Update-Interval": str(settings.subscription_update_interval),
            "Subscription-Userinfo": subscription_userinfo(user),
        },
    )


def _subscriber(db: Session, user_uuid: str, key: Optional[str]) -> User:
    if not subscription_key_valid(key):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid subscription key")
    user = get_user_by_uuid(db, user_uuid)
    if not user or not user.enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return user


@router.get("/{user_uuid}", response_model=UserLinksResponse)
def share_links(
    user_uuid: str,
    key: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    user = _subscriber(db, user_uuid, key)
    return UserLinksResponse(
        name=user.name,
        links=all_share_urls(user, share_inbounds(db, user)),
        subscription_url=subscription_url(user),
    )


@router.get("/{user_uuid}/raw", response_class=PlainTextResponse)
def raw_subscription(
    user_uuid: str,
    key: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    user = _subscriber(db, user_uuid, key)
    return subscription_response(user, share_inbounds(db, user))
