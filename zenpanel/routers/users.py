from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from zenpanel.database import get_db
from zenpanel.models.admin import Admin
from zenpanel.models.user import User
from zenpanel.routers.admin import get_current_admin
from zenpanel.routers.public import subscription_response
from zenpanel.schemas.user import UserCreate, UserListResponse, UserResponse, UserUpdate
from zenpanel.services import user_service
from zenpanel.services.client_config import generate_client_config
from zenpanel.utils.links import all_share_urls, qr_code_base64, subscription_url

router = APIRouter(prefix="/api/users", tags=["users"])


def _user_to_response(u: User) -> UserResponse:
    return UserResponse(
        id=u.id,
        name=u.name,
        uuid=u.uuid,
        enabled=u.enabled,
        data_limit=u.data_limit or 0,
        data_used=u.data_used or 0,
        expires_at=u.expires_at,
        created_at=u.created_at,
        updated_at=u.updated_at,
        inbound_ids=[i.id for i in u.inbounds if i.deleted_at is None],
    )


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = user_service.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("", response_model=UserListResponse)
def list_users(
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    search: Optional[str] = Query(None),
    enabled: Optional[bool] = Query(None),
):
    q = user_service.active_users(db)
    if search:
        q = q.filter(User.name.contains(search))
    if enabled is not None:
        q = q.filter(User.enabled.is_(enabled))
    total = q.count()
    users = q.order_by(User.id).offset(offset).limit(limit).all()
    return UserListResponse(users=[_user_to_response(u) for u in users], total=total)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    if user_service.name_taken(db, body.name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User name already exists")
    try:
        user = user_service.create_user(
            db,
            body.name,
            data_limit=body.data_limit,
            expires_at=body.expires_at,
            inbound_ids=body.inbound_ids,
        )
    except user_service.UnknownInboundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _user_to_response(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return _user_to_response(_get_user_or_404(db, user_id))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    user = _get_user_or_404(db, user_id)
    if body.name and body.name != user.name and user_service.name_taken(db, body.name, exclude_id=user.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User name already exists")
    try:
        user = user_service.update_user(db, user, body)
    except user_service.UnknownInboundError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _user_to_response(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    user_service.delete_user(db, _get_user_or_404(db, user_id))


@router.get("/{user_id}/config")
def get_user_config(
    user_id: int,
    format: Literal["json", "url", "qr", "subscription"] = Query("json"),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    user = _get_user_or_404(db, user_id)
    inbounds = user_service.share_inbounds(db, user)
    if not inbounds:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User has no inbounds")

    if format == "url":
        return {"urls": all_share_urls(user, inbounds), "subscription_url": subscription_url(user)}
    if format == "qr":
        return {"qr_codes": [{"url": u, "qr": qr_code_base64(u)} for u in all_share_urls(user, inbounds)]}
    if format == "subscription":
        return subscription_response(user, inbounds)
    return generate_client_config(user, inbounds)


@router.post("/{user_id}/reset-uuid", response_model=UserResponse)
def reset_uuid(
    user_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    user = user_service.regenerate_uuid(db, _get_user_or_404(db, user_id))
    return _user_to_response(user)


@router.post("/{user_id}/reset-traffic", response_model=UserResponse)
def reset_traffic(
    user_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    user = user_service.reset_traffic(db, _get_user_or_404(db, user_id))
    return _user_to_response(user)
