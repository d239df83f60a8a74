"""User CRUD, inbound assignment and share artifacts."""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from zenpanel.models.node import Inbound, Node
from zenpanel.models.user import User, generate_uuid
from zenpanel.schemas.user import UserUpdate


class UnknownInboundError(ValueError):
    def __init__(self, missing: list[int]):
        super().__init__(f"unknown inbound ids: {missing}")
        self.missing = missing


def active_users(db: Session):
    return db.query(User).filter(User.deleted_at.is_(None))


def get_user(db: Session, user_id: int) -> Optional[User]:
    return active_users(db).filter(User.id == user_id).first()


def get_user_by_uuid(db: Session, user_uuid: str) -> Optional[User]:
    return active_users(db).filter(User.uuid == user_uuid).first()


def name_taken(db: Session, name: str, exclude_id: int | None = None) -> bool:
    q = db.query(User).filter(User.name == name)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


def resolve_inbounds(db: Session, inbound_ids: list[int]) -> list[Inbound]:
    ids = list(dict.fromkeys(inbound_ids))
    if not ids:
        return []
    found = (
        db.query(Inbound)
        .filter(Inbound.id.in_(ids), Inbound.deleted_at.is_(None))
        .order_by(Inbound.id)
        .all()
    )
    missing = sorted(set(ids) - {i.id for i in found})
    if missing:
        raise UnknownInboundError(missing)
    return found


def create_user(
    db: Session,
    name: str,
    *,
    data_limit: int = 0,
    expires_at: Optional[datetime] = None,
    inbound_ids: Optional[list[int]] = None,
) -> User:
    inbounds = resolve_inbounds(db, inbound_ids or [])
    user = User(
        name=name,
        uuid=generate_uuid(),
        enabled=True,
        data_limit=data_limit,
        data_used=0,
        expires_at=expires_at,
    )
    user.inbounds = inbounds
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user: User, body: UserUpdate) -> User:
    """Merge update: empty or missing fields keep their stored value."""
    if body.name:
        user.name = body.name
    if body.enabled is not None:
        user.enabled = body.enabled
    if body.data_limit is not None:
        user.data_limit = body.data_limit
    if body.expires_at is not None:
        user.expires_at = body.expires_at
    if body.inbound_ids is not None:
        user.inbounds = resolve_inbounds(db, body.inbound_ids)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    user.inbounds = []
    user.deleted_at = datetime.now(timezone.utc)
    db.commit()


def regenerate_uuid(db: Session, user: User) -> User:
    user.uuid = generate_uuid()
    db.commit()
    db.refresh(user)
    return user


def reset_traffic(db: Session, user: User) -> User:
    user.data_used = 0
    db.commit()
    db.refresh(user)
    return user


def share_inbounds(db: Session, user: User) -> list[Inbound]:
    """User's inbounds that are offered to clients: live inbounds on enabled, live nodes."""
    return (
        db.query(Inbound)
        .join(Inbound.users)
        .join(Inbound.node)
        .filter(User.id == user.id)
        .filter(Inbound.deleted_at.is_(None))
        .filter(Node.deleted_at.is_(None), Node.enabled.is_(True))
        .order_by(Inbound.id)
        .all()
    )
