from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import desc, func, or_
from sqlalchemy.orm import Session

from zenpanel.database import get_db
from zenpanel.models.admin import Admin
from zenpanel.models.node import Inbound, Node
from zenpanel.models.stats import TrafficStats
from zenpanel.models.user import User
from zenpanel.routers.admin import get_current_admin
from zenpanel.schemas.stats import (
    DailyTraffic,
    HealthResponse,
    InboundTraffic,
    NodeTrafficResponse,
    OverallStatsResponse,
    TopUser,
    TrafficTotals,
    UserTrafficResponse,
)

router = APIRouter(tags=["stats"])

UPLOAD = func.coalesce(func.sum(TrafficStats.upload), 0)
DOWNLOAD = func.coalesce(func.sum(TrafficStats.download), 0)


def start_of_today() -> datetime:
    return datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def totals(db: Session, *criteria) -> TrafficTotals:
    up, down = db.query(UPLOAD, DOWNLOAD).filter(*criteria).one()
    return TrafficTotals(upload=up, download=down, total=up + down)


def active_user_filter():
    now = datetime.now(timezone.utc)
    return (
        User.deleted_at.is_(None),
        User.enabled.is_(True),
        or_(User.expires_at.is_(None), User.expires_at > now),
    )


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse()


@router.get("/api/stats", response_model=OverallStatsResponse)
def overall_stats(
    db: Session = Depends(get_db),
    _admin: Admin = Depends(get_current_admin),
):
    return OverallStatsResponse(
        total_users=db.query(User).filter(User.deleted_at.is_(None)).count(),
        active_users=db.query(User).filter(*active_user_filter()).count(),
        total_nodes=db.query(Node).filter(Node.deleted_at.is_(None)).count(),
        active_nodes=db.query(Node).filter(Node.deleted_at.is_(None), Node.enabled.is_(True)).count(),
        total_inbounds=db.query(Inbound).filter(Inbound.deleted_at.is_(None)).count(),
        total=totals(db),
        today=totals(db, TrafficStats.recorded_at >= start_of_today()),
    )


@router.get("/api/stats/users/{user_id}", response_model=UserTrafficResponse)
def user_stats(
    user_id: int,
    db: Session = Depends(get_db),
    _admin: Admin = Depends(get_current_admin),
    days: int = Query(30, ge=1, le=365),
):
    user = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    since = start_of_today() - timedelta(days=days)
    day = func.date(TrafficStats.recorded_at)
    rows = (
        db.query(day.label("day"), UPLOAD.label("upload"), DOWNLOAD.label("download"))
        .filter(TrafficStats.user_id == user.id, TrafficStats.recorded_at >= since)
        .group_by(day)
        .order_by(day)
        .all()
    )
    overall = totals(db, TrafficStats.user_id == user.id)
    return UserTrafficResponse(
        user_id=user.id,
        name=user.name,
        data_used=user.data_used or 0,
        data_limit=user.data_limit or 0,
        history=[
            DailyTraffic(date=str(r.day), upload=r.upload, download=r.download, total=r.upload + r.download)
            for r in rows
        ],
        **overall.model_dump(),
    )


@router.get("/api/stats/nodes/{node_id}", response_model=NodeTrafficResponse)
def node_stats(
    node_id: int,
    db: Session = Depends(get_db),
    _admin: Admin = Depends(get_current_admin),
):
    node = db.query(Node).filter(Node.id == node_id, Node.deleted_at.is_(None)).first()
    if not node:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Node not found")
    rows = (
        db.query(Inbound.id, Inbound.name, UPLOAD.label("upload"), DOWNLOAD.label("download"))
        .outerjoin(TrafficStats, TrafficStats.inbound_id == Inbound.id)
        .filter(Inbound.node_id == node.id)
        .group_by(Inbound.id, Inbound.name)
        .order_by(Inbound.id)
        .all()
    )
    per_inbound = [
        InboundTraffic(inbound_id=r.id, name=r.name, upload=r.upload, download=r.download, total=r.upload + r.download)
        for r in rows
    ]
    up = sum(i.upload for i in per_inbound)
    down = sum(i.download for i in per_inbound)
    return NodeTrafficResponse(
        node_id=node.id,
        name=node.name,
        upload=up,
        download=down,
        total=up + down,
        inbounds=per_inbound,
    )


@router.get("/api/stats/top-users", response_model=list[TopUser])
def top_users(
    db: Session = Depends(get_db),
    _admin: Admin = Depends(get_current_admin),
    limit: int = Query(10, ge=1, le=100),
):
    total = (UPLOAD + DOWNLOAD).label("total")
    rows = (
        db.query(User.id, User.name, UPLOAD.label("upload"), DOWNLOAD.label("download"), total)
        .join(TrafficStats, TrafficStats.user_id == User.id)
        .filter(User.deleted_at.is_(None))
        .group_by(User.id, User.name)
        .order_by(desc(total))
        .limit(limit)
        .all()
    )
    return [
        TopUser(user_id=r.id, name=r.name, upload=r.upload, download=r.download, total=r.total)
        for r in rows
    ]
