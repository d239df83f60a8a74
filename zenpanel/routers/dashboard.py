from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from zenpanel.database import get_db
from zenpanel.models.admin import Admin
from zenpanel.models.node import Inbound
from zenpanel.models.stats import TrafficStats
from zenpanel.models.user import User
from zenpanel.routers.admin import get_current_admin
from zenpanel.routers.nodes import live_node_targets, probe_nodes
from zenpanel.routers.stats import active_user_filter, start_of_today, totals
from zenpanel.schemas.stats import DashboardResponse, NodeCounts, UserCounts
from zenpanel.services.node_client import NodeClient, get_node_client

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


def _store_summary(db: Session) -> DashboardResponse:
    now = datetime.now(timezone.utc)
    users = db.query(User).filter(User.deleted_at.is_(None))
    return DashboardResponse(
        users=UserCounts(
            total=users.count(),
            active=db.query(User).filter(*active_user_filter()).count(),
            disabled=users.filter(User.enabled.is_(False)).count(),
            expired=users.filter(User.expires_at.is_not(None), User.expires_at <= now).count(),
        ),
        inbounds=db.query(Inbound).filter(Inbound.deleted_at.is_(None)).count(),
        today=totals(db, TrafficStats.recorded_at >= start_of_today()),
    )


@router.get("", response_model=DashboardResponse)
async def dashboard(
    db: Session = Depends(get_db),
    client: NodeClient = Depends(get_node_client),
    _admin: Admin = Depends(get_current_admin),
):
    """Counts plus a live probe of every enabled node; disabled nodes are not contacted."""
    summary = await run_in_threadpool(_store_summary, db)
    targets = await run_in_threadpool(live_node_targets, db)

    statuses = await probe_nodes(targets, client)
    summary.nodes = NodeCounts(
        total=len(statuses),
        online=sum(1 for s in statuses if s.status == "online"),
        offline=sum(1 for s in statuses if s.status == "offline"),
        disabled=sum(1 for s in statuses if s.status == "disabled"),
    )
    return summary
