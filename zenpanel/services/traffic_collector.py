"""Poll node agents' /stats and persist per-user traffic deltas."""
import logging
from datetime import datetime, timezone

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import or_
from sqlalchemy.orm import Session

from zenpanel.models.node import Inbound, Node
from zenpanel.models.stats import TrafficStats
from zenpanel.models.user import User
from zenpanel.services.node_client import NodeClient, NodeError, NodeStats, NodeTarget

logger = logging.getLogger(__name__)

# (node_id, stats name) -> (upload, download) as last reported by the engine
Counters = dict[tuple[int, str], tuple[int, int]]


def _delta(current: int, previous: int) -> int:
    # engine counters restart from zero when sing-box restarts
    return current - previous if current >= previous else current


def _find_user(db: Session, name: str) -> User | None:
    return (
        db.query(User)
        .filter(User.deleted_at.is_(None))
        .filter(or_(User.uuid == name, User.name == name))
        .first()
    )


def _inbound_for(db: Session, user: User, node_id: int) -> Inbound | None:
    """Lowest-id live inbound of the node assigned to the user."""
    return (
        db.query(Inbound)
        .join(Inbound.users)
        .filter(User.id == user.id, Inbound.node_id == node_id, Inbound.deleted_at.is_(None))
        .order_by(Inbound.id)
        .first()
    )


def record_node_stats(db: Session, node_id: int, stats: NodeStats, last_values: Counters) -> Counters:
    """
    Compute deltas against last_values, write TrafficStats rows and accumulate users.data_used.
    Returns the counters to pass on the next run for this node.
    """
    now = datetime.now(timezone.utc)
    new_last: Counters = {}
    for entry in stats.users:
        key = (node_id, entry.name)
        new_last[key] = (entry.upload, entry.download)
        prev_up, prev_down = last_values.get(key, (0, 0))
        up = _delta(entry.upload, prev_up)
        down = _delta(entry.download, prev_down)
        if up <= 0 and down <= 0:
            continue
        user = _find_user(db, entry.name)
        if not user:
            continue
        inbound = _inbound_for(db, user, node_id)
        if not inbound:
            logger.debug("No inbound on node %s for user %s, traffic not recorded", node_id, user.name)
            continue
        db.add(
            TrafficStats(
                user_id=user.id,
                inbound_id=inbound.id,
                upload=up,
                download=down,
                recorded_at=now,
            )
        )
        user.data_used = (user.data_used or 0) + up + down
    db.commit()
    return new_last


def _enabled_nodes(db: Session) -> list[NodeTarget]:
    nodes = db.query(Node).filter(Node.deleted_at.is_(None), Node.enabled.is_(True)).order_by(Node.id).all()
    return [NodeTarget.from_node(n) for n in nodes]


async def collect_once(db: Session, client: NodeClient, last_values: Counters) -> Counters:
    """One poll over every enabled node. A failing node keeps its previous counters."""
    targets = await run_in_threadpool(_enabled_nodes, db)
    merged: Counters = {}
    for target in targets:
        previous = {k: v for k, v in last_values.items() if k[0] == target.id}
        try:
            stats = await client.get_stats(target)
        except NodeError as e:
            logger.warning("Stats poll of node %s failed: %s", target.name, e)
            merged.update(previous)
            continue
        merged.update(await run_in_threadpool(record_node_stats, db, target.id, stats, previous))
    return merged
