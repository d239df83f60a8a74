"""Push a freshly generated server config to a node, then restart its engine."""
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import BackgroundTasks
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from zenpanel.models.node import Inbound, Node
from zenpanel.services.node_client import NodeClient, NodeError, NodeTarget
from zenpanel.services.server_config import generate_server_config

logger = logging.getLogger(__name__)


class NodeNotFoundError(LookupError):
    pass


class NodeDisabledError(RuntimeError):
    pass


class ConfigGenerationError(RuntimeError):
    pass


@dataclass
class SyncResult:
    node_id: int
    inbounds: int
    message: str = "Config pushed, sing-box is restarting"


def load_node_inbounds(db: Session, node_id: int) -> tuple[Node, list[Inbound]]:
    node = db.query(Node).filter(Node.id == node_id, Node.deleted_at.is_(None)).first()
    if not node:
        raise NodeNotFoundError(f"node {node_id} not found")
    if not node.enabled:
        raise NodeDisabledError(f"node {node.name} is disabled")
    inbounds = (
        db.query(Inbound)
        .filter(Inbound.node_id == node.id, Inbound.deleted_at.is_(None))
        .order_by(Inbound.id)
        .all()
    )
    return node, inbounds


async def restart_in_background(target: NodeTarget, client: NodeClient) -> None:
    """Runs after the sync response is sent; the admin's connection may go through this node."""
    try:
        await client.restart_singbox(target)
    except NodeError as e:
        logger.warning("Restart of node %s failed: %s %s", target.name, e, e.body)
    except Exception:
        logger.exception("Restart of node %s failed", target.name)
    else:
        logger.info("sing-box restarted on node %s", target.name)


def prepare_sync(db: Session, node_id: int) -> tuple[NodeTarget, dict[str, Any]]:
    """
    Load the node and its inbounds with their current users and build the server document.
    Runs every query, including lazy user loads; nothing here touches the network.
    """
    node, inbounds = load_node_inbounds(db, node_id)
    users_by_inbound = {inbound.id: list(inbound.users) for inbound in inbounds}
    try:
        document = generate_server_config(inbounds, users_by_inbound)
    except ValueError as e:
        raise ConfigGenerationError(f"config generation failed for node {node.name}: {e}") from e
    return NodeTarget.from_node(node), document


async def sync_node(db: Session, node_id: int, client: NodeClient, background: BackgroundTasks) -> SyncResult:
    """
    Build the node's server document off the event loop, then push it.
    The restart is only scheduled: it runs once the response has been sent.
    Raises NodeNotFoundError, NodeDisabledError, ConfigGenerationError or NodeError.
    """
    target, document = await run_in_threadpool(prepare_sync, db, node_id)

    await client.push_config(target, document)
    logger.info("Config with %d inbound(s) pushed to node %s", len(document["inbounds"]), target.name)

    background.add_task(restart_in_background, target, client)
    return SyncResult(node_id=target.id, inbounds=len(document["inbounds"]))
