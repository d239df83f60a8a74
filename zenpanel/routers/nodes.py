import asyncio
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from zenpanel.database import get_db
from zenpanel.models.admin import Admin
from zenpanel.models.node import Inbound, Node
from zenpanel.routers.admin import get_current_admin
from zenpanel.routers.inbounds import inbound_to_response
from zenpanel.schemas.inbound import InboundCreate, InboundResponse
from zenpanel.schemas.node import NodeCreate, NodeResponse, NodeStatusResponse, NodeUpdate, SyncResponse
from zenpanel.services import node_service
from zenpanel.services.node_client import NodeClient, NodeError, NodeTarget, get_node_client
from zenpanel.services.node_sync import ConfigGenerationError, NodeDisabledError, NodeNotFoundError, sync_node

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/nodes", tags=["nodes"])


def _get_node_or_404(db: Session, node_id: int) -> Node:
    node = node_service.get_node(db, node_id)
    if not node:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Node not found")
    return node


def live_node_targets(db: Session) -> list[NodeTarget]:
    return [NodeTarget.from_node(n) for n in node_service.active_nodes(db).order_by(Node.id).all()]


def _node_target_or_404(db: Session, node_id: int) -> NodeTarget:
    return NodeTarget.from_node(_get_node_or_404(db, node_id))


async def probe_node(target: NodeTarget, client: NodeClient) -> NodeStatusResponse:
    """Disabled nodes are reported as such without contacting them."""
    if not target.enabled:
        return NodeStatusResponse(node_id=target.id, name=target.name, status="disabled")
    st = await client.get_status(target)
    return NodeStatusResponse(
        node_id=target.id,
        name=target.name,
        status="online" if st.online else "offline",
        singbox_up=st.singbox_up,
        version=st.version,
        uptime=st.uptime,
    )


async def probe_nodes(targets: list[NodeTarget], client: NodeClient) -> list[NodeStatusResponse]:
    return list(await asyncio.gather(*(probe_node(t, client) for t in targets)))


@router.get("", response_model=list[NodeResponse])
def list_nodes(
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return node_service.active_nodes(db).order_by(Node.id).all()


@router.post("", response_model=NodeResponse, status_code=status.HTTP_201_CREATED)
def create_node(
    body: NodeCreate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return node_service.create_node(db, body)


@router.get("/statuses", response_model=list[NodeStatusResponse])
async def node_statuses(
    db: Session = Depends(get_db),
    client: NodeClient = Depends(get_node_client),
    admin: Admin = Depends(get_current_admin),
):
    targets = await run_in_threadpool(live_node_targets, db)
    return await probe_nodes(targets, client)


@router.get("/{node_id}", response_model=NodeResponse)
def get_node(
    node_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return _get_node_or_404(db, node_id)


@router.put("/{node_id}", response_model=NodeResponse)
def update_node(
    node_id: int,
    body: NodeUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return node_service.update_node(db, _get_node_or_404(db, node_id), body)


@router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_node(
    node_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    node_service.delete_node(db, _get_node_or_404(db, node_id))


@router.get("/{node_id}/status", response_model=NodeStatusResponse)
async def node_status(
    node_id: int,
    db: Session = Depends(get_db),
    client: NodeClient = Depends(get_node_client),
    admin: Admin = Depends(get_current_admin),
):
    target = await run_in_threadpool(_node_target_or_404, db, node_id)
    return await probe_node(target, client)


@router.get("/{node_id}/config")
async def node_config(
    node_id: int,
    db: Session = Depends(get_db),
    client: NodeClient = Depends(get_node_client),
    admin: Admin = Depends(get_current_admin),
):
    target = await run_in_threadpool(_node_target_or_404, db, node_id)
    try:
        return await client.get_config(target)
    except NodeError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"{e} {e.body}".strip())


@router.post("/{node_id}/sync", response_model=SyncResponse)
async def sync(
    node_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    client: NodeClient = Depends(get_node_client),
    admin: Admin = Depends(get_current_admin),
):
    try:
        result = await sync_node(db, node_id, client, background)
    except NodeNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Node not found")
    except NodeDisabledError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Node is disabled")
    except ConfigGenerationError as e:
        logger.error("Sync of node %s aborted: %s", node_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Config generation failed")
    except NodeError as e:
        logger.warning("Sync of node %s failed: %s", node_id, e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Config not applied: {e} {e.body}".strip(),
        )
    return SyncResponse(message=result.message, inbounds=result.inbounds)


@router.get("/{node_id}/inbounds", response_model=list[InboundResponse])
def list_node_inbounds(
    node_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    node = _get_node_or_404(db, node_id)
    inbounds = node_service.active_inbounds(db).filter(Inbound.node_id == node.id).order_by(Inbound.id).all()
    return [inbound_to_response(i) for i in inbounds]


@router.post("/{node_id}/inbounds", response_model=InboundResponse, status_code=status.HTTP_201_CREATED)
def create_node_inbound(
    node_id: int,
    body: InboundCreate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    node = _get_node_or_404(db, node_id)
    return inbound_to_response(node_service.create_inbound(db, node, body))
