from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from zenpanel.database import get_db
from zenpanel.models.admin import Admin
from zenpanel.models.node import Inbound, Protocol
from zenpanel.routers.admin import get_current_admin
from zenpanel.schemas.inbound import InboundResponse, InboundUpdate, RealityKeysResponse
from zenpanel.services import node_service
from zenpanel.services.node_client import NodeClient, NodeError, NodeTarget, get_node_client

router = APIRouter(prefix="/api/inbounds", tags=["inbounds"])


def inbound_to_response(i: Inbound) -> InboundResponse:
    # InboundResponse has no private_key; only generate-keys returns it, once
    return InboundResponse.model_validate(i)


def _get_inbound_or_404(db: Session, inbound_id: int) -> Inbound:
    inbound = node_service.get_inbound(db, inbound_id)
    if not inbound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inbound not found")
    return inbound


def _reality_inbound_and_node(db: Session, inbound_id: int) -> tuple[Inbound, NodeTarget]:
    inbound = _get_inbound_or_404(db, inbound_id)
    if inbound.protocol != Protocol.REALITY.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Keys are only used by reality inbounds")
    if inbound.node is None or inbound.node.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Node not found")
    return inbound, NodeTarget.from_node(inbound.node)


@router.get("", response_model=list[InboundResponse])
def list_inbounds(
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
    node_id: Optional[int] = Query(None),
):
    q = node_service.active_inbounds(db)
    if node_id is not None:
        q = q.filter(Inbound.node_id == node_id)
    return [inbound_to_response(i) for i in q.order_by(Inbound.id).all()]


@router.get("/{inbound_id}", response_model=InboundResponse)
def get_inbound(
    inbound_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return inbound_to_response(_get_inbound_or_404(db, inbound_id))


@router.put("/{inbound_id}", response_model=InboundResponse)
def update_inbound(
    inbound_id: int,
    body: InboundUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    inbound = node_service.update_inbound(db, _get_inbound_or_404(db, inbound_id), body)
    return inbound_to_response(inbound)


@router.delete("/{inbound_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_inbound(
    inbound_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    node_service.delete_inbound(db, _get_inbound_or_404(db, inbound_id))


@router.post("/{inbound_id}/generate-keys", response_model=RealityKeysResponse)
async def generate_keys(
    inbound_id: int,
    db: Session = Depends(get_db),
    client: NodeClient = Depends(get_node_client),
    admin: Admin = Depends(get_current_admin),
):
    """Ask the inbound's node agent for a fresh REALITY keypair and store it."""
    inbound, target = await run_in_threadpool(_reality_inbound_and_node, db, inbound_id)
    try:
        keys = await client.generate_keys(target)
    except NodeError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"{e} {e.body}".strip())
    inbound = await run_in_threadpool(node_service.apply_reality_keys, db, inbound, keys)
    return RealityKeysResponse(
        private_key=inbound.private_key,
        public_key=inbound.public_key,
        short_id=inbound.short_id,
    )
