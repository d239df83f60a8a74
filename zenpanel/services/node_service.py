"""Node and inbound CRUD."""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from zenpanel.models.node import Inbound, Node, Protocol
from zenpanel.schemas.inbound import InboundCreate, InboundUpdate
from zenpanel.schemas.node import NodeCreate, NodeUpdate
from zenpanel.services.node_client import RealityKeys

DEFAULT_CERT_PATH = "/etc/ssl/certs/cert.pem"
DEFAULT_KEY_PATH = "/etc/ssl/private/key.pem"

MERGE_FIELDS = (
    "name", "listen_port", "sni", "fallback_addr", "fallback_port",
    "private_key", "public_key", "short_id", "fingerprint",
    "up_mbps", "down_mbps", "ws_path", "cert_path", "key_path",
)


def active_nodes(db: Session):
    return db.query(Node).filter(Node.deleted_at.is_(None))


def get_node(db: Session, node_id: int) -> Optional[Node]:
    return active_nodes(db).filter(Node.id == node_id).first()


def active_inbounds(db: Session):
    return db.query(Inbound).filter(Inbound.deleted_at.is_(None))


def get_inbound(db: Session, inbound_id: int) -> Optional[Inbound]:
    return active_inbounds(db).filter(Inbound.id == inbound_id).first()


def create_node(db: Session, body: NodeCreate) -> Node:
    node = Node(
        name=body.name,
        address=body.address,
        api_port=body.api_port or 9090,
        api_token=body.api_token,
        enabled=True,
    )
    db.add(node)
    db.commit()
    db.refresh(node)
    return node


def update_node(db: Session, node: Node, body: NodeUpdate) -> Node:
    if body.name:
        node.name = body.name
    if body.address:
        node.address = body.address
    if body.api_port:
        node.api_port = body.api_port
    if body.api_token:
        node.api_token = body.api_token
    if body.enabled is not None:
        node.enabled = body.enabled
    db.commit()
    db.refresh(node)
    return node


def delete_node(db: Session, node: Node) -> None:
    """Soft delete the node together with its inbounds and their user assignments."""
    now = datetime.now(timezone.utc)
    for inbound in active_inbounds(db).filter(Inbound.node_id == node.id).all():
        inbound.users = []
        inbound.deleted_at = now
    node.deleted_at = now
    db.commit()


def create_inbound(db: Session, node: Node, body: InboundCreate) -> Inbound:
    inbound = Inbound(
        node_id=node.id,
        name=body.name,
        protocol=body.protocol.value,
        listen_port=body.listen_port or 443,
        sni=body.sni,
        fallback_addr=body.fallback_addr or "127.0.0.1",
        fallback_port=body.fallback_port or 8443,
        private_key=body.private_key,
        public_key=body.public_key,
        short_id=body.short_id,
        fingerprint=body.fingerprint or "chrome",
        up_mbps=body.up_mbps or 100,
        down_mbps=body.down_mbps or 100,
        ws_path=body.ws_path or "/ws",
        cert_path=body.cert_path,
        key_path=body.key_path,
        enabled=True,
    )
    if body.protocol in (Protocol.WS_TLS, Protocol.HYSTERIA2):
        inbound.cert_path = inbound.cert_path or DEFAULT_CERT_PATH
        inbound.key_path = inbound.key_path or DEFAULT_KEY_PATH
    db.add(inbound)
    db.commit()
    db.refresh(inbound)
    return inbound


def update_inbound(db: Session, inbound: Inbound, body: InboundUpdate) -> Inbound:
    """Merge update: only non-empty string and positive numeric fields overwrite."""
    if body.protocol is not None:
        inbound.protocol = body.protocol.value
    for field in MERGE_FIELDS:
        value = getattr(body, field)
        if value:
            setattr(inbound, field, value)
    if body.enabled is not None:
        inbound.enabled = body.enabled
    db.commit()
    db.refresh(inbound)
    return inbound


def delete_inbound(db: Session, inbound: Inbound) -> None:
    inbound.users = []
    inbound.deleted_at = datetime.now(timezone.utc)
    db.commit()


def apply_reality_keys(db: Session, inbound: Inbound, keys: RealityKeys) -> Inbound:
    inbound.private_key = keys.private_key
    inbound.public_key = keys.public_key
    if keys.short_id:
        inbound.short_id = keys.short_id[:16]
    db.commit()
    db.refresh(inbound)
    return inbound
