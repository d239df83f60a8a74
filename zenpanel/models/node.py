import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from zenpanel.database import Base


class Protocol(str, enum.Enum):
    REALITY = "reality"
    WS_TLS = "ws-tls"
    HYSTERIA2 = "hysteria2"


class UnsupportedProtocolError(ValueError):
    """Raised when an inbound carries a protocol outside the Protocol enum."""


def parse_protocol(value: str | Protocol) -> Protocol:
    try:
        return Protocol(value)
    except ValueError:
        raise UnsupportedProtocolError(f"unsupported protocol: {value}") from None


class Node(Base):
    __tablename__ = "nodes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)  # IP or domain
    api_port = Column(Integer, default=9090, nullable=False)
    api_token = Column(String(255), default="", nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    inbounds = relationship("Inbound", back_populates="node", order_by="Inbound.id")


class Inbound(Base):
    __tablename__ = "inbounds"

    id = Column(Integer, primary_key=True, autoincrement=True)
    node_id = Column(Integer, ForeignKey("nodes.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    protocol = Column(String(50), nullable=False)  # reality, ws-tls, hysteria2
    listen_port = Column(Integer, default=443, nullable=False)

    # TLS / REALITY
    sni = Column(String(255), default="", nullable=False)
    fallback_addr = Column(String(255), default="127.0.0.1", nullable=False)
    fallback_port = Column(Integer, default=8443, nullable=False)
    private_key = Column(String(255), default="", nullable=False)
    public_key = Column(String(255), default="", nullable=False)
    short_id = Column(String(16), default="", nullable=False)
    fingerprint = Column(String(50), default="chrome", nullable=False)

    # Hysteria2
    up_mbps = Column(Integer, default=100, nullable=False)
    down_mbps = Column(Integer, default=100, nullable=False)

    # WebSocket
    ws_path = Column(String(255), default="", nullable=False)

    # Certificates for ws-tls and hysteria2
    cert_path = Column(String(255), default="", nullable=False)
    key_path = Column(String(255), default="", nullable=False)

    enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    node = relationship("Node", back_populates="inbounds")
    users = relationship("User", secondary="user_inbounds", back_populates="inbounds", order_by="User.id")
