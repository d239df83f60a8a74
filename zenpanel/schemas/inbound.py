from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from zenpanel.models.node import Protocol


class InboundCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    protocol: Protocol
    listen_port: int = Field(443, ge=1, le=65535)
    sni: str = ""
    fallback_addr: str = "127.0.0.1"
    fallback_port: int = Field(8443, ge=0, le=65535)
    private_key: str = ""
    public_key: str = ""
    short_id: str = Field("", max_length=16)
    fingerprint: str = "chrome"
    up_mbps: int = Field(100, ge=0)
    down_mbps: int = Field(100, ge=0)
    ws_path: str = "/ws"
    cert_path: str = ""
    key_path: str = ""


class InboundUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    protocol: Optional[Protocol] = None
    listen_port: Optional[int] = Field(None, ge=1, le=65535)
    sni: Optional[str] = None
    fallback_addr: Optional[str] = None
    fallback_port: Optional[int] = Field(None, ge=0, le=65535)
    private_key: Optional[str] = None
    public_key: Optional[str] = None
    short_id: Optional[str] = Field(None, max_length=16)
    fingerprint: Optional[str] = None
    up_mbps: Optional[int] = Field(None, ge=0)
    down_mbps: Optional[int] = Field(None, ge=0)
    ws_path: Optional[str] = None
    cert_path: Optional[str] = None
    key_path: Optional[str] = None
    enabled: Optional[bool] = None


class InboundResponse(BaseModel):
    id: int
    node_id: int
    name: str
    protocol: str
    listen_port: int
    sni: str = ""
    fallback_addr: str = ""
    fallback_port: int = 0
    public_key: str = ""
    short_id: str = ""
    fingerprint: str = ""
    up_mbps: int = 0
    down_mbps: int = 0
    ws_path: str = ""
    cert_path: str = ""
    key_path: str = ""
    enabled: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RealityKeysResponse(BaseModel):
    private_key: str
    public_key: str
    short_id: str
