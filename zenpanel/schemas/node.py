from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class NodeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=255)
    api_port: int = Field(9090, ge=1, le=65535)
    api_token: str = ""


class NodeUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    api_port: Optional[int] = Field(None, ge=1, le=65535)
    api_token: Optional[str] = None
    enabled: Optional[bool] = None


class NodeResponse(BaseModel):
    id: int
    name: str
    address: str
    api_port: int
    enabled: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NodeStatusResponse(BaseModel):
    node_id: int
    name: str
    status: str  # online, offline, disabled
    singbox_up: bool = False
    version: str = ""
    uptime: int = 0  # seconds


class SyncResponse(BaseModel):
    message: str
    inbounds: int
