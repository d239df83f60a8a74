from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    data_limit: int = Field(0, ge=0)  # bytes, 0 = unlimited
    expires_at: Optional[datetime] = None
    inbound_ids: list[int] = []


class UserUpdate(BaseModel):
    """Only fields that are set (and non-empty) overwrite the stored user."""

    name: Optional[str] = Field(None, max_length=255)
    enabled: Optional[bool] = None
    data_limit: Optional[int] = Field(None, ge=0)
    expires_at: Optional[datetime] = None
    inbound_ids: Optional[list[int]] = None


class UserResponse(BaseModel):
    id: int
    name: str
    uuid: str
    enabled: bool
    data_limit: int = 0
    data_used: int = 0
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    inbound_ids: list[int] = []

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total: int


class UserLinksResponse(BaseModel):
    name: str
    links: list[str]
    subscription_url: str = ""
