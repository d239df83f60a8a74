from zenpanel.schemas.admin import AdminCreate, AdminPasswordChange, AdminResponse, Token
from zenpanel.schemas.user import UserCreate, UserUpdate, UserResponse, UserListResponse, UserLinksResponse
from zenpanel.schemas.node import NodeCreate, NodeUpdate, NodeResponse, NodeStatusResponse, SyncResponse
from zenpanel.schemas.inbound import InboundCreate, InboundUpdate, InboundResponse, RealityKeysResponse
from zenpanel.schemas.stats import (
    DashboardResponse,
    HealthResponse,
    NodeTrafficResponse,
    OverallStatsResponse,
    TopUser,
    TrafficTotals,
    UserTrafficResponse,
)

__all__ = [
    "AdminCreate", "AdminPasswordChange", "AdminResponse", "Token",
    "UserCreate", "UserUpdate", "UserResponse", "UserListResponse", "UserLinksResponse",
    "NodeCreate", "NodeUpdate", "NodeResponse", "NodeStatusResponse", "SyncResponse",
    "InboundCreate", "InboundUpdate", "InboundResponse", "RealityKeysResponse",
    "HealthResponse", "TrafficTotals", "UserTrafficResponse", "NodeTrafficResponse",
    "OverallStatsResponse", "TopUser", "DashboardResponse",
]
