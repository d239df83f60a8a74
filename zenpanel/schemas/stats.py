from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"


class TrafficTotals(BaseModel):
    upload: int = 0
    download: int = 0
    total: int = 0


class DailyTraffic(TrafficTotals):
    date: str  # YYYY-MM-DD


class UserTrafficResponse(TrafficTotals):
    user_id: int
    name: str
    data_used: int = 0
    data_limit: int = 0
    history: list[DailyTraffic] = []


class InboundTraffic(TrafficTotals):
    inbound_id: int
    name: str


class NodeTrafficResponse(TrafficTotals):
    node_id: int
    name: str
    inbounds: list[InboundTraffic] = []


class OverallStatsResponse(BaseModel):
    total_users: int = 0
    active_users: int = 0
    total_nodes: int = 0
    active_nodes: int = 0
    total_inbounds: int = 0
    total: TrafficTotals = TrafficTotals()
    today: TrafficTotals = TrafficTotals()


class TopUser(TrafficTotals):
    user_id: int
    name: str


class UserCounts(BaseModel):
    total: int = 0
    active: int = 0
    disabled: int = 0
    expired: int = 0


class NodeCounts(BaseModel):
    total: int = 0
    online: int = 0
    offline: int = 0
    disabled: int = 0


class DashboardResponse(BaseModel):
    users: UserCounts = UserCounts()
    nodes: NodeCounts = NodeCounts()
    inbounds: int = 0
    today: TrafficTotals = TrafficTotals()
