from zenpanel.database import Base
from zenpanel.models.admin import Admin
from zenpanel.models.node import Inbound, Node, Protocol, UnsupportedProtocolError, parse_protocol
from zenpanel.models.stats import TrafficStats
from zenpanel.models.user import User, user_inbounds

__all__ = [
    "Base", "Admin", "User", "Node", "Inbound", "TrafficStats", "user_inbounds",
    "Protocol", "UnsupportedProtocolError", "parse_protocol",
]
