"""Build the full sing-box client document for a user."""
import logging
from typing import Any, Iterable, assert_never

from zenpanel.models.node import Inbound, Protocol, UnsupportedProtocolError, parse_protocol
from zenpanel.models.user import User
from zenpanel.utils.links import DEFAULT_WS_PATH, REALITY_FLOW

logger = logging.getLogger(__name__)

DEFAULT_MBPS = 100


def outbound_tag(inbound: Inbound) -> str:
    return f"{inbound.node.name}-{inbound.name}"


def build_outbound(user: User, inbound: Inbound) -> dict[str, Any]:
    """Client outbound for one inbound. Raises UnsupportedProtocolError."""
    if inbound.node is None:
        raise ValueError(f"inbound {inbound.id} has no node loaded")
    protocol = parse_protocol(inbound.protocol)
    base = {
        "tag": outbound_tag(inbound),
        "server": inbound.node.address,
        "server_port": inbound.listen_port,
    }
    utls = {"enabled": True, "fingerprint": inbound.fingerprint or ""}

    match protocol:
        case Protocol.REALITY:
            return {
                "type": "vless",
                **base,
                "uuid": user.uuid,
                "flow": REALITY_FLOW,
                "tls": {
                    "enabled": True,
                    "server_name": inbound.sni or "",
                    "utls": utls,
                    "reality": {
                        "enabled": True,
                        "public_key": inbound.public_key or "",
                        "short_id": inbound.short_id or "",
                    },
                },
            }
        case Protocol.WS_TLS:
            return {
                "type": "vless",
                **base,
                "uuid": user.uuid,
                "tls": {"enabled": True, "server_name": inbound.sni or "", "utls": utls},
                "transport": {
                    "type": "ws",
                    "path": inbound.ws_path or DEFAULT_WS_PATH,
                    "headers": {"Host": inbound.sni or ""},
                },
            }
        case Protocol.HYSTERIA2:
            return {
                "type": "hysteria2",
                **base,
                "password": user.uuid,
                "up_mbps": inbound.up_mbps or DEFAULT_MBPS,
                "down_mbps": inbound.down_mbps or DEFAULT_MBPS,
                "tls": {"enabled": True, "server_name": inbound.sni or "", "insecure": False},
            }
        case _:
            assert_never(protocol)


def _base_document() -> dict[str, Any]:
    return {
        "log": {"level": "info", "timestamp": True},
        "dns": {
            "servers": [
                {"tag": "proxy-dns", "address": "8.8.8.8", "detour": "proxy"},
                {"tag": "direct-dns", "address": "8.8.8.8", "detour": "direct"},
            ],
            "rules": [{"outbound": "any", "server": "direct-dns"}],
            "final": "proxy-dns",
            "strategy": "prefer_ipv4",
        },
        "inbounds": [
            {
                "type": "tun",
                "tag": "tun-in",
                "interface_name": "tun0",
                "inet4_address": "172.19.0.1/30",
                "mtu": 9000,
                "auto_route": True,
                "strict_route": True,
                "stack": "system",
                "sniff": True,
                "sniff_override_destination": True,
            }
        ],
        "outbounds": [],
        "route": {
            "rules": [
                {"protocol": "dns", "outbound": "dns-out"},
                {"geoip": ["private"], "outbound": "direct"},
                {"geosite": ["category-ads-all"], "outbound": "block"},
            ],
            "final": "proxy",
            "auto_detect_interface": True,
        },
    }


def generate_client_config(user: User, inbounds: Iterable[Inbound]) -> dict[str, Any]:
    """
    One outbound per enabled inbound, then direct/block/dns-out.
    Several servers get a "proxy" selector in front; a single server is renamed "proxy".
    """
    servers = []
    for inbound in inbounds:
        if not inbound.enabled:
            continue
        try:
            servers.append(build_outbound(user, inbound))
        except UnsupportedProtocolError:
            logger.warning("Skipping inbound %s: unsupported protocol %r", inbound.id, inbound.protocol)

    if len(servers) > 1:
        tags = [ob["tag"] for ob in servers]
        servers.insert(0, {"type": "selector", "tag": "proxy", "outbounds": tags, "default": tags[0]})
    elif len(servers) == 1:
        servers[0]["tag"] = "proxy"

    document = _base_document()
    document["outbounds"] = servers + [
        {"type": "direct", "tag": "direct"},
        {"type": "block", "tag": "block"},
        {"type": "dns", "tag": "dns-out"},
    ]
    return document
