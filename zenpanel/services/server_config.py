"""Build the sing-box server document pushed to a node agent."""
import json
from typing import Any, Iterable, Mapping, Sequence, assert_never

from zenpanel.models.node import Inbound, Protocol, parse_protocol
from zenpanel.models.user import User
from zenpanel.utils.links import DEFAULT_WS_PATH, REALITY_FLOW

LISTEN_ADDR = "::"
DEFAULT_MBPS = 100


def _handshake_target(inbound: Inbound) -> tuple[str, int]:
    if inbound.fallback_addr and inbound.fallback_port:
        return inbound.fallback_addr, inbound.fallback_port
    return inbound.sni or "", 443


def _tls_files(inbound: Inbound) -> dict[str, Any]:
    tls: dict[str, Any] = {"enabled": True, "server_name": inbound.sni or ""}
    if inbound.cert_path:
        tls["certificate_path"] = inbound.cert_path
    if inbound.key_path:
        tls["key_path"] = inbound.key_path
    return tls


def reality_inbound(inbound: Inbound, users: Sequence[User]) -> dict[str, Any]:
    server, server_port = _handshake_target(inbound)
    return {
        "type": "vless",
        "tag": f"vless-reality-{inbound.id}",
        "listen": LISTEN_ADDR,
        "listen_port": inbound.listen_port,
        "users": [{"uuid": u.uuid, "flow": REALITY_FLOW} for u in users],
        "tls": {
            "enabled": True,
            "server_name": inbound.sni or "",
            "reality": {
                "enabled": True,
                "handshake": {"server": server, "server_port": server_port},
                "private_key": inbound.private_key or "",
                "short_id": [inbound.short_id or ""],
            },
        },
    }


def ws_tls_inbound(inbound: Inbound, users: Sequence[User]) -> dict[str, Any]:
    block: dict[str, Any] = {
        "type": "vless",
        "tag": f"vless-ws-{inbound.id}",
        "listen": LISTEN_ADDR,
        "listen_port": inbound.listen_port,
        "users": [{"uuid": u.uuid} for u in users],
        "transport": {"type": "ws", "path": inbound.ws_path or DEFAULT_WS_PATH},
    }
    # Without both files TLS is terminated by a reverse proxy in front of the node
    if inbound.cert_path and inbound.key_path:
        block["tls"] = _tls_files(inbound)
    return block


def hysteria2_inbound(inbound: Inbound, users: Sequence[User]) -> dict[str, Any]:
    return {
        "type": "hysteria2",
        "tag": f"hysteria2-{inbound.id}",
        "listen": LISTEN_ADDR,
        "listen_port": inbound.listen_port,
        "up_mbps": inbound.up_mbps or DEFAULT_MBPS,
        "down_mbps": inbound.down_mbps or DEFAULT_MBPS,
        "users": [{"password": u.uuid} for u in users],
        "tls": _tls_files(inbound),
    }


def build_inbound(inbound: Inbound, users: Sequence[User]) -> dict[str, Any]:
    protocol = parse_protocol(inbound.protocol)
    match protocol:
        case Protocol.REALITY:
            return reality_inbound(inbound, users)
        case Protocol.WS_TLS:
            return ws_tls_inbound(inbound, users)
        case Protocol.HYSTERIA2:
            return hysteria2_inbound(inbound, users)
        case _:
            assert_never(protocol)


def generate_server_config(
    inbounds: Iterable[Inbound],
    users_by_inbound: Mapping[int, Sequence[User]],
) -> dict[str, Any]:
    """
    Enabled inbounds with at least one assigned user become listener blocks.
    Assigned users are emitted as-is; an unsupported protocol fails the whole document.
    """
    blocks = []
    for inbound in inbounds:
        if not inbound.enabled:
            continue
        users = users_by_inbound.get(inbound.id) or []
        if not users:
            continue
        blocks.append(build_inbound(inbound, users))
    return {
        "log": {"level": "info", "timestamp": True},
        "inbounds": blocks,
        "outbounds": [
            {"type": "direct", "tag": "direct"},
            {"type": "block", "tag": "block"},
        ],
        "route": {"final": "direct"},
    }


def serialize_config(document: Mapping[str, Any]) -> str:
    """Canonical text form: 2-space indented JSON."""
    return json.dumps(document, indent=2, ensure_ascii=False, allow_nan=False)
