"""Share links (vless:// and hysteria2://), subscription payloads and QR images."""
import base64
import io
import logging
from typing import Iterable, assert_never
from urllib.parse import quote, urlencode

import qrcode

from zenpanel.config import settings
from zenpanel.models.node import Inbound, Protocol, UnsupportedProtocolError, parse_protocol
from zenpanel.models.user import User

logger = logging.getLogger(__name__)

REALITY_FLOW = "xtls-rprx-vision"
DEFAULT_WS_PATH = "/ws"


def url_host(address: str) -> str:
    """Bracket bare IPv6 literals so they can sit in an URL authority."""
    if ":" in address and not address.startswith("["):
        return f"[{address}]"
    return address


def _require_node(inbound: Inbound):
    if inbound.node is None:
        raise ValueError(f"inbound {inbound.id} has no node loaded")
    return inbound.node


def _query(params: dict[str, str]) -> str:
    return urlencode(sorted(params.items()))


def share_url(user: User, inbound: Inbound) -> str:
    node = _require_node(inbound)
    protocol = parse_protocol(inbound.protocol)
    match protocol:
        case Protocol.REALITY:
            scheme = "vless"
            params = {
                "type": "tcp",
                "security": "reality",
                "sni": inbound.sni or "",
                "fp": inbound.fingerprint or "",
                "pbk": inbound.public_key or "",
                "sid": inbound.short_id or "",
                "flow": REALITY_FLOW,
            }
        case Protocol.WS_TLS:
            scheme = "vless"
            params = {
                "type": "ws",
                "security": "tls",
                "sni": inbound.sni or "",
                "host": inbound.sni or "",
                "path": inbound.ws_path or DEFAULT_WS_PATH,
                "fp": inbound.fingerprint or "",
            }
        case Protocol.HYSTERIA2:
            scheme = "hysteria2"
            params = {"sni": inbound.sni or ""}
        case _:
            assert_never(protocol)
    fragment = quote(f"{inbound.name} - {node.name}", safe="")
    return (
        f"{scheme}://{user.uuid}@{url_host(node.address)}:{inbound.listen_port}"
        f"?{_query(params)}#{fragment}"
    )


def all_share_urls(user: User, inbounds: Iterable[Inbound]) -> list[str]:
    """Share links for every enabled inbound; unsupported ones are skipped."""
    urls = []
    for inbound in inbounds:
        if not inbound.enabled:
            continue
        try:
            urls.append(share_url(user, inbound))
        except UnsupportedProtocolError:
            logger.warning("Skipping inbound %s: unsupported protocol %r", inbound.id, inbound.protocol)
    return urls


def subscription(user: User, inbounds: Iterable[Inbound]) -> str:
    combined = "\n".join(all_share_urls(user, inbounds))
    return base64.b64encode(combined.encode("utf-8")).decode("ascii")


def subscription_userinfo(user: User) -> str:
    return f"upload=0; download={user.data_used or 0}; total={user.data_limit or 0}"


def qr_code_base64(content: str) -> str:
    """Render content as a PNG QR code and return it as a data URI."""
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=8, border=4)
    qr.add_data(content)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()


def subscription_url(user: User) -> str:
    if not settings.public_url:
        return ""
    return f"{settings.public_url.rstrip('/')}/api/sub/{user.uuid}/raw"
