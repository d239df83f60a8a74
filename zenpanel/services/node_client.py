"""HTTP client for the per-node agent API."""
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from zenpanel.config import settings
from zenpanel.models.node import Node
from zenpanel.services.server_config import serialize_config
from zenpanel.utils.links import url_host

logger = logging.getLogger(__name__)


class NodeError(RuntimeError):
    """Raised when a node agent call fails (transport, status or payload)."""

    def __init__(self, message: str, body: str = ""):
        super().__init__(message)
        self.body = body


@dataclass(frozen=True)
class NodeTarget:
    """Connection details of a node, detached from any DB session."""

    id: int
    name: str
    address: str
    api_port: int
    api_token: str
    enabled: bool = True

    @classmethod
    def from_node(cls, node: Node) -> "NodeTarget":
        return cls(
            id=node.id,
            name=node.name,
            address=node.address,
            api_port=node.api_port,
            api_token=node.api_token or "",
            enabled=bool(node.enabled),
        )

    @property
    def base_url(self) -> str:
        return f"http://{url_host(self.address)}:{self.api_port}"


@dataclass
class NodeStatus:
    online: bool = False
    singbox_up: bool = False
    version: str = ""
    uptime: int = 0


@dataclass
class RealityKeys:
    private_key: str
    public_key: str
    short_id: str


@dataclass
class UserTraffic:
    name: str
    upload: int = 0
    download: int = 0


@dataclass
class NodeStats:
    users: list[UserTraffic] = field(default_factory=list)


def _target(node: Node | NodeTarget) -> NodeTarget:
    return node if isinstance(node, NodeTarget) else NodeTarget.from_node(node)


class NodeClient:
    """
    One request per call, no retries. A fresh httpx.AsyncClient is opened per call;
    pass transport=httpx.MockTransport(...) to stub agents in tests.
    """

    def __init__(
        self,
        timeout: float | None = None,
        restart_timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = settings.node_request_timeout if timeout is None else timeout
        self.restart_timeout = settings.node_restart_timeout if restart_timeout is None else restart_timeout
        self._transport = transport

    async def _request(
        self,
        node: Node | NodeTarget,
        method: str,
        path: str,
        *,
        content: str | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        target = _target(node)
        headers = {"Content-Type": "application/json"}
        if target.api_token:
            headers["X-API-Token"] = target.api_token
        async with httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self._transport,
        ) as client:
            return await client.request(method, target.base_url + path, content=content, headers=headers)

    async def _call(self, node: Node | NodeTarget, method: str, path: str, **kwargs: Any) -> httpx.Response:
        name = _target(node).name
        try:
            r = await self._request(node, method, path, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NodeError(f"node {name}: {method} {path} failed: {e}") from e
        if r.status_code != 200:
            raise NodeError(f"node {name}: {method} {path} returned {r.status_code}", body=r.text)
        return r

    @staticmethod
    def _json(r: httpx.Response, what: str) -> Any:
        try:
            return r.json()
        except ValueError as e:
            raise NodeError(f"invalid {what} response: {e}", body=r.text) from e

    async def get_status(self, node: Node | NodeTarget) -> NodeStatus:
        """Probe GET /health. Never raises: any failure reads as offline."""
        try:
            r = await self._request(node, "GET", "/health")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Node %s unreachable: %s", _target(node).name, e)
            return NodeStatus(online=False)
        if r.status_code != 200:
            return NodeStatus(online=False)
        status = NodeStatus(online=True)
        try:
            data = r.json()
        except ValueError:
            return status
        if isinstance(data, dict):
            status.singbox_up = bool(data.get("singbox_up", False))
            status.version = str(data.get("version") or "")
            try:
                status.uptime = int(data.get("uptime") or 0)
            except (TypeError, ValueError):
                pass
        return status

    async def push_config(self, node: Node | NodeTarget, document: Mapping[str, Any]) -> None:
        await self._call(node, "POST", "/config", content=serialize_config(document))

    async def restart_singbox(self, node: Node | NodeTarget) -> None:
        await self._call(node, "POST", "/restart", timeout=self.restart_timeout)

    async def get_config(self, node: Node | NodeTarget) -> dict[str, Any]:
        r = await self._call(node, "GET", "/config")
        data = self._json(r, "config")
        if not isinstance(data, dict):
            raise NodeError("config response is not a JSON object", body=r.text)
        return data

    async def generate_keys(self, node: Node | NodeTarget) -> RealityKeys:
        r = await self._call(node, "POST", "/generate-keys")
        data = self._json(r, "generate-keys")
        try:
            return RealityKeys(
                private_key=data["private_key"],
                public_key=data["public_key"],
                short_id=data.get("short_id", ""),
            )
        except (KeyError, TypeError) as e:
            raise NodeError(f"invalid generate-keys response: missing {e}", body=r.text) from e

    async def get_stats(self, node: Node | NodeTarget) -> NodeStats:
        r = await self._call(node, "GET", "/stats")
        data = self._json(r, "stats")
        try:
            users = [
                UserTraffic(
                    name=str(u["name"]),
                    upload=int(u.get("upload") or 0),
                    download=int(u.get("download") or 0),
                )
                for u in data.get("users") or []
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise NodeError(f"invalid stats response: {e}", body=r.text) from e
        return NodeStats(users=users)


def get_node_client() -> NodeClient:
    """FastAPI dependency; overridden in tests."""
    return NodeClient()
