import asyncio
import os

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("STATS_POLL_INTERVAL", "0")
os.environ.setdefault("PUBLIC_URL", "https://panel.example.com")

from zenpanel.database import Base, get_db
from zenpanel.main import app
from zenpanel.models import Admin, Inbound, Node, User
from zenpanel.services.node_client import NodeClient, get_node_client
from zenpanel.utils.auth import create_access_token, hash_password

TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeAgent:
    """Stands in for node agents behind httpx.MockTransport; records every request."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses: dict[tuple[str, str], httpx.Response] = {}
        self.down_hosts: set[str] = set()

    def respond(self, method: str, path: str, status_code: int = 200, **kwargs) -> None:
        self.responses[(method, path)] = httpx.Response(status_code, **kwargs)

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host in self.down_hosts:
            raise httpx.ConnectError("connection refused", request=request)
        key = (request.method, request.url.path)
        if key in self.responses:
            return self.responses[key]
        if key == ("GET", "/health"):
            return httpx.Response(200, json={"online": True, "singbox_up": True, "version": "1.0.0", "uptime": 42})
        return httpx.Response(200, json={"status": "ok"})


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


def _make_db_override(db_session):
    def _override():
        yield db_session
    return _override


@pytest.fixture
def agent():
    return FakeAgent()


@pytest.fixture
def node_client(agent):
    return NodeClient(timeout=1.0, restart_timeout=1.0, transport=httpx.MockTransport(agent.handler))


@pytest.fixture(scope="function")
def client(db, node_client):
    app.dependency_overrides[get_db] = _make_db_override(db)
    app.dependency_overrides[get_node_client] = lambda: node_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def sudo_admin(db):
    admin = Admin(
        username="sudo",
        hashed_password=hash_password("sudo-pass"),
        is_sudo=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


@pytest.fixture
def auth_headers(sudo_admin):
    return {"Authorization": f"Bearer {create_access_token(sudo_admin.username, True)}"}


@pytest.fixture
def make_node(db):
    def _make(name="node-A", address="1.2.3.4", **kwargs):
        node = Node(name=name, address=address, api_port=kwargs.pop("api_port", 9090),
                    api_token=kwargs.pop("api_token", "node-token"), enabled=kwargs.pop("enabled", True), **kwargs)
        db.add(node)
        db.commit()
        db.refresh(node)
        return node
    return _make


@pytest.fixture
def make_inbound(db):
    def _make(node, name="Tokyo-1", protocol="reality", **kwargs):
        fields = dict(
            listen_port=443,
            sni="cdn.example.com",
            fallback_addr="",
            fallback_port=0,
            private_key="PRIVKEY",
            public_key="PUBKEY",
            short_id="abcd1234",
            fingerprint="chrome",
            up_mbps=100,
            down_mbps=100,
            ws_path="/ws",
            cert_path="",
            key_path="",
            enabled=True,
        )
        fields.update(kwargs)
        inbound = Inbound(node_id=node.id, name=name, protocol=protocol, **fields)
        db.add(inbound)
        db.commit()
        db.refresh(inbound)
        return inbound
    return _make


@pytest.fixture
def make_user(db):
    def _make(name="alice", uuid="11111111-1111-1111-1111-111111111111", inbounds=(), **kwargs):
        user = User(name=name, uuid=uuid, enabled=kwargs.pop("enabled", True),
                    data_limit=kwargs.pop("data_limit", 0), data_used=kwargs.pop("data_used", 0), **kwargs)
        user.inbounds = list(inbounds)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def loop_thread_calls(monkeypatch):
    """Wrap target.name; each call records whether it ran on a thread with a running event loop."""
    calls: list[bool] = []

    def _wrap(target, name):
        real = getattr(target, name)

        def recording(*args, **kwargs):
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                calls.append(False)
            else:
                calls.append(True)
            return real(*args, **kwargs)

        monkeypatch.setattr(target, name, recording)
        return calls

    return _wrap
