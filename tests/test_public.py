import base64

import pytest

from zenpanel.config import settings


@pytest.fixture
def subscriber(make_node, make_inbound, make_user):
    node = make_node()
    reality = make_inbound(node, name="r", protocol="reality")
    hy2 = make_inbound(node, name="h", protocol="hysteria2")
    hidden = make_inbound(make_node(name="off", enabled=False), name="x", protocol="hysteria2")
    return make_user(inbounds=[reality, hy2, hidden], data_used=300, data_limit=1000)


def test_links_without_auth(client, subscriber):
    r = client.get(f"/api/sub/{subscriber.uuid}")

    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "alice"
    assert [u.split("://")[0] for u in body["links"]] == ["vless", "hysteria2"]
    assert body["subscription_url"] == f"https://panel.example.com/api/sub/{subscriber.uuid}/raw"


def test_raw_subscription(client, subscriber):
    r = client.get(f"/api/sub/{subscriber.uuid}/raw")

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert r.headers["subscription-userinfo"] == "upload=0; download=300; total=1000"
    assert r.headers["profile-update-interval"] == "12"
    lines = base64.b64decode(r.text).decode().split("\n")
    assert len(lines) == 2


def test_unknown_or_disabled_user(client, db, subscriber):
    assert client.get("/api/sub/00000000-0000-0000-0000-000000000000").status_code == 404

    subscriber.enabled = False
    db.commit()
    assert client.get(f"/api/sub/{subscriber.uuid}/raw").status_code == 404


def test_subscription_password(client, subscriber, monkeypatch):
    monkeypatch.setattr(settings, "sub_password", "s3cret")

    assert client.get(f"/api/sub/{subscriber.uuid}").status_code == 403
    assert client.get(f"/api/sub/{subscriber.uuid}", params={"key": "nope"}).status_code == 403
    assert client.get(f"/api/sub/{subscriber.uuid}/raw", params={"key": "s3cret"}).status_code == 200
