import json

from zenpanel.models import Inbound
from zenpanel.routers import nodes as nodes_router


def test_create_list_update(client, auth_headers):
    r = client.post("/api/nodes", json={"name": "fra-1", "address": "5.6.7.8", "api_token": "t"}, headers=auth_headers)
    assert r.status_code == 201
    node = r.json()
    assert node["api_port"] == 9090
    assert node["enabled"] is True
    assert "api_token" not in node

    r = client.put(f"/api/nodes/{node['id']}", json={"enabled": False, "name": ""}, headers=auth_headers)
    assert r.json()["enabled"] is False
    assert r.json()["name"] == "fra-1"

    assert [n["name"] for n in client.get("/api/nodes", headers=auth_headers).json()] == ["fra-1"]


def test_statuses(client, auth_headers, agent, make_node):
    make_node(name="up", address="10.0.0.1")
    make_node(name="down", address="10.0.0.2")
    make_node(name="off", address="10.0.0.3", enabled=False)
    agent.down_hosts.add("10.0.0.2")

    r = client.get("/api/nodes/statuses", headers=auth_headers)

    assert r.status_code == 200
    assert {s["name"]: s["status"] for s in r.json()} == {"up": "online", "down": "offline", "off": "disabled"}
    assert {req.url.host for req in agent.calls("GET", "/health")} == {"10.0.0.1", "10.0.0.2"}


def test_single_status(client, auth_headers, make_node):
    node = make_node()
    body = client.get(f"/api/nodes/{node.id}/status", headers=auth_headers).json()
    assert body == {
        "node_id": node.id,
        "name": "node-A",
        "status": "online",
        "singbox_up": True,
        "version": "1.0.0",
        "uptime": 42,
    }


def test_remote_config(client, auth_headers, agent, make_node):
    node = make_node()
    agent.respond("GET", "/config", 200, json={"inbounds": []})
    assert client.get(f"/api/nodes/{node.id}/config", headers=auth_headers).json() == {"inbounds": []}

    agent.respond("GET", "/config", 404, text="Config not found")
    r = client.get(f"/api/nodes/{node.id}/config", headers=auth_headers)
    assert r.status_code == 502
    assert "Config not found" in r.json()["detail"]


def test_sync_pushes_then_restarts(client, auth_headers, agent, make_node, make_inbound, make_user):
    node = make_node()
    make_user(inbounds=[make_inbound(node, protocol="hysteria2")])

    r = client.post(f"/api/nodes/{node.id}/sync", headers=auth_headers)

    assert r.status_code == 200
    assert r.json()["inbounds"] == 1
    assert [req.url.path for req in agent.requests] == ["/config", "/restart"]
    assert json.loads(agent.requests[0].content)["inbounds"][0]["type"] == "hysteria2"


def test_sync_errors(client, auth_headers, agent, make_node, make_inbound, make_user):
    assert client.post("/api/nodes/999/sync", headers=auth_headers).status_code == 404

    off = make_node(name="off", enabled=False)
    assert client.post(f"/api/nodes/{off.id}/sync", headers=auth_headers).status_code == 400

    broken = make_node(name="broken")
    make_user(inbounds=[make_inbound(broken, protocol="vmess")])
    assert client.post(f"/api/nodes/{broken.id}/sync", headers=auth_headers).status_code == 500
    assert agent.requests == []

    ok = make_node(name="ok", address="10.9.9.9")
    agent.respond("POST", "/config", 500, text="disk full")
    r = client.post(f"/api/nodes/{ok.id}/sync", headers=auth_headers)
    assert r.status_code == 502
    assert "disk full" in r.json()["detail"]
    assert agent.calls("POST", "/restart") == []


def test_node_inbounds(client, auth_headers, make_node):
    node = make_node()
    r = client.post(f"/api/nodes/{node.id}/inbounds", json={"name": "hy", "protocol": "hysteria2"}, headers=auth_headers)
    assert r.status_code == 201
    created = r.json()
    assert created["node_id"] == node.id
    assert created["cert_path"] == "/etc/ssl/certs/cert.pem"

    listed = client.get(f"/api/nodes/{node.id}/inbounds", headers=auth_headers).json()
    assert [i["id"] for i in listed] == [created["id"]]


def test_delete_cascades(client, auth_headers, db, make_node, make_inbound, make_user):
    node = make_node()
    inbound = make_inbound(node)
    user = make_user(inbounds=[inbound])

    assert client.delete(f"/api/nodes/{node.id}", headers=auth_headers).status_code == 204

    assert client.get(f"/api/nodes/{node.id}", headers=auth_headers).status_code == 404
    db.refresh(user)
    assert user.inbounds == []
    assert db.get(Inbound, inbound.id).deleted_at is not None
    assert client.get(f"/api/users/{user.id}", headers=auth_headers).json()["inbound_ids"] == []


def test_statuses_query_store_in_worker_thread(client, auth_headers, make_node, loop_thread_calls):
    make_node()
    calls = loop_thread_calls(nodes_router, "live_node_targets")

    assert client.get("/api/nodes/statuses", headers=auth_headers).status_code == 200
    assert calls == [False]
