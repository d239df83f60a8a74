import json

import httpx
import pytest

from zenpanel.services.node_client import NodeClient, NodeError, NodeTarget

TARGET = NodeTarget(id=1, name="node-A", address="1.2.3.4", api_port=9090, api_token="node-token")


def test_base_url_brackets_ipv6():
    target = NodeTarget(id=2, name="v6", address="2001:db8::1", api_port=9090, api_token="")
    assert target.base_url == "http://[2001:db8::1]:9090"
    assert TARGET.base_url == "http://1.2.3.4:9090"


@pytest.mark.asyncio
async def test_requests_carry_token_header(agent, node_client):
    await node_client.restart_singbox(TARGET)

    (request,) = agent.calls("POST", "/restart")
    assert request.headers["X-API-Token"] == "node-token"
    assert str(request.url) == "http://1.2.3.4:9090/restart"


@pytest.mark.asyncio
async def test_empty_token_sends_no_header(agent, node_client):
    target = NodeTarget(id=1, name="n", address="1.2.3.4", api_port=9090, api_token="")
    await node_client.get_status(target)
    assert "X-API-Token" not in agent.calls("GET", "/health")[0].headers


@pytest.mark.asyncio
async def test_status_online(node_client):
    status = await node_client.get_status(TARGET)
    assert status.online is True
    assert status.singbox_up is True
    assert status.version == "1.0.0"
    assert status.uptime == 42


@pytest.mark.asyncio
async def test_status_offline_when_unreachable(agent, node_client):
    agent.down_hosts.add("1.2.3.4")
    status = await node_client.get_status(TARGET)
    assert status.online is False
    assert status.singbox_up is False


@pytest.mark.asyncio
async def test_status_offline_on_error_code(agent, node_client):
    agent.respond("GET", "/health", 503, text="starting")
    assert (await node_client.get_status(TARGET)).online is False


@pytest.mark.asyncio
async def test_status_online_with_undecodable_body(agent, node_client):
    agent.respond("GET", "/health", 200, text="ok")
    status = await node_client.get_status(TARGET)
    assert status.online is True
    assert status.singbox_up is False


@pytest.mark.asyncio
async def test_push_config_sends_indented_json(agent, node_client):
    await node_client.push_config(TARGET, {"inbounds": []})

    (request,) = agent.calls("POST", "/config")
    assert request.content == b'{\n  "inbounds": []\n}'
    assert request.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_non_200_raises_with_body(agent, node_client):
    agent.respond("POST", "/config", 400, text="invalid JSON: unexpected end")

    with pytest.raises(NodeError) as exc:
        await node_client.push_config(TARGET, {})
    assert "400" in str(exc.value)
    assert exc.value.body == "invalid JSON: unexpected end"


@pytest.mark.asyncio
async def test_transport_error_raises(agent, node_client):
    agent.down_hosts.add("1.2.3.4")
    with pytest.raises(NodeError):
        await node_client.restart_singbox(TARGET)


@pytest.mark.asyncio
async def test_get_config(agent, node_client):
    agent.respond("GET", "/config", 200, json={"route": {"final": "direct"}})
    assert await node_client.get_config(TARGET) == {"route": {"final": "direct"}}


@pytest.mark.asyncio
async def test_get_config_rejects_non_object(agent, node_client):
    agent.respond("GET", "/config", 200, json=[1, 2])
    with pytest.raises(NodeError):
        await node_client.get_config(TARGET)


@pytest.mark.asyncio
async def test_generate_keys(agent, node_client):
    agent.respond("POST", "/generate-keys", 200, json={"private_key": "p", "public_key": "P", "short_id": "0011"})
    keys = await node_client.generate_keys(TARGET)
    assert (keys.private_key, keys.public_key, keys.short_id) == ("p", "P", "0011")


@pytest.mark.asyncio
async def test_generate_keys_missing_field(agent, node_client):
    agent.respond("POST", "/generate-keys", 200, json={"private_key": "p"})
    with pytest.raises(NodeError):
        await node_client.generate_keys(TARGET)


@pytest.mark.asyncio
async def test_get_stats(agent, node_client):
    payload = {"users": [{"name": "alice", "upload": 10, "download": 20}, {"name": "bob"}]}
    agent.respond("GET", "/stats", 200, content=json.dumps(payload))

    stats = await node_client.get_stats(TARGET)

    assert [(u.name, u.upload, u.download) for u in stats.users] == [("alice", 10, 20), ("bob", 0, 0)]


@pytest.mark.asyncio
async def test_uses_restart_timeout():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["timeout"] = request.extensions["timeout"]
        return httpx.Response(200, json={"status": "ok"})

    client = NodeClient(timeout=1.0, restart_timeout=7.0, transport=httpx.MockTransport(handler))
    await client.restart_singbox(TARGET)
    assert seen["timeout"]["read"] == 7.0
