import pytest

from zenpanel.services.client_config import build_outbound, generate_client_config


@pytest.fixture
def node(make_node):
    return make_node(name="node-A", address="1.2.3.4")


def _tags(document):
    return [ob["tag"] for ob in document["outbounds"]]


def test_single_server_becomes_proxy(node, make_inbound, make_user):
    inbound = make_inbound(node, name="Tokyo-1", protocol="reality")
    user = make_user(inbounds=[inbound])

    doc = generate_client_config(user, [inbound])

    assert _tags(doc) == ["proxy", "direct", "block", "dns-out"]
    proxy = doc["outbounds"][0]
    assert proxy["type"] == "vless"
    assert proxy["uuid"] == user.uuid
    assert proxy["flow"] == "xtls-rprx-vision"
    assert proxy["tls"]["reality"] == {"enabled": True, "public_key": "PUBKEY", "short_id": "abcd1234"}
    assert proxy["tls"]["utls"] == {"enabled": True, "fingerprint": "chrome"}


def test_several_servers_get_selector(node, make_inbound, make_user):
    reality = make_inbound(node, name="r", protocol="reality")
    ws = make_inbound(node, name="w", protocol="ws-tls")
    hy2 = make_inbound(node, name="h", protocol="hysteria2")
    user = make_user(inbounds=[reality, ws, hy2])

    doc = generate_client_config(user, [reality, ws, hy2])

    assert _tags(doc) == ["proxy", "node-A-r", "node-A-w", "node-A-h", "direct", "block", "dns-out"]
    selector = doc["outbounds"][0]
    assert selector == {
        "type": "selector",
        "tag": "proxy",
        "outbounds": ["node-A-r", "node-A-w", "node-A-h"],
        "default": "node-A-r",
    }


def test_disabled_inbounds_contribute_nothing(node, make_inbound, make_user):
    on = make_inbound(node, name="on", protocol="hysteria2")
    off = make_inbound(node, name="off", protocol="reality", enabled=False)
    user = make_user(inbounds=[on, off])

    doc = generate_client_config(user, [on, off])

    assert _tags(doc) == ["proxy", "direct", "block", "dns-out"]
    assert doc["outbounds"][0]["type"] == "hysteria2"


def test_no_inbounds_leaves_only_fixed_outbounds(make_user):
    doc = generate_client_config(make_user(), [])
    assert _tags(doc) == ["direct", "block", "dns-out"]


def test_document_furniture(node, make_inbound, make_user):
    inbound = make_inbound(node)
    doc = generate_client_config(make_user(inbounds=[inbound]), [inbound])

    assert doc["dns"]["final"] == "proxy-dns"
    assert doc["dns"]["strategy"] == "prefer_ipv4"
    assert [s["tag"] for s in doc["dns"]["servers"]] == ["proxy-dns", "direct-dns"]
    assert doc["inbounds"][0]["type"] == "tun"
    assert doc["inbounds"][0]["tag"] == "tun-in"
    assert doc["route"]["rules"] == [
        {"protocol": "dns", "outbound": "dns-out"},
        {"geoip": ["private"], "outbound": "direct"},
        {"geosite": ["category-ads-all"], "outbound": "block"},
    ]
    assert doc["route"]["final"] == "proxy"
    assert doc["route"]["auto_detect_interface"] is True


def test_ws_tls_outbound(node, make_inbound, make_user):
    inbound = make_inbound(node, name="w", protocol="ws-tls", ws_path="", sni="ws.example.com")
    ob = build_outbound(make_user(), inbound)

    assert ob["transport"] == {"type": "ws", "path": "/ws", "headers": {"Host": "ws.example.com"}}
    assert "flow" not in ob


def test_hysteria2_outbound_defaults_bandwidth(node, make_inbound, make_user):
    inbound = make_inbound(node, name="h", protocol="hysteria2", up_mbps=0, down_mbps=50)
    user = make_user()
    ob = build_outbound(user, inbound)

    assert ob["password"] == user.uuid
    assert ob["up_mbps"] == 100
    assert ob["down_mbps"] == 50
    assert ob["tls"]["insecure"] is False


def test_unsupported_inbound_is_skipped(node, make_inbound, make_user):
    good = make_inbound(node, name="good", protocol="reality")
    bad = make_inbound(node, name="bad", protocol="shadowsocks")
    doc = generate_client_config(make_user(inbounds=[good, bad]), [good, bad])

    assert _tags(doc) == ["proxy", "direct", "block", "dns-out"]


@pytest.mark.parametrize("protocol,keys", [
    ("reality", {"type", "tag", "server", "server_port", "uuid", "flow", "tls"}),
    ("ws-tls", {"type", "tag", "server", "server_port", "uuid", "tls", "transport"}),
    ("hysteria2", {"type", "tag", "server", "server_port", "password", "up_mbps", "down_mbps", "tls"}),
])
def test_outbound_field_sets(node, make_inbound, make_user, protocol, keys):
    inbound = make_inbound(node, protocol=protocol)
    user = make_user()

    ob = build_outbound(user, inbound)

    assert set(ob) == keys
    assert str(ob).count(user.uuid) == 1
