from zenpanel.cli import main as cli_main
from zenpanel.models import Admin
from zenpanel.utils.auth import create_access_token, decode_access_token, hash_password, verify_password


def test_password_hashing():
    hashed = hash_password("pw")
    assert verify_password("pw", hashed)
    assert not verify_password("other", hashed)
    assert not verify_password("pw", "not-a-bcrypt-hash")


def test_token_roundtrip():
    payload = decode_access_token(create_access_token("root", is_sudo=True))
    assert payload["sub"] == "root"
    assert payload["is_sudo"] is True
    assert decode_access_token("garbage") is None


def test_login_and_me(client, sudo_admin):
    r = client.post("/api/admin/token", data={"username": "sudo", "password": "wrong"})
    assert r.status_code == 401

    r = client.post("/api/admin/token", data={"username": "sudo", "password": "sudo-pass"})
    assert r.status_code == 200
    assert r.json()["expires_in"] > 0
    token = r.json()["access_token"]

    me = client.get("/api/admin/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["username"] == "sudo"
    assert me["is_sudo"] is True
    assert me["last_login_at"] is not None


def test_token_for_deleted_admin(client):
    headers = {"Authorization": f"Bearer {create_access_token('ghost')}"}
    assert client.get("/api/admin/me", headers=headers).status_code == 401


def test_change_password(client, auth_headers):
    r = client.put("/api/admin/password", json={"current_password": "nope", "new_password": "brand-new"},
                   headers=auth_headers)
    assert r.status_code == 400

    r = client.put("/api/admin/password", json={"current_password": "sudo-pass", "new_password": "brand-new"},
                   headers=auth_headers)
    assert r.status_code == 204
    assert client.post("/api/admin/token", data={"username": "sudo", "password": "brand-new"}).status_code == 200


def test_admin_management_requires_sudo(client, db, auth_headers):
    db.add(Admin(username="plain", hashed_password=hash_password("x"), is_sudo=False))
    db.commit()
    plain = {"Authorization": f"Bearer {create_access_token('plain')}"}
    body = {"username": "ops", "password": "ops-password"}

    assert client.post("/api/admin", json=body, headers=plain).status_code == 403
    assert client.get("/api/admin", headers=plain).status_code == 403
    assert client.post("/api/admin", json=body, headers=auth_headers).status_code == 201
    assert client.post("/api/admin", json=body, headers=auth_headers).status_code == 409
    assert client.post("/api/admin", json={"username": "a b", "password": "ops-password"},
                       headers=auth_headers).status_code == 422

    names = [a["username"] for a in client.get("/api/admin", headers=auth_headers).json()]
    assert names == ["ops", "plain", "sudo"]


def test_cli_create_and_list(db, monkeypatch, capsys):
    monkeypatch.setattr("zenpanel.cli.SessionLocal", lambda: db)
    monkeypatch.setattr("zenpanel.cli.engine", db.get_bind())

    assert cli_main(["create-admin", "--username", "ops", "--password", "pw", "--sudo"]) == 0
    assert cli_main(["create-admin", "--username", "ops", "--password", "pw"]) == 1
    assert cli_main(["reset-password", "--username", "ghost", "--password", "pw"]) == 1
    assert cli_main(["reset-password", "--username", "ops", "--password", "new"]) == 0
    assert cli_main(["list-admins"]) == 0

    out = capsys.readouterr().out
    assert "Admin created: ops (sudo)" in out
    assert out.splitlines()[-1] == "ops (sudo)"
    assert verify_password("new", db.query(Admin).filter(Admin.username == "ops").one().hashed_password)
