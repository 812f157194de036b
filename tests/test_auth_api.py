from felka.core.security import create_access_token


def test_login_refresh_me(client, admin_user):
    r = client.post("/api/auth/login", json={"email": "ADMIN@felka.test", "password": "Passw0rd!"})
    assert r.status_code == 200, r.text
    tokens = r.json()
    assert tokens["token_type"] == "bearer"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.json()["id"] == admin_user.id
    assert me.json()["role"] == "admin"

    r = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert r.status_code == 200
    assert r.json()["access_token"]


def test_bad_credentials(client, admin_user):
    r = client.post("/api/auth/login", json={"email": "admin@felka.test", "password": "wrong"})
    assert r.status_code == 401
    r = client.post("/api/auth/login", json={"email": "nobody@felka.test", "password": "x"})
    assert r.status_code == 401


def test_refresh_rejects_access_token(client, admin_user):
    r = client.post("/api/auth/refresh", json={"refresh_token": create_access_token(admin_user.id)})
    assert r.status_code == 401


def test_inactive_user_rejected(client, db, admin_user):
    admin_user.is_active = False
    db.commit()
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {create_access_token(admin_user.id)}"})
    assert r.status_code == 401
