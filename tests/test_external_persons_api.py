def _person(**overrides):
    body = {
        "fullName": "Ana Pereira",
        "email": "Ana@Cliente.test",
        "personType": "client",
        "companyName": "Cliente SA",
        "document": "123.456.789-09",
    }
    body.update(overrides)
    return body


def test_requires_manager(client, client_headers):
    assert client.get("/api/external-persons").status_code == 401
    assert client.get("/api/external-persons", headers=client_headers).status_code == 403


def test_create_and_lookup(client, admin_headers):
    r = client.post("/api/external-persons", json=_person(allowedModules=["reports"]), headers=admin_headers)
    assert r.status_code == 201, r.text
    p = r.json()
    assert p["email"] == "ana@cliente.test"
    assert p["document"] == "12345678909"
    assert p["allowedModules"] == ["cargo-scheduling", "reports"]
    assert p["status"] == "active"

    r = client.get("/api/external-persons/by-document/123.456.789-09", headers=admin_headers)
    assert r.json()["id"] == p["id"]
    assert client.get("/api/external-persons/by-document/123", headers=admin_headers).status_code == 400
    assert client.get("/api/external-persons/by-document/98765432100", headers=admin_headers).status_code == 404

    listed = client.get("/api/external-persons", params={"q": "cliente"}, headers=admin_headers).json()
    assert [x["id"] for x in listed] == [p["id"]]
    assert client.get("/api/external-persons", params={"personType": "provider"}, headers=admin_headers).json() == []


def test_duplicate_email_conflict(client, admin_headers):
    client.post("/api/external-persons", json=_person(), headers=admin_headers)
    r = client.post("/api/external-persons", json=_person(fullName="Other"), headers=admin_headers)
    assert r.status_code == 409


def test_invalid_type(client, admin_headers):
    r = client.post("/api/external-persons", json=_person(personType="visitor"), headers=admin_headers)
    assert r.status_code == 400


def test_update_keeps_automatic_modules(client, admin_headers):
    p = client.post("/api/external-persons", json=_person(personType="contractor"), headers=admin_headers).json()
    r = client.patch(f"/api/external-persons/{p['id']}", json={"allowedModules": [], "position": "Electrician"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["allowedModules"] == ["access-control"]
    assert r.json()["position"] == "Electrician"


def test_visits_and_status(client, admin_headers):
    p = client.post("/api/external-persons", json=_person(), headers=admin_headers).json()

    r = client.post(f"/api/external-persons/{p['id']}/visits", headers=admin_headers)
    assert r.json()["visitCount"] == 1
    assert r.json()["lastVisitAt"] is not None

    r = client.patch(f"/api/external-persons/{p['id']}/status", json={"status": "blocked"}, headers=admin_headers)
    assert r.json()["status"] == "blocked"
    assert client.post(f"/api/external-persons/{p['id']}/visits", headers=admin_headers).status_code == 409

    r = client.patch(f"/api/external-persons/{p['id']}/status", json={"status": "gone"}, headers=admin_headers)
    assert r.status_code == 400


def test_delete(client, admin_headers):
    p = client.post("/api/external-persons", json=_person(), headers=admin_headers).json()
    assert client.delete(f"/api/external-persons/{p['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/external-persons/{p['id']}", headers=admin_headers).status_code == 404


def test_email_with_line_break_rejected(client, admin_headers):
    r = client.post("/api/external-persons", json=_person(email="ana@cliente.test\nBcc: x@y.test"), headers=admin_headers)
    assert r.status_code == 422
    p = client.post("/api/external-persons", json=_person(), headers=admin_headers).json()
    r = client.patch(f"/api/external-persons/{p['id']}", json={"email": "ana@cliente.test\r\nBcc: x@y.test"}, headers=admin_headers)
    assert r.status_code == 422
