import uuid

from tests.conftest import API, PASSWORD, login_headers, register


def test_health(client):
    res = client.get(f"{API}/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_health_db(client):
    res = client.get(f"{API}/health/db")
    assert res.status_code == 200
    assert res.json()["server_version"] == "sqlite"


def test_request_id_header(client):
    res = client.get(f"{API}/health", headers={"X-Request-ID": "abc123"})
    assert res.headers["X-Request-ID"] == "abc123"


def test_register_and_me(client):
    email, user = register(client, role="dentist", first_name="Jean", last_name="Martin")
    assert user["role"] == "dentist"
    assert "password_hash" not in user

    headers = login_headers(client, email)
    res = client.get(f"{API}/auth/me", headers=headers)
    assert res.status_code == 200
    assert res.json()["data"]["email"] == email


def test_register_duplicate_email(client):
    email, _ = register(client)
    res = client.post(
        f"{API}/auth/register",
        json={"email": email, "password": PASSWORD, "first_name": "A", "last_name": "B"},
    )
    assert res.status_code == 409
    assert res.json() == {"success": False, "error": "email_already_exists"}


def test_register_weak_password(client):
    res = client.post(
        f"{API}/auth/register",
        json={"email": "weak@dental-clinic.org", "password": "short", "first_name": "A", "last_name": "B"},
    )
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_login_wrong_password(client):
    email, _ = register(client)
    res = client.post(f"{API}/auth/login", json={"email": email, "password": "Wrong1234"})
    assert res.status_code == 401
    assert res.json()["error"] == "invalid_credentials"


def test_token_form_login(client):
    email, _ = register(client)
    res = client.post(f"{API}/auth/token", data={"username": email, "password": PASSWORD})
    assert res.status_code == 200
    assert res.json()["token_type"] == "bearer"


def test_refresh_token(client):
    email, _ = register(client)
    tokens = client.post(f"{API}/auth/login", json={"email": email, "password": PASSWORD}).json()

    res = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 200
    new_access = res.json()["access_token"]
    assert client.get(
        f"{API}/auth/me", headers={"Authorization": f"Bearer {new_access}"}
    ).status_code == 200

    # an access token cannot be used as a refresh token
    res = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert res.status_code == 401


def test_invalid_bearer_token(client):
    res = client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401
    assert res.json()["error"] == "invalid_token"
    assert res.headers["WWW-Authenticate"] == "Bearer"


def test_patients(client, admin_headers, patient):
    res = client.get(f"{API}/patients/{patient}", headers=admin_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["nom"] == "Durand"
    assert data["dateNaissance"] == "1985-04-12"

    assert client.get(f"{API}/patients/{uuid.uuid4()}", headers=admin_headers).status_code == 404

    page = client.get(f"{API}/patients?limit=1", headers=admin_headers).json()["data"]
    assert len(page["items"]) == 1
    assert page["total"] >= 1


def test_rooms(client, admin_headers, assistant_headers):
    numero = f"R-{uuid.uuid4().hex[:6]}"
    res = client.post(f"{API}/salles", json={"numero": numero, "capacite": 2}, headers=admin_headers)
    assert res.status_code == 201
    assert res.json()["data"]["capacite"] == 2

    res = client.post(f"{API}/salles", json={"numero": numero, "capacite": 2}, headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Room number already exists"

    res = client.post(f"{API}/salles", json={"numero": "X1", "capacite": 0}, headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "capacite must be a number greater than 0"

    res = client.post(f"{API}/salles", json={"numero": "X2", "capacite": 1}, headers=assistant_headers)
    assert res.status_code == 403

    res = client.get(f"{API}/salles?limit=100", headers=assistant_headers)
    assert res.status_code == 200


def test_treatments_crud(client, admin_headers, assistant_headers):
    res = client.post(
        f"{API}/soins",
        json={"code": f"T{uuid.uuid4().hex[:6]}", "description": "Couronne", "prix": 450.5, "categorie": "Prothese"},
        headers=admin_headers,
    )
    assert res.status_code == 201, res.text
    code = res.json()["data"]["code"]

    res = client.put(f"{API}/soins/{code}", json={"prix": 500}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["prix"] in ("500", "500.00")

    res = client.post(
        f"{API}/soins",
        json={"description": "Extraction", "prix": -5, "categorie": "Chirurgie"},
        headers=admin_headers,
    )
    assert res.status_code == 400

    res = client.post(
        f"{API}/soins",
        json={"description": "Extraction", "prix": 80, "categorie": "Chirurgie"},
        headers=assistant_headers,
    )
    assert res.status_code == 403

    codes = [t["code"] for t in client.get(f"{API}/soins", headers=assistant_headers).json()["data"]]
    assert code in codes

    assert client.delete(f"{API}/soins/{code}", headers=admin_headers).status_code == 200
    assert client.get(f"{API}/soins/{code}", headers=admin_headers).status_code == 404


def test_treatment_in_use_cannot_be_deleted(client, admin_headers, patient, treatment):
    client.post(
        f"{API}/factures",
        json={
            "patientId": patient,
            "methodPaiement": "carte",
            "dateEcheance": "2030-02-15",
            "factureSoins": [{"soinId": treatment, "montant": 10}],
        },
        headers=admin_headers,
    )
    res = client.delete(f"{API}/soins/{treatment}", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Soin is referenced by invoice line items"


def test_treatment_price_must_fit_in_cents(client, admin_headers):
    for prix in (0.004, 1e30):
        res = client.post(
            f"{API}/soins",
            json={"description": "Scellement", "prix": prix, "categorie": "Prevention"},
            headers=admin_headers,
        )
        assert res.status_code == 400
