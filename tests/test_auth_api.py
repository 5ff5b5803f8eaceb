from conftest import auth_headers, make_user


def register(client, **overrides):
    payload = {
        "username": "Kasun",
        "email": "Kasun@Example.com",
        "password": "secret123",
        "first_name": "Kasun",
        "last_name": "Silva",
    }
    payload.update(overrides)
    return client.post("/api/v1/auth/register", json=payload)


def test_register_creates_staff_account(client):
    response = register(client, role="admin")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["role"] == "staff"
    assert body["user"]["username"] == "kasun"
    assert body["user"]["email"] == "kasun@example.com"


def test_register_duplicate_is_rejected(client):
    register(client)
    response = register(client, username="other")
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_register_validates_password(client):
    response = register(client, password="123")
    assert response.status_code == 422
    assert any(error["field"] == "password" for error in response.json()["errors"])


def test_login_with_username_or_email(client, db):
    make_user(db, "nadeesha", "cashier", password="pass1234")

    by_name = client.post("/api/v1/auth/login", json={"username": "nadeesha", "password": "pass1234"})
    by_email = client.post("/api/v1/auth/login",
                           json={"username": "NADEESHA@store.example.com", "password": "pass1234"})

    assert by_name.status_code == 200
    assert by_email.status_code == 200
    assert by_name.json()["user"]["last_login"] is not None


def test_login_rejects_bad_password(client, db):
    make_user(db, "nadeesha", "cashier", password="pass1234")
    response = client.post("/api/v1/auth/login", json={"username": "nadeesha", "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


def test_login_rejects_deactivated_user(client, db):
    user = make_user(db, "former", "cashier", password="pass1234")
    user.is_active = False
    db.commit()

    response = client.post("/api/v1/auth/login", json={"username": "former", "password": "pass1234"})
    assert response.status_code == 401
    assert response.json()["message"] == "Account is deactivated"


def test_me_requires_token(client, db):
    assert client.get("/api/v1/auth/me").status_code == 401
    bad = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 401

    user = make_user(db, "ruwan", "manager")
    response = client.get("/api/v1/auth/me", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["data"]["full_name"] == "Ruwan Tester"


def test_health(client):
    assert client.get("/api/v1/health").json()["status"] == "healthy"
