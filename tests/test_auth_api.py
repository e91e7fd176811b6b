"""Tests for registration, login, profile and password change."""


def test_register_and_login(client, dispatcher):
    response = client.post("/auth/register", json={
        "name": "Meera",
        "email": "Meera@Example.com",
        "password": "meera-pass",
    })

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["user"]["email"] == "meera@example.com"
    assert data["user"]["role"] == "user"
    assert data["access_token"]
    assert dispatcher.of_kind("welcome")[0][1] == "meera@example.com"

    login = client.post("/auth/login", json={"email": "meera@example.com", "password": "meera-pass"})
    assert login.status_code == 200

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {login.json()['data']['access_token']}"})
    assert me.json()["data"]["name"] == "Meera"


def test_register_duplicate_email(client, user):
    response = client.post("/auth/register", json={"name": "Dup", "email": user.email, "password": "whatever1"})

    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists"


def test_register_weak_password(client):
    response = client.post("/auth/register", json={"name": "Weak", "email": "weak@example.com", "password": "123"})
    assert response.status_code == 400


def test_login_failures_look_the_same(client, user):
    wrong_password = client.post("/auth/login", json={"email": user.email, "password": "nope-nope"})
    unknown_email = client.post("/auth/login", json={"email": "ghost@example.com", "password": "nope-nope"})

    assert wrong_password.status_code == unknown_email.status_code == 400
    assert wrong_password.json() == unknown_email.json()


def test_invalid_token_rejected(client):
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_update_profile(client, user_headers):
    response = client.put("/auth/me", json={"name": "Asha R.", "phone": "9000000000"}, headers=user_headers)

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Asha R."
    assert response.json()["data"]["phone"] == "9000000000"


def test_change_password(client, user, user_headers):
    wrong = client.put(
        "/auth/change-password",
        json={"current_password": "bad-guess", "new_password": "fresh-pass"},
        headers=user_headers
    )
    assert wrong.status_code == 401

    ok = client.put(
        "/auth/change-password",
        json={"current_password": "customer-pass", "new_password": "fresh-pass"},
        headers=user_headers
    )
    assert ok.status_code == 200

    login = client.post("/auth/login", json={"email": user.email, "password": "fresh-pass"})
    assert login.status_code == 200


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
