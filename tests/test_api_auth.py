from __future__ import annotations

PASSWORD = "Sup3rSecret"


def _register(client, username="newbie", email="newbie@example.com", password=PASSWORD):
    return client.post("/api/v1/auth/register", json={
        "username": username,
        "email": email,
        "password": password,
        "first_name": "New",
    })


def test_register_and_login(client) -> None:
    response = _register(client)
    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "editor"
    assert body["is_verified"] is False
    assert "hashed_password" not in body

    response = client.post("/api/v1/auth/login", json={"email": "newbie@example.com", "password": PASSWORD})
    assert response.status_code == 200
    tokens = response.json()
    assert tokens["token_type"] == "bearer"
    assert tokens["user"]["username"] == "newbie"

    me = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "newbie@example.com"


def test_register_duplicate_email_conflicts(client) -> None:
    _register(client)
    response = _register(client, username="another")
    assert response.status_code == 409
    assert response.json() == {"detail": "User with this email already exists.", "type": "conflict"}


def test_register_weak_password(client) -> None:
    response = _register(client, password="alllowercase")
    assert response.status_code == 400
    assert response.json()["type"] == "bad_request"


def test_login_wrong_password(client, editor) -> None:
    response = client.post("/api/v1/auth/login", json={"email": "editor@example.com", "password": "Wr0ngPass"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password."
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_missing_or_bad_token(client) -> None:
    assert client.get("/api/v1/users/me").status_code == 401
    response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401
    assert response.json()["type"] == "authentication_error"


def test_refresh_and_logout(client, editor) -> None:
    tokens = client.post("/api/v1/auth/login", json={"email": "editor@example.com", "password": PASSWORD}).json()

    refreshed = client.post("/api/v1/auth/refresh-token", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    new_tokens = refreshed.json()

    reused = client.post("/api/v1/auth/refresh-token", json={"refresh_token": tokens["refresh_token"]})
    assert reused.status_code == 401

    headers = {"Authorization": f"Bearer {new_tokens['access_token']}"}
    response = client.post("/api/v1/auth/logout", headers=headers, json={"refresh_token": new_tokens["refresh_token"]})
    assert response.status_code == 204
    assert client.get("/api/v1/users/me", headers=headers).status_code == 401


def test_forgot_password_answers_the_same_for_unknown_email(client, editor) -> None:
    known = client.post("/api/v1/auth/forgot-password", json={"email": "editor@example.com"})
    unknown = client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


def test_verify_email_endpoint(client, editor, editor_headers) -> None:
    response = client.get(f"/api/v1/auth/verify-email/{editor.email_verification_token}")
    assert response.status_code == 200
    assert client.get("/api/v1/users/me", headers=editor_headers).json()["is_verified"] is True


def test_profile_update(client, editor_headers) -> None:
    response = client.patch("/api/v1/users/me/profile", headers=editor_headers, json={
        "first_name": "Edie",
        "preferences": {"theme": "dark"},
    })
    assert response.status_code == 200
    assert response.json()["first_name"] == "Edie"
    assert response.json()["preferences"] == {"theme": "dark"}


def test_user_management_is_admin_only(client, editor, editor_headers, admin_headers) -> None:
    assert client.get("/api/v1/users", headers=editor_headers).status_code == 403

    listing = client.get("/api/v1/users", headers=admin_headers)
    assert listing.status_code == 200
    assert listing.json()["total"] == 2

    response = client.patch(f"/api/v1/users/{editor.id}", headers=editor_headers, json={"role": "admin"})
    assert response.status_code == 403

    response = client.patch(f"/api/v1/users/{editor.id}", headers=admin_headers, json={"role": "viewer"})
    assert response.status_code == 200
    assert response.json()["role"] == "viewer"


def test_admin_cannot_delete_self(client, admin, admin_headers, editor) -> None:
    assert client.delete(f"/api/v1/users/{admin.id}", headers=admin_headers).status_code == 400
    assert client.delete(f"/api/v1/users/{editor.id}", headers=admin_headers).status_code == 204


def test_health_and_request_id(client) -> None:
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Request-ID"] == "req-123"
    assert "X-Process-Time" in response.headers
