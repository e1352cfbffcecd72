"""
Authentication boundary and admin user management
"""
import threading

from app.models.user import User, Role
from app.schemas.auth import UserRegister
from app.services.auth_service import AuthService


def test_register_and_login(client):
    register = client.post("/api/auth/register", json={
        "email": "new@example.com",
        "password": "SecurePass123",
        "name": "New User",
        "address": "1 Main Street",
    })
    assert register.status_code == 201
    assert register.json()["role"] == "NORMAL_USER"

    login = client.post("/api/auth/login", json={"email": "new@example.com", "password": "SecurePass123"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "new@example.com"


def test_register_duplicate_email(client, normal_user):
    response = client.post("/api/auth/register", json={
        "email": normal_user.email,
        "password": "SecurePass123",
        "name": "Someone",
    })

    assert response.status_code == 409


def test_concurrent_registrations_with_same_email(file_session_factory, run_concurrently, monkeypatch):
    barrier = threading.Barrier(2, timeout=10)

    def hash_after_both_checked(password):
        # both requests have passed the existing-email lookup by now
        barrier.wait()
        return "hashed"

    monkeypatch.setattr("app.services.auth_service.hash_password", hash_after_both_checked)

    def register(db):
        AuthService.register_user(db, UserRegister(email="race@example.com", password="SecurePass123", name="Racer"))

    assert run_concurrently(register) == ["conflict", "ok"]

    check = file_session_factory()
    assert check.query(User).filter(User.email == "race@example.com").count() == 1
    check.close()


def test_login_wrong_password(client, normal_user):
    response = client.post("/api/auth/login", json={"email": normal_user.email, "password": "WrongPass123"})

    assert response.status_code == 401


def test_admin_creates_store_owner_then_store(client, admin, auth_headers):
    headers = auth_headers(admin)

    owner = client.post("/api/users/", json={
        "email": "owner@example.com",
        "password": "OwnerPass123",
        "name": "Store Owner",
        "role": "STORE_OWNER",
    }, headers=headers)
    assert owner.status_code == 201
    assert owner.json()["role"] == "STORE_OWNER"

    store = client.post("/api/stores/", json={
        "name": "Pizza Palace",
        "email": "pp@x.com",
        "owner_id": owner.json()["id"],
    }, headers=headers)
    assert store.status_code == 201

    detail = client.get(f"/api/users/{owner.json()['id']}", headers=headers)
    assert detail.status_code == 200
    assert detail.json()["owned_store"] == {
        "id": store.json()["id"],
        "name": "Pizza Palace",
        "average_rating": 0.0,
        "total_ratings": 0,
    }


def test_list_users_filters(client, admin, make_user, auth_headers):
    make_user(name="Alice Owner", role=Role.STORE_OWNER)
    make_user(name="Bob Normal")

    by_role = client.get("/api/users/", params={"role": "STORE_OWNER"}, headers=auth_headers(admin))
    by_name = client.get("/api/users/", params={"name": "bob"}, headers=auth_headers(admin))

    assert [u["name"] for u in by_role.json()] == ["Alice Owner"]
    assert [u["name"] for u in by_name.json()] == ["Bob Normal"]


def test_list_users_treats_wildcards_literally(client, admin, make_user, auth_headers):
    make_user(name="Ann_Lee")
    make_user(name="Annxlee")
    make_user(name="100% Real")

    underscore = client.get("/api/users/", params={"name": "_"}, headers=auth_headers(admin))
    percent = client.get("/api/users/", params={"name": "%"}, headers=auth_headers(admin))

    assert [u["name"] for u in underscore.json()] == ["Ann_Lee"]
    assert [u["name"] for u in percent.json()] == ["100% Real"]


def test_get_missing_user(client, admin, auth_headers):
    assert client.get("/api/users/999", headers=auth_headers(admin)).status_code == 404


def test_dashboard_stats(client, admin, normal_user, make_store, make_rating, auth_headers):
    make_rating(normal_user, make_store(), 5)

    response = client.get("/api/users/stats", headers=auth_headers(admin))

    assert response.status_code == 200
    data = response.json()
    assert data["total_users"] == 3
    assert data["total_stores"] == 1
    assert data["total_ratings"] == 1
    assert data["average_rating"] == 5.0
    assert data["rating_distribution"]["5"] == 1


def test_users_endpoints_admin_only(client, make_user, auth_headers):
    owner = make_user(role=Role.STORE_OWNER)

    assert client.get("/api/users/stats", headers=auth_headers(owner)).status_code == 403


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def _register_and_login(client, email="self@example.com", password="SecurePass123"):
    client.post("/api/auth/register", json={"email": email, "password": password, "name": "Self Service"})
    token = client.post("/api/auth/login", json={"email": email, "password": password}).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def test_update_own_profile(client, normal_user, auth_headers):
    response = client.patch(
        "/api/users/profile",
        json={"name": "Renamed User", "address": "<b>42</b> Side Road"},
        headers=auth_headers(normal_user)
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Renamed User"
    assert response.json()["address"] == "42 Side Road"
    assert response.json()["email"] == normal_user.email


def test_change_password_then_login(client):
    headers = _register_and_login(client)

    response = client.patch("/api/users/change-password", json={
        "current_password": "SecurePass123",
        "new_password": "EvenBetter456",
    }, headers=headers)
    assert response.status_code == 200

    old = client.post("/api/auth/login", json={"email": "self@example.com", "password": "SecurePass123"})
    new = client.post("/api/auth/login", json={"email": "self@example.com", "password": "EvenBetter456"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_change_password_wrong_current(client):
    headers = _register_and_login(client)

    response = client.patch("/api/users/change-password", json={
        "current_password": "NotMyPass123",
        "new_password": "EvenBetter456",
    }, headers=headers)

    assert response.status_code == 400


def test_admin_updates_user(client, admin, normal_user, auth_headers):
    response = client.patch(
        f"/api/users/{normal_user.id}",
        json={"address": "Moved Away"},
        headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json()["address"] == "Moved Away"
    assert response.json()["name"] == normal_user.name


def test_admin_deletes_store_owner_with_store(client, admin, normal_user, make_store, make_rating, auth_headers):
    store = make_store()
    make_rating(normal_user, store, 4)
    headers = auth_headers(admin)

    response = client.delete(f"/api/users/{store.owner_id}", headers=headers)

    assert response.status_code == 200
    assert client.get(f"/api/stores/{store.id}", headers=headers).status_code == 404
    assert client.get("/api/users/stats", headers=headers).json()["total_ratings"] == 0


def test_delete_user_admin_only(client, normal_user, make_user, auth_headers):
    other = make_user()

    assert client.delete(f"/api/users/{other.id}", headers=auth_headers(normal_user)).status_code == 403
    assert client.delete("/api/users/999", headers=auth_headers(make_user(role=Role.ADMIN))).status_code == 404
