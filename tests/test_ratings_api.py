"""
Rating endpoints: role gating, status codes and response shapes
"""
from app.models.rating import Rating
from app.models.user import Role


def test_normal_user_creates_rating(client, normal_user, make_store, auth_headers):
    store = make_store(name="Pizza Palace")

    response = client.post(
        "/api/ratings/",
        json={"store_id": store.id, "rating": 4},
        headers=auth_headers(normal_user),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["rating"] == 4
    assert data["user_id"] == normal_user.id
    assert data["store"] == {"id": store.id, "name": "Pizza Palace", "email": store.email}
    assert data["user"]["email"] == normal_user.email


def test_duplicate_rating_returns_409(client, db_session, normal_user, make_store, make_rating, auth_headers):
    store = make_store()
    make_rating(normal_user, store, 3)

    response = client.post(
        "/api/ratings/",
        json={"store_id": store.id, "rating": 5},
        headers=auth_headers(normal_user),
    )

    assert response.status_code == 409
    db_session.expire_all()
    assert db_session.query(Rating).one().rating == 3


def test_rating_unknown_store_returns_404(client, normal_user, auth_headers):
    response = client.post("/api/ratings/", json={"store_id": 99, "rating": 5}, headers=auth_headers(normal_user))

    assert response.status_code == 404
    assert response.json()["entity"] == "store"


def test_out_of_range_rating_rejected(client, normal_user, make_store, auth_headers):
    store = make_store()

    response = client.post("/api/ratings/", json={"store_id": store.id, "rating": 6}, headers=auth_headers(normal_user))

    assert response.status_code == 422


def test_store_owner_cannot_rate(client, make_user, make_store, auth_headers):
    owner = make_user(role=Role.STORE_OWNER)

    response = client.post("/api/ratings/", json={"store_id": make_store().id, "rating": 3}, headers=auth_headers(owner))

    assert response.status_code == 403


def test_anonymous_cannot_rate(client, make_store):
    response = client.post("/api/ratings/", json={"store_id": make_store().id, "rating": 3})

    assert response.status_code in (401, 403)


def test_update_own_rating(client, normal_user, make_store, make_rating, auth_headers):
    rating = make_rating(normal_user, make_store(), 2)

    response = client.patch(f"/api/ratings/{rating.id}", json={"rating": 5}, headers=auth_headers(normal_user))

    assert response.status_code == 200
    assert response.json()["rating"] == 5


def test_update_someone_elses_rating_forbidden(client, db_session, normal_user, make_user, make_store, make_rating, auth_headers):
    rating = make_rating(normal_user, make_store(), 2)

    response = client.patch(f"/api/ratings/{rating.id}", json={"rating": 5}, headers=auth_headers(make_user()))

    assert response.status_code == 403
    db_session.expire_all()
    assert db_session.get(Rating, rating.id).rating == 2


def test_update_missing_rating_not_found(client, normal_user, auth_headers):
    response = client.patch("/api/ratings/555", json={"rating": 5}, headers=auth_headers(normal_user))

    assert response.status_code == 404


def test_delete_own_rating(client, db_session, normal_user, make_store, make_rating, auth_headers):
    rating = make_rating(normal_user, make_store(), 2)

    response = client.delete(f"/api/ratings/{rating.id}", headers=auth_headers(normal_user))

    assert response.status_code == 204
    db_session.expire_all()
    assert db_session.get(Rating, rating.id) is None


def test_owner_reads_own_store_stats(client, make_user, make_store, make_rating, auth_headers):
    owner = make_user(role=Role.STORE_OWNER)
    store = make_store(owner=owner)
    for value in (4, 4, 5):
        make_rating(make_user(), store, value)

    response = client.get(f"/api/ratings/store/{store.id}/stats", headers=auth_headers(owner))

    assert response.status_code == 200
    data = response.json()
    assert data["average_rating"] == 4.3
    assert data["total_ratings"] == 3
    assert data["rating_breakdown"] == {"1": 0, "2": 0, "3": 0, "4": 2, "5": 1}


def test_owner_cannot_read_other_store_ratings(client, make_user, make_store, auth_headers):
    make_store(owner=make_user(role=Role.STORE_OWNER))
    other_store = make_store()
    owner = make_user(role=Role.STORE_OWNER)
    make_store(owner=owner)

    response = client.get(f"/api/ratings/store/{other_store.id}", headers=auth_headers(owner))

    assert response.status_code == 403


def test_store_ratings_missing_store_is_404_not_403(client, make_user, auth_headers):
    owner = make_user(role=Role.STORE_OWNER)

    response = client.get("/api/ratings/store/9999", headers=auth_headers(owner))

    assert response.status_code == 404


def test_admin_lists_all_ratings_and_stats(client, admin, normal_user, make_store, make_rating, auth_headers):
    make_rating(normal_user, make_store(), 1)
    make_rating(normal_user, make_store(), 4)

    listing = client.get("/api/ratings/", headers=auth_headers(admin))
    stats = client.get("/api/ratings/stats", headers=auth_headers(admin))

    assert listing.status_code == 200
    assert len(listing.json()) == 2
    assert stats.json() == {
        "total_ratings": 2,
        "average_rating": 2.5,
        "distribution": {"1": 1, "2": 0, "3": 0, "4": 1, "5": 0},
    }


def test_normal_user_cannot_list_all_ratings(client, normal_user, auth_headers):
    assert client.get("/api/ratings/", headers=auth_headers(normal_user)).status_code == 403


def test_my_ratings(client, normal_user, make_store, make_rating, auth_headers):
    make_rating(normal_user, make_store(), 3)

    response = client.get("/api/ratings/user/me", headers=auth_headers(normal_user))

    assert response.status_code == 200
    assert [r["rating"] for r in response.json()] == [3]


def test_other_users_ratings_forbidden_for_normal_user(client, normal_user, make_user, auth_headers):
    response = client.get(f"/api/ratings/user/{normal_user.id}", headers=auth_headers(make_user()))

    assert response.status_code == 403


def test_admin_reads_user_ratings(client, admin, normal_user, make_store, make_rating, auth_headers):
    make_rating(normal_user, make_store(), 3)

    response = client.get(f"/api/ratings/user/{normal_user.id}", headers=auth_headers(admin))

    assert response.status_code == 200
    assert len(response.json()) == 1


def test_user_store_lookup_needs_no_auth(client, normal_user, make_store, make_rating):
    store = make_store()
    make_rating(normal_user, store, 4)

    first = client.get(f"/api/ratings/user/{normal_user.id}/store/{store.id}")
    second = client.get(f"/api/ratings/user/{normal_user.id}/store/{store.id}")

    assert first.status_code == 200
    assert first.json()["rating"] == 4
    assert first.json() == second.json()


def test_user_store_lookup_without_rating_returns_null(client, normal_user, make_store):
    response = client.get(f"/api/ratings/user/{normal_user.id}/store/{make_store().id}")

    assert response.status_code == 200
    assert response.json() is None


def test_my_rating_for_store(client, normal_user, make_store, make_rating, auth_headers):
    store = make_store()
    make_rating(normal_user, store, 2)

    response = client.get(f"/api/ratings/store/{store.id}/me", headers=auth_headers(normal_user))

    assert response.status_code == 200
    assert response.json()["rating"] == 2
