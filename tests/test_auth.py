from findotrip.shared.constants import ADMIN, CUSTOMER, PROPERTY_OWNER


def _register(client, **overrides):
    payload = {
        "email": "Traveller@Example.com",
        "password": "Mountain-Trail-42",
        "name": "Bilal Ahmed",
    }
    payload.update(overrides)
    return client.post("/auth/register", json=payload)


class TestRegister:
    def test_creates_customer_and_signs_in(self, client):
        response = _register(client, phone="0300 1234567")
        assert response.status_code == 201
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["email"] == "traveller@example.com"
        assert body["user"]["role"] == CUSTOMER
        assert body["user"]["phone"] == "+923001234567"

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["name"] == "Bilal Ahmed"

    def test_provider_role(self, client):
        response = _register(client, role=PROPERTY_OWNER)
        assert response.status_code == 201
        assert response.json()["user"]["role"] == PROPERTY_OWNER

    def test_admin_cannot_self_register(self, client):
        assert _register(client, role=ADMIN).status_code == 403

    def test_weak_password(self, client):
        response = _register(client, password="abcdefgh")
        assert response.status_code == 400
        assert response.json()["detail"]["feedback"]

    def test_duplicate_email(self, client):
        assert _register(client).status_code == 201
        assert _register(client, email="traveller@example.com").status_code == 409

    def test_invalid_email(self, client):
        assert _register(client, email="not-an-email").status_code == 422


class TestLogin:
    def test_login(self, client, customer, password):
        response = client.post("/auth/login", json={"email": customer.email.upper(), "password": password})
        assert response.status_code == 200
        assert response.json()["user"]["id"] == customer.id
        assert response.json()["user"]["last_login_at"] is not None

    def test_wrong_password(self, client, customer):
        response = client.post("/auth/login", json={"email": customer.email, "password": "Wrong-Pass-1"})
        assert response.status_code == 401

    def test_deactivated_account(self, client, make_user, password):
        user = make_user(CUSTOMER, is_active=False)
        response = client.post("/auth/login", json={"email": user.email, "password": password})
        assert response.status_code == 403


class TestProfile:
    def test_requires_token(self, client):
        assert client.get("/auth/me").status_code in (401, 403)

    def test_rejects_garbage_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_update_profile(self, client, customer, auth):
        response = client.patch(
            "/auth/me", json={"name": "Ayesha K.", "bio": "Loves mountains"}, headers=auth(customer)
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Ayesha K."
        assert response.json()["bio"] == "Loves mountains"

    def test_null_name_rejected(self, client, customer, auth):
        response = client.patch("/auth/me", json={"name": None}, headers=auth(customer))
        assert response.status_code == 422
        assert client.get("/auth/me", headers=auth(customer)).json()["name"] == "Ayesha Khan"

    def test_clearing_optional_fields(self, client, customer, auth):
        client.patch("/auth/me", json={"bio": "Loves mountains"}, headers=auth(customer))
        response = client.patch("/auth/me", json={"bio": None}, headers=auth(customer))
        assert response.status_code == 200
        assert response.json()["bio"] is None
        assert response.json()["name"] == "Ayesha Khan"


class TestAdminUsers:
    def test_non_admin_forbidden(self, client, customer, auth):
        assert client.get("/admin/users", headers=auth(customer)).status_code == 403

    def test_filter_by_role(self, client, admin, customer, property_owner, auth):
        response = client.get("/admin/users", params={"role": PROPERTY_OWNER}, headers=auth(admin))
        assert response.status_code == 200
        assert [u["id"] for u in response.json()] == [property_owner.id]

    def test_deactivate_blocks_token(self, client, admin, customer, auth):
        headers = auth(customer)
        response = client.patch(
            f"/admin/users/{customer.id}/status", json={"is_active": False}, headers=auth(admin)
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert client.get("/auth/me", headers=headers).status_code == 403

    def test_cannot_deactivate_self(self, client, admin, auth):
        response = client.patch(
            f"/admin/users/{admin.id}/status", json={"is_active": False}, headers=auth(admin)
        )
        assert response.status_code == 400
