from datetime import timedelta

import pytest
from conftest import DEFAULT_PASSWORD, auth_headers

from barbershop.models import User
from barbershop.security_utils import check_password_strength, create_jwt_token, verify_jwt_token

AUTH = "/api/v1/auth"


def register(client, email="new.customer@example.com", password="Fresh4Cut", **extra):
    return client.post(
        f"{AUTH}/register",
        json={"email": email, "password": password, "name": "New Customer", **extra},
    )


def login(client, email, password=DEFAULT_PASSWORD):
    return client.post(f"{AUTH}/login", json={"email": email, "password": password})


class TestRegister:
    def test_register_customer(self, client):
        response = register(client)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "new.customer@example.com"
        assert data["user"]["user_type"] == "customer"
        assert verify_jwt_token(data["access_token"])["type"] == "access"
        assert verify_jwt_token(data["refresh_token"])["type"] == "refresh"

    def test_register_barber(self, client):
        response = register(client, user_type="barber")
        assert response.json()["data"]["user"]["user_type"] == "barber"

    def test_email_is_normalized(self, client):
        response = register(client, email="  Mixed.Case@Example.COM ")
        assert response.json()["data"]["user"]["email"] == "mixed.case@example.com"

    def test_duplicate_email(self, client, customer):
        response = register(client, email=customer.email)
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.parametrize("password", ["short1", "onlyletters", "1234567890", "password1"])
    def test_weak_password(self, client, password):
        response = register(client, password=password)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_argument"

    def test_cannot_self_register_as_admin(self, client):
        assert register(client, user_type="admin").status_code == 400

    def test_invalid_email(self, client):
        assert register(client, email="not-an-email").status_code == 400

    def test_password_is_hashed(self, client, db):
        register(client)
        user = db.query(User).filter(User.email == "new.customer@example.com").one()
        assert user.password_hash != "Fresh4Cut"
        assert user.password_hash.startswith("$2")


class TestLogin:
    def test_login(self, client, customer):
        response = login(client, customer.email)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == customer.id

    def test_login_records_timestamp(self, client, db, customer):
        login(client, customer.email)
        db.expire_all()
        assert db.get(User, customer.id).last_login_at is not None

    def test_wrong_password(self, client, customer):
        response = login(client, customer.email, "Wrong9Password")
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_unknown_email(self, client):
        assert login(client, "nobody@example.com").status_code == 401

    def test_lockout_after_repeated_failures(self, client, db, customer):
        for _ in range(5):
            assert login(client, customer.email, "Wrong9Password").status_code == 401

        response = login(client, customer.email)
        assert response.status_code == 401
        assert "locked" in response.json()["message"]

        db.expire_all()
        assert db.get(User, customer.id).locked_until is not None

    def test_success_resets_failure_count(self, client, db, customer):
        login(client, customer.email, "Wrong9Password")
        login(client, customer.email)

        db.expire_all()
        assert db.get(User, customer.id).failed_login_attempts == 0

    def test_inactive_account(self, client, user_factory):
        suspended = user_factory(status="suspended")
        assert login(client, suspended.email).status_code == 403


class TestTokens:
    def test_refresh(self, client, customer):
        refresh_token = login(client, customer.email).json()["data"]["refresh_token"]

        response = client.post(f"{AUTH}/refresh", json={"refresh_token": refresh_token})
        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == customer.id

    def test_access_token_rejected_as_refresh(self, client, customer):
        access_token = login(client, customer.email).json()["data"]["access_token"]
        response = client.post(f"{AUTH}/refresh", json={"refresh_token": access_token})
        assert response.status_code == 401

    def test_refresh_token_rejected_as_access(self, client, customer):
        refresh_token = login(client, customer.email).json()["data"]["refresh_token"]
        response = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {refresh_token}"})
        assert response.status_code == 401

    def test_expired_token(self, client, customer):
        token = create_jwt_token({"sub": str(customer.id), "type": "access"}, timedelta(seconds=-10))
        response = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get(f"{AUTH}/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_token_for_deleted_user(self, client):
        token = create_jwt_token({"sub": "9999", "type": "access"}, timedelta(hours=1))
        response = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_token_for_suspended_user(self, client, user_factory):
        suspended = user_factory(status="suspended")
        assert client.get(f"{AUTH}/me", headers=auth_headers(suspended)).status_code == 401


class TestAccount:
    def test_me(self, client, customer):
        response = client.get(f"{AUTH}/me", headers=auth_headers(customer))
        assert response.status_code == 200
        assert response.json()["data"]["email"] == customer.email
        assert "password_hash" not in response.json()["data"]

    def test_me_requires_token(self, client):
        assert client.get(f"{AUTH}/me").status_code == 401

    def test_update_profile(self, client, customer):
        response = client.put(
            f"{AUTH}/profile",
            json={"name": "Renamed", "phone": "(555) 123-4567"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Renamed"
        assert response.json()["data"]["phone"] == "5551234567"

    def test_change_password(self, client, customer):
        response = client.post(
            f"{AUTH}/change-password",
            json={"current_password": DEFAULT_PASSWORD, "new_password": "Brand9New"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 200
        assert login(client, customer.email, "Brand9New").status_code == 200
        assert login(client, customer.email).status_code == 401

    def test_change_password_wrong_current(self, client, customer):
        response = client.post(
            f"{AUTH}/change-password",
            json={"current_password": "Wrong9Password", "new_password": "Brand9New"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 401

    def test_logout(self, client, customer):
        response = client.post(f"{AUTH}/logout", headers=auth_headers(customer))
        assert response.status_code == 200
        assert response.json()["data"]["message"] == "Logged out successfully"


class TestPasswordStrength:
    def test_valid(self):
        assert check_password_strength("Sharp3stCut") == {"is_valid": True, "feedback": []}

    def test_feedback_lists_every_problem(self):
        result = check_password_strength("abc")
        assert result["is_valid"] is False
        assert len(result["feedback"]) == 2
