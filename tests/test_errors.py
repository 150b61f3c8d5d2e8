import uuid

import pytest
from conftest import FakeRedis
from fastapi import Depends, FastAPI, Header
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

import barbershop.main
import barbershop.rate_limiter
from barbershop.errors import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    http_exception_handler,
    integrity_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from barbershop.rate_limiter import check_rate_limit, create_rate_limiter, memory_cache


class Payload(BaseModel):
    name: str
    count: int


def build_app() -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    errors = {
        "invalid": InvalidArgumentError("Bad input"),
        "unauthorized": UnauthorizedError(),
        "forbidden": ForbiddenError(),
        "missing": NotFoundError("Booking not found"),
        "conflict": ConflictError("Time slot is not available"),
        "transition": InvalidTransitionError("Cannot change status from completed to pending"),
    }

    @app.get("/raise/{name}")
    def raise_app_error(name: str):
        raise errors[name]

    @app.post("/payload")
    def accept_payload(payload: Payload):
        return {"ok": True}

    @app.get("/secured")
    def secured(authorization: str = Header(...)):
        return {"ok": True}

    @app.get("/integrity")
    def integrity():
        raise IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed: users.email"))

    @app.get("/boom")
    def boom():
        raise RuntimeError("database on fire")

    return app


@pytest.fixture
def error_client():
    return TestClient(build_app(), raise_server_exceptions=False)


class TestErrorHandlers:
    @pytest.mark.parametrize(
        "name,status_code,code",
        [
            ("invalid", 400, "invalid_argument"),
            ("unauthorized", 401, "unauthorized"),
            ("forbidden", 403, "forbidden"),
            ("missing", 404, "not_found"),
            ("conflict", 409, "conflict"),
            ("transition", 422, "invalid_transition"),
        ],
    )
    def test_app_errors(self, error_client, name, status_code, code):
        response = error_client.get(f"/raise/{name}")
        assert response.status_code == status_code
        assert response.json()["error"] == code

    def test_message_is_kept(self, error_client):
        body = error_client.get("/raise/missing").json()
        assert body == {"error": "not_found", "message": "Booking not found"}

    def test_unauthorized_sets_challenge(self, error_client):
        response = error_client.get("/raise/unauthorized")
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_validation_error(self, error_client):
        response = error_client.post("/payload", json={"name": "x", "count": "many"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_argument"
        assert body["message"].startswith("count:")

    def test_missing_authorization_header(self, error_client):
        response = error_client.get("/secured")
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_integrity_error(self, error_client):
        response = error_client.get("/integrity")
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_unhandled_error_hides_details(self, error_client):
        response = error_client.get("/boom")
        assert response.status_code == 500
        assert response.json() == {"error": "internal", "message": "An unexpected error occurred"}

    def test_unknown_route(self, error_client):
        response = error_client.get("/nowhere")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_wrong_method(self, error_client):
        response = error_client.delete("/payload")
        assert response.status_code == 405
        assert response.json()["error"] == "method_not_allowed"


def failing_redis():
    raise ConnectionError("redis is down")


class TestRateLimiting:
    @pytest.fixture
    def limited_client(self, monkeypatch):
        monkeypatch.setattr(barbershop.rate_limiter, "RATE_LIMIT_ENABLED", True)
        monkeypatch.setattr(barbershop.rate_limiter, "get_redis_client", failing_redis)

        app = build_app()
        limiter = create_rate_limiter(limit=2, window_seconds=60, key_prefix=f"rate_limit:test:{uuid.uuid4()}")

        @app.get("/limited", dependencies=[Depends(limiter)])
        def limited():
            return {"ok": True}

        return TestClient(app)

    def test_blocks_after_limit(self, limited_client):
        assert limited_client.get("/limited").status_code == 200
        assert limited_client.get("/limited").status_code == 200

        response = limited_client.get("/limited")
        assert response.status_code == 429
        assert response.json()["error"] == "rate_limited"
        assert int(response.headers["Retry-After"]) > 0

    def test_clients_counted_separately(self, limited_client):
        for _ in range(2):
            limited_client.get("/limited", headers={"X-Forwarded-For": "10.0.0.1"})

        assert limited_client.get("/limited", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429
        assert limited_client.get("/limited", headers={"X-Forwarded-For": "10.0.0.2"}).status_code == 200

    def test_disabled_limiter_allows_everything(self, monkeypatch):
        monkeypatch.setattr(barbershop.rate_limiter, "RATE_LIMIT_ENABLED", False)
        app = build_app()
        limiter = create_rate_limiter(limit=1, window_seconds=60, key_prefix=f"rate_limit:test:{uuid.uuid4()}")

        @app.get("/limited", dependencies=[Depends(limiter)])
        def limited():
            return {"ok": True}

        client = TestClient(app)
        assert all(client.get("/limited").status_code == 200 for _ in range(3))


class TestCheckRateLimit:
    @pytest.fixture
    def key(self):
        key = f"rate_limit:unit:{uuid.uuid4()}"
        yield key
        memory_cache.pop(key, None)

    def test_memory_only_window(self, key):
        assert check_rate_limit(key, 2, 60)[:2] == (True, 1)
        assert check_rate_limit(key, 2, 60)[:2] == (True, 2)

        allowed, count, ttl = check_rate_limit(key, 2, 60)
        assert allowed is False
        assert count == 2
        assert 0 < ttl <= 60

    def test_resumes_window_from_redis(self, key):
        fake = FakeRedis()
        fake.set(key, 5, ex=30)

        allowed, count, ttl = check_rate_limit(key, 5, 60, fake)
        assert allowed is False
        assert count == 5
        assert ttl <= 30

    def test_broken_redis_falls_back_to_memory(self, key):
        class BrokenRedis:
            def get(self, key):
                raise ConnectionError("redis is down")

        assert check_rate_limit(key, 1, 60, BrokenRedis())[0] is True


class TestApplication:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["message"] == "Barbershop Booking API is running"
        assert body["api"] == "/api/v1"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_redis_health_unhealthy(self, client, monkeypatch):
        monkeypatch.setattr(barbershop.main, "get_redis_client", failing_redis)
        body = client.get("/health/redis").json()
        assert body["status"] == "unhealthy"
        assert body["redis"]["connected"] is False
        assert "redis is down" in body["redis"]["error"]

    def test_redis_health_healthy(self, client, monkeypatch):
        monkeypatch.setattr(barbershop.main, "get_redis_client", lambda: FakeRedis())
        body = client.get("/health/redis").json()
        assert body["status"] == "healthy"
        assert body["redis"]["version"] == "7.2.0"
        assert body["redis"]["connected_clients"] == 1

    def test_security_headers(self, client):
        response = client.get("/api/v1/barbers")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Cache-Control"] == "no-store"

    def test_health_skips_security_headers(self, client):
        assert "X-Frame-Options" not in client.get("/health").headers

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self, client):
        request_id = client.get("/health").headers["X-Request-ID"]
        assert str(uuid.UUID(request_id)) == request_id

    def test_errors_use_envelope(self, client):
        response = client.get("/api/v1/bookings/9999")
        assert response.status_code == 401
        assert set(response.json()) == {"error", "message"}
