from unittest.mock import MagicMock

import pytest
from conftest import FakeRedis, auth_headers, future

from barbershop.cache import (
    LONG_TTL,
    MEDIUM_TTL,
    Cache,
    barber_booking_stats_key,
    barber_key,
    barber_stats_key,
    build_search_key,
    review_stats_key,
)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    """Enabled cache backed by a dict, shared with the client fixture"""
    return Cache(client_factory=lambda: fake_redis, enabled=True)


class TestCache:
    def test_set_and_get(self, cache, fake_redis):
        assert cache.set("barber:1", {"id": 1, "shop_name": "Fade Factory"}) is True
        assert cache.get("barber:1") == {"id": 1, "shop_name": "Fade Factory"}
        assert fake_redis.ttls["barber:1"] == MEDIUM_TTL

    def test_miss(self, cache):
        assert cache.get("barber:404") is None

    def test_delete_pattern(self, cache, fake_redis):
        cache.set("search:barbers:a", [1])
        cache.set("search:barbers:b", [2])
        cache.set("search:services:c", [3])

        assert cache.delete_pattern("search:barbers:*") == 2
        assert list(fake_redis.store) == ["search:services:c"]

    def test_invalidate_barber(self, cache, fake_redis):
        for key in (
            barber_key(1),
            barber_stats_key(1),
            barber_booking_stats_key(1),
            review_stats_key(1),
            "search:barbers:abc",
            barber_key(2),
            review_stats_key(2),
        ):
            cache.set(key, {"cached": True})

        cache.invalidate_barber(1)

        assert set(fake_redis.store) == {barber_key(2), review_stats_key(2)}

    def test_disabled_cache_is_inert(self, fake_redis):
        disabled = Cache(client_factory=lambda: fake_redis, enabled=False)
        assert disabled.set("barber:1", {"id": 1}) is False
        assert disabled.get("barber:1") is None
        assert fake_redis.store == {}

    def test_unreachable_redis_is_a_miss(self):
        def factory():
            raise ConnectionError("Connection refused")

        unreachable = Cache(client_factory=factory, enabled=True)
        assert unreachable.get("barber:1") is None
        assert unreachable.set("barber:1", {"id": 1}) is False
        assert unreachable.delete_pattern("search:*") == 0
        unreachable.invalidate_barber(1)

    def test_client_errors_are_swallowed(self):
        client = MagicMock()
        client.get.side_effect = TimeoutError("read timed out")
        client.setex.side_effect = TimeoutError("write timed out")
        client.delete.side_effect = TimeoutError("write timed out")
        client.scan_iter.side_effect = TimeoutError("read timed out")
        flaky = Cache(client_factory=lambda: client, enabled=True)

        assert flaky.get("barber:1") is None
        assert flaky.set("barber:1", {"id": 1}) is False
        assert flaky.delete("barber:1") is False
        flaky.invalidate_barber(1)

    def test_corrupt_value_is_a_miss(self, cache, fake_redis):
        fake_redis.store["barber:1"] = "{not json"
        assert cache.get("barber:1") is None


class TestSearchKey:
    def test_stable_for_param_order(self):
        assert build_search_key("barbers", q="fade", limit=20) == build_search_key("barbers", limit=20, q="fade")

    def test_none_values_ignored(self):
        assert build_search_key("barbers", q="fade", city=None) == build_search_key("barbers", q="fade")

    def test_different_params_differ(self):
        assert build_search_key("barbers", q="fade") != build_search_key("barbers", q="beard")

    def test_prefix(self):
        assert build_search_key("barbers", q="fade").startswith("search:barbers:")


class TestCachedEndpoints:
    def test_barber_profile_read_through(self, client, barber, fake_redis):
        response = client.get(f"/api/v1/barbers/{barber.id}")
        assert response.status_code == 200
        assert barber_key(barber.id) in fake_redis.store

        fake_redis.store[barber_key(barber.id)] = fake_redis.store[barber_key(barber.id)].replace(
            barber.shop_name, "Cached Name"
        )
        assert client.get(f"/api/v1/barbers/{barber.id}").json()["data"]["shop_name"] == "Cached Name"

    def test_update_invalidates_profile(self, client, barber, barber_user, fake_redis):
        client.get(f"/api/v1/barbers/{barber.id}")

        response = client.put(
            f"/api/v1/barbers/{barber.id}",
            json={"shop_name": "The New Chair"},
            headers=auth_headers(barber_user),
        )
        assert response.status_code == 200
        assert barber_key(barber.id) not in fake_redis.store
        assert client.get(f"/api/v1/barbers/{barber.id}").json()["data"]["shop_name"] == "The New Chair"

    def test_booking_stats_cached_and_cleared_by_new_booking(
        self, client, barber, barber_user, service, customer, fake_redis
    ):
        response = client.get(f"/api/v1/barbers/{barber.id}/bookings/stats", headers=auth_headers(barber_user))
        assert response.status_code == 200
        assert response.json()["data"]["total_bookings"] == 0
        assert fake_redis.ttls[barber_booking_stats_key(barber.id)] == LONG_TTL

        created = client.post(
            "/api/v1/bookings",
            json={
                "barber_id": barber.id,
                "service_id": service.id,
                "start_time": future().isoformat(),
                "duration_minutes": 30,
            },
            headers=auth_headers(customer),
        )
        assert created.status_code == 201
        assert barber_booking_stats_key(barber.id) not in fake_redis.store

        response = client.get(f"/api/v1/barbers/{barber.id}/bookings/stats", headers=auth_headers(barber_user))
        assert response.json()["data"]["total_bookings"] == 1

    def test_search_results_cached(self, client, barber_factory, fake_redis):
        barber_factory(shop_name="Uptown Fades")

        response = client.get("/api/v1/barbers/search", params={"q": "uptown"})
        assert response.json()["meta"]["total"] == 1
        assert any(key.startswith("search:barbers:") for key in fake_redis.store)

    def test_redis_outage_falls_back_to_database(self, client, barber, fake_redis, monkeypatch):
        def broken_get(key):
            raise ConnectionError("Connection reset by peer")

        monkeypatch.setattr(fake_redis, "get", broken_get)
        response = client.get(f"/api/v1/barbers/{barber.id}")
        assert response.status_code == 200
        assert response.json()["data"]["id"] == barber.id
