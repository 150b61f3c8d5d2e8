import pytest
from conftest import auth_headers, future

from barbershop.domain.barbers.service import haversine_km
from barbershop.models import Barber
from barbershop.shared.constants import BARBER

BARBERS = "/api/v1/barbers"


class TestCreateBarber:
    def test_barber_account_creates_pending_profile(self, client, user_factory):
        owner = user_factory(user_type=BARBER)
        response = client.post(
            BARBERS,
            json={"shop_name": "Clean Lines", "city": "Austin", "specialties": ["fades", "beards"]},
            headers=auth_headers(owner),
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "pending"
        assert data["user_id"] == owner.id
        assert data["specialties"] == ["fades", "beards"]
        assert data["rating"] == 0.0

    def test_second_profile_conflicts(self, client, barber, barber_user):
        response = client.post(BARBERS, json={"shop_name": "Again"}, headers=auth_headers(barber_user))
        assert response.status_code == 409

    def test_customer_cannot_create_profile(self, client, customer):
        response = client.post(BARBERS, json={"shop_name": "Nope"}, headers=auth_headers(customer))
        assert response.status_code == 403

    def test_admin_creates_profile_for_user(self, client, admin, user_factory):
        owner = user_factory(user_type=BARBER)
        response = client.post(
            BARBERS, json={"shop_name": "Managed", "user_id": owner.id}, headers=auth_headers(admin)
        )
        assert response.status_code == 201
        assert response.json()["data"]["user_id"] == owner.id

    def test_admin_with_unknown_user(self, client, admin):
        response = client.post(BARBERS, json={"shop_name": "Ghost", "user_id": 9999}, headers=auth_headers(admin))
        assert response.status_code == 404

    def test_barber_cannot_create_for_another_user(self, client, user_factory):
        owner = user_factory(user_type=BARBER)
        other = user_factory(user_type=BARBER)
        response = client.post(
            BARBERS, json={"shop_name": "Hijack", "user_id": other.id}, headers=auth_headers(owner)
        )
        assert response.status_code == 403

    @pytest.mark.parametrize(
        "field,value",
        [("latitude", 91), ("longitude", -181), ("business_email", "nope"), ("website_url", "ftp://x")],
    )
    def test_invalid_fields(self, client, user_factory, field, value):
        owner = user_factory(user_type=BARBER)
        response = client.post(BARBERS, json={"shop_name": "Bad", field: value}, headers=auth_headers(owner))
        assert response.status_code == 400


class TestListAndSearch:
    def test_list_with_filters(self, client, barber_factory):
        barber_factory(city="Austin", rating=4.8, is_verified=True)
        barber_factory(city="Dallas", rating=3.9)
        barber_factory(city="Austin", status="pending")

        body = client.get(BARBERS, params={"city": "austin", "status": "active"}).json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["city"] == "Austin"

        body = client.get(BARBERS, params={"min_rating": 4.5}).json()
        assert [b["rating"] for b in body["data"]] == [4.8]

        body = client.get(BARBERS, params={"is_verified": True}).json()
        assert body["meta"]["total"] == 1

    def test_sorted_by_rating(self, client, barber_factory):
        barber_factory(rating=3.0)
        barber_factory(rating=5.0)
        barber_factory(rating=4.0)

        ratings = [b["rating"] for b in client.get(BARBERS).json()["data"]]
        assert ratings == [5.0, 4.0, 3.0]

    def test_sorted_by_name(self, client, barber_factory):
        barber_factory(shop_name="Zed Cuts")
        barber_factory(shop_name="Alpha Barbers")

        names = [b["shop_name"] for b in client.get(BARBERS, params={"sort_by": "shop_name"}).json()["data"]]
        assert names == ["Alpha Barbers", "Zed Cuts"]

    def test_invalid_sort(self, client):
        assert client.get(BARBERS, params={"sort_by": "password"}).status_code == 400

    def test_search(self, client, barber_factory):
        barber_factory(shop_name="Uptown Fades")
        barber_factory(shop_name="Downtown Shaves")
        barber_factory(shop_name="Uptown Pending", status="pending")

        body = client.get(f"{BARBERS}/search", params={"q": "uptown"}).json()
        assert [b["shop_name"] for b in body["data"]] == ["Uptown Fades"]

    def test_search_query_too_short(self, client):
        assert client.get(f"{BARBERS}/search", params={"q": "u"}).status_code == 400

    def test_nearby(self, client, barber_factory):
        barber_factory(shop_name="Close", latitude=40.7130, longitude=-74.0062)
        barber_factory(shop_name="Closer", latitude=40.7128, longitude=-74.0060)
        barber_factory(shop_name="Far", latitude=34.0522, longitude=-118.2437)
        barber_factory(shop_name="Unplaced")

        data = client.get(
            f"{BARBERS}/nearby", params={"latitude": 40.7128, "longitude": -74.0060, "radius_km": 5}
        ).json()["data"]
        assert [b["shop_name"] for b in data] == ["Closer", "Close"]
        assert data[0]["distance_km"] == 0.0

    def test_nearby_invalid_latitude(self, client):
        response = client.get(f"{BARBERS}/nearby", params={"latitude": 95, "longitude": 0})
        assert response.status_code == 400


def test_haversine_known_distance():
    # New York to Los Angeles
    assert haversine_km(40.7128, -74.0060, 34.0522, -118.2437) == pytest.approx(3936, rel=0.01)


class TestReadUpdateDelete:
    def test_get_by_id_and_uuid(self, client, barber):
        assert client.get(f"{BARBERS}/{barber.id}").json()["data"]["uuid"] == barber.uuid
        assert client.get(f"{BARBERS}/uuid/{barber.uuid}").json()["data"]["id"] == barber.id

    def test_unknown(self, client):
        assert client.get(f"{BARBERS}/9999").status_code == 404

    def test_owner_updates(self, client, barber, barber_user):
        response = client.put(
            f"{BARBERS}/{barber.id}",
            json={"description": "Classic cuts since 1999", "years_experience": 25},
            headers=auth_headers(barber_user),
        )
        assert response.status_code == 200
        assert response.json()["data"]["years_experience"] == 25

    def test_other_user_cannot_update(self, client, barber, customer):
        response = client.put(f"{BARBERS}/{barber.id}", json={"city": "X"}, headers=auth_headers(customer))
        assert response.status_code == 403

    def test_admin_updates(self, client, barber, admin):
        response = client.put(f"{BARBERS}/{barber.id}", json={"city": "Denver"}, headers=auth_headers(admin))
        assert response.json()["data"]["city"] == "Denver"

    def test_shop_name_cannot_be_cleared(self, client, barber, barber_user):
        response = client.put(
            f"{BARBERS}/{barber.id}", json={"shop_name": None}, headers=auth_headers(barber_user)
        )
        assert response.status_code == 400

    def test_soft_delete(self, client, db, barber, barber_user):
        response = client.delete(f"{BARBERS}/{barber.id}", headers=auth_headers(barber_user))
        assert response.status_code == 200

        assert client.get(f"{BARBERS}/{barber.id}").status_code == 404
        assert client.get(BARBERS).json()["meta"]["total"] == 0

        db.expire_all()
        stored = db.get(Barber, barber.id)
        assert stored.deleted_at is not None
        assert stored.status == "inactive"

    def test_admin_sets_status(self, client, barber_factory, admin):
        pending = barber_factory(status="pending")
        response = client.patch(
            f"{BARBERS}/{pending.id}/status",
            json={"status": "active", "is_verified": True},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "active"
        assert response.json()["data"]["is_verified"] is True

    def test_owner_cannot_set_status(self, client, barber, barber_user):
        response = client.patch(
            f"{BARBERS}/{barber.id}/status", json={"status": "active"}, headers=auth_headers(barber_user)
        )
        assert response.status_code == 403

    def test_invalid_status_value(self, client, barber, admin):
        response = client.patch(
            f"{BARBERS}/{barber.id}/status", json={"status": "famous"}, headers=auth_headers(admin)
        )
        assert response.status_code == 400


class TestStatistics:
    def test_statistics(self, client, barber, service, customer, booking_factory):
        booking_factory(barber, service, customer=customer, status="completed", total_price=43.2)
        booking_factory(barber, service, customer=customer, status="completed", total_price=50.0,
                        start=future(hours=5))
        booking_factory(barber, service, status="cancelled", start=future(hours=8))
        booking_factory(barber, service, status="no_show", start=future(hours=9))

        data = client.get(f"{BARBERS}/{barber.id}/statistics").json()["data"]
        assert data["total_bookings"] == 4
        assert data["completed_bookings"] == 2
        assert data["cancelled_bookings"] == 1
        assert data["no_show_bookings"] == 1
        assert data["total_revenue"] == 93.2

    def test_unknown_barber(self, client):
        assert client.get(f"{BARBERS}/9999/statistics").status_code == 404


class TestBarberBookings:
    def test_owner_lists_bookings(self, client, barber, barber_user, service, booking_factory):
        booking_factory(barber, service, status="pending")
        booking_factory(barber, service, status="confirmed", start=future(hours=5))

        body = client.get(f"{BARBERS}/{barber.id}/bookings", headers=auth_headers(barber_user)).json()
        assert body["meta"]["total"] == 2

        body = client.get(
            f"{BARBERS}/{barber.id}/bookings", params={"status": "confirmed"}, headers=auth_headers(barber_user)
        ).json()
        assert [b["status"] for b in body["data"]] == ["confirmed"]

    def test_date_range(self, client, barber, barber_user, service, booking_factory):
        soon = booking_factory(barber, service, start=future(hours=2))
        booking_factory(barber, service, start=future(hours=72))

        body = client.get(
            f"{BARBERS}/{barber.id}/bookings",
            params={"date_from": future(hours=1).isoformat(), "date_to": future(hours=24).isoformat()},
            headers=auth_headers(barber_user),
        ).json()
        assert [b["id"] for b in body["data"]] == [soon.id]

    def test_other_user_forbidden(self, client, barber, customer):
        response = client.get(f"{BARBERS}/{barber.id}/bookings", headers=auth_headers(customer))
        assert response.status_code == 403

    def test_admin_allowed(self, client, barber, admin):
        assert client.get(f"{BARBERS}/{barber.id}/bookings", headers=auth_headers(admin)).status_code == 200

    def test_today(self, client, barber, barber_user, service, booking_factory):
        booking_factory(barber, service, start=future(hours=72))
        response = client.get(f"{BARBERS}/{barber.id}/bookings/today", headers=auth_headers(barber_user))
        assert response.status_code == 200
        assert response.json()["meta"]["total"] == 0

    def test_booking_stats(self, client, barber, barber_user, service, booking_factory):
        booking_factory(barber, service, status="completed", total_price=40.0)
        booking_factory(barber, service, status="completed", total_price=60.0, start=future(hours=5))
        booking_factory(barber, service, status="pending", start=future(hours=8))

        data = client.get(f"{BARBERS}/{barber.id}/bookings/stats", headers=auth_headers(barber_user)).json()["data"]
        assert data["total_bookings"] == 3
        assert data["by_status"] == {"completed": 2, "pending": 1}
        assert data["total_revenue"] == 100.0
        assert data["average_price"] == 50.0

    def test_booking_stats_forbidden(self, client, barber, user_factory):
        other = user_factory(user_type=BARBER)
        response = client.get(f"{BARBERS}/{barber.id}/bookings/stats", headers=auth_headers(other))
        assert response.status_code == 403
