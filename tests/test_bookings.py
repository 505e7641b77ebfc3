from datetime import timedelta

import pytest

from findotrip.domain.bookings import engine
from findotrip.models import Commission, Notification
from findotrip.shared.timeutils import utcnow


class TestLifecycleRules:
    def test_transitions(self):
        engine.ensure_transition("PENDING", "CONFIRMED")
        engine.ensure_transition("CANCELLED", "REFUNDED")
        with pytest.raises(engine.InvalidTransition):
            engine.ensure_transition("PENDING", "COMPLETED")
        with pytest.raises(engine.InvalidTransition):
            engine.ensure_transition("COMPLETED", "CANCELLED")
        assert engine.allowed_transitions("REFUNDED") == ()

    @pytest.mark.parametrize("hours, percent", [(72, 100), (48.5, 100), (30, 50), (24, 0), (2, 0)])
    def test_refund_policy(self, hours, percent):
        now = utcnow()
        assert engine.refund_percentage(now + timedelta(hours=hours), now) == percent

    def test_money(self):
        assert engine.refund_amount(24260, 50) == 12130
        assert engine.commission_amount(24260, 0.10) == 2426


# ----------------------------------------------------------------------
# Property bookings
# ----------------------------------------------------------------------


def test_create_property_booking(client, db, book_room, property_owner):
    response = book_room()
    assert response.status_code == 201
    body = response.json()
    assert body["kind"] == "property"
    assert body["booking_number"].startswith("PB")
    assert body["status"] == "PENDING"
    assert body["payment_status"] == "PENDING"
    assert body["total_price"] == 24260
    assert body["price_breakdown"]["number_of_nights"] == 2

    owner_alerts = db.query(Notification).filter(Notification.user_id == property_owner.id).all()
    assert [n.type for n in owner_alerts] == ["BOOKING_CREATED"]


def test_overbooking_is_rejected(book_room):
    assert book_room(rooms=1).status_code == 201
    assert book_room(rooms=1).status_code == 201
    response = book_room(rooms=1)
    assert response.status_code == 409


def test_back_to_back_stays(book_room):
    assert book_room(start_in=10, nights=2, rooms=2).status_code == 201
    assert book_room(start_in=12, nights=2, rooms=2).status_code == 201


def test_past_check_in(book_room):
    assert book_room(start_in=-1).status_code == 400


def test_providers_cannot_book(book_room, property_owner):
    assert book_room(user=property_owner).status_code == 403


def test_unapproved_property(client, db, room_type, book_room):
    room_type.property.approval_status = "PENDING"
    db.commit()
    assert book_room().status_code == 404


def test_pay_confirms_and_takes_commission(client, db, book_room, customer, property_owner, auth):
    booking = book_room().json()
    response = client.post(f"/bookings/property/{booking['id']}/pay", headers=auth(customer))
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"
    assert response.json()["payment_status"] == "PAID"

    commission = db.query(Commission).one()
    assert commission.provider_id == property_owner.id
    assert commission.amount == 2426
    assert commission.percentage == 10
    assert commission.status == "PENDING"

    again = client.post(f"/bookings/property/{booking['id']}/pay", headers=auth(customer))
    assert again.status_code == 400


def test_voucher_needs_confirmation(client, book_room, customer, auth):
    booking = book_room().json()
    url = f"/bookings/property/{booking['id']}/voucher"
    assert client.get(url, headers=auth(customer)).status_code == 400

    client.post(f"/bookings/property/{booking['id']}/pay", headers=auth(customer))
    response = client.get(url, headers=auth(customer))
    assert response.status_code == 200
    assert response.json()["qr_payload"].startswith(f"BOOKING:{booking['booking_number']}|")


def test_access_is_limited_to_parties(client, make_user, book_room, property_owner, admin, auth):
    booking = book_room().json()
    url = f"/bookings/property/{booking['id']}"
    stranger = make_user()
    assert client.get(url, headers=auth(stranger)).status_code == 403
    assert client.get(url, headers=auth(property_owner)).status_code == 200
    assert client.get(url, headers=auth(admin)).status_code == 200

    by_number = client.get(f"/bookings/number/{booking['booking_number'].lower()}", headers=auth(property_owner))
    assert by_number.status_code == 200


def test_provider_status_updates(client, book_room, customer, property_owner, auth):
    booking = book_room().json()
    url = f"/bookings/property/{booking['id']}/status"

    assert client.patch(url, json={"status": "CONFIRMED"}, headers=auth(customer)).status_code == 403
    assert client.patch(url, json={"status": "COMPLETED"}, headers=auth(property_owner)).status_code == 400

    response = client.patch(url, json={"status": "CONFIRMED"}, headers=auth(property_owner))
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"


class TestCancellation:
    def _paid(self, client, book_room, customer, auth, start_in):
        booking = book_room(start_in=start_in).json()
        client.post(f"/bookings/property/{booking['id']}/pay", headers=auth(customer))
        return booking

    def test_full_refund_well_ahead(self, client, db, book_room, customer, auth):
        booking = self._paid(client, book_room, customer, auth, start_in=10)
        response = client.post(
            f"/bookings/property/{booking['id']}/cancel", json={"reason": "Plans changed"}, headers=auth(customer)
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "CANCELLED"
        assert body["refund_percentage"] == 100
        assert body["refund_amount"] == 24260
        assert body["payment_status"] == "REFUNDED"
        assert db.query(Commission).one().status == "CANCELLED"

    def test_half_refund_inside_two_days(self, client, book_room, customer, auth):
        booking = self._paid(client, book_room, customer, auth, start_in=2)
        body = client.post(f"/bookings/property/{booking['id']}/cancel", json={}, headers=auth(customer)).json()
        assert body["refund_percentage"] == 50
        assert body["refund_amount"] == 12130
        assert body["payment_status"] == "PARTIALLY_REFUNDED"

    def test_unpaid_booking_refunds_nothing(self, client, book_room, customer, auth):
        booking = book_room().json()
        body = client.post(f"/bookings/property/{booking['id']}/cancel", json={}, headers=auth(customer)).json()
        assert body["status"] == "CANCELLED"
        assert body["refund_amount"] == 0
        assert body["payment_status"] == "PENDING"

    def test_cancel_frees_inventory(self, client, book_room, customer, auth):
        first = book_room(rooms=2).json()
        assert book_room(rooms=1).status_code == 409
        client.post(f"/bookings/property/{first['id']}/cancel", json={}, headers=auth(customer))
        assert book_room(rooms=1).status_code == 201

    def test_cannot_cancel_twice(self, client, book_room, customer, auth):
        booking = book_room().json()
        url = f"/bookings/property/{booking['id']}/cancel"
        client.post(url, json={}, headers=auth(customer))
        assert client.post(url, json={}, headers=auth(customer)).status_code == 400

    def test_admin_refunds_cancelled_booking(self, client, book_room, customer, admin, auth):
        booking = self._paid(client, book_room, customer, auth, start_in=2)
        client.post(f"/bookings/property/{booking['id']}/cancel", json={}, headers=auth(customer))
        response = client.patch(
            f"/bookings/property/{booking['id']}/status", json={"status": "REFUNDED"}, headers=auth(admin)
        )
        assert response.status_code == 200
        assert response.json()["refund_percentage"] == 100
        assert response.json()["payment_status"] == "REFUNDED"


# ----------------------------------------------------------------------
# Vehicles and tours
# ----------------------------------------------------------------------


def _rental(vehicle, start_in_days, days):
    start = (utcnow() + timedelta(days=start_in_days)).replace(microsecond=0)
    return {
        "vehicle_id": vehicle.id,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=days)).isoformat(),
    }


def test_vehicle_booking_and_conflict(client, vehicle, customer, make_user, auth):
    response = client.post("/bookings/vehicle", json=_rental(vehicle, 3, 2), headers=auth(customer))
    assert response.status_code == 201
    body = response.json()
    assert body["booking_number"].startswith("VB")
    assert body["total_price"] == 23800

    other = make_user()
    clash = client.post("/bookings/vehicle", json=_rental(vehicle, 4, 2), headers=auth(other))
    assert clash.status_code == 409
    later = client.post("/bookings/vehicle", json=_rental(vehicle, 5, 1), headers=auth(other))
    assert later.status_code == 201


def test_vehicle_driver_not_offered(client, vehicle, customer, auth):
    payload = _rental(vehicle, 3, 1)
    payload["driver"] = True
    assert client.post("/bookings/vehicle", json=payload, headers=auth(customer)).status_code == 400


def _tour_payload(tour, adults, slot="09:00"):
    return {
        "tour_id": tour.id,
        "tour_date": (utcnow().date() + timedelta(days=7)).isoformat(),
        "time_slot": slot,
        "adults": adults,
        "lead_traveler_name": "Sara",
        "lead_traveler_email": "sara@example.com",
        "lead_traveler_phone": "+923001112233",
    }


def test_tour_capacity_per_slot(client, tour, customer, auth):
    first = client.post("/bookings/tour", json=_tour_payload(tour, 4), headers=auth(customer))
    assert first.status_code == 201
    assert first.json()["booking_number"].startswith("TB")
    assert first.json()["total_price"] == 8000

    full = client.post("/bookings/tour", json=_tour_payload(tour, 3), headers=auth(customer))
    assert full.status_code == 409

    other_slot = client.post("/bookings/tour", json=_tour_payload(tour, 3, "15:00"), headers=auth(customer))
    assert other_slot.status_code == 201


def test_my_bookings_lists_every_kind(client, book_room, tour, customer, auth):
    book_room()
    client.post("/bookings/tour", json=_tour_payload(tour, 2), headers=auth(customer))

    response = client.get("/bookings", headers=auth(customer))
    assert response.status_code == 200
    assert response.json()["count"] == 2
    assert {b["kind"] for b in response.json()["items"]} == {"property", "tour"}

    assert client.get("/bookings", params={"status": "BOGUS"}, headers=auth(customer)).status_code == 400
