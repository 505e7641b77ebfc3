import asyncio
from datetime import timedelta

import pytest

from findotrip.models_booking import PropertyBooking, TourBooking
from findotrip.models_review import ReviewRequest
from findotrip.services.status_automation import complete_finished_bookings, expire_review_requests
from findotrip.shared.timeutils import utcnow


@pytest.fixture
def finished_stay(db, customer, room_type):
    today = utcnow().date()
    booking = PropertyBooking(
        booking_number="PB1700000000000ABCDEF",
        user_id=customer.id,
        provider_id=room_type.property.owner_id,
        property_id=room_type.property_id,
        room_type_id=room_type.id,
        check_in=today - timedelta(days=3),
        check_out=today - timedelta(days=1),
        total_price=24260,
        status="CONFIRMED",
        payment_status="PAID",
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


@pytest.fixture
def todays_tour(db, customer, tour):
    booking = TourBooking(
        booking_number="TB1700000000000ABCDEF",
        user_id=customer.id,
        provider_id=tour.owner_id,
        tour_id=tour.id,
        tour_date=utcnow().date(),
        time_slot="23:59",
        participants=2,
        adults=2,
        lead_traveler_name="Sara",
        lead_traveler_email="sara@example.com",
        lead_traveler_phone="+923001112233",
        total_price=4000,
        status="CONFIRMED",
        payment_status="PAID",
    )
    db.add(booking)
    db.commit()
    return booking


def test_completes_finished_stays_once(db, finished_stay, customer):
    summary = complete_finished_bookings(db)
    assert summary["property_completed"] == 1
    assert summary["total_updated"] == 1
    assert summary["review_requests_created"] == 1
    assert summary["review_invites"] == [
        {
            "to": customer.email,
            "customer_name": customer.name,
            "service_name": "Hunza Serena",
            "booking_type": "property",
            "booking_id": finished_stay.id,
        }
    ]

    db.expire_all()
    assert db.get(PropertyBooking, finished_stay.id).status == "COMPLETED"
    assert db.query(ReviewRequest).count() == 1

    again = complete_finished_bookings(db)
    assert again["total_updated"] == 0
    assert again["review_invites"] == []


def test_tour_waits_for_its_slot(db, todays_tour):
    # The 23:59 departure has not finished yet (tours run for three hours)
    summary = complete_finished_bookings(db)
    assert summary["tour_completed"] == 0

    later = complete_finished_bookings(db, now=utcnow() + timedelta(days=2))
    assert later["tour_completed"] == 1


def test_review_requests_expire(db, finished_stay):
    complete_finished_bookings(db)
    assert expire_review_requests(db) == {"expired": 0}

    result = expire_review_requests(db, now=utcnow() + timedelta(days=31))
    assert result == {"expired": 1}
    db.expire_all()
    assert db.query(ReviewRequest).one().status == "EXPIRED"


def test_manual_run_endpoint(client, finished_stay, admin, customer, auth):
    assert client.post("/status/automation/run", headers=auth(customer)).status_code == 403

    response = client.post("/status/automation/run", headers=auth(admin))
    assert response.status_code == 200
    assert response.json() == {
        "property_completed": 1,
        "vehicle_completed": 0,
        "tour_completed": 0,
        "review_requests_created": 1,
        "review_requests_expired": 0,
        "total_updated": 1,
    }


def test_worker_task_sends_invites(db, finished_stay):
    from findotrip.worker import booking_status_automation_task

    summary = asyncio.run(booking_status_automation_task({}))
    assert summary["property_completed"] == 1
    assert summary["review_invites_sent"] == 1
