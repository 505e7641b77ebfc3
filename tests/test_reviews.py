from datetime import timedelta

from findotrip.domain.reviews import engine
from findotrip.models import Notification, User
from findotrip.models_listing import Property, RoomType
from findotrip.shared.constants import APPROVAL_APPROVED
from findotrip.shared.timeutils import utcnow


def test_rating_rounding():
    assert engine.round_rating(4.25) == 4.3
    assert engine.service_rating([5, 4, 4]) == (4.3, 3)
    assert engine.service_rating([]) == (0.0, 0)


def test_mean_uses_raw_ratings():
    # [2, 2, 3] and [4] round to 2.3 and 4.0 per service but average 2.75 overall
    assert engine.service_rating([2, 2, 3, 4]) == (2.8, 4)


def test_alert_only_when_crossing_threshold():
    assert engine.should_alert(4.0, 3, 2.8, 4, 3.0)
    assert not engine.should_alert(2.5, 3, 2.4, 4, 3.0)
    assert engine.should_alert(0.0, 0, 2.0, 1, 3.0)
    assert not engine.should_alert(0.0, 0, 4.0, 1, 3.0)


def test_breakdown_has_every_star():
    assert engine.rating_breakdown([5, 5, 3]) == {1: 0, 2: 0, 3: 1, 4: 0, 5: 2}


# ----------------------------------------------------------------------
# API
# ----------------------------------------------------------------------


def _confirmed_booking(client, book_room, customer, auth, start_in=10):
    booking = book_room(start_in=start_in).json()
    client.post(f"/bookings/property/{booking['id']}/pay", headers=auth(customer))
    return booking


def _review(client, customer, auth, booking, rating=5, **extra):
    payload = {
        "booking_type": "property",
        "booking_id": booking["id"],
        "rating": rating,
        "comment": "Wonderful views and a warm welcome",
    }
    payload.update(extra)
    return client.post("/reviews", json=payload, headers=auth(customer))


def test_review_updates_listing_and_provider(client, db, book_room, customer, property_owner, room_type, auth):
    first = _confirmed_booking(client, book_room, customer, auth, start_in=10)
    second = _confirmed_booking(client, book_room, customer, auth, start_in=20)

    response = _review(client, customer, auth, first, rating=5, cleanliness_rating=4)
    assert response.status_code == 201
    assert response.json()["reviewer_name"] == customer.name
    assert response.json()["stay_duration"] == 2
    assert _review(client, customer, auth, second, rating=4).status_code == 201

    db.expire_all()
    hotel = db.get(Property, room_type.property_id)
    assert hotel.rating == 4.5
    assert hotel.review_count == 2
    owner = db.get(User, property_owner.id)
    assert owner.average_rating == 4.5
    assert owner.total_reviews == 2

    summary = client.get(f"/reviews/service/property/{hotel.id}/summary").json()
    assert summary["total"] == 2
    assert summary["average"] == 4.5
    assert summary["breakdown"]["5"] == 1


def test_pending_booking_cannot_be_reviewed(client, book_room, customer, auth):
    booking = book_room().json()
    assert _review(client, customer, auth, booking).status_code == 400


def test_duplicate_review(client, book_room, customer, auth):
    booking = _confirmed_booking(client, book_room, customer, auth)
    assert _review(client, customer, auth, booking).status_code == 201
    assert _review(client, customer, auth, booking).status_code == 409


def test_rating_out_of_range(client, book_room, customer, auth):
    booking = _confirmed_booking(client, book_room, customer, auth)
    assert _review(client, customer, auth, booking, rating=6).status_code == 400
    assert _review(client, customer, auth, booking, rating=4, value_rating=0).status_code == 400


def test_someone_elses_booking(client, make_user, book_room, customer, auth):
    booking = _confirmed_booking(client, book_room, customer, auth)
    assert _review(client, make_user(), auth, booking).status_code == 404


def test_low_first_review_alerts_provider(client, db, book_room, customer, property_owner, auth):
    booking = _confirmed_booking(client, book_room, customer, auth)
    assert _review(client, customer, auth, booking, rating=2).status_code == 201

    types = [n.type for n in db.query(Notification).filter(Notification.user_id == property_owner.id)]
    assert "REVIEW_RECEIVED" in types
    assert "RATING_ALERT" in types


def test_reply_and_moderation(client, db, book_room, customer, property_owner, admin, room_type, auth):
    booking = _confirmed_booking(client, book_room, customer, auth)
    review = _review(client, customer, auth, booking, rating=1).json()

    assert client.post(f"/reviews/{review['id']}/reply", json={"response": "Sorry!"}, headers=auth(customer)).status_code == 403
    reply = client.post(
        f"/reviews/{review['id']}/reply", json={"response": "We fixed the heating"}, headers=auth(property_owner)
    )
    assert reply.json()["owner_response"] == "We fixed the heating"

    flagged = client.post(
        f"/reviews/{review['id']}/flag", json={"reason": "Abusive language"}, headers=auth(property_owner)
    )
    assert flagged.json()["flagged"] is True

    removed = client.post(f"/reviews/{review['id']}/moderate", json={"remove": True}, headers=auth(admin))
    assert removed.json()["is_active"] is False

    db.expire_all()
    hotel = db.get(Property, room_type.property_id)
    assert hotel.review_count == 0
    assert hotel.rating == 0.0


def _second_hotel_booking(client, db, owner, customer, auth):
    lodge = Property(
        owner_id=owner.id,
        name="Fairy Meadows Lodge",
        city="Gilgit",
        country="Pakistan",
        approval_status=APPROVAL_APPROVED,
    )
    db.add(lodge)
    db.flush()
    cabin = RoomType(property_id=lodge.id, name="Cabin", base_price=7000.0, max_guests=2, total_units=1)
    db.add(cabin)
    db.commit()

    check_in = utcnow().date() + timedelta(days=40)
    booking = client.post(
        "/bookings/property",
        json={
            "room_type_id": cabin.id,
            "check_in": check_in.isoformat(),
            "check_out": (check_in + timedelta(days=2)).isoformat(),
            "guests": 1,
        },
        headers=auth(customer),
    ).json()
    client.post(f"/bookings/property/{booking['id']}/pay", headers=auth(customer))
    return booking


def test_provider_rating_spans_all_listings(client, db, book_room, customer, property_owner, auth):
    for start_in, rating in ((10, 2), (15, 2), (20, 3)):
        booking = _confirmed_booking(client, book_room, customer, auth, start_in=start_in)
        assert _review(client, customer, auth, booking, rating=rating).status_code == 201
    other = _second_hotel_booking(client, db, property_owner, customer, auth)
    assert _review(client, customer, auth, other, rating=4).status_code == 201

    db.expire_all()
    owner = db.get(User, property_owner.id)
    # 11 / 4, not the mean of the per-listing 2.3 and 4.0
    assert owner.average_rating == 2.8
    assert owner.total_reviews == 4


def test_only_author_deletes_review(client, db, book_room, customer, property_owner, room_type, auth):
    booking = _confirmed_booking(client, book_room, customer, auth)
    review = _review(client, customer, auth, booking, rating=3).json()

    assert client.delete(f"/reviews/{review['id']}", headers=auth(property_owner)).status_code == 403
    assert client.delete(f"/reviews/{review['id']}", headers=auth(customer)).json() == {"success": True}
    assert client.delete(f"/reviews/{review['id']}", headers=auth(customer)).status_code == 404

    db.expire_all()
    hotel = db.get(Property, room_type.property_id)
    assert (hotel.rating, hotel.review_count) == (0.0, 0)
    owner = db.get(User, property_owner.id)
    assert (owner.average_rating, owner.total_reviews) == (0.0, 0)
