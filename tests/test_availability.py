from datetime import date, datetime, time, timedelta
from types import SimpleNamespace

from findotrip.domain.availability import engine
from findotrip.models_listing import RoomAvailability, UnavailableDate
from findotrip.shared.timeutils import utcnow


def _booking(check_in, check_out, rooms=1):
    return SimpleNamespace(check_in=check_in, check_out=check_out, number_of_rooms=rooms)


class TestOverlap:
    def test_back_to_back_bookings_do_not_collide(self):
        assert not engine.ranges_overlap(date(2025, 3, 1), date(2025, 3, 5), date(2025, 3, 5), date(2025, 3, 8))
        assert engine.ranges_overlap(date(2025, 3, 1), date(2025, 3, 5), date(2025, 3, 4), date(2025, 3, 8))

    def test_blocks_include_both_ends(self):
        assert engine.days_overlap(date(2025, 3, 1), date(2025, 3, 5), date(2025, 3, 5), date(2025, 3, 9))
        assert not engine.days_overlap(date(2025, 3, 1), date(2025, 3, 4), date(2025, 3, 5), date(2025, 3, 9))

    def test_date_range_excludes_end(self):
        days = list(engine.date_range(date(2025, 3, 1), date(2025, 3, 4)))
        assert days == [date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 3)]


class TestEvaluateNight:
    day = date(2025, 6, 10)

    def test_capacity_minus_bookings(self):
        bookings = [_booking(date(2025, 6, 9), date(2025, 6, 12))]
        result = engine.evaluate_night(self.day, 3, None, bookings, [], 1)
        assert result["is_available"] is True
        assert result["available_units"] == 2

    def test_checkout_day_is_free(self):
        bookings = [_booking(date(2025, 6, 8), self.day, rooms=3)]
        result = engine.evaluate_night(self.day, 3, None, bookings, [], 3)
        assert result["is_available"] is True

    def test_override_closes_the_night(self):
        override = SimpleNamespace(is_available=False, reason="Renovation", available_units=None)
        result = engine.evaluate_night(self.day, 3, override, [], [], 1)
        assert result == {
            "date": self.day,
            "is_available": False,
            "available_units": 0,
            "reason": "Renovation",
        }

    def test_override_units_replace_capacity(self):
        override = SimpleNamespace(is_available=True, reason=None, available_units=1)
        bookings = [_booking(self.day, self.day + timedelta(days=1))]
        result = engine.evaluate_night(self.day, 5, override, bookings, [], 1)
        assert result["is_available"] is False
        assert result["available_units"] == 0

    def test_owner_block(self):
        block = SimpleNamespace(start_date=self.day, end_date=self.day, reason=None)
        result = engine.evaluate_night(self.day, 3, None, [], [block], 1)
        assert result["is_available"] is False
        assert result["reason"] == "Date is blocked"


def test_stay_limits_prefer_the_date_override():
    override = SimpleNamespace(min_stay=3, max_stay=None)
    season = SimpleNamespace(min_stay=2, max_stay=14)
    event = SimpleNamespace(min_stay=5)
    assert engine.resolve_stay_limits(override, season, event) == (3, 14)
    assert engine.resolve_stay_limits(None, None, event) == (5, None)
    assert engine.stay_limit_violation(2, 3, None) == "Minimum 3 night(s) required for these dates"
    assert engine.stay_limit_violation(15, None, 14) == "Maximum 14 night(s) allowed for these dates"
    assert engine.stay_limit_violation(4, 3, 14) is None


def test_shifted_windows_nearest_first():
    start, end = date(2025, 6, 10), date(2025, 6, 12)
    windows = list(engine.shifted_windows(start, end, 2))
    assert windows == [
        (date(2025, 6, 11), date(2025, 6, 13)),
        (date(2025, 6, 9), date(2025, 6, 11)),
        (date(2025, 6, 12), date(2025, 6, 14)),
        (date(2025, 6, 8), date(2025, 6, 10)),
    ]
    assert list(engine.shifted_windows(start, end, 1, earliest=start)) == [
        (date(2025, 6, 11), date(2025, 6, 13))
    ]


# ----------------------------------------------------------------------
# API
# ----------------------------------------------------------------------


def _stay(days_from_now, nights):
    check_in = utcnow().date() + timedelta(days=days_from_now)
    return check_in, check_in + timedelta(days=nights)


def test_room_available_then_full(client, room_type, book_room):
    check_in, check_out = _stay(10, 2)
    params = {"check_in": check_in.isoformat(), "check_out": check_out.isoformat(), "rooms": 2}

    response = client.get(f"/availability/rooms/{room_type.id}", params=params)
    assert response.status_code == 200
    assert response.json()["available"] is True
    assert response.json()["available_units"] == 2

    assert book_room(start_in=10, nights=2, rooms=2).status_code == 201

    response = client.get(f"/availability/rooms/{room_type.id}", params=params)
    body = response.json()
    assert body["available"] is False
    assert len(body["unavailable_dates"]) == 2


def test_room_rejects_inverted_range(client, room_type):
    check_in, check_out = _stay(10, 2)
    response = client.get(
        f"/availability/rooms/{room_type.id}",
        params={"check_in": check_out.isoformat(), "check_out": check_in.isoformat()},
    )
    assert response.status_code == 400


def test_room_min_stay_override(client, db, room_type):
    check_in, check_out = _stay(10, 1)
    db.add(RoomAvailability(room_type_id=room_type.id, date=check_in, is_available=True, min_stay=3))
    db.commit()

    response = client.get(
        f"/availability/rooms/{room_type.id}",
        params={"check_in": check_in.isoformat(), "check_out": check_out.isoformat()},
    )
    body = response.json()
    assert body["available"] is False
    assert body["min_stay"] == 3


def test_blocked_property_dates(client, db, room_type, property_owner):
    check_in, check_out = _stay(20, 3)
    db.add(
        UnavailableDate(
            service_type="property",
            service_id=room_type.property_id,
            owner_id=property_owner.id,
            start_date=check_in + timedelta(days=1),
            end_date=check_in + timedelta(days=1),
            reason="Private event",
        )
    )
    db.commit()

    response = client.get(
        f"/availability/rooms/{room_type.id}",
        params={"check_in": check_in.isoformat(), "check_out": check_out.isoformat()},
    )
    assert response.json()["available"] is False


def test_tour_slot_must_exist(client, tour):
    day = (utcnow().date() + timedelta(days=5)).isoformat()
    response = client.get(f"/availability/tours/{tour.id}", params={"date": day, "time_slot": "11:00"})
    assert response.status_code == 400


def test_unapproved_vehicle_is_unavailable(client, db, vehicle):
    vehicle.approval_status = "PENDING"
    db.commit()

    start = utcnow() + timedelta(days=3)
    response = client.get(
        f"/availability/vehicles/{vehicle.id}",
        params={
            "start": start.isoformat(),
            "end": (start + timedelta(days=2)).isoformat(),
        },
    )
    assert response.status_code == 200
    assert response.json()["available"] is False


def test_room_summary_counts_booked_nights(client, room_type, book_room):
    assert book_room(start_in=10, nights=2, rooms=2).status_code == 201
    start, end = _stay(9, 4)

    body = client.get(
        f"/availability/rooms/{room_type.id}/summary",
        params={"start": start.isoformat(), "end": end.isoformat()},
    ).json()
    assert body["total_dates"] == 4
    assert body["fully_booked_dates"] == 2
    assert body["available_dates"] == 2
    assert [d["booked_units"] for d in body["dates"]] == [0, 2, 2, 0]
    assert body["min_available_units"] == 0


def test_room_calendar_covers_month(client, room_type):
    body = client.get(
        f"/availability/rooms/{room_type.id}/calendar", params={"year": 2030, "month": 2}
    ).json()
    assert (body["year"], body["month"]) == (2030, 2)
    assert body["total_dates"] == 28
    assert body["dates"][0]["date"] == "2030-02-01"
    assert body["available_dates"] == 28

    invalid = client.get(f"/availability/rooms/{room_type.id}/calendar", params={"year": 2030, "month": 13})
    assert invalid.status_code == 422


def test_room_alternatives_skip_full_nights(client, room_type, book_room):
    assert book_room(start_in=10, nights=2, rooms=2).status_code == 201
    check_in, check_out = _stay(10, 2)

    body = client.get(
        f"/availability/rooms/{room_type.id}/alternatives",
        params={"check_in": check_in.isoformat(), "check_out": check_out.isoformat(), "max_shift_days": 2},
    ).json()
    assert [a["shift_days"] for a in body["alternatives"]] == [2, -2]


def _block_vehicle(db, vehicle, day):
    db.add(
        UnavailableDate(
            service_type="vehicle",
            service_id=vehicle.id,
            owner_id=vehicle.owner_id,
            start_date=day,
            end_date=day,
            reason="Service",
        )
    )
    db.commit()


def _rental(start, end):
    return {"start": start.isoformat(), "end": end.isoformat()}


def test_vehicle_alternatives_avoid_block(client, db, vehicle):
    blocked = utcnow().date() + timedelta(days=10)
    _block_vehicle(db, vehicle, blocked)
    start = datetime.combine(blocked - timedelta(days=1), time(10))

    url = f"/availability/vehicles/{vehicle.id}"
    assert client.get(url, params=_rental(start, start + timedelta(days=2))).json()["available"] is False

    body = client.get(
        f"{url}/alternatives", params={**_rental(start, start + timedelta(days=2)), "max_shift_days": 2}
    ).json()
    assert [a["shift_days"] for a in body["alternatives"]] == [2, -2]


def test_vehicle_rental_ending_at_midnight(client, db, vehicle):
    blocked = utcnow().date() + timedelta(days=10)
    _block_vehicle(db, vehicle, blocked)
    start = datetime.combine(blocked - timedelta(days=2), time(10))
    url = f"/availability/vehicles/{vehicle.id}"

    midnight = datetime.combine(blocked, time(0))
    assert client.get(url, params=_rental(start, midnight)).json()["available"] is True
    assert client.get(url, params=_rental(start, midnight + timedelta(minutes=1))).json()["available"] is False
