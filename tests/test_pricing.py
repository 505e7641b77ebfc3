from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from findotrip.domain.pricing import engine
from findotrip.models_listing import DiscountRule, SeasonalPricing
from findotrip.shared.timeutils import utcnow


def _nights(*prices):
    return [{"final_price": p} for p in prices]


class TestAdjustments:
    @pytest.mark.parametrize(
        "kind, value, expected",
        [
            (engine.PERCENTAGE_INCREASE, 20, 120),
            (engine.PERCENTAGE_DECREASE, 25, 75),
            (engine.FIXED_INCREASE, 15, 115),
            (engine.FIXED_DECREASE, 15, 85),
            (engine.FIXED_PRICE, 60, 60),
        ],
    )
    def test_apply_price_adjustment(self, kind, value, expected):
        assert engine.apply_price_adjustment(100, kind, value) == pytest.approx(expected)

    def test_round_money_half_up(self):
        assert engine.round_money(2.675) == 2.68
        assert engine.round_money(10) == 10.0

    def test_seasonal_days_of_week(self):
        # 2025-06-14 is a Saturday
        rule = SimpleNamespace(start_date=date(2025, 6, 1), end_date=date(2025, 6, 30), days_of_week=[5, 6])
        assert engine.seasonal_rule_matches_day(rule, date(2025, 6, 14))
        assert not engine.seasonal_rule_matches_day(rule, date(2025, 6, 16))
        assert not engine.seasonal_rule_matches_day(rule, date(2025, 7, 5))


class TestNightPrice:
    day = date(2025, 6, 14)

    def test_custom_price_beats_event(self):
        override = SimpleNamespace(custom_price=15000)
        event = SimpleNamespace(price_multiplier=2.0, event_name="Eid")
        result = engine.night_price(10000, self.day, override=override, event_rule=event)
        assert result["final_price"] == 15000
        assert result["applied_rules"] == ["Custom price set for Jun 14"]

    def test_event_beats_season(self):
        event = SimpleNamespace(price_multiplier=1.5, event_name="Eid")
        season = SimpleNamespace(price_adjustment=engine.PERCENTAGE_INCREASE, adjustment_value=10, name="Summer")
        result = engine.night_price(10000, self.day, event_rule=event, seasonal_rule=season)
        assert result["final_price"] == 15000

    def test_best_discount_applies_last(self):
        long_stay = SimpleNamespace(
            type=engine.LONG_STAY, discount_percent=10, min_nights=7,
            days_in_advance=None, days_before_check_in=None, valid_from=None, valid_until=None,
        )
        early_bird = SimpleNamespace(
            type=engine.EARLY_BIRD, discount_percent=15, min_nights=None,
            days_in_advance=60, days_before_check_in=None, valid_from=None, valid_until=None,
        )
        booked_on = self.day - timedelta(days=10)
        result = engine.night_price(
            10000, self.day, discounts=[long_stay, early_bird], nights=7, booked_on=booked_on
        )
        assert result["final_price"] == 9000
        assert result["applied_rules"] == ["LONG_STAY discount: -10%"]


class TestStayTotals:
    def test_percentage_service_fee(self):
        totals = engine.stay_totals(_nights(10000, 10000), 1, 500, 0, 8, 0.10, "PKR")
        assert totals["subtotal"] == 20000
        assert totals["service_fee"] == 2000
        assert totals["tax_amount"] == 1760
        assert totals["total"] == 24260
        assert totals["average_price_per_night"] == 10000

    def test_fixed_service_fee_wins(self):
        totals = engine.stay_totals(_nights(10000, 10000), 1, 500, 1500, 8, 0.10, "PKR")
        assert totals["service_fee"] == 1500
        assert totals["total"] == 23720

    def test_rooms_multiply_subtotal(self):
        totals = engine.stay_totals(_nights(5000), 3, 0, 0, 0, 0.10, "PKR")
        assert totals["subtotal"] == 15000
        assert totals["total"] == 16500


class TestVehicleAndTour:
    def test_started_days_count(self):
        start = datetime(2025, 6, 1, 9, 0)
        assert engine.rental_days(start, start + timedelta(hours=50)) == 3
        assert engine.rental_days(start, start) == 1

    def test_vehicle_price(self):
        start = datetime(2025, 6, 1, 9, 0)
        quote = engine.vehicle_price(
            6000, start, start + timedelta(hours=50),
            insurance_fee=500, security_deposit=10000, include_insurance=True,
        )
        assert quote["days"] == 3
        assert quote["rental_cost"] == 18000
        assert quote["insurance_cost"] == 1500
        assert quote["service_fee"] == 975
        assert quote["taxes"] == 1950
        assert quote["total"] == 32425

    def test_tour_child_and_group_discounts(self):
        quote = engine.tour_price(2000, adults=4, children=1)
        assert quote["subtotal"] == 10000
        assert quote["child_discount"] == 1000
        assert quote["group_discount"] == 1000
        assert quote["total"] == 8000

    def test_small_tour_group(self):
        assert engine.tour_price(2000, adults=2)["total"] == 4000


# ----------------------------------------------------------------------
# API
# ----------------------------------------------------------------------


def test_stay_quote_uses_property_fees(client, room_type):
    check_in = utcnow().date() + timedelta(days=30)
    response = client.get(
        f"/pricing/rooms/{room_type.id}/quote",
        params={
            "check_in": check_in.isoformat(),
            "check_out": (check_in + timedelta(days=2)).isoformat(),
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["number_of_nights"] == 2
    assert body["total"] == 24260


def test_seasonal_rule_raises_night_price(client, db, room_type):
    day = utcnow().date() + timedelta(days=30)
    db.add(
        SeasonalPricing(
            property_id=room_type.property_id,
            name="Peak",
            start_date=day,
            end_date=day,
            days_of_week=[],
            price_adjustment=engine.PERCENTAGE_INCREASE,
            adjustment_value=20,
        )
    )
    db.commit()

    response = client.get(f"/pricing/rooms/{room_type.id}/night", params={"date": day.isoformat()})
    assert response.status_code == 200
    assert response.json()["final_price"] == 12000


def test_weekly_discount_on_night_price(client, db, room_type):
    db.add(
        DiscountRule(
            property_id=room_type.property_id,
            type=engine.WEEKLY,
            discount_percent=10,
            min_nights=7,
        )
    )
    db.commit()

    day = utcnow().date() + timedelta(days=30)
    response = client.get(
        f"/pricing/rooms/{room_type.id}/night",
        params={"date": day.isoformat(), "nights": 7, "booked_on": utcnow().date().isoformat()},
    )
    assert response.json()["final_price"] == 9000


def test_tour_quote(client, tour):
    response = client.get(f"/pricing/tours/{tour.id}/quote", params={"adults": 2, "children": 2})
    assert response.status_code == 200
    # 4 x 2000, minus half price for two children
    assert response.json()["total"] == 6000


def test_unknown_room_type(client):
    check_in = utcnow().date() + timedelta(days=30)
    response = client.get(
        "/pricing/rooms/999/quote",
        params={
            "check_in": check_in.isoformat(),
            "check_out": (check_in + timedelta(days=1)).isoformat(),
        },
    )
    assert response.status_code == 404
