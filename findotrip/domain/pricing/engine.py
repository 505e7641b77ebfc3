"""
Price arithmetic for stays, vehicle rentals and tours.

Nothing here touches the database: callers pass the rules that apply and
get plain dicts back, with every money amount rounded half-up to 2 decimals.
"""

import math
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

PERCENTAGE_INCREASE = "PERCENTAGE_INCREASE"
PERCENTAGE_DECREASE = "PERCENTAGE_DECREASE"
FIXED_INCREASE = "FIXED_INCREASE"
FIXED_DECREASE = "FIXED_DECREASE"
FIXED_PRICE = "FIXED_PRICE"
ADJUSTMENT_TYPES = (
    PERCENTAGE_INCREASE,
    PERCENTAGE_DECREASE,
    FIXED_INCREASE,
    FIXED_DECREASE,
    FIXED_PRICE,
)

LONG_STAY = "LONG_STAY"
EARLY_BIRD = "EARLY_BIRD"
LAST_MINUTE = "LAST_MINUTE"
WEEKLY = "WEEKLY"
MONTHLY = "MONTHLY"
DISCOUNT_TYPES = (LONG_STAY, EARLY_BIRD, LAST_MINUTE, WEEKLY, MONTHLY)

VEHICLE_SERVICE_FEE_RATE = 0.05
VEHICLE_TAX_RATE = 0.10
TOUR_CHILD_DISCOUNT_RATE = 0.50
TOUR_GROUP_DISCOUNT_RATE = 0.10
TOUR_GROUP_MIN_PARTICIPANTS = 5


def round_money(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def apply_price_adjustment(price: float, adjustment_type: str, value: float) -> float:
    if adjustment_type == PERCENTAGE_INCREASE:
        return price * (1 + value / 100)
    if adjustment_type == PERCENTAGE_DECREASE:
        return price * (1 - value / 100)
    if adjustment_type == FIXED_INCREASE:
        return price + value
    if adjustment_type == FIXED_DECREASE:
        return price - value
    if adjustment_type == FIXED_PRICE:
        return value
    return price


def seasonal_rule_matches_day(rule, day: date) -> bool:
    """Empty days_of_week means every day; values use date.weekday() (0 = Monday)"""
    if not (rule.start_date <= day <= rule.end_date):
        return False
    days = rule.days_of_week or []
    return not days or day.weekday() in days


def discount_applies(rule, day: date, nights: int, days_in_advance: int) -> bool:
    if rule.valid_from and rule.valid_from > day:
        return False
    if rule.valid_until and rule.valid_until < day:
        return False

    if rule.type in (LONG_STAY, WEEKLY, MONTHLY):
        return bool(rule.min_nights) and nights >= rule.min_nights
    if rule.type == EARLY_BIRD:
        return bool(rule.days_in_advance) and days_in_advance >= rule.days_in_advance
    if rule.type == LAST_MINUTE:
        return bool(rule.days_before_check_in) and days_in_advance <= rule.days_before_check_in
    return False


def best_discount(rules: Iterable, day: date, nights: int, days_in_advance: int):
    """Highest-percentage discount whose condition holds, or None"""
    best = None
    for rule in rules:
        if not discount_applies(rule, day, nights, days_in_advance):
            continue
        if best is None or rule.discount_percent > best.discount_percent:
            best = rule
    return best


def night_price(
    base_price: float,
    day: date,
    override=None,
    event_rule=None,
    seasonal_rule=None,
    discounts: Iterable = (),
    nights: Optional[int] = None,
    booked_on: Optional[date] = None,
) -> dict:
    """
    Price of one night. Precedence: custom date price, then the event
    multiplier, then the seasonal adjustment; the best discount comes last.
    """
    price = base_price
    applied_rules = []

    if override is not None and override.custom_price:
        price = override.custom_price
        applied_rules.append(f"Custom price set for {day.strftime('%b')} {day.day}")
    elif event_rule is not None:
        price = price * event_rule.price_multiplier
        applied_rules.append(f"{event_rule.event_name}: {event_rule.price_multiplier}x multiplier")
    elif seasonal_rule is not None:
        price = apply_price_adjustment(
            price, seasonal_rule.price_adjustment, seasonal_rule.adjustment_value
        )
        applied_rules.append(f"Seasonal: {seasonal_rule.name}")

    if nights and booked_on:
        days_in_advance = (day - booked_on).days
        discount = best_discount(discounts, day, nights, days_in_advance)
        if discount is not None:
            price = price - price * (discount.discount_percent / 100)
            applied_rules.append(f"{discount.type} discount: -{discount.discount_percent:g}%")

    return {
        "date": day,
        "base_price": base_price,
        "final_price": max(0.0, round_money(price)),
        "applied_rules": applied_rules,
    }


def stay_totals(
    night_prices: list[dict],
    rooms: int,
    cleaning_fee: float,
    fixed_service_fee: float,
    tax_rate_percent: float,
    default_service_fee_rate: float,
    currency: str,
) -> dict:
    """
    Totals for a stay. A fixed property service fee wins over the percentage
    default; tax is charged on subtotal + service fee.
    """
    subtotal = sum(n["final_price"] for n in night_prices) * rooms
    if fixed_service_fee and fixed_service_fee > 0:
        service_fee = fixed_service_fee
    else:
        service_fee = subtotal * default_service_fee_rate
    tax_amount = (subtotal + service_fee) * (tax_rate_percent / 100)
    total = subtotal + cleaning_fee + service_fee + tax_amount

    return {
        "nights": night_prices,
        "number_of_nights": len(night_prices),
        "rooms": rooms,
        "subtotal": round_money(subtotal),
        "cleaning_fee": round_money(cleaning_fee),
        "service_fee": round_money(service_fee),
        "tax_rate": tax_rate_percent,
        "tax_amount": round_money(tax_amount),
        "total": round_money(total),
        "average_price_per_night": round_money(subtotal / len(night_prices)) if night_prices else 0.0,
        "currency": currency,
    }


def rental_days(start: datetime, end: datetime) -> int:
    """Whole rental days, any started day counts, minimum 1"""
    seconds = (end - start).total_seconds()
    return max(1, math.ceil(seconds / 86400))


def vehicle_price(
    daily_rate: float,
    start: datetime,
    end: datetime,
    insurance_fee: float = 0.0,
    driver_fee: float = 0.0,
    security_deposit: float = 0.0,
    include_insurance: bool = False,
    include_driver: bool = False,
    currency: str = "PKR",
) -> dict:
    days = rental_days(start, end)
    rental = daily_rate * days
    insurance = insurance_fee * days if include_insurance else 0.0
    driver = driver_fee * days if include_driver else 0.0
    chargeable = rental + insurance + driver
    service_fee = chargeable * VEHICLE_SERVICE_FEE_RATE
    taxes = chargeable * VEHICLE_TAX_RATE
    total = chargeable + service_fee + taxes + security_deposit

    return {
        "days": days,
        "daily_rate": daily_rate,
        "rental_cost": round_money(rental),
        "insurance_cost": round_money(insurance),
        "driver_cost": round_money(driver),
        "service_fee": round_money(service_fee),
        "taxes": round_money(taxes),
        "security_deposit": round_money(security_deposit),
        "total": round_money(total),
        "currency": currency,
    }


def tour_price(price_per_person: float, adults: int, children: int = 0, currency: str = "PKR") -> dict:
    participants = adults + children
    subtotal = price_per_person * participants
    child_discount = price_per_person * TOUR_CHILD_DISCOUNT_RATE * children
    group_discount = (
        subtotal * TOUR_GROUP_DISCOUNT_RATE if participants >= TOUR_GROUP_MIN_PARTICIPANTS else 0.0
    )
    total = subtotal - child_discount - group_discount

    return {
        "participants": participants,
        "adults": adults,
        "children": children,
        "price_per_person": price_per_person,
        "subtotal": round_money(subtotal),
        "child_discount": round_money(child_discount),
        "group_discount": round_money(group_discount),
        "total": max(0.0, round_money(total)),
        "currency": currency,
    }
