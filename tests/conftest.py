import os
from datetime import timedelta

# Configure the app for an in-memory database before anything imports it
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RESEND_API_KEY"] = ""
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from findotrip.auth import create_access_token  # noqa: E402
from findotrip.database import Base, SessionLocal, engine  # noqa: E402
from findotrip.main import app  # noqa: E402
from findotrip.models import User  # noqa: E402
from findotrip.models_listing import Property, RoomType, Tour, Vehicle  # noqa: E402
from findotrip.security_utils import hash_password_bcrypt  # noqa: E402
from findotrip.shared.constants import (  # noqa: E402
    ADMIN,
    APPROVAL_APPROVED,
    CUSTOMER,
    PROPERTY_OWNER,
    TOUR_GUIDE,
    VEHICLE_OWNER,
)
from findotrip.shared.timeutils import utcnow  # noqa: E402

PASSWORD = "Sunny-Beach-2024"


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=CUSTOMER, name=None, email=None, is_active=True):
        counter["n"] += 1
        user = User(
            email=email or f"{role.lower()}{counter['n']}@example.com",
            password_hash=hash_password_bcrypt(PASSWORD),
            name=name or f"{role.title()} {counter['n']}",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def _bearer(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def auth():
    """Bearer header factory for a user"""
    return _bearer


@pytest.fixture
def customer(make_user):
    return make_user(CUSTOMER, name="Ayesha Khan")


@pytest.fixture
def admin(make_user):
    return make_user(ADMIN, name="Desk Admin")


@pytest.fixture
def property_owner(make_user):
    return make_user(PROPERTY_OWNER, name="Hotel Owner")


@pytest.fixture
def vehicle_owner(make_user):
    return make_user(VEHICLE_OWNER, name="Car Owner")


@pytest.fixture
def tour_guide(make_user):
    return make_user(TOUR_GUIDE, name="Guide")


@pytest.fixture
def room_type(db, property_owner):
    hotel = Property(
        owner_id=property_owner.id,
        name="Hunza Serena",
        city="Karimabad",
        country="Pakistan",
        cleaning_fee=500.0,
        tax_rate=8,
        approval_status=APPROVAL_APPROVED,
    )
    db.add(hotel)
    db.flush()
    room = RoomType(
        property_id=hotel.id, name="Deluxe", base_price=10000.0, max_guests=2, total_units=2
    )
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@pytest.fixture
def vehicle(db, vehicle_owner):
    car = Vehicle(
        owner_id=vehicle_owner.id,
        name="Toyota Corolla",
        city="Lahore",
        country="Pakistan",
        daily_rate=6000.0,
        insurance_fee=500.0,
        security_deposit=10000.0,
        approval_status=APPROVAL_APPROVED,
    )
    db.add(car)
    db.commit()
    db.refresh(car)
    return car


@pytest.fixture
def tour(db, tour_guide):
    trip = Tour(
        owner_id=tour_guide.id,
        title="Walled City Walk",
        city="Lahore",
        country="Pakistan",
        price_per_person=2000.0,
        max_group_size=6,
        min_group_size=1,
        time_slots=["09:00", "15:00"],
        approval_status=APPROVAL_APPROVED,
    )
    db.add(trip)
    db.commit()
    db.refresh(trip)
    return trip


def _days_ahead(n):
    return utcnow().date() + timedelta(days=n)


@pytest.fixture
def book_room(client, customer, room_type):
    """POST a property booking for the default room type"""

    def _book(start_in=10, nights=2, rooms=1, user=None):
        check_in = _days_ahead(start_in)
        return client.post(
            "/bookings/property",
            json={
                "room_type_id": room_type.id,
                "check_in": check_in.isoformat(),
                "check_out": (check_in + timedelta(days=nights)).isoformat(),
                "guests": 1,
                "rooms": rooms,
            },
            headers=_bearer(user or customer),
        )

    return _book


@pytest.fixture
def password():
    """Plain-text password of every user built by make_user"""
    return PASSWORD
