from findotrip.models_listing import Vehicle, WishlistItem
from findotrip.shared.constants import APPROVAL_PENDING


def _toggle(client, auth, user, service_type, service_id, action="add"):
    return client.post(
        "/wishlist/toggle",
        json={"service_type": service_type, "service_id": service_id, "action": action},
        headers=auth(user),
    )


def test_add_and_remove(client, db, auth, customer, vehicle):
    added = _toggle(client, auth, customer, "vehicle", vehicle.id)
    assert added.status_code == 200
    assert added.json() == {"success": True, "saved": True, "message": "Item added to favorites"}

    removed = _toggle(client, auth, customer, "vehicle", vehicle.id, action="remove")
    assert removed.json() == {"success": True, "saved": False, "message": "Item removed from favorites"}
    assert db.query(WishlistItem).count() == 0


def test_toggle_is_idempotent(client, db, auth, customer, vehicle):
    for _ in range(2):
        assert _toggle(client, auth, customer, "vehicle", vehicle.id).json()["saved"] is True
    assert db.query(WishlistItem).count() == 1

    for _ in range(2):
        response = _toggle(client, auth, customer, "vehicle", vehicle.id, action="remove")
        assert response.status_code == 200
    assert db.query(WishlistItem).count() == 0


def test_cannot_save_unlisted(client, db, auth, customer, vehicle_owner):
    pending = Vehicle(
        owner_id=vehicle_owner.id,
        name="Suzuki Alto",
        city="Karachi",
        country="Pakistan",
        daily_rate=3500.0,
        approval_status=APPROVAL_PENDING,
    )
    db.add(pending)
    db.commit()

    assert _toggle(client, auth, customer, "vehicle", pending.id).status_code == 404
    assert _toggle(client, auth, customer, "tour", 9999).status_code == 404


def test_bad_action_rejected(client, auth, customer, vehicle):
    assert _toggle(client, auth, customer, "vehicle", vehicle.id, action="flip").status_code == 422


def test_list_marks_unavailable_listings(client, db, auth, customer, vehicle, tour, room_type):
    _toggle(client, auth, customer, "vehicle", vehicle.id)
    _toggle(client, auth, customer, "tour", tour.id)
    _toggle(client, auth, customer, "property", room_type.property_id)

    vehicle.is_active = False
    db.commit()

    saved = client.get("/wishlist", headers=auth(customer)).json()
    by_type = {item["service_type"]: item for item in saved}
    assert set(by_type) == {"vehicle", "tour", "property"}
    assert by_type["vehicle"]["available"] is False
    assert by_type["tour"]["available"] is True
    assert by_type["tour"]["name"] == "Walled City Walk"
    assert by_type["tour"]["price"] == 2000.0
    assert by_type["property"]["price"] == 10000.0
    assert by_type["property"]["city"] == "Karimabad"

    only_tours = client.get("/wishlist?service_type=tour", headers=auth(customer)).json()
    assert [item["service_id"] for item in only_tours] == [tour.id]


def test_wishlists_are_private(client, auth, customer, make_user, vehicle):
    _toggle(client, auth, customer, "vehicle", vehicle.id)
    other = make_user()
    assert client.get("/wishlist", headers=auth(other)).json() == []


def test_status_counts_saves(client, auth, customer, make_user, vehicle):
    other = make_user()
    _toggle(client, auth, customer, "vehicle", vehicle.id)
    _toggle(client, auth, other, "vehicle", vehicle.id)

    status = client.get(
        f"/wishlist/status?service_type=vehicle&service_id={vehicle.id}", headers=auth(customer)
    ).json()
    assert status == {"saved": True, "saves": 2}

    _toggle(client, auth, customer, "vehicle", vehicle.id, action="remove")
    status = client.get(
        f"/wishlist/status?service_type=vehicle&service_id={vehicle.id}", headers=auth(customer)
    ).json()
    assert status == {"saved": False, "saves": 1}


def test_wishlist_requires_login(client):
    assert client.get("/wishlist").status_code in (401, 403)
