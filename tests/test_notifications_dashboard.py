def test_notification_inbox(client, book_room, customer, make_user, auth):
    book_room()
    headers = auth(customer)

    inbox = client.get("/notifications", headers=headers).json()
    assert [n["type"] for n in inbox] == ["BOOKING_CREATED"]
    assert client.get("/notifications/unread-count", headers=headers).json() == {"unread_count": 1}

    stranger = make_user()
    assert client.post(f"/notifications/{inbox[0]['id']}/read", headers=auth(stranger)).status_code == 404

    read = client.post(f"/notifications/{inbox[0]['id']}/read", headers=headers).json()
    assert read["is_read"] is True
    assert client.get("/notifications", params={"unread_only": True}, headers=headers).json() == []


def test_read_all(client, book_room, customer, auth):
    book_room(start_in=10)
    book_room(start_in=20)
    headers = auth(customer)
    assert client.post("/notifications/read-all", headers=headers).json() == {"marked_read": 2}
    assert client.get("/notifications/unread-count", headers=headers).json() == {"unread_count": 0}


def test_customer_dashboard(client, book_room, customer, auth):
    book_room(start_in=10)
    cancelled = book_room(start_in=20).json()
    client.post(f"/bookings/property/{cancelled['id']}/cancel", json={}, headers=auth(customer))

    body = client.get("/dashboard/customer", headers=auth(customer)).json()
    assert body["total_bookings"] == 2
    assert body["bookings_by_status"] == {"PENDING": 1, "CANCELLED": 1}
    assert len(body["upcoming_bookings"]) == 1
    assert body["reviews_written"] == 0


def test_provider_dashboard(client, book_room, customer, property_owner, auth):
    booking = book_room().json()
    client.post(f"/bookings/property/{booking['id']}/pay", headers=auth(customer))

    body = client.get("/dashboard/provider", headers=auth(property_owner)).json()
    assert body["listings"] == 1
    assert body["revenue"] == 24260
    assert body["pending_commission"] == 2426
    assert body["open_support_tickets"] == 0

    assert client.get("/dashboard/provider", headers=auth(customer)).status_code == 403


def test_admin_dashboard(client, book_room, customer, admin, auth):
    booking = book_room().json()
    client.post(f"/bookings/property/{booking['id']}/pay", headers=auth(customer))

    body = client.get("/dashboard/admin", headers=auth(admin)).json()
    assert body["users_by_role"] == {"ADMIN": 1, "CUSTOMER": 1, "PROPERTY_OWNER": 1}
    assert body["total_users"] == 3
    assert body["pending_listings"] == {"property": 0, "vehicle": 0, "tour": 0}
    assert body["bookings_by_status"] == {"CONFIRMED": 1}
    assert body["commission_total"] == 2426


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "service": "findotrip-api"}
