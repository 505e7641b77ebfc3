import pytest

from findotrip.models import Commission


@pytest.fixture
def paid_bookings(client, book_room, customer, auth):
    ids = []
    for start_in in (10, 20):
        booking = book_room(start_in=start_in).json()
        client.post(f"/bookings/property/{booking['id']}/pay", headers=auth(customer))
        ids.append(booking["id"])
    return ids


def test_commission_ledger(client, paid_bookings, property_owner, auth):
    response = client.get("/commissions", headers=auth(property_owner))
    assert response.status_code == 200
    assert sorted(c["booking_id"] for c in response.json()) == sorted(paid_bookings)

    stats = client.get("/commissions/stats", headers=auth(property_owner)).json()
    assert stats["count"] == 2
    assert stats["total_amount"] == 4852
    assert stats["pending_amount"] == 4852
    assert stats["counts_by_status"] == {"PENDING": 2}


def test_customers_have_no_ledger(client, customer, auth):
    assert client.get("/commissions", headers=auth(customer)).status_code == 403


def test_payout_lifecycle(client, db, paid_bookings, property_owner, admin, auth):
    request = client.post(
        "/payouts",
        json={"payment_method": "BANK_TRANSFER", "bank_details": {"iban": "PK36SCBL0000001123456702"}},
        headers=auth(property_owner),
    )
    assert request.status_code == 201
    payout = request.json()
    assert payout["status"] == "PENDING"
    assert payout["amount"] == 4852
    assert len(payout["commission_ids"]) == 2

    empty = client.post("/payouts", json={"payment_method": "PAYPAL"}, headers=auth(property_owner))
    assert empty.status_code == 400

    pending = client.get("/admin/payouts", params={"status": "PENDING"}, headers=auth(admin)).json()
    assert [p["id"] for p in pending] == [payout["id"]]

    processed = client.post(f"/admin/payouts/{payout['id']}/process", headers=auth(admin))
    assert processed.status_code == 200
    assert processed.json()["status"] == "PROCESSED"
    assert processed.json()["processed_at"] is not None

    db.expire_all()
    assert {c.status for c in db.query(Commission)} == {"PAID"}
    assert all(c.paid_at is not None for c in db.query(Commission))

    assert client.post(f"/admin/payouts/{payout['id']}/process", headers=auth(admin)).status_code == 400
    assert client.post("/admin/payouts/999/process", headers=auth(admin)).status_code == 404

    history = client.get("/payouts", headers=auth(property_owner)).json()
    assert [p["status"] for p in history] == ["PROCESSED"]


def test_invalid_payment_method(client, paid_bookings, property_owner, auth):
    response = client.post("/payouts", json={"payment_method": "CASH"}, headers=auth(property_owner))
    assert response.status_code == 422
