import pytest

from findotrip.models import AuditLog
from findotrip.services import audit_service
from findotrip.services.audit_service import redact, record_audit


def test_redact_masks_contact_details():
    details = {
        "note": "Call 0300-1234567 or +923001234567, mail ali@example.com",
        "card": ["4111 1111 1111 1111"],
        "amount": 4852,
    }
    assert redact(details) == {
        "note": "Call [PHONE] or [PHONE], mail [EMAIL]",
        "card": ["[CARD]"],
        "amount": 4852,
    }


def test_unknown_severity_rejected(db, admin):
    with pytest.raises(ValueError):
        record_audit(db, admin, "listing_approved", "property", 1, severity="urgent")


def test_deactivation_is_audited(client, db, admin, customer, auth):
    response = client.patch(
        f"/admin/users/{customer.id}/status",
        json={"is_active": False},
        headers={**auth(admin), "User-Agent": "ops-console/1.0", "X-Forwarded-For": "203.0.113.9"},
    )
    assert response.status_code == 200

    entry = db.query(AuditLog).one()
    assert entry.action == audit_service.AUDIT_USER_DEACTIVATED
    assert entry.user_id == admin.id
    assert entry.resource_type == "user"
    assert entry.resource_id == str(customer.id)
    assert entry.severity == "high"
    assert entry.ip_address == "203.0.113.9"
    assert entry.user_agent == "ops-console/1.0"
    assert entry.details == {"role": "CUSTOMER"}


def test_failed_action_leaves_no_entry(client, db, admin, auth):
    response = client.patch(f"/admin/users/{admin.id}/status", json={"is_active": False}, headers=auth(admin))
    assert response.status_code == 400
    assert db.query(AuditLog).count() == 0


def test_listing_review_is_audited(client, db, admin, property_owner, auth):
    hotel = client.post(
        "/properties",
        json={"name": "Shangrila Resort", "city": "Skardu", "country": "Pakistan"},
        headers=auth(property_owner),
    ).json()
    client.post(
        f"/admin/listings/property/{hotel['id']}/review",
        json={"approve": False, "reason": "Photos are missing"},
        headers=auth(admin),
    )

    entry = db.query(AuditLog).one()
    assert entry.action == audit_service.AUDIT_LISTING_REJECTED
    assert entry.resource_type == "property"
    assert entry.details == {"owner_id": property_owner.id, "reason": "Photos are missing"}


def test_payout_processing_is_audited(client, db, book_room, customer, property_owner, admin, auth):
    booking = book_room().json()
    client.post(f"/bookings/property/{booking['id']}/pay", headers=auth(customer))
    payout = client.post(
        "/payouts", json={"payment_method": "PAYPAL"}, headers=auth(property_owner)
    ).json()
    client.post(f"/admin/payouts/{payout['id']}/process", headers=auth(admin))

    entry = db.query(AuditLog).one()
    assert entry.action == audit_service.AUDIT_PAYOUT_PROCESSED
    assert entry.severity == "high"
    assert entry.details["provider_id"] == property_owner.id
    assert entry.details["payment_method"] == "PAYPAL"


def test_admin_browses_and_verifies(client, db, admin, customer, make_user, auth):
    other = make_user()
    for user in (customer, other):
        client.patch(f"/admin/users/{user.id}/status", json={"is_active": False}, headers=auth(admin))
    client.patch(f"/admin/users/{customer.id}/status", json={"is_active": True}, headers=auth(admin))

    page = client.get("/admin/audit-logs", headers=auth(admin)).json()
    assert page["total"] == 3
    assert page["items"][0]["action"] == audit_service.AUDIT_USER_ACTIVATED

    high = client.get("/admin/audit-logs", params={"severity": "high"}, headers=auth(admin)).json()
    assert {item["resource_id"] for item in high["items"]} == {str(customer.id), str(other.id)}

    entry_id = page["items"][0]["id"]
    verified = client.get(f"/admin/audit-logs/{entry_id}/verify", headers=auth(admin)).json()
    assert verified == {"id": entry_id, "valid": True}

    # an entry edited after the fact no longer matches its hash
    entry = db.query(AuditLog).filter(AuditLog.id == entry_id).one()
    entry.details = {"role": "ADMIN"}
    db.commit()
    tampered = client.get(f"/admin/audit-logs/{entry_id}/verify", headers=auth(admin)).json()
    assert tampered["valid"] is False

    assert client.get("/admin/audit-logs/999/verify", headers=auth(admin)).status_code == 404


def test_audit_trail_is_admin_only(client, customer, property_owner, auth):
    for user in (customer, property_owner):
        assert client.get("/admin/audit-logs", headers=auth(user)).status_code == 403
