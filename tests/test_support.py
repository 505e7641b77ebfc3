from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from findotrip.domain.support import engine
from findotrip.models import Notification
from findotrip.models_support import SupportTicket
from findotrip.shared.timeutils import utcnow


class TestWorkflowRules:
    def test_transitions(self):
        engine.ensure_transition(engine.NEW, engine.OPEN)
        engine.ensure_transition(engine.RESOLVED, engine.OPEN)
        with pytest.raises(engine.InvalidTransition):
            engine.ensure_transition(engine.NEW, engine.RESOLVED)
        with pytest.raises(engine.InvalidTransition):
            engine.ensure_transition(engine.CLOSED, engine.OPEN)

    def test_first_response_targets(self):
        created = datetime(2025, 1, 1, 8, 0)
        assert engine.first_response_due(created, engine.URGENT) == datetime(2025, 1, 1, 9, 0)
        assert engine.first_response_due(created, engine.LOW) == datetime(2025, 1, 3, 8, 0)

        ticket = SimpleNamespace(
            created_at=created, priority=engine.HIGH, status=engine.OPEN, first_response_at=None
        )
        assert engine.breaches_first_response(ticket, created + timedelta(hours=5))
        assert not engine.breaches_first_response(ticket, created + timedelta(hours=3))
        ticket.first_response_at = created + timedelta(hours=1)
        assert not engine.breaches_first_response(ticket, created + timedelta(hours=5))

    def test_render_template_leaves_unknown_braces(self):
        rendered = engine.render_template(
            "Hi {provider_name}, about {ticket_number}: {other}", {"provider_name": "Ali", "ticket_number": "ST1"}
        )
        assert rendered == "Hi Ali, about ST1: {other}"


# ----------------------------------------------------------------------
# API
# ----------------------------------------------------------------------


@pytest.fixture
def open_ticket(client, property_owner, admin, auth):
    def _open(priority="NORMAL", user=None):
        response = client.post(
            "/support/tickets",
            json={
                "title": "Payout missing",
                "description": "My payout for March never arrived in my account",
                "category": "PAYMENT_ISSUE",
                "priority": priority,
            },
            headers=auth(user or property_owner),
        )
        assert response.status_code == 201
        return response.json()

    return _open


def test_provider_opens_ticket(client, db, open_ticket, admin, property_owner, auth):
    ticket = open_ticket(priority="HIGH")
    assert ticket["status"] == "NEW"
    assert ticket["ticket_number"].startswith("ST")

    alert = db.query(Notification).filter(Notification.user_id == admin.id).one()
    assert alert.type == "SUPPORT_TICKET_CREATED"
    assert alert.priority == "HIGH"

    detail = client.get(f"/support/tickets/{ticket['id']}", headers=auth(property_owner)).json()
    assert [m["type"] for m in detail["messages"]] == ["SYSTEM"]
    assert detail["messages"][0]["content"] == "Support ticket created: Payout missing"

    mine = client.get("/support/tickets", headers=auth(property_owner)).json()
    assert [t["id"] for t in mine] == [ticket["id"]]


def test_customers_cannot_open_tickets(client, customer, auth):
    response = client.post(
        "/support/tickets",
        json={
            "title": "Help",
            "description": "Something went wrong with my trip",
            "category": "GENERAL_INQUIRY",
        },
        headers=auth(customer),
    )
    assert response.status_code == 403


def test_other_providers_are_locked_out(client, open_ticket, vehicle_owner, auth):
    ticket = open_ticket()
    assert client.get(f"/support/tickets/{ticket['id']}", headers=auth(vehicle_owner)).status_code == 403


def test_admin_reply_opens_ticket_and_hides_internal_notes(client, open_ticket, admin, property_owner, auth):
    ticket = open_ticket()
    url = f"/support/tickets/{ticket['id']}/messages"

    note = client.post(url, json={"content": "Check the bank file", "internal": True}, headers=auth(admin))
    assert note.status_code == 201
    assert note.json()["type"] == "INTERNAL_NOTE"

    reply = client.post(url, json={"content": "We are looking into it"}, headers=auth(admin))
    assert reply.status_code == 201

    as_admin = client.get(f"/support/tickets/{ticket['id']}", headers=auth(admin)).json()
    assert as_admin["status"] == "OPEN"
    assert as_admin["first_response_at"] is not None
    assert "INTERNAL_NOTE" in {m["type"] for m in as_admin["messages"]}

    as_provider = client.get(f"/support/tickets/{ticket['id']}", headers=auth(property_owner)).json()
    assert "INTERNAL_NOTE" not in {m["type"] for m in as_provider["messages"]}

    hidden = client.post(f"/support/messages/{note.json()['id']}/read", headers=auth(property_owner))
    assert hidden.status_code == 404

    unread = client.get("/support/unread-count", headers=auth(property_owner)).json()
    assert unread == {"unread_count": 1}
    marked = client.post(f"/support/tickets/{ticket['id']}/read", headers=auth(property_owner)).json()
    assert marked == {"marked_read": 1}
    assert client.get("/support/unread-count", headers=auth(property_owner)).json() == {"unread_count": 0}


def test_providers_cannot_write_internal_notes(client, open_ticket, property_owner, auth):
    ticket = open_ticket()
    response = client.post(
        f"/support/tickets/{ticket['id']}/messages",
        json={"content": "secret", "internal": True},
        headers=auth(property_owner),
    )
    assert response.status_code == 403


def test_status_workflow(client, open_ticket, admin, property_owner, auth):
    ticket = open_ticket()
    url = f"/support/tickets/{ticket['id']}/status"

    assert client.patch(url, json={"status": "CLOSED"}, headers=auth(property_owner)).status_code == 403
    assert client.patch(url, json={"status": "RESOLVED"}, headers=auth(admin)).status_code == 400

    client.patch(url, json={"status": "IN_PROGRESS"}, headers=auth(admin))
    resolved = client.patch(
        url, json={"status": "RESOLVED", "resolution": "Payout re-sent"}, headers=auth(admin)
    ).json()
    assert resolved["status"] == "RESOLVED"
    assert resolved["resolution"] == "Payout re-sent"
    assert resolved["resolved_at"] is not None

    reopened = client.patch(url, json={"status": "OPEN"}, headers=auth(property_owner)).json()
    assert reopened["status"] == "OPEN"
    assert reopened["resolved_at"] is None

    client.patch(url, json={"status": "RESOLVED"}, headers=auth(admin))
    closed = client.patch(url, json={"status": "CLOSED"}, headers=auth(property_owner)).json()
    assert closed["status"] == "CLOSED"
    assert closed["closed_at"] is not None

    late = client.post(
        f"/support/tickets/{ticket['id']}/messages", json={"content": "One more thing"}, headers=auth(property_owner)
    )
    assert late.status_code == 400


def test_assign_and_escalate(client, open_ticket, admin, make_user, property_owner, auth):
    ticket = open_ticket()
    base = f"/support/tickets/{ticket['id']}"

    not_admin = client.post(f"{base}/assign", json={"admin_id": property_owner.id}, headers=auth(admin))
    assert not_admin.status_code == 400

    colleague = make_user("ADMIN", name="Second Admin")
    assigned = client.post(f"{base}/assign", json={"admin_id": colleague.id}, headers=auth(admin)).json()
    assert assigned["assigned_to_id"] == colleague.id
    assert assigned["status"] == "IN_PROGRESS"

    escalated = client.post(f"{base}/escalate", json={"reason": "Third week waiting"}, headers=auth(property_owner))
    assert escalated.status_code == 200
    assert escalated.json()["priority"] == "URGENT"
    assert escalated.json()["escalated"] is True

    again = client.post(f"{base}/escalate", json={}, headers=auth(property_owner))
    assert again.status_code == 409


def test_rating_after_resolution(client, open_ticket, admin, property_owner, auth):
    ticket = open_ticket()
    base = f"/support/tickets/{ticket['id']}"

    early = client.post(f"{base}/rating", json={"rating": 5}, headers=auth(property_owner))
    assert early.status_code == 400

    client.patch(f"{base}/status", json={"status": "OPEN"}, headers=auth(admin))
    client.patch(f"{base}/status", json={"status": "RESOLVED"}, headers=auth(admin))
    rated = client.post(f"{base}/rating", json={"rating": 4, "feedback": "Quick fix"}, headers=auth(property_owner))
    assert rated.status_code == 200
    assert rated.json()["satisfaction_rating"] == 4

    stats = client.get("/support/admin/analytics", headers=auth(admin)).json()
    assert stats["total_tickets"] == 1
    assert stats["resolved_tickets"] == 1
    assert stats["avg_satisfaction"] == 4.0
    assert stats["by_category"] == {"PAYMENT_ISSUE": 1}


def test_templates(client, open_ticket, admin, property_owner, auth):
    ticket = open_ticket()
    created = client.post(
        "/support/templates",
        json={
            "name": "ack",
            "title": "Acknowledgement",
            "content": "Hi {provider_name}, we received {ticket_number}. - {admin_name}",
            "category": "PAYMENT_ISSUE",
        },
        headers=auth(admin),
    )
    assert created.status_code == 201
    template = created.json()

    duplicate = client.post(
        "/support/templates",
        json={"name": "ack", "title": "Again", "content": "Hello"},
        headers=auth(admin),
    )
    assert duplicate.status_code == 409

    sent = client.post(
        f"/support/tickets/{ticket['id']}/template-messages",
        json={"template_id": template["id"]},
        headers=auth(admin),
    )
    assert sent.status_code == 201
    assert sent.json()["type"] == "TEMPLATE"
    assert sent.json()["content"] == (
        f"Hi {property_owner.name}, we received {ticket['ticket_number']}. - {admin.name}"
    )

    listed = client.get("/support/templates", headers=auth(admin)).json()
    assert listed[0]["usage_count"] == 1

    client.patch(f"/support/templates/{template['id']}", json={"is_active": False}, headers=auth(admin))
    inactive = client.post(
        f"/support/tickets/{ticket['id']}/template-messages",
        json={"template_id": template["id"]},
        headers=auth(admin),
    )
    assert inactive.status_code == 404

    assert client.delete(f"/support/templates/{template['id']}", headers=auth(admin)).status_code == 200
    assert client.get("/support/templates", headers=auth(property_owner)).status_code == 403


def test_sla_breaches_and_queue(client, db, open_ticket, admin, auth):
    urgent = open_ticket(priority="URGENT")
    open_ticket(priority="LOW")

    row = db.get(SupportTicket, urgent["id"])
    row.created_at = utcnow() - timedelta(hours=2)
    db.commit()

    breaches = client.get("/support/admin/sla-breaches", headers=auth(admin)).json()["breaches"]
    assert [b["ticket_id"] for b in breaches] == [urgent["id"]]
    assert breaches[0]["overdue_minutes"] >= 59

    queue = client.get("/support/admin/tickets", params={"priority": "URGENT"}, headers=auth(admin)).json()
    assert queue["total"] == 1
    assert queue["items"][0]["id"] == urgent["id"]
