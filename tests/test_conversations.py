import pytest

from findotrip.domain.conversations import engine
from findotrip.models import Notification
from findotrip.models_chat import ChatMessage
from findotrip.shared.constants import ADMIN, CUSTOMER, NOTIFY_CHAT_MESSAGE, PROPERTY_OWNER, TOUR_GUIDE


def test_conversation_types():
    assert engine.conversation_type(CUSTOMER, PROPERTY_OWNER) == engine.CUSTOMER_PROVIDER
    assert engine.conversation_type(TOUR_GUIDE, CUSTOMER) == engine.CUSTOMER_PROVIDER
    assert engine.conversation_type(ADMIN, CUSTOMER) == engine.CUSTOMER_ADMIN
    assert engine.conversation_type(PROPERTY_OWNER, ADMIN) == engine.PROVIDER_ADMIN


@pytest.mark.parametrize(
    "role_a,role_b,reason",
    [
        (CUSTOMER, CUSTOMER, "Customers can only message"),
        (PROPERTY_OWNER, TOUR_GUIDE, "Providers can only message"),
        (ADMIN, ADMIN, "Admins cannot"),
    ],
)
def test_refused_pairings(role_a, role_b, reason):
    with pytest.raises(ValueError, match=reason):
        engine.conversation_type(role_a, role_b)


def test_preview_collapses_and_truncates():
    assert engine.preview("  Is   the\nroom free?  ") == "Is the room free?"
    long_text = "word " * 60
    cut = engine.preview(long_text, length=20)
    assert len(cut) <= 20
    assert cut.endswith("...")


def test_snippet_centres_on_match():
    text = "a" * 100 + " Checkout time is noon " + "b" * 100
    snippet = engine.snippet(text, "CHECKOUT", radius=10)
    assert "Checkout" in snippet
    assert snippet.startswith("...") and snippet.endswith("...")
    assert engine.snippet("short note", "missing") == "short note"


# ----------------------------------------------------------------------
# API
# ----------------------------------------------------------------------


def _start_about_hotel(client, auth, customer, room_type, message="Is breakfast included?"):
    return client.post(
        "/conversations",
        json={"service_type": "property", "service_id": room_type.property_id, "message": message},
        headers=auth(customer),
    )


def test_customer_messages_listing_owner(client, db, auth, customer, property_owner, room_type):
    response = _start_about_hotel(client, auth, customer, room_type)
    assert response.status_code == 201
    body = response.json()
    assert body["type"] == engine.CUSTOMER_PROVIDER
    assert [p["id"] for p in body["participants"]] == [property_owner.id]
    assert body["related_service_type"] == "property"
    assert body["message_count"] == 1
    assert body["messages"][0]["content"] == "Is breakfast included?"

    # the owner is told and sees one unread thread
    notification = db.query(Notification).filter(Notification.user_id == property_owner.id).one()
    assert notification.type == NOTIFY_CHAT_MESSAGE
    assert notification.title == f"New message from {customer.name}"
    assert notification.action_url == f"/messages/{body['id']}"

    listed = client.get("/conversations", headers=auth(property_owner)).json()
    assert len(listed) == 1
    assert listed[0]["unread_count"] == 1
    assert listed[0]["last_message"]["content"] == "Is breakfast included?"


def test_second_start_reuses_thread(client, auth, customer, room_type):
    first = _start_about_hotel(client, auth, customer, room_type).json()
    again = _start_about_hotel(client, auth, customer, room_type, message="Hello again")
    assert again.status_code == 200
    assert again.json()["id"] == first["id"]
    assert again.json()["message_count"] == 2


def test_start_from_booking_reaches_provider(client, auth, book_room, customer, property_owner):
    booking = book_room().json()
    response = client.post(
        "/conversations",
        json={"booking_type": "property", "booking_id": booking["id"]},
        headers=auth(customer),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["participants"][0]["id"] == property_owner.id
    assert body["related_booking_id"] == booking["id"]
    assert body["messages"] == []


def test_stranger_cannot_use_someone_elses_booking(client, auth, make_user, book_room):
    booking = book_room().json()
    stranger = make_user(CUSTOMER)
    response = client.post(
        "/conversations",
        json={"booking_type": "property", "booking_id": booking["id"]},
        headers=auth(stranger),
    )
    assert response.status_code == 404


def test_customers_cannot_message_each_other(client, auth, customer, make_user):
    other = make_user(CUSTOMER)
    response = client.post("/conversations", json={"participant_id": other.id}, headers=auth(customer))
    assert response.status_code == 403
    assert "Customers can only message" in response.json()["detail"]


def test_cannot_message_yourself(client, auth, customer):
    response = client.post("/conversations", json={"participant_id": customer.id}, headers=auth(customer))
    assert response.status_code == 400


def test_inactive_user_not_reachable(client, auth, customer, make_user):
    gone = make_user(PROPERTY_OWNER, is_active=False)
    response = client.post("/conversations", json={"participant_id": gone.id}, headers=auth(customer))
    assert response.status_code == 404


def test_start_needs_a_target(client, auth, customer):
    response = client.post("/conversations", json={"message": "hi"}, headers=auth(customer))
    assert response.status_code == 422


def test_reply_and_read_flow(client, db, auth, customer, property_owner, room_type):
    conversation = _start_about_hotel(client, auth, customer, room_type).json()
    cid = conversation["id"]
    question_id = conversation["messages"][0]["id"]

    reply = client.post(
        f"/conversations/{cid}/messages",
        json={"content": "Yes, from 7 to 10", "reply_to_id": question_id},
        headers=auth(property_owner),
    )
    assert reply.status_code == 201
    assert reply.json()["reply_to_id"] == question_id

    counts = client.get("/conversations/unread-count", headers=auth(customer)).json()
    assert counts["total"] == 1
    assert counts["by_conversation"] == {str(cid): 1}

    # fetching the owner's side marks the customer's question read
    messages = client.get(f"/conversations/{cid}/messages", headers=auth(property_owner)).json()
    assert [m["content"] for m in messages] == ["Is breakfast included?", "Yes, from 7 to 10"]
    assert messages[0]["is_read"] is True
    owner_counts = client.get("/conversations/unread-count", headers=auth(property_owner)).json()
    assert owner_counts["total"] == 0

    marked = client.post(f"/conversations/{cid}/read", headers=auth(customer))
    assert marked.json() == {"marked": 1}
    assert client.get("/conversations/unread-count", headers=auth(customer)).json()["total"] == 0


def test_messages_paginate_backwards(client, auth, customer, property_owner, room_type):
    cid = _start_about_hotel(client, auth, customer, room_type, message="one").json()["id"]
    for text in ("two", "three"):
        client.post(f"/conversations/{cid}/messages", json={"content": text}, headers=auth(customer))

    latest = client.get(f"/conversations/{cid}/messages?limit=2", headers=auth(customer)).json()
    assert [m["content"] for m in latest] == ["two", "three"]
    older = client.get(
        f"/conversations/{cid}/messages?limit=2&before_id={latest[0]['id']}", headers=auth(customer)
    ).json()
    assert [m["content"] for m in older] == ["one"]


def test_reply_must_stay_in_thread(client, auth, customer, room_type, admin):
    cid = _start_about_hotel(client, auth, customer, room_type).json()["id"]
    other = client.post(
        "/conversations", json={"participant_id": customer.id, "message": "Welcome"}, headers=auth(admin)
    ).json()

    response = client.post(
        f"/conversations/{cid}/messages",
        json={"content": "Quoting the wrong thread", "reply_to_id": other["messages"][0]["id"]},
        headers=auth(customer),
    )
    assert response.status_code == 400


def test_outsider_cannot_read_or_write(client, auth, customer, make_user, room_type):
    cid = _start_about_hotel(client, auth, customer, room_type).json()["id"]
    outsider = make_user(CUSTOMER)
    assert client.get(f"/conversations/{cid}", headers=auth(outsider)).status_code == 403
    response = client.post(
        f"/conversations/{cid}/messages", json={"content": "Hi"}, headers=auth(outsider)
    )
    assert response.status_code == 403
    assert client.get("/conversations/404404", headers=auth(outsider)).status_code == 404


def test_blank_message_rejected(client, auth, customer, room_type):
    cid = _start_about_hotel(client, auth, customer, room_type).json()["id"]
    response = client.post(f"/conversations/{cid}/messages", json={"content": "   "}, headers=auth(customer))
    assert response.status_code == 400


def test_edit_and_delete_own_message(client, db, auth, customer, property_owner, room_type):
    conversation = _start_about_hotel(client, auth, customer, room_type).json()
    message_id = conversation["messages"][0]["id"]

    assert client.patch(
        f"/conversations/messages/{message_id}", json={"content": "Hacked"}, headers=auth(property_owner)
    ).status_code == 403

    edited = client.patch(
        f"/conversations/messages/{message_id}",
        json={"content": "Is breakfast included for two?"},
        headers=auth(customer),
    ).json()
    assert edited["is_edited"] is True
    assert edited["content"] == "Is breakfast included for two?"

    for _ in range(2):
        response = client.delete(f"/conversations/messages/{message_id}", headers=auth(customer))
        assert response.json() == {"success": True}

    detail = client.get(f"/conversations/{conversation['id']}", headers=auth(property_owner)).json()
    assert detail["messages"][0]["content"] == engine.DELETED_PLACEHOLDER
    assert detail["last_message"]["content"] == engine.DELETED_PLACEHOLDER
    # the row stays for the thread's history
    db.expire_all()
    assert db.query(ChatMessage).filter(ChatMessage.id == message_id).one().is_deleted

    again = client.patch(
        f"/conversations/messages/{message_id}", json={"content": "Back"}, headers=auth(customer)
    )
    assert again.status_code == 400


def test_search_finds_visible_messages(client, auth, customer, property_owner, room_type):
    cid = _start_about_hotel(client, auth, customer, room_type, message="Do you have airport pickup?").json()["id"]
    client.post(f"/conversations/{cid}/messages", json={"content": "100% sure?"}, headers=auth(customer))

    hits = client.get("/conversations/search?q=AIRPORT", headers=auth(property_owner)).json()
    assert len(hits) == 1
    assert hits[0]["conversation_id"] == cid
    assert hits[0]["sender_name"] == customer.name
    assert "airport" in hits[0]["snippet"]

    # wildcards are matched literally
    assert len(client.get("/conversations/search?q=0%25", headers=auth(customer)).json()) == 1
    assert client.get("/conversations/search?q=%25%25", headers=auth(customer)).json() == []


def test_hidden_thread_returns_on_new_message(client, auth, customer, property_owner, room_type):
    cid = _start_about_hotel(client, auth, customer, room_type).json()["id"]
    assert client.delete(f"/conversations/{cid}", headers=auth(customer)).json() == {"success": True}
    assert client.get("/conversations", headers=auth(customer)).json() == []

    client.post(f"/conversations/{cid}/messages", json={"content": "Yes it is"}, headers=auth(property_owner))
    listed = client.get("/conversations", headers=auth(customer)).json()
    assert [c["id"] for c in listed] == [cid]
