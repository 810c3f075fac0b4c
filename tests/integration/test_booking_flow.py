import pytest

from eventify.domain.inventory import EventStatus


def _headers(actor_id, role="USER", name=None):
    headers = {"X-Actor-Id": actor_id, "X-Actor-Role": role}
    if name:
        headers["X-Actor-Name"] = name
    return headers


ADMIN = _headers("admin-1", "SUPERADMIN", "Admin")


@pytest.fixture
def published_event(make_event):
    return make_event(quantity=10, sold=8)


def _book(client, user, event, quantity=1, ticket_type="VIP"):
    return client.post(
        "/ticket/book-ticket",
        json={"eventId": event.id, "ticketType": ticket_type, "quantity": quantity},
        headers=_headers(user.id),
    )


def test_booking_flow(client, user, organizer, published_event, notifier):
    response = _book(client, user, published_event, quantity=2)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["bookingStatus"] == "PENDING"
    assert body["paymentStatus"] == "PENDING"
    assert body["data"]["event"] == "E1"
    assert body["data"]["ticketType"] == "VIP"
    assert body["data"]["quantity"] == 2
    assert body["data"]["totalPrice"] == 500.0
    assert "bookingDate" in body["data"]
    booking_id = body["bookingId"]
    assert notifier.sent == [("ticket_booked", user.email, booking_id)]

    event_response = client.get(f"/event/{published_event.id}")
    vip = next(t for t in event_response.json()["event"]["ticketTypes"] if t["name"] == "VIP")
    assert (vip["sold"], vip["remaining"]) == (10, 0)

    update = client.patch(
        f"/super-admin/ticket/update-booking-status/{booking_id}",
        json={"bookingStatus": "CONFIRMED", "paymentStatus": "PAID", "reason": "Paid at venue"},
        headers=ADMIN,
    )
    assert update.status_code == 200
    booking = update.json()["booking"]
    assert booking["bookingStatus"] == "CONFIRMED"
    assert booking["paymentStatus"] == "PAID"
    assert booking["statusLog"][0]["bookingStatus"] == {"from": "PENDING", "to": "CONFIRMED"}
    assert booking["statusLog"][0]["changedBy"] == "admin-1"

    mine = client.get("/user/my-bookings", headers=_headers(user.id))
    assert mine.status_code == 200
    assert [(b["bookingId"], b["bookingStatus"]) for b in mine.json()["bookings"]] == [
        (booking_id, "CONFIRMED")
    ]

    cancel = client.post(f"/ticket/cancel-booking/{booking_id}", headers=_headers(user.id))
    assert cancel.status_code == 200
    assert cancel.json()["bookingStatus"] == "CANCELLED"
    assert cancel.json()["paymentStatus"] == "REFUNDED"

    theirs = client.get("/organizer/event-bookings", headers=_headers(organizer.id, "ORGANIZER"))
    assert [b["bookingStatus"] for b in theirs.json()["bookings"]] == ["CANCELLED"]

    all_bookings = client.get("/super-admin/ticket/get-all-bookings", headers=ADMIN)
    assert all_bookings.json()["count"] == 1
    assert all_bookings.json()["bookings"][0]["meta"]["mockPaymentGateway"] == "SimulatedPay"


def test_insufficient_inventory_is_400_without_internal_detail(client, user, published_event):
    response = _book(client, user, published_event, quantity=3)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Only 2 tickets left"}


def test_unknown_ticket_type_is_404(client, user, published_event):
    response = _book(client, user, published_event, ticket_type="Balcony")

    assert response.status_code == 404
    assert response.json()["message"] == "Ticket type not found"


def test_draft_event_is_404(client, user, make_event):
    event = make_event(status=EventStatus.DRAFT)

    response = _book(client, user, event)

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_invalid_body_is_400(client, user, published_event):
    response = _book(client, user, published_event, quantity=0)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "error" not in response.json()


def test_missing_actor_is_401(client, published_event):
    response = client.post(
        "/ticket/book-ticket",
        json={"eventId": published_event.id, "ticketType": "VIP", "quantity": 1},
    )

    assert response.status_code == 401


def test_users_cannot_update_booking_status(client, user, published_event):
    booking_id = _book(client, user, published_event).json()["bookingId"]

    response = client.patch(
        f"/super-admin/ticket/update-booking-status/{booking_id}",
        json={"bookingStatus": "CONFIRMED"},
        headers=_headers(user.id),
    )

    assert response.status_code == 403


def test_invalid_status_value_is_400(client, user, published_event):
    booking_id = _book(client, user, published_event).json()["bookingId"]

    response = client.patch(
        f"/super-admin/ticket/update-booking-status/{booking_id}",
        json={"bookingStatus": "SHIPPED"},
        headers=ADMIN,
    )

    assert response.status_code == 400
    assert "SHIPPED" in response.json()["message"]


def test_illegal_transition_is_409(client, user, published_event):
    booking_id = _book(client, user, published_event).json()["bookingId"]

    response = client.patch(
        f"/super-admin/ticket/update-booking-status/{booking_id}",
        json={"bookingStatus": "REFUNDED"},
        headers=ADMIN,
    )

    assert response.status_code == 409


def test_cancel_other_users_booking_is_403(client, user, other_user, published_event):
    booking_id = _book(client, user, published_event).json()["bookingId"]

    response = client.post(
        f"/ticket/cancel-booking/{booking_id}", headers=_headers(other_user.id)
    )

    assert response.status_code == 403


def test_cancel_missing_booking_is_404(client, user):
    response = client.post("/ticket/cancel-booking/missing", headers=_headers(user.id))

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Booking not found"}


def test_event_lifecycle(client, organizer):
    created = client.post(
        "/super-admin/event",
        json={
            "title": "Holi Festival",
            "organizerId": organizer.id,
            "ticketTypes": [{"name": "General", "price": 1200, "quantity": 50}],
        },
        headers=ADMIN,
    )
    assert created.status_code == 201
    event = created.json()["event"]
    assert event["status"] == "DRAFT"

    published = client.patch(
        f"/super-admin/event/update-event-status/{event['id']}",
        json={"action": "publish"},
        headers=ADMIN,
    )
    assert published.status_code == 200
    assert published.json()["event"]["status"] == "PUBLISHED"
    assert published.json()["event"]["statusLog"][0]["from"] == "DRAFT"

    again = client.patch(
        f"/super-admin/event/update-event-status/{event['id']}",
        json={"action": "PUBLISH"},
        headers=ADMIN,
    )
    assert again.status_code == 400


def test_health(client):
    assert client.get("/health").json()["success"] is True
