def _headers(user_id: str) -> dict:
    return {"X-User-Id": user_id}


def test_booking_flow(client, catalog):
    s1, s2, _ = catalog.seat_ids

    response = client.post(
        "/bookings",
        json={"event_id": catalog.event_id, "seat_ids": [s1, s2]},
        headers=_headers("user1"),
    )

    assert response.status_code == 201
    booking_id = response.json()["booking_id"]
    assert response.json()["status"] == "Pending"
    assert response.json()["total_amount"] == 20

    pay_response = client.post(
        f"/bookings/{booking_id}/confirm",
        json={"payment_method": "UPI"},
        headers=_headers("user1"),
    )
    assert pay_response.status_code == 200
    assert pay_response.json()["status"] == "Confirmed"

    seats = client.get(f"/events/{catalog.event_id}/seats").json()
    assert [seat["status"] for seat in seats] == ["Booked", "Booked", "Available"]

    mine = client.get("/bookings/my-bookings", headers=_headers("user1")).json()
    assert [booking["booking_id"] for booking in mine] == [booking_id]
    assert mine[0]["seats"] == ["S1", "S2"]
    assert mine[0]["event"]["title"] == "Test Concert"


def test_confirm_without_body_uses_default_method(client, catalog):
    booking_id = client.post(
        "/bookings",
        json={"event_id": catalog.event_id, "seat_ids": catalog.seat_ids[:1]},
        headers=_headers("user1"),
    ).json()["booking_id"]

    response = client.post(f"/bookings/{booking_id}/confirm", headers=_headers("user1"))

    assert response.status_code == 200


def test_seat_conflict_returns_409(client, catalog):
    payload = {"event_id": catalog.event_id, "seat_ids": catalog.seat_ids[:1]}
    assert client.post("/bookings", json=payload, headers=_headers("user1")).status_code == 201

    response = client.post("/bookings", json=payload, headers=_headers("user2"))

    assert response.status_code == 409
    assert response.json()["detail"]["kind"] == "seat_unavailable"
    assert response.json()["detail"]["details"]["unavailable_seats"] == catalog.seat_ids[:1]


def test_missing_identity_returns_401(client, catalog):
    response = client.post(
        "/bookings",
        json={"event_id": catalog.event_id, "seat_ids": catalog.seat_ids[:1]},
    )

    assert response.status_code == 401


def test_unknown_seat_returns_404(client, catalog):
    response = client.post(
        "/bookings",
        json={"event_id": catalog.event_id, "seat_ids": [9999]},
        headers=_headers("user1"),
    )

    assert response.status_code == 404
    assert response.json()["detail"]["kind"] == "seat_not_found"


def test_empty_seat_list_is_rejected(client, catalog):
    response = client.post(
        "/bookings",
        json={"event_id": catalog.event_id, "seat_ids": []},
        headers=_headers("user1"),
    )

    assert response.status_code == 422


def test_duplicate_seat_ids_are_rejected(client, catalog):
    s1 = catalog.seat_ids[0]

    response = client.post(
        "/bookings",
        json={"event_id": catalog.event_id, "seat_ids": [s1, s1]},
        headers=_headers("user1"),
    )

    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "invalid_request"


def test_cancel_flow(client, catalog):
    booking_id = client.post(
        "/bookings",
        json={"event_id": catalog.event_id, "seat_ids": catalog.seat_ids[:2]},
        headers=_headers("user1"),
    ).json()["booking_id"]

    forbidden = client.put(f"/bookings/{booking_id}/cancel", headers=_headers("user2"))
    assert forbidden.status_code == 403

    cancelled = client.put(f"/bookings/{booking_id}/cancel", headers=_headers("user1"))
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "Cancelled"

    again = client.put(f"/bookings/{booking_id}/cancel", headers=_headers("user1"))
    assert again.status_code == 409
    assert again.json()["detail"]["kind"] == "already_cancelled"

    confirm = client.post(f"/bookings/{booking_id}/confirm", headers=_headers("user1"))
    assert confirm.status_code == 409
    assert confirm.json()["detail"]["kind"] == "invalid_state"


def test_get_booking(client, catalog):
    booking_id = client.post(
        "/bookings",
        json={"event_id": catalog.event_id, "seat_ids": catalog.seat_ids[2:]},
        headers=_headers("user1"),
    ).json()["booking_id"]

    response = client.get(f"/bookings/{booking_id}", headers=_headers("user1"))
    assert response.status_code == 200
    assert response.json()["amount"] == 25
    assert response.json()["seats"] == ["S3"]

    assert client.get(f"/bookings/{booking_id}", headers=_headers("user2")).status_code == 403
    assert client.get("/bookings/424242", headers=_headers("user1")).status_code == 404


def test_unknown_event_seats_returns_404(client, catalog):
    assert client.get(f"/events/{catalog.event_id + 100}/seats").status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_admin_lists_all_bookings(client, catalog, monkeypatch):
    monkeypatch.setenv("ADMIN_USER_IDS", "ops-1, ops-2")
    for user_id, seat_id in [("user1", catalog.seat_ids[0]), ("user2", catalog.seat_ids[1])]:
        client.post(
            "/bookings",
            json={"event_id": catalog.event_id, "seat_ids": [seat_id]},
            headers=_headers(user_id),
        )

    response = client.get("/bookings", headers=_headers("ops-2"))

    assert response.status_code == 200
    assert sorted(booking["user_id"] for booking in response.json()) == ["user1", "user2"]


def test_non_admin_cannot_list_all_bookings(client, monkeypatch):
    monkeypatch.setenv("ADMIN_USER_IDS", "ops-1")

    assert client.get("/bookings", headers=_headers("user1")).status_code == 403
    assert client.get("/bookings").status_code == 401


def test_overlong_user_id_is_rejected(client, catalog):
    response = client.post(
        "/bookings",
        json={"event_id": catalog.event_id, "seat_ids": catalog.seat_ids[:1]},
        headers=_headers("u" * 65),
    )

    assert response.status_code == 422
    seats = client.get(f"/events/{catalog.event_id}/seats").json()
    assert seats[0]["status"] == "Available"


def test_user_id_at_the_length_limit_is_accepted(client, catalog):
    response = client.post(
        "/bookings",
        json={"event_id": catalog.event_id, "seat_ids": catalog.seat_ids[:1]},
        headers=_headers("u" * 64),
    )

    assert response.status_code == 201
