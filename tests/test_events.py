from datetime import date, timedelta

from haven.models import Event, EventRsvp, Notification

from .conftest import auth_headers

NEXT_WEEK = (date.today() + timedelta(days=7)).isoformat()


def _create(client, host, **fields):
    payload = {
        "title": "Museum morning",
        "category": "learning",
        "event_date": NEXT_WEEK,
        "event_time": "10:30",
        "location_name": "Melbourne Museum",
        "location_lat": -37.803,
        "location_lng": 144.971,
        **fields,
    }
    response = client.post("/events", json=payload, headers=auth_headers(host))
    assert response.status_code == 201, response.text
    return response.json()


def test_host_is_going_and_sees_exact_location(client, make_profile):
    host = make_profile()
    event = _create(client, host)

    assert event["going_count"] == 1
    assert event["my_rsvp"] == "going"
    assert event["is_host"] is True
    assert event["location_lat"] == -37.803


def test_coordinates_hidden_from_guests_unless_shared(client, make_profile):
    host = make_profile()
    guest = make_profile()
    hidden = _create(client, host)
    shared = _create(client, host, title="Beach day", category="playdate", show_exact_location=True)

    events = {e["id"]: e for e in client.get("/events", headers=auth_headers(guest)).json()}

    assert events[hidden["id"]]["location_lat"] is None
    assert events[hidden["id"]]["location_lng"] is None
    assert events[shared["id"]]["location_lat"] == -37.803


def test_invalid_payloads(client, make_profile):
    host = make_profile()
    headers = auth_headers(host)
    base = {"title": "x", "category": "learning", "event_date": NEXT_WEEK, "location_name": "Park"}

    assert client.post("/events", json={**base, "category": "party"}, headers=headers).status_code == 422
    assert client.post("/events", json={**base, "event_time": "25:00"}, headers=headers).status_code == 422
    past = (date.today() - timedelta(days=1)).isoformat()
    assert client.post("/events", json={**base, "event_date": past}, headers=headers).status_code == 400


def test_list_filters(client, make_profile, db):
    host = make_profile()
    guest = make_profile(location_lat=-37.80, location_lng=144.97)
    near = _create(client, host)
    far = _create(client, host, title="Harbour walk", category="playdate", location_lat=-33.86, location_lng=151.21)
    db.add(
        Event(
            host_id=host.id,
            title="Last month",
            category="learning",
            event_date=date.today() - timedelta(days=30),
            location_name="Library",
        )
    )
    db.commit()

    headers = auth_headers(guest)
    all_events = client.get("/events", headers=headers).json()
    assert {e["id"] for e in all_events} == {near["id"], far["id"]}

    playdates = client.get("/events?category=playdate", headers=headers).json()
    assert [e["id"] for e in playdates] == [far["id"]]

    nearby = client.get("/events?radius_km=10", headers=headers).json()
    assert [e["id"] for e in nearby] == [near["id"]]
    assert nearby[0]["distance_km"] < 1

    assert client.get("/events?category=party", headers=headers).status_code == 400


def test_private_events_visible_to_invitees_only(client, make_profile):
    host = make_profile()
    invitee = make_profile()
    outsider = make_profile()
    event = _create(client, host, is_private=True)

    assert client.get(f"/events/{event['id']}", headers=auth_headers(outsider)).status_code == 404
    assert client.get("/events", headers=auth_headers(outsider)).json() == []

    client.post(f"/events/{event['id']}/invitations", json={"invitee_id": invitee.id}, headers=auth_headers(host))

    assert client.get(f"/events/{event['id']}", headers=auth_headers(invitee)).status_code == 200
    assert [e["id"] for e in client.get("/events", headers=auth_headers(invitee)).json()] == [event["id"]]


def test_rsvp_notifies_host_once(client, make_profile, db, monkeypatch):
    emails = []

    async def fake_email(to, event_title, event_date, attendee_name):
        emails.append((to, event_title, event_date, attendee_name))

    monkeypatch.setattr("haven.domain.events.service.send_rsvp_email", fake_email)
    host = make_profile(email="host@family.test")
    guest = make_profile(display_name="Gina")
    event = _create(client, host)

    going = client.put(f"/events/{event['id']}/rsvp", json={"status": "going"}, headers=auth_headers(guest))
    assert going.status_code == 200
    assert going.json()["status"] == "going"
    # Same status again does not notify twice
    client.put(f"/events/{event['id']}/rsvp", json={"status": "going"}, headers=auth_headers(guest))
    maybe = client.put(f"/events/{event['id']}/rsvp", json={"status": "maybe"}, headers=auth_headers(guest))
    assert maybe.json()["status"] == "maybe"

    assert emails == [("host@family.test", "Museum morning", NEXT_WEEK, "Gina")]
    notes = db.query(Notification).filter(Notification.user_id == host.id).all()
    assert [n.type for n in notes] == ["event_rsvp"]
    assert db.query(EventRsvp).filter(EventRsvp.profile_id == guest.id).count() == 1


def test_capacity_is_enforced(client, make_profile):
    host = make_profile()
    first = make_profile()
    second = make_profile()
    event = _create(client, host, max_attendees=2)

    assert client.put(f"/events/{event['id']}/rsvp", json={"status": "going"}, headers=auth_headers(first)).status_code == 200
    full = client.put(f"/events/{event['id']}/rsvp", json={"status": "going"}, headers=auth_headers(second))
    assert full.status_code == 409
    # Maybe is always allowed and re-confirming an existing spot is fine
    assert client.put(f"/events/{event['id']}/rsvp", json={"status": "maybe"}, headers=auth_headers(second)).status_code == 200
    assert client.put(f"/events/{event['id']}/rsvp", json={"status": "going"}, headers=auth_headers(first)).status_code == 200

    detail = client.get(f"/events/{event['id']}", headers=auth_headers(second)).json()
    assert detail["going_count"] == 2
    assert detail["spots_left"] == 0
    assert detail["my_rsvp"] == "maybe"


def test_cancel_notifies_attendees(client, make_profile, db):
    host = make_profile()
    going = make_profile()
    maybe = make_profile()
    event = _create(client, host)
    client.put(f"/events/{event['id']}/rsvp", json={"status": "going"}, headers=auth_headers(going))
    client.put(f"/events/{event['id']}/rsvp", json={"status": "maybe"}, headers=auth_headers(maybe))

    assert client.post(f"/events/{event['id']}/cancel", headers=auth_headers(going)).status_code == 403
    cancelled = client.post(f"/events/{event['id']}/cancel", headers=auth_headers(host))
    assert cancelled.json()["is_cancelled"] is True

    notified = {
        n.user_id for n in db.query(Notification).filter(Notification.type == "event_cancelled").all()
    }
    assert notified == {going.id, maybe.id}
    late = client.put(f"/events/{event['id']}/rsvp", json={"status": "going"}, headers=auth_headers(maybe))
    assert late.status_code == 400
    assert client.get("/events", headers=auth_headers(going)).json() == []


def test_update_is_host_only(client, make_profile):
    host = make_profile()
    guest = make_profile()
    event = _create(client, host)

    assert client.patch(f"/events/{event['id']}", json={"title": "Mine"}, headers=auth_headers(guest)).status_code == 403
    updated = client.patch(
        f"/events/{event['id']}", json={"title": "Museum afternoon", "event_time": "14:00"}, headers=auth_headers(host)
    ).json()
    assert updated["title"] == "Museum afternoon"
    assert updated["event_time"] == "14:00"


def test_my_events(client, make_profile):
    host = make_profile()
    guest = make_profile()
    hosted = _create(client, host)
    other = _create(client, guest, title="Guest's co-op", category="co-op")
    client.put(f"/events/{hosted['id']}/rsvp", json={"status": "going"}, headers=auth_headers(guest))

    mine = client.get("/events/mine", headers=auth_headers(guest)).json()
    assert [e["id"] for e in mine["hosting"]] == [other["id"]]
    assert [e["id"] for e in mine["going"]] == [hosted["id"]]


def test_invitation_accept_is_going_rsvp(client, make_profile, db):
    host = make_profile()
    invitee = make_profile()
    event = _create(client, host)

    invited = client.post(
        f"/events/{event['id']}/invitations", json={"invitee_id": invitee.id}, headers=auth_headers(host)
    )
    assert invited.status_code == 201
    assert db.query(Notification).filter(Notification.user_id == invitee.id).one().type == "event_invite"

    pending = client.get("/events/invitations", headers=auth_headers(invitee)).json()
    assert [i["event_id"] for i in pending] == [event["id"]]

    accepted = client.post(f"/events/invitations/{pending[0]['id']}/accept", headers=auth_headers(invitee))
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "going"
    assert client.get("/events/invitations", headers=auth_headers(invitee)).json() == []

    attendees = client.get(f"/events/{event['id']}/attendees", headers=auth_headers(host)).json()
    assert {a["profile_id"] for a in attendees} == {host.id, invitee.id}


def test_event_chat_for_participants(client, make_profile):
    host = make_profile()
    guest = make_profile()
    outsider = make_profile()
    event = _create(client, host)
    client.put(f"/events/{event['id']}/rsvp", json={"status": "maybe"}, headers=auth_headers(guest))

    assert client.post(
        f"/events/{event['id']}/messages", json={"content": "Bring a hat"}, headers=auth_headers(host)
    ).status_code == 201
    assert client.post(
        f"/events/{event['id']}/messages", json={"content": "Will do"}, headers=auth_headers(guest)
    ).status_code == 201
    assert client.get(f"/events/{event['id']}/messages", headers=auth_headers(outsider)).status_code == 403

    messages = client.get(f"/events/{event['id']}/messages", headers=auth_headers(guest)).json()
    assert {m["content"] for m in messages} == {"Bring a hat", "Will do"}
