from haven.models import BlockedUser, Connection, Notification

from .conftest import auth_headers


def test_request_accept_flow(client, make_profile, db, monkeypatch):
    emails = []

    async def fake_email(to, from_name):
        emails.append((to, from_name))

    monkeypatch.setattr("haven.routes.connections.send_connection_request_email", fake_email)
    alice = make_profile(display_name="Alice")
    bob = make_profile(display_name="Bob", email="bob@family.test")

    response = client.post("/connections", json={"receiver_id": bob.id}, headers=auth_headers(alice))
    assert response.status_code == 201
    connection_id = response.json()["id"]
    assert response.json()["status"] == "pending"
    assert emails == [("bob@family.test", "Alice")]

    status = client.get(f"/connections/status/{bob.id}", headers=auth_headers(alice)).json()
    assert status == {"status": "pending_sent", "connection_id": connection_id}
    incoming = client.get("/connections/requests", headers=auth_headers(bob)).json()
    assert [c["profile"]["id"] for c in incoming] == [alice.id]
    sent = client.get("/connections/sent", headers=auth_headers(alice)).json()
    assert [c["id"] for c in sent] == [connection_id]

    # Only the receiver can accept
    assert client.post(f"/connections/{connection_id}/accept", headers=auth_headers(alice)).status_code == 403
    accepted = client.post(f"/connections/{connection_id}/accept", headers=auth_headers(bob))
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"

    listed = client.get("/connections", headers=auth_headers(alice)).json()
    assert [c["profile"]["id"] for c in listed] == [bob.id]

    types = {n.user_id: n.type for n in db.query(Notification).all()}
    assert types == {bob.id: "connection_request", alice.id: "connection_accepted"}


def test_preferences_gate_email_but_not_notification_row(client, make_profile, db, monkeypatch):
    emails = []

    async def fake_email(to, from_name):
        emails.append(to)

    monkeypatch.setattr("haven.routes.connections.send_connection_request_email", fake_email)
    alice = make_profile()
    bob = make_profile(notify_connection_requests=False)

    client.post("/connections", json={"receiver_id": bob.id}, headers=auth_headers(alice))

    assert emails == []
    assert db.query(Notification).filter(Notification.user_id == bob.id).count() == 1


def test_invalid_requests(client, make_profile, db):
    alice = make_profile()
    bob = make_profile()
    carol = make_profile()
    db.add(BlockedUser(blocker_id=carol.id, blocked_id=alice.id))
    db.commit()
    headers = auth_headers(alice)

    assert client.post("/connections", json={"receiver_id": alice.id}, headers=headers).status_code == 400
    assert client.post("/connections", json={"receiver_id": "nobody"}, headers=headers).status_code == 404
    assert client.post("/connections", json={"receiver_id": carol.id}, headers=headers).status_code == 403

    assert client.post("/connections", json={"receiver_id": bob.id}, headers=headers).status_code == 201
    assert client.post("/connections", json={"receiver_id": bob.id}, headers=headers).status_code == 409
    # The reverse direction counts as the same pair
    reverse = client.post("/connections", json={"receiver_id": alice.id}, headers=auth_headers(bob))
    assert reverse.status_code == 409


def test_decline_deletes_request(client, make_profile, db):
    alice = make_profile()
    bob = make_profile()
    connection_id = client.post(
        "/connections", json={"receiver_id": bob.id}, headers=auth_headers(alice)
    ).json()["id"]

    assert client.post(f"/connections/{connection_id}/decline", headers=auth_headers(bob)).status_code == 200
    db.expire_all()
    assert db.query(Connection).count() == 0
    status = client.get(f"/connections/status/{bob.id}", headers=auth_headers(alice)).json()
    assert status["status"] == "none"


def test_remove_connection_by_either_side(client, make_profile, db):
    alice = make_profile()
    bob = make_profile()
    outsider = make_profile()
    connection = Connection(requester_id=alice.id, receiver_id=bob.id, status="accepted")
    db.add(connection)
    db.commit()

    assert client.delete(f"/connections/{connection.id}", headers=auth_headers(outsider)).status_code == 404
    assert client.delete(f"/connections/{connection.id}", headers=auth_headers(bob)).status_code == 200
