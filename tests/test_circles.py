from haven.models import Circle, CircleInvitation, Notification

from .conftest import auth_headers


def _create(client, owner, **fields):
    payload = {"name": "Forest School Friends", "description": "Weekly bush walks", **fields}
    response = client.post("/circles", json=payload, headers=auth_headers(owner))
    assert response.status_code == 201
    return response.json()


def test_creator_becomes_admin(client, make_profile):
    owner = make_profile()
    circle = _create(client, owner)

    assert circle["member_count"] == 1
    detail = client.get(f"/circles/{circle['id']}", headers=auth_headers(owner)).json()
    assert detail["my_role"] == "admin"
    mine = client.get("/circles", headers=auth_headers(owner)).json()
    assert [c["id"] for c in mine] == [circle["id"]]


def test_join_and_leave_public_circle(client, make_profile):
    owner = make_profile()
    member = make_profile()
    circle = _create(client, owner)

    assert client.post(f"/circles/{circle['id']}/join", headers=auth_headers(member)).status_code == 200
    # Joining twice is a no-op
    assert client.post(f"/circles/{circle['id']}/join", headers=auth_headers(member)).status_code == 200
    members = client.get(f"/circles/{circle['id']}/members", headers=auth_headers(member)).json()
    assert {m["member_id"]: m["role"] for m in members} == {owner.id: "admin", member.id: "member"}

    detail = client.get(f"/circles/{circle['id']}", headers=auth_headers(member)).json()
    assert detail["member_count"] == 2

    assert client.post(f"/circles/{circle['id']}/leave", headers=auth_headers(member)).status_code == 200
    detail = client.get(f"/circles/{circle['id']}", headers=auth_headers(owner)).json()
    assert detail["member_count"] == 1


def test_private_circle_is_invite_only(client, make_profile):
    owner = make_profile()
    outsider = make_profile()
    circle = _create(client, owner, is_public=False)

    assert client.get(f"/circles/{circle['id']}", headers=auth_headers(outsider)).status_code == 404
    assert client.post(f"/circles/{circle['id']}/join", headers=auth_headers(outsider)).status_code == 403
    discover = client.get("/circles/discover", headers=auth_headers(outsider)).json()
    assert discover == []


def test_last_admin_cannot_leave_with_members(client, make_profile):
    owner = make_profile()
    member = make_profile()
    circle = _create(client, owner)
    client.post(f"/circles/{circle['id']}/join", headers=auth_headers(member))

    assert client.post(f"/circles/{circle['id']}/leave", headers=auth_headers(owner)).status_code == 400
    demote = client.patch(
        f"/circles/{circle['id']}/members/{owner.id}", json={"role": "member"}, headers=auth_headers(owner)
    )
    assert demote.status_code == 400

    promote = client.patch(
        f"/circles/{circle['id']}/members/{member.id}", json={"role": "admin"}, headers=auth_headers(owner)
    )
    assert promote.json()["role"] == "admin"
    assert client.post(f"/circles/{circle['id']}/leave", headers=auth_headers(owner)).status_code == 200


def test_last_member_leaving_deactivates(client, make_profile, db):
    owner = make_profile()
    circle = _create(client, owner)
    assert client.post(f"/circles/{circle['id']}/leave", headers=auth_headers(owner)).status_code == 200
    db.expire_all()
    stored = db.query(Circle).filter(Circle.id == circle["id"]).one()
    assert stored.is_active is False
    assert stored.member_count == 0


def test_only_admins_manage(client, make_profile):
    owner = make_profile()
    member = make_profile()
    other = make_profile()
    circle = _create(client, owner)
    client.post(f"/circles/{circle['id']}/join", headers=auth_headers(member))
    client.post(f"/circles/{circle['id']}/join", headers=auth_headers(other))

    headers = auth_headers(member)
    assert client.patch(f"/circles/{circle['id']}", json={"name": "Mine now"}, headers=headers).status_code == 403
    assert client.delete(f"/circles/{circle['id']}/members/{other.id}", headers=headers).status_code == 403

    updated = client.patch(
        f"/circles/{circle['id']}", json={"name": "  Bush Walkers "}, headers=auth_headers(owner)
    ).json()
    assert updated["name"] == "Bush Walkers"
    removed = client.delete(f"/circles/{circle['id']}/members/{other.id}", headers=auth_headers(owner))
    assert removed.status_code == 200

    assert client.delete(f"/circles/{circle['id']}", headers=auth_headers(owner)).status_code == 200
    assert client.get("/circles/discover", headers=auth_headers(other)).json() == []


def test_invitation_flow(client, make_profile, db, monkeypatch):
    emails = []

    async def fake_email(to, from_name, circle_name):
        emails.append((to, from_name, circle_name))

    monkeypatch.setattr("haven.domain.circles.service.send_circle_invite_email", fake_email)
    owner = make_profile(display_name="Olivia")
    friend = make_profile(email="friend@family.test")
    circle = _create(client, owner, is_public=False)

    response = client.post(
        f"/circles/{circle['id']}/invitations", json={"invitee_id": friend.id}, headers=auth_headers(owner)
    )
    assert response.status_code == 201
    assert emails == [("friend@family.test", "Olivia", "Forest School Friends")]
    again = client.post(
        f"/circles/{circle['id']}/invitations", json={"invitee_id": friend.id}, headers=auth_headers(owner)
    )
    assert again.status_code == 409

    pending = client.get("/circles/invitations", headers=auth_headers(friend)).json()
    assert len(pending) == 1
    assert pending[0]["circle"]["name"] == "Forest School Friends"
    assert pending[0]["inviter"]["id"] == owner.id

    accepted = client.post(f"/circles/invitations/{pending[0]['id']}/accept", headers=auth_headers(friend))
    assert accepted.status_code == 200
    assert accepted.json()["role"] == "member"
    assert client.get(f"/circles/{circle['id']}", headers=auth_headers(friend)).status_code == 200

    notification = db.query(Notification).filter(Notification.user_id == friend.id).one()
    assert notification.type == "circle_invite"


def test_decline_invitation(client, make_profile, db):
    owner = make_profile()
    friend = make_profile()
    circle = _create(client, owner)
    invitation_id = client.post(
        f"/circles/{circle['id']}/invitations", json={"invitee_id": friend.id}, headers=auth_headers(owner)
    ).json()["id"]

    assert client.post(f"/circles/invitations/{invitation_id}/decline", headers=auth_headers(owner)).status_code == 404
    assert client.post(f"/circles/invitations/{invitation_id}/decline", headers=auth_headers(friend)).status_code == 200
    db.expire_all()
    assert db.query(CircleInvitation).one().status == "declined"
    assert client.get("/circles/invitations", headers=auth_headers(friend)).json() == []


def test_discover_by_radius(client, make_profile):
    near_owner = make_profile(location_lat=-37.767, location_lng=144.961)
    far_owner = make_profile(location_lat=-33.87, location_lng=151.21)
    viewer = make_profile(location_lat=-37.799, location_lng=144.978)
    near = _create(client, near_owner, name="Brunswick Crafters")
    _create(client, far_owner, name="Sydney Coders")

    results = client.get("/circles/discover?radius_km=20", headers=auth_headers(viewer)).json()

    assert [c["id"] for c in results] == [near["id"]]
    assert results[0]["distance_km"] is not None


def test_chat_is_members_only(client, make_profile):
    owner = make_profile()
    outsider = make_profile()
    circle = _create(client, owner)

    posted = client.post(
        f"/circles/{circle['id']}/messages", json={"content": "Welcome!"}, headers=auth_headers(owner)
    )
    assert posted.status_code == 201
    assert posted.json()["sender"]["id"] == owner.id

    assert client.get(f"/circles/{circle['id']}/messages", headers=auth_headers(outsider)).status_code == 403
    messages = client.get(f"/circles/{circle['id']}/messages", headers=auth_headers(owner)).json()
    assert [m["content"] for m in messages] == ["Welcome!"]
