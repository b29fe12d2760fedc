from datetime import date, datetime, timedelta

import pytest
from fastapi import HTTPException

from haven.models import (
    BugReport,
    Circle,
    CircleMember,
    Connection,
    Conversation,
    Event,
    EventRsvp,
    Message,
    Profile,
)
from haven.services.account_deletion import delete_account

from .conftest import auth_headers


def _circle(db, owner, *members, name="Makers"):
    circle = Circle(name=name, created_by=owner.id, member_count=1 + len(members))
    db.add(circle)
    db.flush()
    joined = datetime.utcnow() - timedelta(days=30)
    db.add(CircleMember(circle_id=circle.id, member_id=owner.id, role="admin", joined_at=joined))
    for offset, member in enumerate(members, start=1):
        db.add(CircleMember(
            circle_id=circle.id, member_id=member.id, role="member",
            joined_at=joined + timedelta(days=offset),
        ))
    db.commit()
    return circle


def test_delete_own_account_cascades(client, make_profile, db):
    me = make_profile()
    friend = make_profile()
    db.add(Connection(requester_id=me.id, receiver_id=friend.id, status="accepted"))
    conversation = Conversation(participant_1=me.id, participant_2=friend.id)
    db.add(conversation)
    db.flush()
    db.add(Message(conversation_id=conversation.id, sender_id=friend.id, content="hi"))
    event = Event(
        host_id=me.id, title="Picnic", category="playdate",
        event_date=date.today() + timedelta(days=3), location_name="Fitzroy",
    )
    db.add(event)
    db.flush()
    db.add(EventRsvp(event_id=event.id, profile_id=friend.id, status="going"))
    db.add(BugReport(user_id=me.id, message="Broken"))
    db.commit()

    response = client.delete("/profiles/me", headers=auth_headers(me))
    assert response.status_code == 200

    db.expire_all()
    assert db.get(Profile, me.id) is None
    assert db.query(Connection).count() == 0
    assert db.query(Conversation).count() == 0
    assert db.query(Message).count() == 0
    assert db.query(Event).count() == 0
    assert db.query(EventRsvp).count() == 0
    assert db.query(BugReport).one().user_id is None


def test_circles_pass_to_longest_standing_member(make_profile, db):
    owner = make_profile()
    early = make_profile()
    late = make_profile()
    shared = _circle(db, owner, early, late)
    solo = _circle(db, owner, name="Solo")
    shared_id, solo_id = shared.id, solo.id

    delete_account(db, owner.id)

    db.expire_all()
    circle = db.get(Circle, shared_id)
    assert circle.created_by == early.id
    assert circle.member_count == 2
    successor = db.query(CircleMember).filter(CircleMember.member_id == early.id).one()
    assert successor.role == "admin"
    assert db.get(Circle, solo_id) is None


def test_unknown_account(db):
    with pytest.raises(HTTPException) as exc:
        delete_account(db, "no-such-profile")
    assert exc.value.status_code == 404


def test_adminless_circles_promote_a_member(make_profile, db):
    founder = make_profile()
    leaving_admin = make_profile()
    regular = make_profile()
    circle = Circle(name="Chess", created_by=founder.id, member_count=2)
    db.add(circle)
    db.flush()
    joined = datetime.utcnow() - timedelta(days=10)
    db.add(CircleMember(circle_id=circle.id, member_id=leaving_admin.id, role="admin", joined_at=joined))
    db.add(CircleMember(
        circle_id=circle.id, member_id=regular.id, role="member", joined_at=joined + timedelta(days=1),
    ))
    db.commit()
    circle_id = circle.id

    delete_account(db, leaving_admin.id)

    db.expire_all()
    promoted = db.query(CircleMember).filter(CircleMember.circle_id == circle_id).one()
    assert promoted.member_id == regular.id
    assert promoted.role == "admin"
    assert db.get(Circle, circle_id).created_by == founder.id
