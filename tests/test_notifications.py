import asyncio
from datetime import datetime, timedelta

import pytest
from fastapi import BackgroundTasks

from haven.models import Notification
from haven.services import notification_service
from haven.services.notification_service import create_notification, schedule_email

from .conftest import auth_headers


def _notify(db, user, title, created_at=None, read=False):
    note = Notification(
        user_id=user.id,
        type="message",
        title=title,
        read=read,
        created_at=created_at or datetime.utcnow(),
    )
    db.add(note)
    db.commit()
    return note


def test_list_newest_first_and_unread_count(client, make_profile, db):
    me = make_profile()
    other = make_profile()
    now = datetime.utcnow()
    _notify(db, me, "older", now - timedelta(hours=1))
    _notify(db, me, "newer", now)
    _notify(db, me, "seen", now - timedelta(hours=2), read=True)
    _notify(db, other, "not mine")

    listed = client.get("/notifications", headers=auth_headers(me)).json()
    assert [n["title"] for n in listed] == ["newer", "older", "seen"]
    unread = client.get("/notifications?unread_only=true", headers=auth_headers(me)).json()
    assert [n["title"] for n in unread] == ["newer", "older"]
    assert client.get("/notifications/unread-count", headers=auth_headers(me)).json() == {"count": 2}


def test_mark_read(client, make_profile, db):
    me = make_profile()
    other = make_profile()
    mine = _notify(db, me, "mine")
    theirs = _notify(db, other, "theirs")

    assert client.post(f"/notifications/{theirs.id}/read", headers=auth_headers(me)).status_code == 404
    assert client.post(f"/notifications/{mine.id}/read", headers=auth_headers(me)).json()["read"] is True

    _notify(db, me, "another")
    assert client.post("/notifications/read-all", headers=auth_headers(me)).json() == {"marked_read": 1}
    assert client.get("/notifications/unread-count", headers=auth_headers(me)).json() == {"count": 0}


def test_preferences_round_trip(client, make_profile):
    me = make_profile()
    prefs = client.get("/notifications/preferences", headers=auth_headers(me)).json()
    assert all(prefs.values())

    prefs["notify_messages"] = False
    prefs["email_notifications"] = False
    updated = client.put("/notifications/preferences", json=prefs, headers=auth_headers(me)).json()

    assert updated["notify_messages"] is False
    assert updated["email_notifications"] is False
    assert updated["notify_circle_invites"] is True


def test_push_is_scheduled_only_when_wanted(make_profile, db):
    keen = make_profile()
    quiet = make_profile(notify_messages=False)
    tasks = BackgroundTasks()

    assert create_notification(db, keen.id, "message", "Hi", background_tasks=tasks) is not None
    assert create_notification(db, quiet.id, "message", "Hi", background_tasks=tasks) is not None

    assert [task.args[0] for task in tasks.tasks] == [keen.id]
    assert db.query(Notification).count() == 2


def test_unknown_type_is_rejected(make_profile, db):
    me = make_profile()
    with pytest.raises(ValueError):
        create_notification(db, me.id, "party_invite", "Hi")


def test_schedule_email_respects_global_switch(make_profile):
    async def sender(**kwargs):
        return None

    tasks = BackgroundTasks()
    assert schedule_email(tasks, make_profile(), "message", sender) is True
    assert schedule_email(tasks, make_profile(email_notifications=False), "message", sender) is False
    assert schedule_email(tasks, make_profile(email=None), "message", sender) is False
    assert len(tasks.tasks) == 1


def test_deliver_email_swallows_errors():
    async def broken(**kwargs):
        raise RuntimeError("provider down")

    assert asyncio.run(notification_service.deliver_email(broken, "message", to="a@b.co")) is False
