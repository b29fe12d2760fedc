from types import SimpleNamespace

from pywebpush import WebPushException

from haven import config
from haven.models import PushSubscription
from haven.services import push_service

from .conftest import auth_headers


def _subscription(endpoint):
    return {"subscription": {"endpoint": endpoint, "keys": {"p256dh": "key", "auth": "secret"}}}


def test_vapid_key_endpoint(client, monkeypatch):
    assert client.get("/push/vapid-public-key").status_code == 503
    monkeypatch.setattr(config, "VAPID_PUBLIC_KEY", "public-key")
    assert client.get("/push/vapid-public-key").json() == {"public_key": "public-key"}


def test_subscribe_upserts_by_endpoint(client, make_profile, db):
    me = make_profile()
    headers = auth_headers(me)

    client.post("/push/subscribe", json=_subscription("https://push.example/a"), headers=headers)
    client.post("/push/subscribe", json=_subscription("https://push.example/a"), headers=headers)
    client.post("/push/subscribe", json=_subscription("https://push.example/b"), headers=headers)
    assert db.query(PushSubscription).count() == 2

    response = client.request(
        "DELETE", "/push/subscribe", json={"endpoint": "https://push.example/a"}, headers=headers
    )
    assert response.json() == {"ok": True}
    db.expire_all()
    assert [s.endpoint for s in db.query(PushSubscription).all()] == ["https://push.example/b"]


def test_send_requires_recipient_and_title(client, make_profile):
    me = make_profile()
    assert client.post("/push/send", json={"title": "Hi"}, headers=auth_headers(me)).status_code == 400
    assert client.post("/push/send", json={"recipient_id": me.id}, headers=auth_headers(me)).status_code == 400


def test_send_without_subscriptions(client, make_profile):
    me = make_profile()
    other = make_profile()
    response = client.post(
        "/push/send", json={"recipient_id": other.id, "title": "Hi"}, headers=auth_headers(me)
    )
    assert response.json() == {"sent": 0}


def test_send_delivers_and_prunes_stale(client, make_profile, db, monkeypatch):
    monkeypatch.setattr(config, "VAPID_PUBLIC_KEY", "public-key")
    monkeypatch.setattr(config, "VAPID_PRIVATE_KEY", "private-key")
    calls = []

    def fake_webpush(subscription_info, data, vapid_private_key, vapid_claims):
        calls.append((subscription_info["endpoint"], data))
        if subscription_info["endpoint"].endswith("gone"):
            raise WebPushException("gone", response=SimpleNamespace(status_code=410))

    monkeypatch.setattr(push_service, "webpush", fake_webpush)
    sender = make_profile()
    recipient = make_profile()
    for endpoint in ("https://push.example/ok", "https://push.example/gone"):
        db.add(
            PushSubscription(
                user_id=recipient.id,
                endpoint=endpoint,
                subscription={"endpoint": endpoint, "keys": {"p256dh": "k", "auth": "a"}},
            )
        )
    db.commit()

    response = client.post(
        "/push/send",
        json={"recipient_id": recipient.id, "title": "New message", "body": "Hello"},
        headers=auth_headers(sender),
    )

    assert response.json() == {"sent": 1}
    assert len(calls) == 2
    assert '"url": "/notifications"' in calls[0][1]
    db.expire_all()
    assert [s.endpoint for s in db.query(PushSubscription).all()] == ["https://push.example/ok"]
