import resend

from haven import config, email_service
from haven.email_templates import circle_invite_template, connection_request_template

from .conftest import auth_headers


def _capture_resend(monkeypatch, fail=False):
    sent = []

    def fake_send(params):
        if fail:
            raise RuntimeError("resend unavailable")
        sent.append(params)
        return {"id": "email-1"}

    monkeypatch.setattr(config, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service, "compile_mjml_to_html", lambda mjml: "<html>compiled</html>")
    monkeypatch.setattr(resend.Emails, "send", fake_send)
    return sent


def test_templates_escape_user_text():
    template = connection_request_template("<script>alert(1)</script>")
    assert "<script>" not in template
    assert "&lt;script&gt;" in template
    assert "Tom &amp; Kids" in circle_invite_template("Tom & Kids", "Lego League")


def test_send_welcome(client, make_profile, monkeypatch):
    sent = _capture_resend(monkeypatch)
    me = make_profile()

    response = client.post(
        "/email", json={"type": "welcome", "to": "New@Family.test", "name": "Rosa"}, headers=auth_headers(me)
    )

    assert response.json() == {"ok": True}
    assert sent[0]["to"] == ["new@family.test"]
    assert sent[0]["subject"] == "Welcome to Haven!"
    assert sent[0]["html"] == "<html>compiled</html>"


def test_send_rsvp_requires_fields(client, make_profile, monkeypatch):
    _capture_resend(monkeypatch)
    me = make_profile()
    payload = {"type": "rsvp", "to": "host@family.test", "event_title": "Picnic"}
    response = client.post("/email", json=payload, headers=auth_headers(me))
    assert response.status_code == 400
    assert "event_date" in response.json()["detail"]


def test_unknown_type_and_bad_address(client, make_profile):
    me = make_profile()
    headers = auth_headers(me)
    assert client.post("/email", json={"type": "newsletter", "to": "a@b.co"}, headers=headers).status_code == 400
    assert client.post("/email", json={"type": "welcome", "to": "nope", "name": "x"}, headers=headers).status_code == 400
    assert client.post("/email", json={"type": "welcome", "name": "x"}, headers=headers).status_code == 400


def test_provider_failure_is_500(client, make_profile, monkeypatch):
    _capture_resend(monkeypatch, fail=True)
    me = make_profile()
    response = client.post(
        "/email",
        json={"type": "connection_request", "to": "a@b.co", "from_name": "Sam"},
        headers=auth_headers(me),
    )
    assert response.status_code == 500


def test_missing_api_key_skips_quietly(client, make_profile):
    me = make_profile()
    response = client.post(
        "/email",
        json={"type": "circle_invite", "to": "a@b.co", "from_name": "Sam", "circle_name": "Makers"},
        headers=auth_headers(me),
    )
    assert response.json() == {"ok": True}
