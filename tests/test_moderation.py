from haven.models import BugReport, Connection, Feedback, Report

from .conftest import auth_headers


class TestReports:
    def test_create_report(self, client, make_profile, db):
        reporter = make_profile()
        reported = make_profile()
        response = client.post(
            "/reports",
            json={
                "reported_id": reported.id,
                "reason": "harassment",
                "details": "  Rude messages ",
                "content_type": "message",
                "content_id": "abc",
            },
            headers=auth_headers(reporter),
        )
        assert response.status_code == 201
        report = db.query(Report).one()
        assert report.status == "pending"
        assert report.details == "Rude messages"

    def test_invalid_reports(self, client, make_profile):
        me = make_profile()
        headers = auth_headers(me)
        assert client.post("/reports", json={"reported_id": me.id, "reason": "x"}, headers=headers).status_code == 400
        assert client.post("/reports", json={"reported_id": "ghost", "reason": "x"}, headers=headers).status_code == 404
        other = make_profile()
        bad_type = {"reported_id": other.id, "reason": "x", "content_type": "song"}
        assert client.post("/reports", json=bad_type, headers=headers).status_code == 422


class TestBlocks:
    def test_block_removes_connection_and_is_idempotent(self, client, make_profile, db):
        me = make_profile()
        other = make_profile()
        db.add(Connection(requester_id=other.id, receiver_id=me.id, status="accepted"))
        db.commit()

        assert client.post("/blocks", json={"user_id": other.id}, headers=auth_headers(me)).status_code == 201
        assert client.post("/blocks", json={"user_id": other.id}, headers=auth_headers(me)).status_code == 201

        db.expire_all()
        assert db.query(Connection).count() == 0
        blocks = client.get("/blocks", headers=auth_headers(me)).json()
        assert [b["blocked_id"] for b in blocks] == [other.id]

    def test_unblock(self, client, make_profile):
        me = make_profile()
        other = make_profile()
        client.post("/blocks", json={"user_id": other.id}, headers=auth_headers(me))

        assert client.delete(f"/blocks/{other.id}", headers=auth_headers(me)).status_code == 200
        assert client.delete(f"/blocks/{other.id}", headers=auth_headers(me)).status_code == 404
        assert client.get("/blocks", headers=auth_headers(me)).json() == []

    def test_cannot_block_self(self, client, make_profile):
        me = make_profile()
        assert client.post("/blocks", json={"user_id": me.id}, headers=auth_headers(me)).status_code == 400


class TestTickets:
    def test_bug_report_defaults(self, client, make_profile, db):
        me = make_profile(display_name="Dana", email="dana@family.test")
        response = client.post("/bug-reports", json={"message": "Map is blank"}, headers=auth_headers(me))
        assert response.status_code == 201
        assert response.json()["status"] == "new"

        report = db.query(BugReport).one()
        assert report.subject == "Bug Report"
        assert report.priority == "medium"
        assert report.user_name == "Dana"
        assert report.email == "dana@family.test"

    def test_bug_report_priority_validated(self, client, make_profile):
        me = make_profile()
        response = client.post(
            "/bug-reports", json={"message": "x", "priority": "urgent"}, headers=auth_headers(me)
        )
        assert response.status_code == 422

    def test_feedback(self, client, make_profile, db):
        me = make_profile()
        response = client.post(
            "/feedback", json={"message": "Love it", "type": "compliment"}, headers=auth_headers(me)
        )
        assert response.status_code == 201
        feedback = db.query(Feedback).one()
        assert feedback.subject == "Feedback & Suggestions"
        assert feedback.type == "compliment"
        assert client.post(
            "/feedback", json={"message": "x", "type": "rant"}, headers=auth_headers(me)
        ).status_code == 422
