from datetime import datetime, timedelta

import pytest

from backend.moodflow.models import db, JournalEntry
from backend.moodflow.api.reports import parse_query_date
from backend.moodflow.models._time import utcnow
from backend.moodflow.services.report_exporter import ReportDocument


def post_entry(client, headers, mood="Good", text="A quiet walk in the park"):
    return client.post("/api/entries", json={"mood": mood, "text": text}, headers=headers)


def upgrade(client, headers):
    response = client.post("/api/billing/upgrade", json={"phone_number": "0712345678"}, headers=headers)
    assert response.status_code == 200, response.get_json()
    return response


def test_health(client):
    assert client.get("/health").get_json()["status"] == "ok"


class TestAuth:
    def test_signup_redirects_to_profile_setup(self, client):
        response = client.post("/api/auth/signup", json={"email": "new@moodflow.app", "password": "password123"})
        body = response.get_json()

        assert response.status_code == 201
        assert body["redirect"] == "/profile-setup"
        assert body["state"] == "authenticated_incomplete"
        assert body["user"]["subscription_status"] == "free"

    def test_signup_validation(self, client):
        response = client.post("/api/auth/signup", json={"email": "not-an-email", "password": "pw"})
        assert response.status_code == 400
        assert set(response.get_json()["details"]) == {"email", "password"}

    def test_duplicate_signup(self, client, auth_headers):
        response = client.post("/api/auth/signup", json={"email": "amani@moodflow.app", "password": "password123"})
        assert response.status_code == 409

    def test_login_after_profile_goes_to_dashboard(self, client, auth_headers):
        response = client.post("/api/auth/login", json={"email": "amani@moodflow.app", "password": "password123"})
        body = response.get_json()
        assert response.status_code == 200
        assert body["redirect"] == "/dashboard"
        assert body["user"]["profile_completed"] is True

    def test_login_failures(self, client, auth_headers):
        assert client.post("/api/auth/login", json={"email": "amani@moodflow.app"}).status_code == 400
        response = client.post("/api/auth/login", json={"email": "amani@moodflow.app", "password": "nope-nope"})
        assert response.status_code == 401

    def test_logout_revokes_token(self, client, auth_headers):
        assert client.post("/api/auth/logout", headers=auth_headers).status_code == 200
        response = client.get("/api/auth/session", headers=auth_headers)
        assert response.status_code == 401
        assert response.get_json()["redirect"] == "/login"

    def test_missing_token(self, client):
        response = client.get("/api/entries")
        assert response.status_code == 401
        assert response.get_json()["redirect"] == "/login"

    def test_route_policy(self, client, headers_factory):
        assert client.get("/api/auth/route?path=/journal").get_json()["redirect"] == "/login"

        incomplete = headers_factory("half@moodflow.app", complete=False)
        body = client.get("/api/auth/route?path=/journal", headers=incomplete).get_json()
        assert body["redirect"] == "/profile-setup"
        assert body["allowed"] is False

        complete = headers_factory("full@moodflow.app")
        body = client.get("/api/auth/route?path=/history", headers=complete).get_json()
        assert body == {"state": "authenticated_complete", "path": "/history", "redirect": "/history", "allowed": True}
        assert client.get("/api/auth/route?path=/login", headers=complete).get_json()["redirect"] == "/dashboard"


class TestProfile:
    def test_incomplete_profile_blocks_journal(self, client, headers_factory):
        headers = headers_factory("half@moodflow.app", complete=False)
        response = client.get("/api/entries", headers=headers)
        assert response.status_code == 403
        assert response.get_json()["redirect"] == "/profile-setup"

        assert client.get("/api/profile", headers=headers).status_code == 200
        assert client.get("/api/auth/session", headers=headers).get_json()["state"] == "authenticated_incomplete"

    def test_profile_validation_errors(self, client, headers_factory):
        headers = headers_factory("half@moodflow.app", complete=False)
        response = client.put("/api/profile", json={"first_name": "Amani"}, headers=headers)
        body = response.get_json()
        assert response.status_code == 400
        assert "last_name" in body["details"]
        assert "date_of_birth" in body["details"]

    def test_profile_update_redirects_to_dashboard(self, client, headers_factory, profile_data):
        headers = headers_factory("half@moodflow.app", complete=False)
        body = client.put("/api/profile", json=profile_data, headers=headers).get_json()
        assert body["redirect"] == "/dashboard"
        assert body["user"]["profile"]["interests"] == ["hiking", "reading"]


class TestEntries:
    def test_crud(self, client, auth_headers, analysis_client):
        created = post_entry(client, auth_headers)
        assert created.status_code == 201
        entry = created.get_json()
        assert entry["mood"] == "Good"
        assert entry["analysis"]["overallSentiment"] == "Positive"

        fetched = client.get(f"/api/entries/{entry['id']}", headers=auth_headers).get_json()
        assert fetched["text"] == entry["text"]

        updated = client.put(f"/api/entries/{entry['id']}", json={"mood": "Awesome"}, headers=auth_headers)
        assert updated.status_code == 200
        assert updated.get_json()["mood"] == "Awesome"
        assert len(analysis_client.analyze_calls) == 1

        changed = client.put(f"/api/entries/{entry['id']}", json={"text": "Something else"}, headers=auth_headers)
        assert changed.status_code == 200
        assert len(analysis_client.analyze_calls) == 2

        assert client.delete(f"/api/entries/{entry['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"/api/entries/{entry['id']}", headers=auth_headers).status_code == 404

    def test_validation(self, client, auth_headers):
        assert post_entry(client, auth_headers, mood="Ecstatic").status_code == 400
        assert post_entry(client, auth_headers, text="   ").status_code == 400
        assert client.post("/api/entries", json={}, headers=auth_headers).status_code == 400

    def test_free_limit_then_upgrade(self, client, auth_headers):
        for i in range(5):
            assert post_entry(client, auth_headers, text=f"Entry {i}").status_code == 201

        denied = post_entry(client, auth_headers, text="Entry 6")
        assert denied.status_code == 403
        assert denied.get_json()["upgrade_required"] is True

        upgrade(client, auth_headers)
        assert post_entry(client, auth_headers, text="Entry 6").status_code == 201

    def test_analysis_failure_is_retryable(self, client, auth_headers, analysis_client):
        analysis_client.fail = True
        response = post_entry(client, auth_headers)
        assert response.status_code == 502
        assert client.get("/api/entries", headers=auth_headers).get_json()["total"] == 0

    def test_list_filters(self, client, auth_headers):
        post_entry(client, auth_headers, mood="Good", text="Morning run by the river")
        post_entry(client, auth_headers, mood="Bad", text="Stuck in traffic")

        body = client.get("/api/entries?search=river", headers=auth_headers).get_json()
        assert [e["mood"] for e in body["entries"]] == ["Good"]

        body = client.get("/api/entries?mood=Bad&mood=Okay", headers=auth_headers).get_json()
        assert [e["mood"] for e in body["entries"]] == ["Bad"]

        assert client.get("/api/entries?order=random", headers=auth_headers).status_code == 400

    def test_list_is_newest_first(self, client, auth_headers):
        ids = [post_entry(client, auth_headers, text=f"Entry {i}").get_json()["id"] for i in range(3)]
        entry = db.session.get(JournalEntry, ids[2])
        entry.date = utcnow() - timedelta(days=1)
        db.session.commit()

        listed = [e["id"] for e in client.get("/api/entries", headers=auth_headers).get_json()["entries"]]
        assert listed[-1] == ids[2]

    def test_other_users_entries_are_not_found(self, client, auth_headers, headers_factory):
        entry_id = post_entry(client, auth_headers).get_json()["id"]
        other = headers_factory("other@moodflow.app")
        assert client.get(f"/api/entries/{entry_id}", headers=other).status_code == 404
        assert client.delete(f"/api/entries/{entry_id}", headers=other).status_code == 404


class TestDashboard:
    def test_empty_dashboard(self, client, auth_headers):
        body = client.get("/api/dashboard", headers=auth_headers).get_json()
        assert body["stats"] == {"streak": 0, "today_mood": "N/A", "avg_sentiment": "N/A", "total_entries": 0}
        assert body["nudge"]["title"] == "Welcome!"
        assert body["usage"]["remaining"] == 5

    def test_dashboard_with_entries(self, client, auth_headers):
        post_entry(client, auth_headers, mood="Awesome")
        post_entry(client, auth_headers, mood="Okay")

        body = client.get("/api/dashboard", headers=auth_headers).get_json()
        assert body["stats"]["streak"] == 1
        assert body["stats"]["avg_sentiment"] == "Good"
        assert body["stats"]["total_entries"] == 2
        assert body["usage"] == {"used": 2, "limit": 5, "remaining": 3, "limit_reached": False}
        assert body["emotion_breakdown"] == [{"emotion": "Joy", "value": 160}]
        assert len(body["mood_trend"]) == 2
        assert body["nudge"]["title"] == "Keep the Momentum"

    def test_analytics(self, client, auth_headers):
        post_entry(client, auth_headers, mood="Bad")
        body = client.get("/api/analytics", headers=auth_headers).get_json()
        assert body["most_frequent_mood"] == "Bad"
        assert body["top_emotions"] == [{"emotion": "Joy", "count": 1}]
        assert body["total_entries"] == 1


class TestPremiumFeatures:
    @pytest.mark.parametrize("path", ["/api/wellness/heatmap", "/api/wellness/triggers",
                                      "/api/wellness/recommendations", "/api/reports/export"])
    def test_free_users_get_upgrade_prompt(self, client, auth_headers, path):
        response = client.get(path, headers=auth_headers)
        assert response.status_code == 403
        assert response.get_json()["upgrade_required"] is True

    def test_wellness(self, client, auth_headers, analysis_client):
        upgrade(client, auth_headers)
        post_entry(client, auth_headers)

        body = client.get("/api/wellness/triggers", headers=auth_headers).get_json()
        assert body["positive"] == []
        assert "at least 3 entries" in body["message"]

        assert client.get("/api/wellness/recommendations", headers=auth_headers).get_json() == {
            "recommendations": ["Take a short walk."]
        }

        post_entry(client, auth_headers)
        post_entry(client, auth_headers)
        body = client.get("/api/wellness/triggers", headers=auth_headers).get_json()
        assert body == {"positive": ["walks"], "negative": ["deadlines"]}

        today = utcnow()
        body = client.get(f"/api/wellness/heatmap?year={today.year}&month={today.month}",
                          headers=auth_headers).get_json()
        cell = body["days"][today.day - 1]
        assert cell["color"] == "lime"

        assert client.get("/api/wellness/heatmap?month=13", headers=auth_headers).status_code == 400
        assert client.get("/api/wellness/heatmap?year=0&month=5", headers=auth_headers).status_code == 400
        assert client.get("/api/wellness/heatmap?year=10000&month=5", headers=auth_headers).status_code == 400

    def test_wellness_analysis_failure(self, client, auth_headers, analysis_client):
        upgrade(client, auth_headers)
        post_entry(client, auth_headers)
        analysis_client.fail = True
        assert client.get("/api/wellness/recommendations", headers=auth_headers).status_code == 502

    def test_report_export(self, client, auth_headers, monkeypatch):
        monkeypatch.setattr(ReportDocument, "render", lambda self: b"%PDF-1.7 fake")
        upgrade(client, auth_headers)
        post_entry(client, auth_headers)

        response = client.get("/api/reports/export", headers=auth_headers)
        assert response.status_code == 200
        assert response.mimetype == "application/pdf"
        assert "mood-report-" in response.headers["Content-Disposition"]
        assert response.data.startswith(b"%PDF")

    def test_report_export_failure(self, client, auth_headers, monkeypatch):
        def broken(self):
            raise OSError("no cairo")

        monkeypatch.setattr(ReportDocument, "render", broken)
        upgrade(client, auth_headers)
        response = client.get("/api/reports/export", headers=auth_headers)
        assert response.status_code == 500
        assert response.get_json()["error"] == "Failed to generate PDF report. Please try again."

    def test_report_bad_dates(self, client, auth_headers):
        upgrade(client, auth_headers)
        assert client.get("/api/reports/export?start=yesterday", headers=auth_headers).status_code == 400
        assert client.get("/api/reports/export?start=2026-05-01&end=2026-01-01",
                          headers=auth_headers).status_code == 400

    def test_report_date_parsing(self):
        assert parse_query_date(None) is None
        assert parse_query_date("2026-10-19") == datetime(2026, 10, 19)
        assert parse_query_date("2026-10-19", end_of_day=True) == datetime(2026, 10, 19, 23, 59, 59, 999999)
        # Explicit times are kept, whichever separator is used
        assert parse_query_date("2026-10-19 10:00+03:00", end_of_day=True) == datetime(2026, 10, 19, 7, 0)
        assert parse_query_date("2026-10-19T10:00", end_of_day=True) == datetime(2026, 10, 19, 10, 0)


class TestBilling:
    def test_status_and_upgrade(self, client, auth_headers):
        status = client.get("/api/billing/status", headers=auth_headers).get_json()
        assert status["subscription_status"] == "free"
        assert status["price"] == 500

        body = upgrade(client, auth_headers).get_json()
        assert body["user"]["subscription_status"] == "premium"
        assert body["transaction_id"].startswith("MPESA_")

        again = client.post("/api/billing/upgrade", json={"phone_number": "0712345678"}, headers=auth_headers)
        assert "already" in again.get_json()["message"]

    def test_invalid_phone(self, client, auth_headers):
        response = client.post("/api/billing/upgrade", json={"phone_number": "12345"}, headers=auth_headers)
        assert response.status_code == 402
        assert "Invalid Kenyan phone number" in response.get_json()["error"]
        status = client.get("/api/billing/status", headers=auth_headers).get_json()
        assert status["subscription_status"] == "free"

    def test_missing_phone(self, client, auth_headers):
        assert client.post("/api/billing/upgrade", json={}, headers=auth_headers).status_code == 400
