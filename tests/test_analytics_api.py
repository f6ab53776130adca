"""Tests for event tracking, the dashboard, exports and rollups."""

import csv
import io

from database import utcnow
from models import AnalyticsEvent, Post

from conftest import headers_for, make_post


def track(client, post_id, event="view", session_id="s1", headers=None, **metadata):
    return client.post("/api/analytics/track", json={
        "post_id": post_id,
        "event": event,
        "session_id": session_id,
        "metadata": metadata
    }, headers=headers or {})


def by_event(overview):
    return {row["event"]: row for row in overview}


class TestTrack:
    def test_required_fields(self, client, db):
        response = client.post("/api/analytics/track", json={"event": "view"})
        assert response.status_code == 400
        assert response.json()["message"] == "Post ID, event, and session ID are required"

    def test_invalid_event(self, client, db, user):
        post = make_post(db, user)
        response = track(client, post.id, event="teleport")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid event type"

    def test_invalid_device(self, client, db, user):
        post = make_post(db, user)
        assert track(client, post.id, device="toaster").status_code == 400

    def test_unknown_post(self, client, db):
        assert track(client, 999).status_code == 404

    def test_anonymous_event_enriches_metadata(self, client, db, user):
        post = make_post(db, user)
        response = track(client, post.id, referrer="google.com", device="mobile", utm={"source": "news"})
        assert response.status_code == 200

        event = db.query(AnalyticsEvent).one()
        assert event.user_id is None
        assert event.referrer == "google.com"
        assert event.device.value == "mobile"
        assert event.event_metadata["utm"] == {"source": "news"}
        assert event.event_metadata["user_agent"] == "testclient"
        assert event.event_metadata["ip_address"] == "testclient"
        assert "timestamp" in event.event_metadata

    def test_counters(self, client, db, user):
        post = make_post(db, user)
        track(client, post.id, event="like")
        track(client, post.id, event="share", platform="twitter")
        track(client, post.id, event="comment")

        db.expire_all()
        post = db.get(Post, post.id)
        assert (post.likes, post.shares, post.comments) == (1, 1, 1)

    def test_authenticated_engagement(self, client, db, user, other_user):
        post = make_post(db, user)
        headers = headers_for(other_user)
        track(client, post.id, event="view", headers=headers)
        track(client, post.id, event="time_spent", headers=headers, time_spent=120)

        rows = client.get("/api/analytics/engagement/me", headers=headers).json()["data"]
        assert len(rows) == 1
        assert rows[0]["total_time_spent"] == 120
        assert rows[0]["engagement_score"] == 3.0
        assert rows[0]["posts_viewed"][0]["post_id"] == post.id
        assert rows[0]["posts_viewed"][0]["view_count"] == 1

        db.expire_all()
        assert db.get(Post, post.id).reading_time_total == 120


class TestDashboard:
    def seed(self, client, db, user, other_user):
        mine = make_post(db, user, title="Mine")
        theirs = make_post(db, other_user, title="Theirs")
        track(client, mine.id, session_id="a", referrer="google.com", device="mobile")
        track(client, mine.id, session_id="b", referrer="google.com", device="mobile")
        track(client, mine.id, event="like", session_id="a")
        track(client, theirs.id, session_id="c", device="desktop")
        return mine, theirs

    def test_scoped_to_own_posts(self, client, db, user, other_user, auth_headers):
        mine, _ = self.seed(client, db, user, other_user)

        response = client.get("/api/analytics/dashboard", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]

        overview = by_event(data["overview"])
        assert overview["view"]["count"] == 2
        assert overview["view"]["unique_sessions"] == 2
        assert overview["like"]["count"] == 1

        assert len(data["daily_stats"]) == 1
        assert data["daily_stats"][0]["total_events"] == 3

        assert [(p["post_id"], p["views"], p["unique_views"]) for p in data["top_posts"]] == [(mine.id, 2, 2)]
        assert data["traffic_sources"] == [{"source": "google.com", "visits": 2}]
        assert data["device_breakdown"] == [{"device": "mobile", "count": 2}]

    def test_admin_sees_everything(self, client, db, user, other_user, admin_headers):
        self.seed(client, db, user, other_user)
        data = client.get("/api/analytics/dashboard", headers=admin_headers).json()["data"]
        assert by_event(data["overview"])["view"]["count"] == 3

    def test_post_filter(self, client, db, user, other_user, admin_headers):
        _, theirs = self.seed(client, db, user, other_user)
        data = client.get("/api/analytics/dashboard", params={"postId": theirs.id}, headers=admin_headers).json()["data"]
        assert by_event(data["overview"])["view"]["count"] == 1

    def test_requires_auth(self, client, db):
        assert client.get("/api/analytics/dashboard").status_code == 401


class TestPostAnalytics:
    def test_author_sees_stats(self, client, db, user, auth_headers):
        post = make_post(db, user)
        track(client, post.id, session_id="a")
        track(client, post.id, session_id="b")

        data = client.get(f"/api/analytics/post/{post.id}", headers=auth_headers).json()["data"]
        assert data["post"]["id"] == post.id
        assert data["analytics"] == [{"event": "view", "count": 2, "unique_users": 0}]

    def test_forbidden_for_others(self, client, db, user, other_user):
        post = make_post(db, user)
        assert client.get(f"/api/analytics/post/{post.id}", headers=headers_for(other_user)).status_code == 403


class TestExport:
    def test_json(self, client, db, user, auth_headers):
        post = make_post(db, user)
        track(client, post.id)

        body = client.get("/api/analytics/export", headers=auth_headers).json()
        assert body["count"] == 1
        assert body["data"][0]["post"]["slug"] == post.slug
        assert body["data"][0]["user"] is None

    def test_csv(self, client, db, user, auth_headers):
        post = make_post(db, user, title="Exported")
        track(client, post.id, session_id="sess-1")

        response = client.get("/api/analytics/export", params={"format": "csv"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "analytics-export.csv" in response.headers["content-disposition"]

        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == ["Date", "Post Title", "Event", "User", "Session ID", "Metadata"]
        assert rows[1][1:5] == ["Exported", "view", "Anonymous", "sess-1"]

    def test_invalid_format(self, client, db, auth_headers):
        assert client.get("/api/analytics/export", params={"format": "xml"}, headers=auth_headers).status_code == 400


class TestDailyRollup:
    def test_rollup(self, client, db, user, other_user, admin_headers, auth_headers):
        post = make_post(db, user)
        track(client, post.id, session_id="a", referrer="google.com", device="mobile", country="KE")
        track(client, post.id, session_id="b", device="desktop")
        track(client, post.id, event="like", session_id="a")
        track(client, post.id, event="time_spent", session_id="a", time_spent=30)
        track(client, post.id, event="time_spent", session_id="b", time_spent=90)

        today = utcnow().date().isoformat()
        assert client.post("/api/analytics/daily/rollup", json={"date": today}, headers=auth_headers).status_code == 403

        response = client.post("/api/analytics/daily/rollup", json={"date": today}, headers=admin_headers)
        assert response.status_code == 200
        daily = response.json()["data"]
        assert daily["total_views"] == 2
        assert daily["unique_visitors"] == 2
        assert daily["total_likes"] == 1
        assert daily["average_time_spent"] == 60.0
        assert daily["device_breakdown"] == {"desktop": 1, "mobile": 1, "tablet": 0}
        assert daily["traffic_sources"] == [{"source": "google.com", "visits": 1, "percentage": 50.0}]
        assert daily["geographic_data"] == [{"country": "KE", "visits": 1, "percentage": 50.0}]
        assert daily["top_posts"][0]["post_id"] == post.id

        # Recomputing updates the same row
        client.post("/api/analytics/daily/rollup", json={"date": today}, headers=admin_headers)
        rows = client.get("/api/analytics/daily", headers=admin_headers).json()["data"]
        assert len(rows) == 1
