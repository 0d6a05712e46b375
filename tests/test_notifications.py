"""
Tests for notification delivery: in-app rows, websocket hub, Web Push and
admin email recipients.
"""
import asyncio

import pytest
from fastapi import WebSocketDisconnect
from pywebpush import WebPushException

from servicebook.config import settings
from servicebook.models.notification import Notification, PushSubscription
from servicebook.models.user import Role
from servicebook.routers import notifications as notifications_router
from servicebook.services import booking_emails, push
from servicebook.services.realtime import ConnectionHub, hub

from conftest import bearer, make_user

SUBSCRIPTION = {
    "endpoint": "https://push.example.com/abc",
    "expirationTime": None,
    "keys": {"p256dh": "p256dh-key", "auth": "auth-secret"},
}


class FakeSocket:
    def __init__(self, broken=False):
        self.sent = []
        self.accepted = False
        self.broken = broken

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(data)


@pytest.fixture
def vapid(monkeypatch):
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", "public-key")
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", "private-key")


@pytest.fixture
def sent_pushes(monkeypatch):
    calls = []
    monkeypatch.setattr(push, "webpush", lambda **kwargs: calls.append(kwargs))
    return calls


class TestConnectionHub:

    def test_send_to_every_socket_of_the_user(self):
        h = ConnectionHub()
        a, b = FakeSocket(), FakeSocket()
        asyncio.run(h.connect(a, 1))
        asyncio.run(h.connect(b, 1))

        delivered = asyncio.run(h.send_to_user(1, "notification", {"title": "hi"}))

        assert delivered == 2
        assert a.accepted
        assert a.sent == [{"event": "notification", "data": {"title": "hi"}}]
        assert asyncio.run(h.send_to_user(2, "notification", {})) == 0

    def test_admin_broadcast(self):
        h = ConnectionHub()
        admin_ws, customer_ws = FakeSocket(), FakeSocket()
        asyncio.run(h.connect(admin_ws, 1, is_admin=True))
        asyncio.run(h.connect(customer_ws, 2))

        asyncio.run(h.send_to_admins("admin:new_booking", {"booking_id": 7}))

        assert admin_ws.sent[0]["event"] == "admin:new_booking"
        assert customer_ws.sent == []

    def test_dead_socket_dropped(self):
        h = ConnectionHub()
        asyncio.run(h.connect(FakeSocket(broken=True), 1))

        assert asyncio.run(h.send_to_user(1, "notification", {})) == 0
        assert not h.is_online(1)

    def test_disconnect_last_socket_goes_offline(self):
        h = ConnectionHub()
        ws = FakeSocket()
        asyncio.run(h.connect(ws, 3, is_admin=True))
        assert h.is_online(3)

        h.disconnect(ws, 3)

        assert not h.is_online(3)
        assert asyncio.run(h.send_to_admins("x", {})) == 0


class TestWebsocketEndpoint:

    def test_bad_token_refused(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/notifications/ws?token=garbage") as ws:
                ws.receive_json()

    def test_token_lookup_outside_request(self, customer, db):
        token = bearer(customer)["Authorization"].split()[1]
        assert notifications_router._ws_user(token).id == customer.id
        assert notifications_router._ws_user("garbage") is None

        customer.is_active = False
        db.commit()
        assert notifications_router._ws_user(token) is None

    def test_ping_pong(self, client, customer):
        token = bearer(customer)["Authorization"].split()[1]
        with client.websocket_connect(f"/notifications/ws?token={token}") as ws:
            ws.send_text("ping")
            assert ws.receive_json() == {"event": "pong", "data": {}}
            assert hub.is_online(customer.id)


class TestPush:

    def test_payload_shape(self):
        payload = push.build_payload("Booking Update", "confirmed", {"booking_id": 3})
        assert '"title": "Booking Update"' in payload
        assert '"booking_id": 3' in payload

    def test_skipped_without_vapid(self, customer, sent_pushes):
        assert push.send_push_to_user(customer.id, "t", "b") == 0
        assert sent_pushes == []

    def test_sent_to_each_subscription(self, customer, db, vapid, sent_pushes):
        for endpoint in ("https://push.example.com/1", "https://push.example.com/2"):
            db.add(PushSubscription(user_id=customer.id, endpoint=endpoint, p256dh="k", auth="a"))
        db.commit()

        assert push.send_push_to_user(customer.id, "Booking Update", "confirmed") == 2
        assert {c["subscription_info"]["endpoint"] for c in sent_pushes} == {
            "https://push.example.com/1", "https://push.example.com/2",
        }
        assert sent_pushes[0]["vapid_private_key"] == "private-key"

    def test_skipped_when_online(self, customer, vapid, sent_pushes):
        ws = FakeSocket()
        asyncio.run(hub.connect(ws, customer.id))
        try:
            assert push.send_push_to_user(customer.id, "t", "b") == 0
        finally:
            hub.disconnect(ws, customer.id)
        assert sent_pushes == []

    def test_gone_subscription_removed(self, customer, db, vapid, monkeypatch):
        class Gone:
            status_code = 410

        def fail(**kwargs):
            raise WebPushException("gone", response=Gone())

        monkeypatch.setattr(push, "webpush", fail)
        db.add(PushSubscription(user_id=customer.id, endpoint="https://push.example.com/old", p256dh="k", auth="a"))
        db.commit()

        assert push.send_push_to_user(customer.id, "t", "b") == 0
        assert db.query(PushSubscription).count() == 0


class TestSubscriptionApi:

    def test_vapid_key(self, client, monkeypatch):
        assert client.get("/notifications/vapid-public-key").status_code == 404
        monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", "public-key")
        assert client.get("/notifications/vapid-public-key").json() == {"public_key": "public-key"}

    def test_subscribe_is_upsert(self, client, customer_headers, db):
        assert client.post("/notifications/subscribe", json=SUBSCRIPTION, headers=customer_headers).status_code == 201
        changed = {**SUBSCRIPTION, "keys": {"p256dh": "new-key", "auth": "new-auth"}}
        client.post("/notifications/subscribe", json=changed, headers=customer_headers)

        subs = db.query(PushSubscription).all()
        assert len(subs) == 1
        assert subs[0].p256dh == "new-key"

    def test_unsubscribe(self, client, customer_headers):
        client.post("/notifications/subscribe", json=SUBSCRIPTION, headers=customer_headers)
        body = {"endpoint": SUBSCRIPTION["endpoint"]}

        r = client.request("DELETE", "/notifications/unsubscribe", json=body, headers=customer_headers)
        assert r.status_code == 200
        r = client.request("DELETE", "/notifications/unsubscribe", json=body, headers=customer_headers)
        assert r.status_code == 404


class TestInAppNotifications:

    def _add(self, db, user_id, title, is_read=False):
        db.add(Notification(user_id=user_id, title=title, message=f"{title} message", is_read=is_read))
        db.commit()

    def test_list_and_unread_filter(self, client, customer, customer_headers, admin, db):
        self._add(db, customer.id, "first", is_read=True)
        self._add(db, customer.id, "second")
        self._add(db, admin.id, "not mine")

        everything = client.get("/notifications", headers=customer_headers).json()
        assert {n["title"] for n in everything} == {"first", "second"}

        unread = client.get("/notifications", params={"unread_only": True}, headers=customer_headers).json()
        assert [n["title"] for n in unread] == ["second"]

    def test_mark_read(self, client, customer, customer_headers, admin_headers, db):
        self._add(db, customer.id, "hello")
        note_id = db.query(Notification).one().id

        assert client.patch(f"/notifications/{note_id}/read", headers=admin_headers).status_code == 404
        r = client.patch(f"/notifications/{note_id}/read", headers=customer_headers)
        assert r.status_code == 200
        assert r.json()["is_read"] is True


class TestAdminEmails:

    def test_parse_mixed_separators(self):
        raw = "a@x.com, B@x.com;a@X.com\nnot-an-email\n c@y.org "
        assert booking_emails.parse_admin_emails(raw) == ["a@x.com", "B@x.com", "c@y.org"]

    def test_parse_empty(self):
        assert booking_emails.parse_admin_emails(None) == []
        assert booking_emails.parse_admin_emails("  ") == []

    def test_env_wins_over_db(self, db, admin, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_EMAIL", "ops@example.com")
        assert booking_emails.admin_emails(db) == ["ops@example.com"]

    def test_falls_back_to_active_admins(self, db, admin):
        retired = make_user(db, "retired@example.com", role=Role.ADMIN)
        retired.is_active = False
        db.commit()

        assert booking_emails.admin_emails(db) == ["admin@example.com"]

    def test_send_to_many_dedups(self, monkeypatch):
        sent = []
        monkeypatch.setattr(booking_emails, "send_email_html", lambda to, subject, html, attachments=(): sent.append(to))

        count = booking_emails.send_to_many(["a@x.com", "A@x.com ", "b@x.com"], "s", "<p>x</p>")

        assert count == 2
        assert sent == ["a@x.com", "b@x.com"]

    def test_send_failures_are_logged_not_raised(self, monkeypatch):
        def boom(to, subject, html, attachments=()):
            raise RuntimeError("smtp down")

        monkeypatch.setattr(booking_emails, "send_email_html", boom)
        assert booking_emails.send_to_many(["a@x.com"], "s", "<p>x</p>") == 0
