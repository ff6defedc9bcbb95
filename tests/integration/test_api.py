"""Integration tests for API endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from marketplace.db.engine import get_db
from marketplace.dependencies import get_settings_dep
from marketplace.main import app
from marketplace.models import UserSession
from marketplace.services.auth import SESSION_COOKIE_NAME, _hash_token

ROLES = ("admin", "admin2", "agent", "other_agent", "user")


@pytest_asyncio.fixture
async def clients(db, session_factory, actors, settings):
    """One client per actor, plus an anonymous one, against the test database."""
    for name in ROLES:
        db.add(UserSession(
            user_id=actors[name].user_id,
            token_hash=_hash_token(f"token-{name}"),
            expires_at=datetime.now(timezone.utc) + timedelta(hours=24),
            ip_address="127.0.0.1",
        ))
    await db.commit()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings_dep] = lambda: settings

    transport = ASGITransport(app=app)
    opened = {
        name: AsyncClient(
            transport=transport, base_url="http://test",
            cookies={SESSION_COOKIE_NAME: f"token-{name}"},
        )
        for name in ROLES
    }
    opened["anon"] = AsyncClient(transport=transport, base_url="http://test")
    yield opened

    for c in opened.values():
        await c.aclose()
    app.dependency_overrides.clear()


LISTING = {
    "title": "Luxury Condo",
    "description": "Bright two-bedroom unit with a view of the park.",
    "price": 450000,
    "city": "Austin",
    "property_type": "Condo",
}


async def _create(client, **overrides):
    r = await client.post("/api/properties", json={**LISTING, **overrides})
    assert r.status_code == 201, r.text
    return r.json()


async def test_health(clients):
    r = await clients["anon"].get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


async def test_admin_listing_is_published_immediately(clients):
    prop = await _create(clients["admin"])
    assert prop["moderation_status"] == "Approved"

    r = await clients["anon"].get("/api/properties")
    assert [p["id"] for p in r.json()] == [prop["id"]]


async def test_flagged_listing_goes_to_queue(clients):
    prop = await _create(clients["agent"], description="No money down, wire money today")
    assert prop["moderation_status"] == "Flagged"
    assert "wire money" in prop["moderation_notes"]

    r = await clients["admin"].get("/api/admin/moderation/queue")
    assert r.status_code == 200
    assert [p["id"] for p in r.json()] == [prop["id"]]
    r = await clients["anon"].get(f"/api/properties/{prop['id']}")
    assert r.status_code == 404


async def test_rejection_appeal_and_revival(clients):
    agent, admin = clients["agent"], clients["admin"]
    prop = await _create(agent)
    assert prop["moderation_status"] == "Pending"

    r = await admin.post("/api/properties/moderate", json={
        "property_id": prop["id"], "action": "reject", "notes": "Inaccurate square footage",
    })
    assert r.status_code == 200
    assert r.json()["moderation_status"] == "Rejected"
    assert r.json()["moderation_notes"] == "Inaccurate square footage"

    r = await agent.post("/api/appeals", json={
        "property_id": prop["id"], "reason": "Square footage was verified by survey",
    })
    assert r.status_code == 201
    appeal = r.json()
    assert appeal["status"] == "Pending"

    r = await agent.post("/api/appeals", json={"property_id": prop["id"], "reason": "Again"})
    assert r.status_code == 409
    assert r.json()["code"] == "Conflict"
    assert r.json()["retryable"] is False

    for name in ("admin", "admin2"):
        r = await clients[name].get("/api/notifications", params={"limit": 50})
        titles = [n["title"] for n in r.json()["notifications"]]
        assert titles.count("New Property Appeal") == 1

    r = await admin.put(f"/api/appeals/{appeal['id']}", json={"status": "Approved"})
    assert r.status_code == 200
    assert r.json()["status"] == "Approved"

    r = await clients["anon"].get(f"/api/properties/{prop['id']}")
    assert r.status_code == 200
    assert r.json()["moderation_status"] == "Approved"

    r = await admin.put(f"/api/appeals/{appeal['id']}", json={"status": "Approved"})
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidState"

    r = await admin.get("/api/admin/audit-logs", params={"target_type": "appeal"})
    assert {e["action"] for e in r.json()} == {"appeal_created", "appeal_updated"}

    r = await agent.get("/api/notifications")
    body = r.json()
    assert body["notifications"][0]["title"] == "Appeal Approved"
    assert body["notifications"][0]["type"] == "success"


async def test_error_mapping(clients):
    r = await clients["anon"].post("/api/appeals", json={"property_id": "x", "reason": "r"})
    assert r.status_code == 401
    assert r.json()["code"] == "Unauthenticated"

    r = await clients["user"].post("/api/properties", json=LISTING)
    assert r.status_code == 403

    r = await clients["user"].post("/api/appeals", json={"property_id": "x", "reason": "r"})
    assert r.status_code == 403

    r = await clients["agent"].post("/api/appeals", json={"property_id": "missing", "reason": "r"})
    assert r.status_code == 404
    assert r.json()["detail"] == "Property not found"

    prop = await _create(clients["agent"])
    r = await clients["agent"].post("/api/properties/moderate", json={
        "property_id": prop["id"], "action": "approve",
    })
    assert r.status_code == 403

    r = await clients["admin"].post("/api/properties/moderate", json={
        "property_id": prop["id"], "action": "banish",
    })
    assert r.status_code == 400
    assert r.json()["code"] == "ValidationError"

    r = await clients["agent"].post("/api/appeals", json={"property_id": prop["id"], "reason": "r"})
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidState"


async def test_unpublished_listing_visibility(clients):
    prop = await _create(clients["agent"])
    path = f"/api/properties/{prop['id']}"

    assert (await clients["anon"].get(path)).status_code == 404
    assert (await clients["other_agent"].get(path)).status_code == 404
    assert (await clients["agent"].get(path)).status_code == 200
    assert (await clients["admin"].get(path)).status_code == 200

    r = await clients["agent"].get("/api/properties/mine")
    assert [p["id"] for p in r.json()] == [prop["id"]]

    r = await clients["user"].get("/api/properties", params={"moderation_status": "Pending"})
    assert r.status_code == 403
    r = await clients["admin"].get("/api/properties", params={"moderation_status": "Pending"})
    assert [p["id"] for p in r.json()] == [prop["id"]]


async def test_reports_push_listing_back_to_review(clients, settings):
    prop = await _create(clients["admin"])
    path = f"/api/properties/{prop['id']}/report"

    for name in ("user", "agent", "other_agent"):
        r = await clients[name].post(path, json={"reason": "Photos are stock images"})
        assert r.status_code == 200
    assert r.json()["moderation_status"] == "Flagged"
    assert r.json()["report_count"] == settings.moderation.report_flag_threshold

    r = await clients["user"].post(path, json={"reason": "Still fake"})
    assert r.status_code == 409


async def test_notifications_inbox(clients):
    await _create(clients["agent"])

    r = await clients["admin"].get("/api/notifications")
    body = r.json()
    assert body["unread_count"] == 1
    note = body["notifications"][0]
    assert note["title"] == "New Property Submission"

    r = await clients["admin2"].put(f"/api/notifications/{note['id']}/read")
    assert r.status_code == 403

    r = await clients["admin"].put(f"/api/notifications/{note['id']}/read")
    assert r.status_code == 200
    assert r.json()["is_read"] is True
    r = await clients["admin"].get("/api/notifications", params={"unread": True})
    assert r.json() == {"notifications": [], "unread_count": 0}


async def test_content_filter(clients):
    r = await clients["anon"].post("/api/content-filter", json={"title": "", "text": ""})
    assert r.status_code == 400

    r = await clients["anon"].post("/api/content-filter", json={
        "title": "Grow house", "text": "Western Union accepted",
    })
    body = r.json()
    assert body["is_flagged"] is True
    assert body["prohibited_terms"] == ["western union", "grow house"]
    assert body["score"] == 50
    assert body["reasons"][1] == 'Contains prohibited term: "grow house"'


async def test_audit_logs_are_admin_only(clients):
    await _create(clients["agent"])
    r = await clients["agent"].get("/api/admin/audit-logs")
    assert r.status_code == 403

    r = await clients["admin"].get("/api/admin/audit-logs", params={"action": "property_created"})
    assert r.status_code == 200
    assert len(r.json()) == 1
    r = await clients["admin"].get("/api/admin/audit-logs", params={"action": "all"})
    assert len(r.json()) == 1


async def test_admin_user_management(clients, actors):
    admin = clients["admin"]
    me = actors["admin"].user_id
    r = await admin.put(f"/api/admin/users/{me}", json={"is_active": False})
    assert r.status_code == 400

    target = actors["user"].user_id
    r = await admin.put(f"/api/admin/users/{target}", json={"role": "agent"})
    assert r.status_code == 200
    assert r.json()["role"] == "agent"

    r = await admin.put(f"/api/admin/users/{target}", json={"is_active": False})
    assert r.json()["is_active"] is False
    # Deactivation ends the user's sessions.
    r = await clients["user"].get("/api/auth/me")
    assert r.status_code == 401

    r = await admin.get("/api/admin/audit-logs", params={"user_id": me})
    assert [e["action"] for e in r.json()] == ["user_deactivated", "user_updated"]

    r = await admin.get("/api/admin/users", params={"role": "admin"})
    assert len(r.json()) == 2


async def test_register_and_login(clients):
    anon = clients["anon"]
    r = await anon.post("/api/auth/register", json={
        "email": "New.Agent@test.com", "password": "long-enough", "role": "agent",
    })
    assert r.status_code == 201
    assert r.json()["email"] == "new.agent@test.com"

    r = await anon.post("/api/auth/register", json={"email": "new.agent@test.com", "password": "long-enough"})
    assert r.status_code == 409

    r = await anon.post("/api/auth/login", json={"email": "new.agent@test.com", "password": "wrong-pass"})
    assert r.status_code == 401

    r = await anon.post("/api/auth/login", json={"email": "new.agent@test.com", "password": "long-enough"})
    assert r.status_code == 200
    assert r.json()["role"] == "agent"
    assert f"{SESSION_COOKIE_NAME}=" in r.headers["set-cookie"]


async def test_edit_and_delete_listing(clients):
    agent = clients["agent"]
    prop = await _create(agent)
    path = f"/api/properties/{prop['id']}"

    r = await agent.put(path, json={"price": 399000, "city": "Round Rock"})
    assert r.status_code == 200
    assert r.json()["price"] == 399000
    assert r.json()["moderation_status"] == "Pending"

    r = await agent.put(path, json={"moderation_status": "Approved"})
    assert r.status_code == 422
    r = await agent.put(path, json={"report_count": 0})
    assert r.status_code == 422

    r = await clients["other_agent"].put(path, json={"price": 1})
    assert r.status_code == 403
    r = await clients["anon"].delete(path)
    assert r.status_code == 401
    r = await clients["other_agent"].delete(path)
    assert r.status_code == 403

    r = await agent.delete(path)
    assert r.status_code == 200
    r = await clients["admin"].get(path)
    assert r.status_code == 404


async def test_my_listings_filter_by_status(clients):
    agent = clients["agent"]
    pending = await _create(agent)
    flagged = await _create(agent, description="Wire money first")

    r = await agent.get("/api/properties/mine", params={"moderation_status": "Flagged"})
    assert [p["id"] for p in r.json()] == [flagged["id"]]
    r = await agent.get("/api/properties/mine", params={"moderation_status": "All"})
    assert {p["id"] for p in r.json()} == {pending["id"], flagged["id"]}
    r = await agent.get("/api/properties/mine", params={"moderation_status": "Sideways"})
    assert r.status_code == 400
