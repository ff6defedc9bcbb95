import asyncio

import pytest

from marketplace.db import crud
from marketplace.errors import Conflict, Forbidden, InvalidState, NotFound, ValidationError
from marketplace.models import AppealStatus, ModerationStatus
from marketplace.services import appeals, moderation


@pytest.fixture
def rejected_listing(db, actors, settings, listing):
    """An agent's clean listing, rejected by an admin."""
    async def _make(agent="agent", notes="Inaccurate square footage"):
        prop = await moderation.submit_property(db, actors[agent], listing(), settings)
        return await moderation.decide(db, actors["admin"], prop.id, "reject", notes, settings)
    return _make


async def _titles(db, user_id):
    return [n.title for n in await crud.list_notifications(db, user_id, limit=50)]


# ── Filing ────────────────────────────────────────────────

async def test_agent_appeals_rejected_listing(db, actors, rejected_listing):
    prop = await rejected_listing()

    appeal = await appeals.file_appeal(
        db, actors["agent"], prop.id, "Square footage was verified by survey",
    )
    assert appeal.status == "Pending"
    assert appeal.agent_id == actors["agent"].user_id
    assert appeal.property_id == prop.id

    for admin in ("admin", "admin2"):
        inbox = await crud.list_notifications(db, actors[admin].user_id, limit=50)
        appeal_notes = [n for n in inbox if n.title == "New Property Appeal"]
        assert len(appeal_notes) == 1
        assert appeal_notes[0].type == "info"
        assert appeal_notes[0].related_type == "appeal"
        assert appeal_notes[0].related_id == appeal.id

    entry = (await crud.list_audit_logs(db, action="appeal_created"))[0]
    assert entry.target_type == "appeal"
    assert entry.target_id == appeal.id


async def test_second_pending_appeal_conflicts(db, actors, rejected_listing):
    prop = await rejected_listing()
    await appeals.file_appeal(db, actors["agent"], prop.id, "Verified by survey")

    with pytest.raises(Conflict) as excinfo:
        await appeals.file_appeal(db, actors["agent"], prop.id, "Please look again")
    assert excinfo.value.retryable is False
    assert len(await crud.list_appeals(db)) == 1
    assert len(await crud.list_audit_logs(db, action="appeal_created")) == 1


async def test_racing_appeal_is_stopped_by_unique_index(db, actors, rejected_listing, monkeypatch):
    prop = await rejected_listing()
    await appeals.file_appeal(db, actors["agent"], prop.id, "First")

    # Both requests passed the lookup before either inserted.
    async def missed_lookup(*args, **kwargs):
        return None

    monkeypatch.setattr(crud, "find_pending_appeal", missed_lookup)
    with pytest.raises(Conflict):
        await appeals.file_appeal(db, actors["agent"], prop.id, "Second")
    assert len(await crud.list_appeals(db)) == 1


async def test_concurrent_filings_yield_one_appeal_and_one_conflict(db, session_factory, actors, rejected_listing):
    prop = await rejected_listing()

    async def file_in_own_session(reason):
        async with session_factory() as session:
            return await appeals.file_appeal(session, actors["agent"], prop.id, reason)

    results = await asyncio.gather(
        file_in_own_session("Verified by survey"),
        file_in_own_session("Verified by survey (resubmitted)"),
        return_exceptions=True,
    )

    assert sorted(type(r).__name__ for r in results) == ["Appeal", "Conflict"]
    conflict = next(r for r in results if isinstance(r, Conflict))
    assert conflict.retryable is False
    pending = await crud.list_appeals(db, status=AppealStatus.PENDING)
    assert len(pending) == 1
    assert len(await crud.list_audit_logs(db, action="appeal_created")) == 1


async def test_filing_preconditions_in_order(db, actors, settings, listing, rejected_listing):
    prop = await rejected_listing()

    with pytest.raises(Forbidden):
        await appeals.file_appeal(db, actors["admin"], prop.id, "reason")
    with pytest.raises(Forbidden):
        await appeals.file_appeal(db, actors["user"], "missing", "reason")
    with pytest.raises(NotFound):
        await appeals.file_appeal(db, actors["agent"], "missing", "reason")
    with pytest.raises(Forbidden):
        await appeals.file_appeal(db, actors["other_agent"], prop.id, "reason")
    with pytest.raises(ValidationError):
        await appeals.file_appeal(db, actors["agent"], prop.id, "  ")

    pending = await moderation.submit_property(db, actors["agent"], listing(), settings)
    with pytest.raises(InvalidState):
        await appeals.file_appeal(db, actors["agent"], pending.id, "reason")
    assert await crud.list_appeals(db) == []


# ── Resolution ────────────────────────────────────────────

async def test_approved_appeal_revives_listing(db, actors, rejected_listing):
    prop = await rejected_listing()
    appeal = await appeals.file_appeal(db, actors["agent"], prop.id, "Verified by survey")

    resolved = await appeals.resolve_appeal(db, actors["admin"], appeal.id, "Approved", "Survey checks out")
    assert resolved.status == "Approved"
    assert resolved.admin_notes == "Survey checks out"
    assert (await crud.get_property(db, prop.id)).moderation_status == "Approved"

    updated = await crud.list_audit_logs(db, action="appeal_updated")
    assert len(updated) == 1
    assert updated[0].details == {"status": "Approved", "admin_notes": "Survey checks out"}
    revived = [
        e for e in await crud.list_audit_logs(db, action="property_moderation_updated")
        if e.details.get("appeal_id") == appeal.id
    ]
    assert len(revived) == 1
    assert revived[0].details["previous_status"] == "Rejected"
    assert revived[0].details["new_status"] == "Approved"

    inbox = await crud.list_notifications(db, actors["agent"].user_id)
    assert inbox[0].title == "Appeal Approved"
    assert inbox[0].type == "success"
    assert inbox[0].related_id == appeal.id


async def test_rejected_appeal_leaves_listing_rejected(db, actors, rejected_listing):
    prop = await rejected_listing()
    appeal = await appeals.file_appeal(db, actors["agent"], prop.id, "Verified by survey")

    resolved = await appeals.resolve_appeal(db, actors["admin"], appeal.id, "Rejected")
    assert resolved.status == "Rejected"
    assert resolved.admin_notes == ""
    assert (await crud.get_property(db, prop.id)).moderation_status == "Rejected"

    inbox = await crud.list_notifications(db, actors["agent"].user_id)
    assert inbox[0].title == "Appeal Rejected"
    assert inbox[0].type == "error"

    # The slot is free again; attempts are not capped.
    again = await appeals.file_appeal(db, actors["agent"], prop.id, "New evidence attached")
    assert again.status == "Pending"


async def test_resolving_twice_has_no_second_effect(db, actors, rejected_listing):
    prop = await rejected_listing()
    appeal = await appeals.file_appeal(db, actors["agent"], prop.id, "Verified by survey")
    await appeals.resolve_appeal(db, actors["admin"], appeal.id, "Approved")

    with pytest.raises(InvalidState):
        await appeals.resolve_appeal(db, actors["admin2"], appeal.id, "Approved")
    with pytest.raises(InvalidState):
        await appeals.resolve_appeal(db, actors["admin"], appeal.id, "Rejected")

    assert (await crud.get_appeal(db, appeal.id)).status == "Approved"
    assert len(await crud.list_audit_logs(db, action="appeal_updated")) == 1
    assert (await _titles(db, actors["agent"].user_id)).count("Appeal Approved") == 1


async def test_approval_does_not_override_a_newer_decision(db, actors, rejected_listing):
    prop = await rejected_listing()
    appeal = await appeals.file_appeal(db, actors["agent"], prop.id, "Verified by survey")

    # Another admin moved the listing on before the appeal was resolved.
    await crud.transition_property_status(
        db, prop.id, [ModerationStatus.REJECTED], ModerationStatus.FLAGGED,
    )
    await db.commit()

    resolved = await appeals.resolve_appeal(db, actors["admin"], appeal.id, "Approved")
    assert resolved.status == "Approved"
    assert (await crud.get_property(db, prop.id)).moderation_status == "Flagged"
    revived = [
        e for e in await crud.list_audit_logs(db, action="property_moderation_updated")
        if e.details.get("appeal_id") == appeal.id
    ]
    assert revived == []


async def test_resolution_preconditions(db, actors, rejected_listing):
    prop = await rejected_listing()
    appeal = await appeals.file_appeal(db, actors["agent"], prop.id, "Verified by survey")

    with pytest.raises(Forbidden):
        await appeals.resolve_appeal(db, actors["agent"], appeal.id, "Approved")
    with pytest.raises(NotFound):
        await appeals.resolve_appeal(db, actors["admin"], "missing", "Approved")
    for bad in ("Pending", "approved", "", None):
        with pytest.raises(ValidationError):
            await appeals.resolve_appeal(db, actors["admin"], appeal.id, bad)
    assert (await crud.get_appeal(db, appeal.id)).status == "Pending"


# ── Reads ─────────────────────────────────────────────────

async def test_read_access_is_scoped_to_owner(db, actors, rejected_listing):
    mine = await appeals.file_appeal(db, actors["agent"], (await rejected_listing()).id, "Mine")
    theirs = await appeals.file_appeal(
        db, actors["other_agent"], (await rejected_listing("other_agent")).id, "Theirs",
    )

    assert (await appeals.get_appeal_for(db, actors["agent"], mine.id)).id == mine.id
    with pytest.raises(Forbidden):
        await appeals.get_appeal_for(db, actors["agent"], theirs.id)
    assert (await appeals.get_appeal_for(db, actors["admin"], theirs.id)).id == theirs.id

    assert [a.id for a in await appeals.list_appeals_for(db, actors["agent"])] == [mine.id]
    assert {a.id for a in await appeals.list_appeals_for(db, actors["admin"])} == {mine.id, theirs.id}
    assert await appeals.list_appeals_for(db, actors["admin"], "Approved") == []
    with pytest.raises(ValidationError):
        await appeals.list_appeals_for(db, actors["admin"], "Maybe")
