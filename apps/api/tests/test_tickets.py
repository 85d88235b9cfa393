import uuid
from datetime import datetime, timedelta, timezone

import pytest

from feedback_hub.db.enums import TicketPriority, TicketSort, TicketStatus, TicketTag
from feedback_hub.db.models import Ticket, Vote
from feedback_hub.services import ticket_service, vote_service

from conftest import create_ticket, create_user


def _at(minutes: int) -> datetime:
    return datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes)


@pytest.fixture
def ranked_tickets(db, org, reporter):
    """Three tickets with distinct ages, vote counts and priorities."""
    old = create_ticket(
        db, org, reporter, title="Old crash", tag=TicketTag.BUG,
        priority=TicketPriority.LOW, votes=5, created_at=_at(0),
    )
    mid = create_ticket(
        db, org, reporter, title="Dark mode", description="Please add a dark theme",
        tag=TicketTag.FEATURE, priority=TicketPriority.HIGH, votes=1, created_at=_at(10),
    )
    new = create_ticket(
        db, org, reporter, title="Spacing tweak", tag=TicketTag.TWEAK,
        priority=TicketPriority.NONE, votes=5, created_at=_at(20),
    )
    return old, mid, new


def _titles(tickets):
    return [t.title for t in tickets]


def test_list_sort_modes(db, org, ranked_tickets):
    assert _titles(ticket_service.list_tickets(db, org.id)) == [
        "Spacing tweak", "Dark mode", "Old crash",
    ]
    # Tie on votes broken by newest first
    assert _titles(ticket_service.list_tickets(db, org.id, sort=TicketSort.MOST_VOTED)) == [
        "Spacing tweak", "Old crash", "Dark mode",
    ]
    assert _titles(ticket_service.list_tickets(db, org.id, sort=TicketSort.PRIORITY)) == [
        "Dark mode", "Old crash", "Spacing tweak",
    ]


def test_list_search_and_tag_filter(db, org, ranked_tickets):
    assert _titles(ticket_service.list_tickets(db, org.id, q="DARK THEME")) == ["Dark mode"]
    assert _titles(ticket_service.list_tickets(db, org.id, q="crash")) == ["Old crash"]
    assert _titles(ticket_service.list_tickets(db, org.id, tag=TicketTag.TWEAK)) == ["Spacing tweak"]
    assert ticket_service.list_tickets(db, org.id, q="_") == []


def test_list_is_scoped_to_organization(db, org, reporter, ranked_tickets):
    from conftest import create_org

    other = create_org(db, create_user(db), name="Other")
    create_ticket(db, other, reporter, title="Elsewhere")
    assert "Elsewhere" not in _titles(ticket_service.list_tickets(db, org.id))


def test_delete_removes_votes(db, ticket, reporter, voter):
    vote_service.toggle_vote(db, voter.id, ticket.id)
    ticket_id = ticket.id

    ticket_service.delete_ticket(db, reporter.id, ticket_id)

    assert db.get(Ticket, ticket_id) is None
    assert db.query(Vote).filter(Vote.ticket_id == ticket_id).count() == 0


@pytest.mark.asyncio
async def test_submit_ticket(reporter_client, org):
    resp = await reporter_client.post(
        "/tickets",
        json={
            "organization_id": str(org.id),
            "title": "Export to CSV",
            "description": "Need CSV export",
            "tag": "feature",
        },
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert data["status"] == "open"
    assert data["priority"] == "none"
    assert data["votes"] == 0
    assert data["reported_by"]["name"] == "Rita Reporter"


@pytest.mark.asyncio
async def test_submit_ticket_unknown_org_is_404(reporter_client):
    resp = await reporter_client.post(
        "/tickets",
        json={
            "organization_id": str(uuid.uuid4()),
            "title": "Orphan",
            "description": "No org",
            "tag": "bug",
        },
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_submit_ticket_validation(reporter_client, org):
    base = {"organization_id": str(org.id), "title": "T", "description": "D", "tag": "bug"}

    resp = await reporter_client.post("/tickets", json={**base, "tag": "question"})
    assert resp.status_code == 422

    resp = await reporter_client.post("/tickets", json={**base, "title": "x" * 201})
    assert resp.status_code == 422

    resp = await reporter_client.post("/tickets", json={**base, "description": "  "})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_submit_requires_authentication(client, org):
    resp = await client.post(
        "/tickets",
        json={"organization_id": str(org.id), "title": "T", "description": "D", "tag": "bug"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_content_edit_matrix(reporter_client, owner_client, voter_client, ticket):
    for c in (owner_client, voter_client):
        resp = await c.patch(f"/tickets/{ticket.id}", json={"title": "Changed"})
        assert resp.status_code == 403
        assert resp.json()["reason"] == "not-reporter"

    resp = await reporter_client.patch(f"/tickets/{ticket.id}", json={"title": "Clarified"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["title"] == "Clarified"
    assert resp.json()["description"] == "Clicking login does nothing"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"title": None},
        {"description": None},
        {"title": "   "},
        {"description": ""},
        {"title": "x" * 201},
        {"description": "x" * 2001},
        {"image": "not base64!"},
        {"title": "Valid title", "description": None},
    ],
)
async def test_invalid_content_edit_is_rejected_without_writing(
    reporter_client, db, ticket, payload
):
    resp = await reporter_client.patch(f"/tickets/{ticket.id}", json=payload)
    assert resp.status_code == 422

    db.expire_all()
    stored = db.get(Ticket, ticket.id)
    assert stored.title == "Login button broken"
    assert stored.description == "Clicking login does nothing"
    assert stored.image is None


@pytest.mark.asyncio
async def test_reporter_cannot_edit_status_fields_via_content_patch(reporter_client, ticket):
    resp = await reporter_client.patch(f"/tickets/{ticket.id}", json={"status": "closed"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_status_change_matrix(reporter_client, owner_client, voter_client, ticket):
    for c in (reporter_client, voter_client):
        resp = await c.patch(f"/tickets/{ticket.id}/status", json={"status": "closed"})
        assert resp.status_code == 403
        assert resp.json()["reason"] == "not-owner"

    resp = await owner_client.patch(f"/tickets/{ticket.id}/status", json={"status": "in-progress"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "in-progress"

    resp = await owner_client.patch(f"/tickets/{ticket.id}/status", json={"status": "done"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_delete_matrix(db, reporter_client, owner_client, voter_client, ticket):
    ticket_id = ticket.id
    resp = await owner_client.delete(f"/tickets/{ticket_id}")
    assert resp.status_code == 403

    resp = await reporter_client.delete(f"/tickets/{ticket_id}")
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"message": "Ticket deleted successfully"}

    resp = await voter_client.get(f"/tickets/{ticket_id}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_unknown_ticket_is_404_everywhere(owner_client):
    missing = uuid.uuid4()
    assert (await owner_client.get(f"/tickets/{missing}")).status_code == 404
    assert (await owner_client.patch(f"/tickets/{missing}", json={"title": "x"})).status_code == 404
    assert (
        await owner_client.patch(f"/tickets/{missing}/status", json={"status": "closed"})
    ).status_code == 404
    assert (await owner_client.delete(f"/tickets/{missing}")).status_code == 404


@pytest.mark.asyncio
async def test_list_api_sort_and_filters(client, org, ranked_tickets):
    resp = await client.get(
        "/tickets",
        params={"organization_id": str(org.id), "sort": "mostVoted"},
    )
    assert resp.status_code == 200, resp.text
    rows = resp.json()["tickets"]
    assert [r["title"] for r in rows] == ["Spacing tweak", "Old crash", "Dark mode"]
    assert all("image" not in r for r in rows)

    resp = await client.get("/tickets", params={"organization_id": str(org.id), "tag": "feature"})
    assert [r["title"] for r in resp.json()["tickets"]] == ["Dark mode"]

    resp = await client.get("/tickets", params={"organization_id": str(org.id), "sort": "oldest"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_my_tickets_include_organization(reporter_client, org, ticket):
    resp = await reporter_client.get("/tickets/mine")
    assert resp.status_code == 200, resp.text
    [row] = resp.json()["tickets"]
    assert row["id"] == str(ticket.id)
    assert row["organization"] == {"id": str(org.id), "name": "Acme"}


def test_status_service_leaves_content_untouched(db, owner, ticket):
    updated = ticket_service.update_ticket_status(db, owner.id, ticket.id, TicketStatus.CLOSED)
    assert updated.status == TicketStatus.CLOSED
    assert updated.title == "Login button broken"
