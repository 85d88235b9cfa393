import json
import uuid

import pytest

from feedback_hub.core.errors import ForbiddenError
from feedback_hub.db.enums import TicketPriority, TicketTag, TriageStatus
from feedback_hub.db.models import Ticket
from feedback_hub.services import triage_service
from feedback_hub.services.inference_provider import InferenceUpstreamError

from conftest import create_ticket


def _reload(db, ticket_id) -> Ticket:
    db.expire_all()
    return db.get(Ticket, ticket_id)


@pytest.mark.asyncio
async def test_bulk_triage_skips_out_of_enum_items(db, org, owner, reporter, fake_provider):
    good = create_ticket(db, org, reporter, title="Crash on save")
    bad = create_ticket(db, org, reporter, title="Add emoji", tag=TicketTag.FEATURE)
    fake_provider.queue(
        json.dumps(
            [
                {"id": str(good.id), "priority": "high", "type": "bug"},
                {"id": str(bad.id), "priority": "urgent", "type": "feature"},
            ]
        )
    )

    result = await triage_service.triage_organization(db, fake_provider, owner.id, org.id)

    assert result.updated_count == 1
    assert result.total_tickets == 2
    assert [item.id for item in result.results] == [good.id]

    good_row = _reload(db, good.id)
    assert good_row.priority == TicketPriority.HIGH
    assert good_row.tag == TicketTag.BUG
    assert good_row.triage_status == TriageStatus.TRIAGED
    assert good_row.last_triaged_at is not None

    bad_row = _reload(db, bad.id)
    assert bad_row.priority == TicketPriority.NONE
    assert bad_row.triage_status is None


@pytest.mark.asyncio
async def test_bulk_triage_ignores_foreign_and_unknown_ids(db, org, owner, reporter, fake_provider):
    from conftest import create_org, create_user

    mine = create_ticket(db, org, reporter)
    other_org = create_org(db, create_user(db), name="Other")
    foreign = create_ticket(db, other_org, reporter, title="Not yours")
    fake_provider.queue(
        "```json\n"
        + json.dumps(
            [
                {"id": str(foreign.id), "priority": "high", "type": "bug"},
                {"id": str(uuid.uuid4()), "priority": "low", "type": "tweak"},
                {"id": "not-a-uuid", "priority": "low", "type": "tweak"},
                {"id": str(mine.id), "priority": "medium", "type": "tweak"},
            ]
        )
        + "\n```"
    )

    result = await triage_service.triage_organization(db, fake_provider, owner.id, org.id)

    assert result.updated_count == 1
    assert _reload(db, foreign.id).priority == TicketPriority.NONE
    assert _reload(db, mine.id).tag == TicketTag.TWEAK


@pytest.mark.asyncio
async def test_bulk_triage_non_array_answer_applies_nothing(db, org, owner, ticket, fake_provider):
    fake_provider.queue("I could not triage these tickets, sorry.")

    result = await triage_service.triage_organization(db, fake_provider, owner.id, org.id)

    assert result.updated_count == 0
    assert result.total_tickets == 1


@pytest.mark.asyncio
async def test_bulk_triage_without_tickets_skips_inference(db, org, owner, fake_provider):
    result = await triage_service.triage_organization(db, fake_provider, owner.id, org.id)

    assert result.updated_count == 0
    assert result.total_tickets == 0
    assert fake_provider.calls == []


@pytest.mark.asyncio
async def test_bulk_triage_is_owner_only(db, org, reporter, ticket, fake_provider):
    with pytest.raises(ForbiddenError):
        await triage_service.triage_organization(db, fake_provider, reporter.id, org.id)
    assert fake_provider.calls == []


@pytest.mark.asyncio
async def test_bulk_triage_prompt_includes_product_context(db, org, owner, ticket, fake_provider):
    fake_provider.queue("[]")
    await triage_service.triage_organization(db, fake_provider, owner.id, org.id)

    prompt = fake_provider.calls[0]["prompt"]
    assert "Product: Acme" in prompt
    assert str(ticket.id) in prompt


@pytest.mark.asyncio
async def test_single_triage_applies_valid_answer(db, owner, ticket, fake_provider):
    fake_provider.queue('{"priority": "medium", "type": "tweak"}')

    result = await triage_service.triage_ticket(db, fake_provider, owner.id, ticket.id)

    assert result.priority == TicketPriority.MEDIUM
    assert result.type == TicketTag.TWEAK
    assert result.triage_status == TriageStatus.TRIAGED


@pytest.mark.asyncio
async def test_single_triage_rejects_bad_answer_without_mutation(db, owner, ticket, fake_provider):
    fake_provider.queue('{"priority": "critical", "type": "bug"}')

    with pytest.raises(triage_service.TriageParseError):
        await triage_service.triage_ticket(db, fake_provider, owner.id, ticket.id)

    row = _reload(db, ticket.id)
    assert row.priority == TicketPriority.NONE
    assert row.last_triaged_at is None


@pytest.mark.asyncio
async def test_summary_without_tickets_is_fixed_text(db, org, owner, fake_provider):
    result = await triage_service.summarize_organization(db, fake_provider, owner.id, org.id)

    assert result.summary == "No tickets found for this organization."
    assert result.ticket_count == 0
    assert fake_provider.calls == []


@pytest.mark.asyncio
async def test_summary_blank_answer_falls_back(db, org, owner, ticket, fake_provider):
    fake_provider.queue("   ")

    result = await triage_service.summarize_organization(db, fake_provider, owner.id, org.id)

    assert result.summary == "Unable to generate summary."
    assert result.ticket_count == 1


# =============================================================================
# API
# =============================================================================


@pytest.mark.asyncio
async def test_triage_api_owner_flow(owner_client, org, ticket, fake_provider):
    fake_provider.queue(json.dumps([{"id": str(ticket.id), "priority": "low", "type": "bug"}]))

    resp = await owner_client.post(f"/orgs/{org.id}/triage")

    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["updated_count"] == 1
    assert data["total_tickets"] == 1
    assert data["results"][0]["priority"] == "low"


@pytest.mark.asyncio
async def test_triage_api_forbidden_for_non_owner(voter_client, org, ticket):
    resp = await voter_client.post(f"/orgs/{org.id}/triage")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_single_triage_api_parse_failure_is_502(owner_client, ticket, fake_provider):
    fake_provider.queue("not json at all")

    resp = await owner_client.post(f"/tickets/{ticket.id}/triage")

    assert resp.status_code == 502
    assert "try again" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_upstream_failure_is_502_without_mutation(db, owner_client, ticket, fake_provider):
    fake_provider.queue(InferenceUpstreamError())

    resp = await owner_client.post(f"/tickets/{ticket.id}/triage")

    assert resp.status_code == 502
    assert _reload(db, ticket.id).triage_status is None


@pytest.mark.asyncio
async def test_summary_api(owner_client, org, ticket, fake_provider):
    fake_provider.queue("Users mostly report login problems.")

    resp = await owner_client.post(f"/orgs/{org.id}/summary")

    assert resp.status_code == 200, resp.text
    assert resp.json() == {"summary": "Users mostly report login problems.", "ticket_count": 1}
