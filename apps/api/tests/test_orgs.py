import base64
import uuid

import pytest

from feedback_hub.db.models import Organization
from feedback_hub.schemas.org import OrganizationCreate, OrganizationUpdate
from feedback_hub.services import org_service

from conftest import create_org, create_user


def test_create_sets_name_lower(db, owner):
    org = org_service.create_organization(
        db, owner.id, OrganizationCreate(name="  Acme Widgets ", website="https://acme.test")
    )
    assert org.name == "Acme Widgets"
    assert org.name_lower == "acme widgets"
    assert org.website == "https://acme.test"


def test_second_organization_is_quota_error(db, owner, org):
    with pytest.raises(org_service.OrganizationQuotaExceededError) as exc_info:
        org_service.create_organization(db, owner.id, OrganizationCreate(name="Second"))
    assert exc_info.value.status_code == 403
    assert exc_info.value.reason == "quota-exceeded"


def test_create_race_hits_unique_index(db, owner, org, monkeypatch):
    """Both requests passed the count check; the store rejects the second insert."""
    monkeypatch.setattr(org_service, "count_owned_organizations", lambda *args: 0)

    with pytest.raises(org_service.OrganizationConflictError) as exc_info:
        org_service.create_organization(db, owner.id, OrganizationCreate(name="Second"))
    assert exc_info.value.status_code == 409
    assert db.query(Organization).filter(Organization.created_by == owner.id).count() == 1


def test_update_keeps_image_when_omitted(db, owner):
    image = base64.b64encode(b"logo").decode()
    org = org_service.create_organization(db, owner.id, OrganizationCreate(name="Acme", image=image))

    updated = org_service.update_organization(
        db, owner.id, org.id, OrganizationUpdate(name="ACME Corp", description="")
    )
    assert updated.name_lower == "acme corp"
    assert updated.description is None
    assert updated.image == image


def test_search_is_case_insensitive_and_newest_first(db):
    older = create_org(db, create_user(db), name="Widget Works")
    newer = create_org(db, create_user(db), name="Gadget Hub")
    newer.description = "Makes WIDGETS too"
    db.commit()
    create_org(db, create_user(db), name="Unrelated")

    results = org_service.search_organizations(db, q="widget")
    assert [o.id for o in results] == [newer.id, older.id]


def test_search_escapes_like_wildcards(db):
    create_org(db, create_user(db), name="Plain")
    create_org(db, create_user(db), name="100% Uptime")

    assert [o.name for o in org_service.search_organizations(db, q="%")] == ["100% Uptime"]


def test_search_caps_limit(db):
    for i in range(25):
        create_org(db, create_user(db), name=f"Org {i}")
    assert len(org_service.search_organizations(db, limit=100)) == org_service.MAX_SEARCH_LIMIT


@pytest.mark.asyncio
async def test_create_and_fetch_organization_api(client_for, owner):
    async with client_for(owner) as c:
        resp = await c.post(
            "/orgs",
            json={"name": "Acme", "description": "Feedback for Acme", "github": "https://github.com/acme"},
        )
        assert resp.status_code == 201, resp.text
        org_id = resp.json()["id"]
        assert resp.json()["created_by"] == str(owner.id)

        mine = await c.get("/orgs/mine")
        assert mine.status_code == 200
        assert mine.json()["id"] == org_id

        me = await c.get("/auth/me")
        assert me.json()["organization_id"] == org_id

        again = await c.post("/orgs", json={"name": "Acme Two"})
        assert again.status_code == 403
        assert again.json()["reason"] == "quota-exceeded"


@pytest.mark.asyncio
async def test_create_organization_validation(owner_client):
    resp = await owner_client.post("/orgs", json={"name": "   "})
    assert resp.status_code == 422

    resp = await owner_client.post("/orgs", json={"name": "Acme", "website": "not a url"})
    assert resp.status_code == 422

    resp = await owner_client.post("/orgs", json={"name": "Acme", "image": "***"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_only_owner_can_edit(owner_client, voter_client, org):
    resp = await voter_client.patch(f"/orgs/{org.id}", json={"name": "Hijacked"})
    assert resp.status_code == 403
    assert resp.json()["reason"] == "not-owner"

    resp = await owner_client.patch(f"/orgs/{org.id}", json={"name": "Renamed"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["name"] == "Renamed"


@pytest.mark.asyncio
async def test_public_listing_and_detail(client, org):
    listing = await client.get("/orgs", params={"q": "acme"})
    assert listing.status_code == 200
    [item] = listing.json()["organizations"]
    assert item["id"] == str(org.id)
    assert "image" not in item

    detail = await client.get(f"/orgs/{org.id}")
    assert detail.status_code == 200
    assert detail.json()["name"] == "Acme"

    missing = await client.get(f"/orgs/{uuid.uuid4()}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_mine_without_organization_is_404(voter_client):
    resp = await voter_client.get("/orgs/mine")
    assert resp.status_code == 404
