from datetime import timedelta

import pytest

from conftest import API, admin_token, bearer, moderate, post_listing, update_listing_row, verified_token
from qafzh.utils import utcnow

@pytest.fixture
def seller(client):
    return verified_token(client, "+967777000401", name="Seller")

@pytest.fixture
def admin(db):
    return admin_token(db)

def test_admin_routes_require_admin(client, seller):
    assert client.get(f"{API}/admin/get").status_code == 401
    response = client.get(f"{API}/admin/get", headers=bearer(seller))
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Admins only."

def test_seller_cannot_moderate(client, seller):
    listing = post_listing(client, seller)
    response = moderate(client, seller, listing["id"], "approved")
    assert response.status_code == 403

def test_approve_records_moderator(client, seller, admin):
    listing = post_listing(client, seller)
    response = moderate(client, admin, listing["id"], "approved")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "approved"
    assert data["moderated_by_id"] is not None
    assert data["moderated_at"] is not None
    assert response.json()["message"] == "Product status updated to approved"

def test_reject_needs_reason(client, seller, admin):
    listing = post_listing(client, seller)
    response = moderate(client, admin, listing["id"], "rejected")
    assert response.status_code == 400
    assert response.json()["message"] == "A reason is required when rejecting a listing"

def test_invalid_transition_reports_allowed(client, seller, admin):
    listing = post_listing(client, seller)
    response = moderate(client, admin, listing["id"], "sold")
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "fail"
    assert body["data"] == {"current_status": "pending", "allowed": ["approved", "rejected"]}

def test_sold_is_final(client, seller, admin):
    listing = post_listing(client, seller)
    moderate(client, admin, listing["id"], "approved")
    moderate(client, admin, listing["id"], "sold")
    for target in ("approved", "inactive", "pending", "rejected"):
        response = moderate(client, admin, listing["id"], target, reason="x")
        assert response.status_code == 400

def test_admin_notes_are_stored(client, seller, admin):
    listing = post_listing(client, seller)
    response = client.patch(
        f"{API}/admin/update/{listing['id']}",
        json={"status": "approved", "admin_notes": "Checked serial number"},
        headers=bearer(admin),
    )
    assert response.json()["data"]["admin_notes"] == "Checked serial number"

    public = client.get(f"{API}/marketplace/products/{listing['id']}").json()["data"]
    assert "admin_notes" not in public

def test_moderate_missing_listing(client, admin):
    assert moderate(client, admin, 9999, "approved").status_code == 404

def test_history(client, seller, admin):
    listing = post_listing(client, seller)
    moderate(client, admin, listing["id"], "rejected", reason="Blurry photos")
    client.post(f"{API}/products/resubmit/{listing['id']}", headers=bearer(seller))
    moderate(client, admin, listing["id"], "approved")

    response = client.get(f"{API}/admin/history/{listing['id']}", headers=bearer(admin))
    assert response.status_code == 200
    steps = [(c["from_status"], c["to_status"]) for c in response.json()["data"]]
    assert steps == [
        (None, "pending"),
        ("pending", "rejected"),
        ("rejected", "pending"),
        ("pending", "approved"),
    ]
    assert response.json()["data"][1]["reason"] == "Blurry photos"

def test_list_by_status(client, seller, admin):
    first = post_listing(client, seller, name="first")
    post_listing(client, seller, name="second")
    moderate(client, admin, first["id"], "approved")

    def listed(**params):
        response = client.get(f"{API}/admin/get", params=params, headers=bearer(admin))
        assert response.status_code == 200
        return [item["name"] for item in response.json()["data"]["items"]]

    assert listed(status="approved") == ["first"]
    assert listed(status="pending") == ["second"]
    assert sorted(listed(status="all")) == ["first", "second"]
    assert sorted(listed()) == ["first", "second"]

def test_list_rejects_unknown_status(client, admin):
    response = client.get(f"{API}/admin/get", params={"status": "archived"}, headers=bearer(admin))
    assert response.status_code == 400
    assert response.json()["data"] == {"field": "status"}

def test_pending_queue_is_oldest_first(client, seller, admin):
    for name in ("one", "two", "three"):
        post_listing(client, seller, name=f"{name} panel")
    response = client.get(f"{API}/admin/pending", headers=bearer(admin))
    items = response.json()["data"]["items"]
    assert [item["name"] for item in items] == ["one panel", "two panel", "three panel"]
    assert "version" in items[0]

def test_admin_deletes_any_listing(client, seller, admin):
    listing = post_listing(client, seller)
    response = client.delete(f"{API}/admin/delete/{listing['id']}", headers=bearer(admin))
    assert response.status_code == 200
    assert client.get(f"{API}/admin/history/{listing['id']}", headers=bearer(admin)).status_code == 404

def test_admin_can_reactivate_inactive_listing(client, seller, admin):
    listing = post_listing(client, seller)
    moderate(client, admin, listing["id"], "approved")
    moderate(client, admin, listing["id"], "inactive")
    assert client.get(f"{API}/marketplace/products/{listing['id']}").status_code == 404

    assert moderate(client, admin, listing["id"], "approved").status_code == 200
    assert client.get(f"{API}/marketplace/products/{listing['id']}").status_code == 200

def test_list_includes_status_summary(client, seller, admin):
    ids = [post_listing(client, seller, name=f"panel {i}")["id"] for i in range(5)]
    moderate(client, admin, ids[0], "approved")
    moderate(client, admin, ids[1], "approved")
    moderate(client, admin, ids[1], "sold")
    moderate(client, admin, ids[2], "rejected", reason="Duplicate")

    response = client.get(f"{API}/admin/get", params={"status": "pending"}, headers=bearer(admin))
    data = response.json()["data"]
    assert data["total"] == 2
    assert data["summary"] == {
        "total": 5,
        "pending": 2,
        "approved": 1,
        "rejected": 1,
        "sold": 1,
        "inactive": 0,
    }

def test_dashboard_stats(client, db, seller, admin):
    fresh = post_listing(client, seller, name="fresh panel")
    ending = post_listing(client, seller, name="ending panel")
    post_listing(client, seller, name="waiting panel")
    moderate(client, admin, fresh["id"], "approved")
    moderate(client, admin, ending["id"], "approved")
    update_listing_row(ending["id"], expires_at=utcnow() + timedelta(days=2))

    response = client.get(f"{API}/admin/dashboard-stats", headers=bearer(admin))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["accounts"] == {"total": 2, "verified": 2, "active": 2, "admins": 1}
    assert data["listings"]["total"] == 3
    assert data["listings"]["approved"] == 2
    assert data["listings"]["pending"] == 1
    assert data["visible"] == 2
    assert data["expiring_soon"] == 1
    assert data["new_this_week"] == 3

def test_dashboard_stats_admin_only(client, seller):
    assert client.get(f"{API}/admin/dashboard-stats", headers=bearer(seller)).status_code == 403
