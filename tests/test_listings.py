import pytest

from conftest import (
    API,
    PASSWORD,
    admin_token,
    bearer,
    listing_payload,
    moderate,
    post_listing,
    register,
    verified_token,
)

SELLER = "+967777000201"
OTHER = "+967777000202"

@pytest.fixture
def seller(client):
    return verified_token(client, SELLER, name="Seller")

def test_post_listing_starts_pending(client, seller):
    data = post_listing(client, seller)
    assert data["status"] == "pending"
    assert data["owner"]["name"] == "Seller"
    assert data["currency"] == "YER"
    assert data["images"] == []

def test_post_requires_login(client):
    response = client.post(f"{API}/products/post", json=listing_payload())
    assert response.status_code == 401

def test_post_requires_verified_phone(client):
    register(client, SELLER)
    login = client.post(f"{API}/auth/login", json={"phone": SELLER, "password": PASSWORD})
    token = login.json()["data"]["access_token"]
    client.cookies.clear()

    response = client.post(f"{API}/products/post", json=listing_payload(), headers=bearer(token))
    assert response.status_code == 403
    assert response.json()["message"] == "Please verify your phone number first."

@pytest.mark.parametrize(
    "missing",
    ["name", "category", "condition", "price", "phone", "governorate", "city"],
)
def test_first_missing_field_is_reported(client, seller, missing):
    order = ["name", "category", "condition", "price", "phone", "governorate", "city"]
    payload = listing_payload()
    # Drop the field and everything after it; the earliest one wins
    for field in order[order.index(missing):]:
        payload.pop(field)
    response = client.post(f"{API}/products/post", json=payload, headers=bearer(seller))
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == f"{missing}: Field required"
    assert body["data"] == {"field": missing}

def test_rejects_negative_price(client, seller):
    response = client.post(f"{API}/products/post", json=listing_payload(price=-1), headers=bearer(seller))
    assert response.status_code == 400
    assert response.json()["data"] == {"field": "price"}

def test_rejects_unknown_category(client, seller):
    response = client.post(f"{API}/products/post", json=listing_payload(category="Toaster"), headers=bearer(seller))
    assert response.status_code == 400
    assert response.json()["data"] == {"field": "category"}

def test_rejects_too_many_images(client, seller):
    images = [f"https://img.example/{i}.jpg" for i in range(11)]
    response = client.post(f"{API}/products/post", json=listing_payload(images=images), headers=bearer(seller))
    assert response.status_code == 400

def test_my_products_lists_only_own(client, seller):
    other = verified_token(client, OTHER)
    post_listing(client, seller, name="Seller panel")
    post_listing(client, other, name="Other panel")

    response = client.get(f"{API}/products/mine", headers=bearer(seller))
    items = response.json()["data"]["items"]
    assert [item["name"] for item in items] == ["Seller panel"]

def test_edit_keeps_status(client, db, seller):
    listing = post_listing(client, seller)
    admin = admin_token(db)
    assert moderate(client, admin, listing["id"], "approved").status_code == 200

    response = client.patch(
        f"{API}/products/update-product/{listing['id']}",
        json={"price": 399.5, "description": "Price drop"},
        headers=bearer(seller),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["price"] == 399.5
    assert data["description"] == "Price drop"
    assert data["status"] == "approved"

def test_edit_cannot_set_status(client, seller):
    listing = post_listing(client, seller)
    response = client.patch(
        f"{API}/products/update-product/{listing['id']}",
        json={"status": "approved"},
        headers=bearer(seller),
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "pending"

def test_edit_rejects_null_required_field(client, seller):
    listing = post_listing(client, seller)
    response = client.patch(
        f"{API}/products/update-product/{listing['id']}",
        json={"name": None},
        headers=bearer(seller),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "name cannot be null"

def test_cannot_edit_or_delete_someone_elses_listing(client, seller):
    other = verified_token(client, OTHER)
    listing = post_listing(client, seller)

    edit = client.patch(
        f"{API}/products/update-product/{listing['id']}", json={"price": 1}, headers=bearer(other)
    )
    assert edit.status_code == 403
    delete = client.delete(f"{API}/products/delete-product/{listing['id']}", headers=bearer(other))
    assert delete.status_code == 403

    mine = client.get(f"{API}/products/mine", headers=bearer(seller)).json()["data"]
    assert mine["items"][0]["price"] == 450

def test_edit_missing_listing(client, seller):
    response = client.patch(f"{API}/products/update-product/9999", json={"price": 1}, headers=bearer(seller))
    assert response.status_code == 404
    assert response.json()["message"] == "Product not found"

def test_owner_deletes_listing(client, seller):
    listing = post_listing(client, seller)
    response = client.delete(f"{API}/products/delete-product/{listing['id']}", headers=bearer(seller))
    assert response.status_code == 200
    assert client.get(f"{API}/products/mine", headers=bearer(seller)).json()["data"]["total"] == 0

def test_resubmit_rejected_listing(client, db, seller):
    listing = post_listing(client, seller)
    admin = admin_token(db)
    assert moderate(client, admin, listing["id"], "rejected", reason="Blurry photos").status_code == 200

    mine = client.get(f"{API}/products/mine", headers=bearer(seller)).json()["data"]["items"][0]
    assert mine["rejection_reason"] == "Blurry photos"

    response = client.post(
        f"{API}/products/resubmit/{listing['id']}",
        json={"images": ["https://img.example/clear.jpg"]},
        headers=bearer(seller),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "pending"
    assert data["rejection_reason"] is None
    assert data["images"] == ["https://img.example/clear.jpg"]

def test_resubmit_without_body(client, db, seller):
    listing = post_listing(client, seller)
    admin = admin_token(db)
    moderate(client, admin, listing["id"], "rejected", reason="Wrong category")

    response = client.post(f"{API}/products/resubmit/{listing['id']}", headers=bearer(seller))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "pending"

def test_resubmit_only_from_rejected(client, seller):
    listing = post_listing(client, seller)
    response = client.post(
        f"{API}/products/resubmit/{listing['id']}", json={"price": 1}, headers=bearer(seller)
    )
    assert response.status_code == 400
    assert response.json()["data"]["current_status"] == "pending"

    mine = client.get(f"{API}/products/mine", headers=bearer(seller)).json()["data"]["items"][0]
    assert mine["price"] == 450

def test_only_owner_resubmits(client, db, seller):
    other = verified_token(client, OTHER)
    listing = post_listing(client, seller)
    moderate(client, admin_token(db), listing["id"], "rejected", reason="Wrong category")

    response = client.post(f"{API}/products/resubmit/{listing['id']}", headers=bearer(other))
    assert response.status_code == 403
