import inspect

from fastapi.routing import APIRoute

from conftest import API, admin_token, bearer, moderate, post_listing, verified_token
from main import app
from qafzh.auth.dependencies import get_current_account, require_admin, require_verified

def test_health(client):
    response = client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json()["status"] == "success"

def test_unknown_route_uses_envelope(client):
    response = client.get(f"{API}/nowhere")
    assert response.status_code == 404
    assert response.json() == {"status": "fail", "message": "Not Found", "data": None}

def test_malformed_json_is_a_400(client):
    response = client.post(
        f"{API}/auth/register", content="{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["status"] == "fail"

def test_seller_to_buyer_happy_path(client, db):
    seller = verified_token(client, "+967777000701", name="Seller")
    admin = admin_token(db)

    listing = post_listing(client, seller, name="Used 200Ah battery", category="Battery", price=300)
    assert client.get(f"{API}/marketplace/products").json()["data"]["total"] == 0

    assert moderate(client, admin, listing["id"], "approved").status_code == 200
    detail = client.get(f"{API}/marketplace/products/{listing['id']}").json()["data"]
    assert detail["name"] == "Used 200Ah battery"
    assert detail["owner"]["phone"] == "+967777000701"

    assert moderate(client, admin, listing["id"], "sold").status_code == 200
    assert client.get(f"{API}/marketplace/products").json()["data"]["total"] == 0
    mine = client.get(f"{API}/products/mine", params={"status": "sold"}, headers=bearer(seller))
    assert mine.json()["data"]["items"][0]["status"] == "sold"

def test_admin_may_edit_any_listing(client, db):
    seller = verified_token(client, "+967777000702")
    listing = post_listing(client, seller)
    response = client.patch(
        f"{API}/products/update-product/{listing['id']}",
        json={"city": "Taiz"},
        headers=bearer(admin_token(db)),
    )
    assert response.status_code == 200
    assert response.json()["data"]["city"] == "Taiz"
    assert response.json()["data"]["status"] == "pending"

def test_database_handlers_run_in_threadpool():
    # Sync endpoints are dispatched to FastAPI's worker threads instead of the event loop
    endpoints = [r for r in app.routes if isinstance(r, APIRoute) and r.path != f"{API}/health"]
    assert endpoints
    for route in endpoints:
        assert not inspect.iscoroutinefunction(route.endpoint), route.path
    for dependency in (get_current_account, require_verified, require_admin):
        assert not inspect.iscoroutinefunction(dependency)
