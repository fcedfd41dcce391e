import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OTP_FIXED_CODE"] = "112233"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["AUTH_RATE_LIMIT"] = "1000/minute"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SMS_ENABLED"] = "false"
os.environ["IS_DEV_ENV"] = "true"
os.environ["EXPIRY_SWEEP_ENABLED"] = "false"
os.environ["LISTING_AUTO_APPROVE"] = "false"

import pytest
from fastapi.testclient import TestClient

from main import app
from qafzh.auth.dependencies import auth_service
from qafzh.database import Base, SessionLocal, engine
from qafzh.models.listing import Listing

API = "/api/v1"
OTP = "112233"
PASSWORD = "Secret1!"

@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.state.auth_rate_limiter.reset()
    yield

@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c

@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

def bearer(token):
    return {"Authorization": f"Bearer {token}"}

def register(client, phone, password=PASSWORD, name="Test User"):
    return client.post(f"{API}/auth/register", json={"phone": phone, "password": password, "name": name})

def verify(client, phone, otp=OTP):
    return client.post(f"{API}/auth/verify-otp/{phone}", json={"otp": otp})

def verified_token(client, phone, name="Test User"):
    assert register(client, phone, name=name).status_code == 201
    response = verify(client, phone)
    assert response.status_code == 200
    # Keep requests explicit about who is calling
    client.cookies.clear()
    return response.json()["data"]["access_token"]

def admin_token(db, phone="+967700000001"):
    admin = auth_service.ensure_admin(phone, PASSWORD, "Admin", db)
    return auth_service.create_access_token(admin)

def listing_payload(**overrides):
    payload = {
        "name": "Growatt 5kW inverter",
        "category": "Inverter",
        "condition": "Used",
        "price": 450,
        "phone": "+967777123456",
        "governorate": "Sana'a",
        "city": "Sana'a",
        "brand": "Growatt",
        "description": "Hybrid inverter, two years old",
    }
    payload.update(overrides)
    return payload

def post_listing(client, token, **overrides):
    response = client.post(f"{API}/products/post", json=listing_payload(**overrides), headers=bearer(token))
    assert response.status_code == 201, response.text
    return response.json()["data"]

def moderate(client, token, listing_id, status, reason=None):
    body = {"status": status}
    if reason is not None:
        body["reason"] = reason
    return client.patch(f"{API}/admin/update/{listing_id}", json=body, headers=bearer(token))

def update_listing_row(listing_id, **values):
    session = SessionLocal()
    try:
        listing = session.get(Listing, listing_id)
        for field, value in values.items():
            setattr(listing, field, value)
        session.commit()
    finally:
        session.close()
