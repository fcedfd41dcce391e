import pytest

from conftest import API, register
from main import app
from qafzh.services.rate_limit import RateLimiter

@pytest.fixture
def strict_limiter():
    original = app.state.auth_rate_limiter
    app.state.auth_rate_limiter = RateLimiter("2/minute")
    yield app.state.auth_rate_limiter
    app.state.auth_rate_limiter = original

def test_auth_attempts_are_limited(client, strict_limiter):
    assert register(client, "+967777000501").status_code == 201
    assert register(client, "+967777000502").status_code == 201

    response = register(client, "+967777000503")
    assert response.status_code == 429
    assert response.json()["status"] == "fail"

def test_limit_is_shared_across_auth_routes(client, strict_limiter):
    register(client, "+967777000501")
    client.post(f"{API}/auth/request-otp", json={"phone": "+967777000501"})
    response = client.post(f"{API}/auth/login", json={"phone": "+967777000501", "password": "Secret1!"})
    assert response.status_code == 429

def test_other_routes_are_not_counted(client, strict_limiter):
    for _ in range(5):
        assert client.get(f"{API}/marketplace/products").status_code == 200
    assert register(client, "+967777000501").status_code == 201

def test_reset_clears_counters():
    limiter = RateLimiter("1/minute", namespace="test")
    assert limiter.check("1.2.3.4") is True
    assert limiter.check("1.2.3.4") is False
    assert limiter.check("5.6.7.8") is True
    limiter.reset()
    assert limiter.check("1.2.3.4") is True
