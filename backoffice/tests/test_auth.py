"""
Actor Token Tests.

Validates token issuing and verification used by the HTTP seam.
"""

import pytest
from datetime import timedelta

from backoffice.app.core.config import settings
from backoffice.app.core.jwt import issue_actor_token, decode_actor_token


def test_token_carries_actor_and_claims():
    token = issue_actor_token("finance.alice", department="treasury")

    claims = decode_actor_token(token)

    assert claims["sub"] == "finance.alice"
    assert claims["department"] == "treasury"
    assert "exp" in claims


def test_expired_token_rejected():
    token = issue_actor_token("finance.alice", expires_delta=timedelta(seconds=-5))
    assert decode_actor_token(token) is None


def test_tampered_token_rejected():
    header, payload, signature = issue_actor_token("finance.alice").split(".")
    forged = "A" if signature[0] != "A" else "B"
    assert decode_actor_token(f"{header}.{payload}.{forged}{signature[1:]}") is None


def test_actor_is_required():
    with pytest.raises(ValueError):
        issue_actor_token("")


def test_issuer_checked_when_configured(mocker):
    foreign = issue_actor_token("finance.alice")

    mocker.patch.object(settings, "jwt_issuer", "https://idp.example.com")
    ours = issue_actor_token("finance.alice")

    assert decode_actor_token(ours)["iss"] == "https://idp.example.com"
    assert decode_actor_token(foreign) is None


@pytest.mark.asyncio
async def test_debug_token_endpoint_issues_usable_token(client):
    response = await client.post("/auth/test-token", params={"actor": "finance.bob"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = await client.get("/auth/whoami", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["actor_id"] == "finance.bob"


@pytest.mark.asyncio
async def test_correlation_id_echoed(client, auth_headers):
    response = await client.get("/health", headers={"X-Correlation-ID": "req-123"})
    assert response.headers["X-Correlation-ID"] == "req-123"
    assert float(response.headers["X-Process-Time"]) >= 0
