# tests/test_health.py
from fastapi import status


def test_health_check(client) -> None:
    """The health endpoint reports the service as up."""
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_root_describes_api(client) -> None:
    response = client.get("/")
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["name"] == "Credential Ledger"
    assert body["docs"] == "/docs"
