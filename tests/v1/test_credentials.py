# mypy: ignore-errors
# tests/v1/test_credentials.py
"""Tests for credential endpoints."""

import pytest
from fastapi import status
from sqlalchemy import select

from credential_ledger.models import Credential, TemporalCommitment
from tests.conftest import ISSUER_DID, make_credential

CREDENTIAL_PAYLOAD = {
    "student_name": "Ada Lovelace",
    "degree": "BSc Mathematics",
    "university": "University of London",
    "graduation_date": "2023-06-30",
    "student_id": "S-1815",
}


def test_issue_credential_with_default_schedule(client, auth_headers, db_session) -> None:
    """Issuing a credential also creates its temporal commitments."""
    response = client.post("/api/v1/credentials/", json=CREDENTIAL_PAYLOAD, headers=auth_headers)

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["credential"]["issuer_did"] == ISSUER_DID
    assert body["credential"]["revoked"] is False
    assert body["temporal"]["periods"] == 5
    assert [c["epoch"] for c in body["temporal"]["commitments"]] == [0, 1, 2, 3, 4]
    assert body["temporal"]["next_deadline"].startswith("2025-01-01")
    assert "secret" not in response.text.lower()

    rows = db_session.scalars(
        select(TemporalCommitment).where(
            TemporalCommitment.credential_id == body["credential"]["id"]
        )
    ).all()
    assert len(rows) == 5


def test_issue_credential_custom_periods(client, auth_headers) -> None:
    payload = {**CREDENTIAL_PAYLOAD, "temporal_periods": 2}
    response = client.post("/api/v1/credentials/", json=payload, headers=auth_headers)

    assert response.status_code == status.HTTP_201_CREATED
    assert len(response.json()["temporal"]["commitments"]) == 2


def test_issue_credential_invalid_periods_writes_nothing(client, auth_headers, db_session) -> None:
    payload = {**CREDENTIAL_PAYLOAD, "temporal_periods": 21}
    response = client.post("/api/v1/credentials/", json=payload, headers=auth_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert db_session.scalars(select(Credential)).all() == []


def test_issue_credential_requires_auth(client) -> None:
    response = client.post("/api/v1/credentials/", json=CREDENTIAL_PAYLOAD)
    assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}


def test_issue_credential_rejects_bad_token(client) -> None:
    response = client.post(
        "/api/v1/credentials/",
        json=CREDENTIAL_PAYLOAD,
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_duplicate_vc_cid_conflicts(client, auth_headers) -> None:
    payload = {**CREDENTIAL_PAYLOAD, "vc_cid": "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"}
    first = client.post("/api/v1/credentials/", json=payload, headers=auth_headers)
    second = client.post("/api/v1/credentials/", json=payload, headers=auth_headers)

    assert first.status_code == status.HTTP_201_CREATED
    assert second.status_code == status.HTTP_409_CONFLICT


def test_get_credential(client, credential) -> None:
    response = client.get(f"/api/v1/credentials/{credential.id}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["student_name"] == "Ada Lovelace"


def test_get_missing_credential(client) -> None:
    response = client.get("/api/v1/credentials/does-not-exist")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_list_credentials_filters(client, auth_headers) -> None:
    client.post("/api/v1/credentials/", json=CREDENTIAL_PAYLOAD, headers=auth_headers)
    other = {**CREDENTIAL_PAYLOAD, "student_name": "Alan Turing", "university": "Cambridge"}
    client.post("/api/v1/credentials/", json=other, headers=auth_headers)

    response = client.get("/api/v1/credentials/", params={"university": "cambridge"})
    assert response.status_code == status.HTTP_200_OK
    assert [item["student_name"] for item in response.json()] == ["Alan Turing"]

    everything = client.get("/api/v1/credentials/", params={"revoked": "false"})
    assert len(everything.json()) == 2


def test_revoke_credential(client, auth_headers, credential) -> None:
    response = client.post(
        f"/api/v1/credentials/{credential.id}/revoke",
        json={"reason": "Issued in error"},
        headers=auth_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["revoked"] is True
    assert body["revocation_reason"] == "Issued in error"
    assert body["revoked_at"].startswith("2024-01-01")

    again = client.post(
        f"/api/v1/credentials/{credential.id}/revoke",
        json={"reason": "Second attempt"},
        headers=auth_headers,
    )
    assert again.status_code == status.HTTP_409_CONFLICT

    revoked = client.get("/api/v1/credentials/", params={"revoked": "true"})
    assert [item["id"] for item in revoked.json()] == [credential.id]


def test_revoke_by_other_issuer_forbidden(client, other_auth_headers, credential) -> None:
    response = client.post(
        f"/api/v1/credentials/{credential.id}/revoke",
        json={"reason": "Not mine"},
        headers=other_auth_headers,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_verify_by_attestation_uid(client, db_session, temporal_service) -> None:
    credential = make_credential(db_session, attestation_uid="0xabc123", vc_cid="bafy-ada")
    temporal_service.issue_schedule(credential.id, credential.issued_at, 2)

    response = client.post("/api/v1/credentials/verify", json={"attestation_uid": "0xabc123"})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["is_valid"] is True
    assert body["error"] is None
    assert body["credential"]["id"] == credential.id
    assert body["temporal"]["total"] == 2
    assert body["temporal"]["auto_revoke_risk"] is False


def test_verify_revoked_credential(client, auth_headers, db_session) -> None:
    credential = make_credential(db_session, vc_cid="bafy-revoked")
    client.post(
        f"/api/v1/credentials/{credential.id}/revoke",
        json={"reason": "Liveness commitment missed"},
        headers=auth_headers,
    )

    response = client.post("/api/v1/credentials/verify", json={"vc_cid": "bafy-revoked"})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["is_valid"] is False
    assert body["error"].startswith("Credential revoked on 2024-01-01")
    assert body["error"].endswith("Liveness commitment missed")
    assert body["credential"]["revoked"] is True
    assert body["temporal"] is None


def test_verify_unknown_credential(client) -> None:
    response = client.post("/api/v1/credentials/verify", json={"attestation_uid": "0xmissing"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "is_valid": False,
        "error": "Credential not found",
        "credential": None,
        "temporal": None,
    }


def test_verify_requires_an_identifier(client) -> None:
    response = client.post("/api/v1/credentials/verify", json={})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_credential_stats(client, auth_headers, db_session) -> None:
    empty = client.get("/api/v1/credentials/stats")
    assert empty.json()["revocation_rate"] == 0.0

    first = make_credential(db_session, university="Cambridge")
    make_credential(db_session, student_name="Alan Turing", university="Cambridge")
    make_credential(db_session, student_name="Grace Hopper", university="Yale")
    client.post(
        f"/api/v1/credentials/{first.id}/revoke",
        json={"reason": "Issued in error"},
        headers=auth_headers,
    )

    response = client.get("/api/v1/credentials/stats")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert (body["total"], body["active"], body["revoked"]) == (3, 2, 1)
    assert body["revocation_rate"] == pytest.approx(100 / 3)
    assert body["top_universities"] == [
        {"university": "Cambridge", "count": 2},
        {"university": "Yale", "count": 1},
    ]


def test_list_student_credentials(client, db_session) -> None:
    make_credential(db_session)
    make_credential(db_session, student_name="Alan Turing")

    response = client.get("/api/v1/credentials/student/lovelace")

    assert response.status_code == status.HTTP_200_OK
    assert [item["student_name"] for item in response.json()] == ["Ada Lovelace"]
