"""Tests for sponsor sign-in, profile and update endpoints."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from sponsor_portal.api.app import create_app
from sponsor_portal.containers import AppContainer
from sponsor_portal.domain.sponsorships import AuthStatus
from sponsor_portal.domain.updates import UpdateRecord, UpdateStatus, UpdateType
from sponsor_portal.errors import (
    INVALID_CREDENTIALS,
    INVALID_REQUEST,
    SESSION_EXPIRED,
    TOO_MANY_REQUESTS,
    UNAUTHORIZED,
)
from sponsor_portal.services.sessions import SESSION_COOKIE_NAME
from tests.conftest import (
    InMemorySponsorshipRepository,
    InMemoryUpdateRepository,
    make_sponsorship,
)


@pytest.fixture
def client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


def _sign_in(client: TestClient) -> None:
    response = client.post(
        "/sponsor/verify", json={"email": "A@X.com", "sponsorCode": "ban-2025-104"}
    )
    assert response.status_code == 200


def test_verify_sets_session_cookie(
    client: TestClient, sponsorship_repository: InMemorySponsorshipRepository
) -> None:
    sponsorship_repository.add(make_sponsorship())

    response = client.post(
        "/sponsor/verify", json={"email": " A@X.com ", "sponsorCode": "ban-2025-104"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "sponsorCode": "BAN-2025-104",
        "name": "Alex Donor",
    }
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{SESSION_COOKIE_NAME}=")
    assert "HttpOnly" in set_cookie
    assert "samesite=lax" in set_cookie.lower()
    assert "Domain" not in set_cookie


def test_verify_rejects_unknown_credentials(
    client: TestClient, sponsorship_repository: InMemorySponsorshipRepository
) -> None:
    sponsorship_repository.add(make_sponsorship(auth_status=AuthStatus.SUSPENDED))

    response = client.post(
        "/sponsor/verify", json={"email": "a@x.com", "sponsorCode": "BAN-2025-104"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": INVALID_CREDENTIALS}
    assert SESSION_COOKIE_NAME not in client.cookies


def test_verify_rejects_malformed_input(client: TestClient) -> None:
    response = client.post(
        "/sponsor/verify", json={"email": "not-an-email", "sponsorCode": "BAN-2025-104"}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Please enter a valid email address"}


def test_verify_is_rate_limited(client: TestClient) -> None:
    for _ in range(5):
        response = client.post(
            "/sponsor/verify", json={"email": "a@x.com", "sponsorCode": "BAN-2025-999"}
        )
        assert response.status_code == 401

    response = client.post(
        "/sponsor/verify", json={"email": "a@x.com", "sponsorCode": "BAN-2025-999"}
    )

    assert response.status_code == 429
    assert response.json() == {"error": TOO_MANY_REQUESTS}
    assert int(response.headers["retry-after"]) > 0


def test_verify_rate_limit_ignores_forwarded_headers_by_default(
    client: TestClient,
) -> None:
    body = {"email": "a@x.com", "sponsorCode": "BAN-2025-999"}
    for hop in range(5):
        response = client.post(
            "/sponsor/verify",
            json=body,
            headers={
                "X-Forwarded-For": f"203.0.113.{hop}",
                "X-Real-IP": "198.51.100.1",
            },
        )
        assert response.status_code == 401

    response = client.post(
        "/sponsor/verify", json=body, headers={"X-Forwarded-For": "203.0.113.99"}
    )

    assert response.status_code == 429


def test_verify_rate_limit_uses_forwarded_hop_behind_proxy(
    container: AppContainer,
) -> None:
    container.settings = container.settings.model_copy(
        update={"trust_proxy_headers": True}
    )
    client = TestClient(create_app(container))
    body = {"email": "a@x.com", "sponsorCode": "BAN-2025-999"}
    first = {"X-Forwarded-For": "203.0.113.1, 10.0.0.1"}
    for _ in range(5):
        response = client.post("/sponsor/verify", json=body, headers=first)
        assert response.status_code == 401

    other = client.post(
        "/sponsor/verify", json=body, headers={"X-Forwarded-For": "203.0.113.2"}
    )
    blocked = client.post("/sponsor/verify", json=body, headers=first)

    assert other.status_code == 401
    assert blocked.status_code == 429


def test_verify_rejects_body_that_is_not_json(client: TestClient) -> None:
    response = client.post(
        "/sponsor/verify",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": INVALID_REQUEST}


def test_verify_counts_malformed_bodies_against_rate_limit(client: TestClient) -> None:
    for _ in range(5):
        response = client.post(
            "/sponsor/verify",
            content=b"[",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400

    response = client.post(
        "/sponsor/verify",
        content=b"[",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 429


def test_me_returns_profile(
    client: TestClient,
    sponsorship_repository: InMemorySponsorshipRepository,
    update_repository: InMemoryUpdateRepository,
) -> None:
    sponsorship_repository.add(make_sponsorship())
    update_repository.add(
        UpdateRecord(
            id=uuid4(),
            child_id="CH-104",
            update_type=UpdateType.PROGRESS_REPORT,
            title="Term report",
            content="Grace did well.",
            status=UpdateStatus.PUBLISHED,
            visible_to_sponsor=True,
            published_at=datetime(2025, 5, 1, tzinfo=UTC),
        )
    )
    _sign_in(client)

    response = client.get("/sponsor/me")

    assert response.status_code == 200
    data = response.json()
    assert data["sponsorCode"] == "BAN-2025-104"
    assert data["email"] == "a@x.com"
    assert data["child"]["displayName"] == "Grace"
    assert data["nextRequestEligibleAt"] is None
    assert data["lastUpdatePublishedAt"] == "2025-05-01T00:00:00+00:00"


def test_me_without_session(client: TestClient) -> None:
    response = client.get("/sponsor/me")

    assert response.status_code == 401
    assert response.json() == {"error": SESSION_EXPIRED}


def test_session_rejected_after_deactivation(
    client: TestClient, sponsorship_repository: InMemorySponsorshipRepository
) -> None:
    sponsorship = sponsorship_repository.add(make_sponsorship())
    _sign_in(client)
    sponsorship_repository.add(replace(sponsorship, auth_status=AuthStatus.SUSPENDED))

    response = client.get("/sponsor/me")

    assert response.status_code == 401


def test_updates_only_for_session_code(
    client: TestClient,
    sponsorship_repository: InMemorySponsorshipRepository,
    update_repository: InMemoryUpdateRepository,
) -> None:
    sponsorship_repository.add(make_sponsorship())
    sponsorship_repository.add(
        make_sponsorship(
            sponsor_code="BAN-2025-200", sponsor_email="b@x.com", child_id="CH-200"
        )
    )
    update_repository.add(
        UpdateRecord(
            id=uuid4(),
            child_id="CH-104",
            update_type=UpdateType.MILESTONE,
            title="Spelling bee",
            content="Grace won.",
            status=UpdateStatus.PUBLISHED,
            visible_to_sponsor=True,
            published_at=datetime(2025, 5, 1, tzinfo=UTC),
            reviewed_by="Admin",
        )
    )
    update_repository.add(
        UpdateRecord(
            id=uuid4(),
            child_id="CH-104",
            update_type=UpdateType.PROGRESS_REPORT,
            title="Not yet reviewed",
            content="Pending.",
            status=UpdateStatus.PENDING_REVIEW,
            visible_to_sponsor=False,
        )
    )
    _sign_in(client)

    own = client.get("/sponsor/BAN-2025-104/updates")
    other = client.get("/sponsor/BAN-2025-200/updates")

    assert own.status_code == 200
    updates = own.json()["updates"]
    assert [update["title"] for update in updates] == ["Spelling bee"]
    assert "reviewedBy" not in updates[0]
    assert other.status_code == 401
    assert other.json() == {"error": UNAUTHORIZED}


def test_request_update_then_cooldown(
    client: TestClient,
    sponsorship_repository: InMemorySponsorshipRepository,
    update_repository: InMemoryUpdateRepository,
) -> None:
    sponsorship_repository.add(make_sponsorship())
    _sign_in(client)

    first = client.post("/sponsor/BAN-2025-104/request-update")
    second = client.post("/sponsor/BAN-2025-104/request-update")

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert len(update_repository.updates) == 1
    assert second.status_code == 429
    assert "nextEligibleAt" in second.json()
    assert int(second.headers["retry-after"]) > 29 * 24 * 60 * 60


def test_request_update_while_throttled_reports_date(
    client: TestClient, sponsorship_repository: InMemorySponsorshipRepository
) -> None:
    eligible = datetime.now(tz=UTC) + timedelta(days=10)
    sponsorship_repository.add(make_sponsorship(next_request_eligible_at=eligible))
    _sign_in(client)

    response = client.post("/sponsor/BAN-2025-104/request-update")

    assert response.status_code == 429
    assert response.json()["nextEligibleAt"] == eligible.isoformat()


def test_logout_clears_session(
    client: TestClient, sponsorship_repository: InMemorySponsorshipRepository
) -> None:
    sponsorship_repository.add(make_sponsorship())
    _sign_in(client)

    response = client.post("/sponsor/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert client.get("/sponsor/me").status_code == 401
