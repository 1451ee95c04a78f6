"""Shared test fixtures."""

import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from sponsor_portal.config import Settings
from sponsor_portal.containers import AppContainer, rate_limit_rules
from sponsor_portal.domain.sponsorships import (
    AuthStatus,
    Sponsorship,
    SponsorshipStatus,
)
from sponsor_portal.domain.updates import (
    CORRECTABLE_STATUSES,
    NewUpdate,
    ReviewStamp,
    UpdateRecord,
    UpdateStatus,
)
from sponsor_portal.errors import GatewayError, StoreError
from sponsor_portal.services.admin_auth import AdminTokenVerifier
from sponsor_portal.services.credentials import CredentialVerifier
from sponsor_portal.services.donations import (
    CheckoutGateway,
    CheckoutRequest,
    CheckoutSession,
    DonationService,
)
from sponsor_portal.services.rate_limit import RateLimiter
from sponsor_portal.services.sessions import SessionService
from sponsor_portal.services.sponsorships import (
    SponsorshipRepository,
    SponsorshipService,
)
from sponsor_portal.services.throttle import RequestThrottle
from sponsor_portal.services.updates import UpdateRepository, UpdateService

ADMIN_TOKEN = "admin-token"
SESSION_SECRET = "test-session-secret"


def make_sponsorship(**overrides: object) -> Sponsorship:
    """Build an active, visible sponsorship; keyword arguments override fields."""
    values: dict[str, object] = {
        "id": uuid4(),
        "sponsor_code": "BAN-2025-104",
        "sponsor_email": "a@x.com",
        "sponsor_name": "Alex Donor",
        "child_id": "CH-104",
        "child_display_name": "Grace",
        "child_age": "9",
        "child_location": "Gulu",
        "sponsorship_start_date": date(2025, 1, 15),
        "auth_status": AuthStatus.ACTIVE,
        "status": SponsorshipStatus.ACTIVE,
        "visible_to_sponsor": True,
    }
    values.update(overrides)
    return Sponsorship(**values)


@dataclass
class InMemorySponsorshipRepository(SponsorshipRepository):
    """In-memory sponsorship repository for tests."""

    rows: dict[UUID, Sponsorship] = field(default_factory=dict)
    claims: list[UUID] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add(self, sponsorship: Sponsorship) -> Sponsorship:
        self.rows[sponsorship.id] = sponsorship
        return sponsorship

    def find_by_credentials(self, email: str, sponsor_code: str) -> Sponsorship | None:
        for row in self.rows.values():
            if (
                row.sponsor_email == email
                and row.sponsor_code == sponsor_code
                and row.can_sign_in
            ):
                return row
        return None

    def find_active_by_code(self, sponsor_code: str) -> Sponsorship | None:
        row = self.find_by_code(sponsor_code)
        if row is not None and row.can_sign_in:
            return row
        return None

    def find_by_code(self, sponsor_code: str) -> Sponsorship | None:
        for row in self.rows.values():
            if row.sponsor_code == sponsor_code:
                return row
        return None

    def get_by_id(self, sponsorship_id: UUID) -> Sponsorship | None:
        return self.rows.get(sponsorship_id)

    def list_active(self) -> list[Sponsorship]:
        return sorted(
            (row for row in self.rows.values() if row.can_sign_in),
            key=lambda row: row.sponsor_code,
        )

    def list_awaiting_sponsor(self) -> list[Sponsorship]:
        return sorted(
            (
                row
                for row in self.rows.values()
                if row.status is SponsorshipStatus.AWAITING_SPONSOR
            ),
            key=lambda row: row.child_display_name,
        )

    def code_exists(self, sponsor_code: str) -> bool:
        return self.find_by_code(sponsor_code) is not None

    def claim_request_slot(
        self, sponsorship_id: UUID, now: datetime, next_eligible_at: datetime
    ) -> bool:
        with self._lock:
            row = self.rows[sponsorship_id]
            current = row.next_request_eligible_at
            if current is not None and current > now:
                return False
            self.rows[sponsorship_id] = replace(
                row, last_request_at=now, next_request_eligible_at=next_eligible_at
            )
            self.claims.append(sponsorship_id)
            return True

    def release_request_slot(
        self,
        sponsorship_id: UUID,
        claimed_next_eligible_at: datetime,
        previous_last_request_at: datetime | None,
        previous_next_eligible_at: datetime | None,
    ) -> None:
        with self._lock:
            row = self.rows[sponsorship_id]
            if row.next_request_eligible_at != claimed_next_eligible_at:
                return
            self.rows[sponsorship_id] = replace(
                row,
                last_request_at=previous_last_request_at,
                next_request_eligible_at=previous_next_eligible_at,
            )

    def assign_sponsor(  # noqa: PLR0913
        self,
        sponsorship_id: UUID,
        sponsor_code: str,
        sponsor_email: str,
        sponsor_name: str | None,
        start_date: date,
    ) -> Sponsorship | None:
        with self._lock:
            row = self.rows.get(sponsorship_id)
            if row is None or row.status is not SponsorshipStatus.AWAITING_SPONSOR:
                return None
            assigned = replace(
                row,
                sponsor_code=sponsor_code,
                sponsor_email=sponsor_email,
                sponsor_name=sponsor_name or row.sponsor_name,
                auth_status=AuthStatus.ACTIVE,
                status=SponsorshipStatus.ACTIVE,
                visible_to_sponsor=True,
                sponsorship_start_date=start_date,
            )
            self.rows[sponsorship_id] = assigned
            return assigned


@dataclass
class InMemoryUpdateRepository(UpdateRepository):
    """In-memory update repository for tests."""

    updates: dict[UUID, UpdateRecord] = field(default_factory=dict)
    fail_on_create: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _sequence: int = 0

    def add(self, update: UpdateRecord) -> UpdateRecord:
        self.updates[update.id] = update
        return update

    def create_update(self, update: NewUpdate) -> UpdateRecord:
        if self.fail_on_create:
            raise StoreError(operation="create_update", entity="updates")
        with self._lock:
            return self._insert(update)

    def get_update(self, update_id: UUID) -> UpdateRecord | None:
        return self.updates.get(update_id)

    def list_published_for_child(self, child_id: str) -> list[UpdateRecord]:
        rows = [
            row
            for row in self.updates.values()
            if row.child_id == child_id and row.status is UpdateStatus.PUBLISHED
        ]
        return sorted(rows, key=_published_key, reverse=True)

    def most_recent_published_for_child(self, child_id: str) -> UpdateRecord | None:
        rows = self.list_published_for_child(child_id)
        return rows[0] if rows else None

    def list_by_status(self, status: UpdateStatus) -> list[UpdateRecord]:
        rows = [row for row in self.updates.values() if row.status is status]
        if status is UpdateStatus.PUBLISHED:
            return sorted(rows, key=_published_key, reverse=True)
        return sorted(rows, key=_created_key, reverse=True)

    def apply_review(
        self, update_id: UUID, expected_status: UpdateStatus, stamp: ReviewStamp
    ) -> UpdateRecord | None:
        with self._lock:
            row = self.updates.get(update_id)
            if row is None or row.status is not expected_status:
                return None
            updated = replace(
                row,
                status=stamp.status,
                visible_to_sponsor=stamp.status is UpdateStatus.PUBLISHED,
                reviewed_by=stamp.reviewed_by,
                reviewed_at=stamp.reviewed_at,
                published_at=stamp.published_at or row.published_at,
                rejection_reason=stamp.rejection_reason or row.rejection_reason,
                correction_notes=stamp.correction_notes or row.correction_notes,
            )
            self.updates[update_id] = updated
            return updated

    def create_correction(
        self, original_id: UUID, update: NewUpdate
    ) -> UpdateRecord | None:
        with self._lock:
            original = self.updates.get(original_id)
            if (
                original is None
                or original.superseded_by is not None
                or original.status not in CORRECTABLE_STATUSES
            ):
                return None
            created = self._insert(replace(update, supersedes_update=original.id))
            self.updates[original.id] = replace(original, superseded_by=created.id)
            return created

    def _insert(self, update: NewUpdate) -> UpdateRecord:
        self._sequence += 1
        record = UpdateRecord(
            id=uuid4(),
            child_id=update.child_id,
            sponsor_code=update.sponsor_code,
            update_type=update.update_type,
            title=update.title,
            content=update.content,
            photos=update.photos,
            status=update.status,
            visible_to_sponsor=False,
            requested_by_sponsor=update.requested_by_sponsor,
            requested_at=update.requested_at,
            submitted_by=update.submitted_by,
            submitted_at=update.submitted_at,
            supersedes_update=update.supersedes_update,
            created_at=datetime(2025, 1, 1, tzinfo=UTC)
            + timedelta(seconds=self._sequence),
        )
        self.updates[record.id] = record
        return record


def _published_key(row: UpdateRecord) -> datetime:
    return row.published_at or datetime.min.replace(tzinfo=UTC)


def _created_key(row: UpdateRecord) -> datetime:
    return row.created_at or datetime.min.replace(tzinfo=UTC)


@dataclass
class FakeCookieJar:
    """Cookie jar that records what the session service writes."""

    cookies: dict[str, str] = field(default_factory=dict)
    attributes: dict[str, dict[str, object]] = field(default_factory=dict)
    deleted: list[str] = field(default_factory=list)

    def get_cookie(self, name: str) -> str | None:
        return self.cookies.get(name)

    def set_cookie(  # noqa: PLR0913
        self,
        name: str,
        value: str,
        *,
        max_age: int,
        expires: datetime,
        path: str,
        secure: bool,
        httponly: bool,
        samesite: str,
    ) -> None:
        self.cookies[name] = value
        self.attributes[name] = {
            "max_age": max_age,
            "expires": expires,
            "path": path,
            "secure": secure,
            "httponly": httponly,
            "samesite": samesite,
        }

    def delete_cookie(self, name: str, *, path: str) -> None:
        self.cookies.pop(name, None)
        self.deleted.append(name)


@dataclass
class FakeCheckoutGateway(CheckoutGateway):
    """Fake payment gateway that records checkout requests."""

    requests: list[CheckoutRequest] = field(default_factory=list)
    error: GatewayError | None = None

    async def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        if self.error is not None:
            raise self.error
        self.requests.append(request)
        return CheckoutSession(
            id="cs_test_123", url="https://checkout.stripe.com/c/pay/cs_test_123"
        )


class FixedClock:
    """Settable clock for services that take a ``clock`` callable."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        session_secret=SESSION_SECRET,
        admin_api_token=ADMIN_TOKEN,
        cookie_secure=False,
    )


@pytest.fixture
def sponsorship_repository() -> InMemorySponsorshipRepository:
    return InMemorySponsorshipRepository()


@pytest.fixture
def update_repository() -> InMemoryUpdateRepository:
    return InMemoryUpdateRepository()


@pytest.fixture
def checkout_gateway() -> FakeCheckoutGateway:
    return FakeCheckoutGateway()


@pytest.fixture
def container(
    settings: Settings,
    sponsorship_repository: InMemorySponsorshipRepository,
    update_repository: InMemoryUpdateRepository,
    checkout_gateway: FakeCheckoutGateway,
) -> AppContainer:
    throttle = RequestThrottle(
        repository=sponsorship_repository,
        cooldown=timedelta(days=settings.update_request_cooldown_days),
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        sponsorship_service=SponsorshipService(sponsorship_repository),
        credential_verifier=CredentialVerifier(sponsorship_repository),
        session_service=SessionService(
            sponsorship_repository,
            secret=settings.session_secret,
            secure_cookies=settings.cookie_secure,
        ),
        admin_verifier=AdminTokenVerifier(settings.admin_api_token),
        update_service=UpdateService(
            repository=update_repository,
            sponsorship_repository=sponsorship_repository,
            throttle=throttle,
        ),
        rate_limiter=RateLimiter(rate_limit_rules(settings)),
        donation_service=DonationService(
            gateway=checkout_gateway, site_url=settings.site_url
        ),
        close_resources=close_resources,
    )
