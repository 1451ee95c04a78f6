"""Sponsorship persistence interface, catalog and assignment flow."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import UUID

from sponsor_portal.app_logging import mask_email, mask_sponsor_code
from sponsor_portal.domain.sponsorships import (
    ChildProfile,
    Sponsorship,
    SponsorshipStatus,
    child_profile,
)
from sponsor_portal.errors import InvalidTransitionError, NotFoundError, StoreError

_logger = logging.getLogger(__name__)

_CODE_ATTEMPTS = 10


class SponsorshipRepository(Protocol):
    """Persistence interface for sponsorships."""

    def find_by_credentials(self, email: str, sponsor_code: str) -> Sponsorship | None:
        """Return the active, sponsor-visible sponsorship matching both values."""

    def find_active_by_code(self, sponsor_code: str) -> Sponsorship | None:
        """Return the active, sponsor-visible sponsorship for a code."""

    def find_by_code(self, sponsor_code: str) -> Sponsorship | None:
        """Return the sponsorship for a code regardless of status."""

    def get_by_id(self, sponsorship_id: UUID) -> Sponsorship | None:
        """Return a sponsorship by row id."""

    def list_active(self) -> list[Sponsorship]:
        """Return active, sponsor-visible sponsorships ordered by code."""

    def list_awaiting_sponsor(self) -> list[Sponsorship]:
        """Return sponsorships waiting for a sponsor, ordered by child name."""

    def code_exists(self, sponsor_code: str) -> bool:
        """Return true when the code is already assigned."""

    def claim_request_slot(
        self, sponsorship_id: UUID, now: datetime, next_eligible_at: datetime
    ) -> bool:
        """Record a request only while the slot is open at ``now``.

        Must be a single conditional write: it succeeds only when
        ``next_request_eligible_at`` is unset or not after ``now``.
        """

    def release_request_slot(
        self,
        sponsorship_id: UUID,
        claimed_next_eligible_at: datetime,
        previous_last_request_at: datetime | None,
        previous_next_eligible_at: datetime | None,
    ) -> None:
        """Undo a claim, but only if it is still the latest one."""

    def assign_sponsor(  # noqa: PLR0913
        self,
        sponsorship_id: UUID,
        sponsor_code: str,
        sponsor_email: str,
        sponsor_name: str | None,
        start_date: date,
    ) -> Sponsorship | None:
        """Activate an awaiting sponsorship; None if it is no longer awaiting."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SponsorshipService:
    """Catalog of children awaiting sponsors and the assignment flow."""

    repository: SponsorshipRepository
    code_prefix: str = "BAN"
    clock: Callable[[], datetime] = field(default=_utcnow)

    def list_available_children(self) -> list[ChildProfile]:
        """Return profiles of children waiting for a sponsor."""
        return [
            child_profile(sponsorship)
            for sponsorship in self.repository.list_awaiting_sponsor()
        ]

    def list_active(self) -> list[Sponsorship]:
        """Return all active sponsorships."""
        return self.repository.list_active()

    def assign_sponsor(
        self, sponsorship_id: UUID, sponsor_email: str, sponsor_name: str | None
    ) -> Sponsorship:
        """Give an awaiting child a sponsor and a freshly allocated code."""
        current = self.repository.get_by_id(sponsorship_id)
        if current is None:
            raise NotFoundError("Sponsorship not found")
        if current.status is not SponsorshipStatus.AWAITING_SPONSOR:
            raise InvalidTransitionError("Sponsorship is not awaiting a sponsor")

        today = self.clock().date()
        code = self._allocate_code(today.year)
        assigned = self.repository.assign_sponsor(
            sponsorship_id,
            sponsor_code=code,
            sponsor_email=sponsor_email,
            sponsor_name=sponsor_name,
            start_date=today,
        )
        if assigned is None:
            raise InvalidTransitionError("Sponsorship is not awaiting a sponsor")
        _logger.info(
            "Sponsor assigned: sponsorship_id=%s code=%s email=%s",
            sponsorship_id,
            mask_sponsor_code(code),
            mask_email(sponsor_email),
        )
        return assigned

    def _allocate_code(self, year: int) -> str:
        for _ in range(_CODE_ATTEMPTS):
            code = f"{self.code_prefix}-{year}-{secrets.randbelow(900) + 100}"
            if not self.repository.code_exists(code):
                return code
        raise StoreError(
            operation="allocate_code",
            entity="sponsorships",
            message="Could not allocate a unique sponsor code",
        )
