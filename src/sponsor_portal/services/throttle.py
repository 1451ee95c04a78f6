"""Per-sponsorship cooldown between sponsor update requests."""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from sponsor_portal.app_logging import mask_sponsor_code
from sponsor_portal.domain.sponsorships import Sponsorship
from sponsor_portal.services.sponsorships import SponsorshipRepository

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThrottleDecision:
    """Outcome of an eligibility check.

    ``next_eligible_at`` is when the sponsor may ask again: the blocking
    timestamp when denied, the new cooldown end when allowed.
    """

    allowed: bool
    next_eligible_at: datetime

    def retry_after_seconds(self, now: datetime) -> int:
        """Whole seconds until the next request is accepted."""
        return max(0, math.ceil((self.next_eligible_at - now).total_seconds()))


@dataclass
class RequestThrottle:
    """Enforces the cooldown window stored on each sponsorship."""

    repository: SponsorshipRepository
    cooldown: timedelta

    def check(self, sponsorship: Sponsorship, now: datetime) -> ThrottleDecision:
        """Decide eligibility from the sponsorship's stored window."""
        eligible_at = sponsorship.next_request_eligible_at
        if eligible_at is not None and eligible_at > now:
            return ThrottleDecision(allowed=False, next_eligible_at=eligible_at)
        return ThrottleDecision(allowed=True, next_eligible_at=now + self.cooldown)

    def check_and_record(
        self, sponsorship: Sponsorship, now: datetime
    ) -> ThrottleDecision:
        """Check eligibility and, when allowed, claim the slot atomically."""
        decision = self.check(sponsorship, now)
        if not decision.allowed:
            _logger.info(
                "Update request throttled: code=%s next_eligible_at=%s",
                mask_sponsor_code(sponsorship.sponsor_code),
                decision.next_eligible_at.isoformat(),
            )
            return decision

        if self.repository.claim_request_slot(
            sponsorship.id, now, decision.next_eligible_at
        ):
            return decision

        # Another request claimed the slot between our read and write.
        current = self.repository.get_by_id(sponsorship.id)
        eligible_at = (
            current.next_request_eligible_at
            if current is not None and current.next_request_eligible_at is not None
            else decision.next_eligible_at
        )
        _logger.info(
            "Update request lost a concurrent claim: code=%s",
            mask_sponsor_code(sponsorship.sponsor_code),
        )
        return ThrottleDecision(allowed=False, next_eligible_at=eligible_at)

    def release(self, sponsorship: Sponsorship, decision: ThrottleDecision) -> None:
        """Give back a claimed slot after the request could not be stored."""
        self.repository.release_request_slot(
            sponsorship.id,
            claimed_next_eligible_at=decision.next_eligible_at,
            previous_last_request_at=sponsorship.last_request_at,
            previous_next_eligible_at=sponsorship.next_request_eligible_at,
        )
