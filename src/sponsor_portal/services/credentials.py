"""Sponsor credential verification."""

import logging
from dataclasses import dataclass

from sponsor_portal.app_logging import mask_email, mask_sponsor_code
from sponsor_portal.domain.sponsorships import Sponsorship
from sponsor_portal.services.sponsorships import SponsorshipRepository

_logger = logging.getLogger(__name__)


@dataclass
class CredentialVerifier:
    """Checks an (email, sponsor code) pair against stored sponsorships.

    Inputs must already be normalized by ``validation``. A ``None`` result
    covers both unknown and inactive sponsors so callers answer with the same
    generic message; store failures propagate as ``StoreError``.
    """

    repository: SponsorshipRepository

    def verify(self, email: str, sponsor_code: str) -> Sponsorship | None:
        """Return the matching active sponsorship, or None."""
        sponsorship = self.repository.find_by_credentials(email, sponsor_code)
        if sponsorship is None:
            _logger.info(
                "Credential check failed: email=%s code=%s",
                mask_email(email),
                mask_sponsor_code(sponsor_code),
            )
            return None

        if (
            not sponsorship.can_sign_in
            or sponsorship.sponsor_code != sponsor_code
            or sponsorship.sponsor_email.lower() != email
        ):
            _logger.warning(
                "Credential re-check rejected a stored row: code=%s auth_status=%s "
                "visible=%s",
                mask_sponsor_code(sponsor_code),
                sponsorship.auth_status.value,
                sponsorship.visible_to_sponsor,
            )
            return None

        _logger.info("Credential check passed: code=%s", mask_sponsor_code(sponsor_code))
        return sponsorship
