"""Admin token verification with constant-time comparison."""

import hmac
import logging
from collections.abc import Mapping
from dataclasses import dataclass

_logger = logging.getLogger(__name__)


@dataclass
class AdminTokenVerifier:
    """Checks admin tokens against the configured secret.

    With no secret configured every check fails. Lockout is left to the
    rate limiter.
    """

    secret: str | None

    def verify(self, candidate: str | None) -> bool:
        """Return true when the candidate equals the configured secret."""
        if not self.secret:
            _logger.warning("Admin authentication not configured")
            return False
        if not candidate:
            return False
        return constant_time_equals(candidate, self.secret)

    def verify_headers(self, headers: Mapping[str, str]) -> bool:
        """Verify the token from X-Admin-Token, then Authorization: Bearer."""
        token = token_from_headers(headers)
        if token is None:
            _logger.info("Admin auth attempt without a token")
            return False
        is_valid = self.verify(token)
        _logger.info("Admin auth attempt: success=%s", is_valid)
        return is_valid

    def verify_form_token(self, token: object) -> bool:
        """Verify a token posted in the ``adminPassword`` form field."""
        if not isinstance(token, str):
            return False
        is_valid = self.verify(token)
        _logger.info("Admin form auth attempt: success=%s", is_valid)
        return is_valid


def token_from_headers(headers: Mapping[str, str]) -> str | None:
    """Extract an admin token; header names are expected in lower case."""
    token = headers.get("x-admin-token")
    if token:
        return token
    scheme, _, value = (headers.get("authorization") or "").partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def constant_time_equals(candidate: str, expected: str) -> bool:
    """Compare two strings without leaking where they differ or their lengths."""
    candidate_bytes = candidate.encode("utf-8")
    expected_bytes = expected.encode("utf-8")
    if len(candidate_bytes) != len(expected_bytes):
        hmac.compare_digest(candidate_bytes, candidate_bytes)
        return False
    return hmac.compare_digest(candidate_bytes, expected_bytes)
