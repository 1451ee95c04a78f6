"""Signed-cookie sponsor sessions.

The cookie is the only session state. It carries the sponsor's email, code
and absolute expiry, signed so it cannot be forged; every privileged use
re-checks the bound sponsorship against the live store.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from itsdangerous import BadData, URLSafeSerializer

from sponsor_portal.app_logging import mask_sponsor_code
from sponsor_portal.domain.sessions import SessionData, SessionToken
from sponsor_portal.domain.sponsorships import Sponsorship
from sponsor_portal.errors import SESSION_EXPIRED, AuthenticationError
from sponsor_portal.services.sponsorships import SponsorshipRepository

SESSION_COOKIE_NAME = "sponsor_session"
_SESSION_SALT = "sponsor-session"
_COOKIE_PATH = "/"

_logger = logging.getLogger(__name__)


class CookieJar(Protocol):
    """Cookie transport for the current request/response pair."""

    def get_cookie(self, name: str) -> str | None:
        """Return the named request cookie, if present."""

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
        """Set a response cookie. No Domain attribute is ever sent."""

    def delete_cookie(self, name: str, *, path: str) -> None:
        """Expire a cookie on the response."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionService:
    """Issues, reads, validates and clears sponsor sessions."""

    repository: SponsorshipRepository
    secret: str
    max_age_days: int = 30
    secure_cookies: bool = True
    clock: Callable[[], datetime] = field(default=_utcnow)
    _serializer: URLSafeSerializer = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._serializer = URLSafeSerializer(self.secret, salt=_SESSION_SALT)

    def issue(self, sponsorship: Sponsorship, jar: CookieJar) -> SessionToken:
        """Sign a 30-day session for the sponsorship and set it on the jar."""
        lifetime = timedelta(days=self.max_age_days)
        expires = self.clock() + lifetime
        value = self._serializer.dumps(
            {
                "email": sponsorship.sponsor_email,
                "sponsorCode": sponsorship.sponsor_code,
                "expires": expires.isoformat(),
            }
        )
        jar.set_cookie(
            SESSION_COOKIE_NAME,
            value,
            max_age=int(lifetime.total_seconds()),
            expires=expires,
            path=_COOKIE_PATH,
            secure=self.secure_cookies,
            httponly=True,
            samesite="lax",
        )
        _logger.info(
            "Session issued: code=%s expires=%s",
            mask_sponsor_code(sponsorship.sponsor_code),
            expires.isoformat(),
        )
        return SessionToken(value=value, expires=expires)

    def read(self, jar: CookieJar) -> SessionData | None:
        """Return the session in the jar, or None if absent, invalid or expired."""
        raw = jar.get_cookie(SESSION_COOKIE_NAME)
        if not raw:
            return None
        try:
            payload = self._serializer.loads(raw)
        except BadData:
            _logger.warning("Rejected session cookie with an invalid signature")
            return None

        session = _parse_payload(payload)
        if session is None:
            _logger.warning("Rejected malformed session cookie")
            return None
        if session.expires < self.clock():
            _logger.info(
                "Session expired: code=%s", mask_sponsor_code(session.sponsor_code)
            )
            return None
        return session

    def verify(self, jar: CookieJar) -> Sponsorship | None:
        """Return the live sponsorship behind the session, if still usable."""
        session = self.read(jar)
        if session is None:
            return None
        sponsorship = self.repository.find_active_by_code(session.sponsor_code)
        if sponsorship is None or not sponsorship.can_sign_in:
            _logger.info(
                "Session rejected, sponsorship no longer active: code=%s",
                mask_sponsor_code(session.sponsor_code),
            )
            return None
        return sponsorship

    def require_auth(self, jar: CookieJar) -> Sponsorship:
        """Return the live sponsorship or raise AuthenticationError."""
        sponsorship = self.verify(jar)
        if sponsorship is None:
            raise AuthenticationError(SESSION_EXPIRED)
        return sponsorship

    def verify_for_code(self, jar: CookieJar, sponsor_code: str) -> bool:
        """Return true only for a valid session bound to exactly this code."""
        session = self.read(jar)
        if session is None:
            return False
        if session.sponsor_code != sponsor_code:
            _logger.warning(
                "Session code mismatch: session=%s requested=%s",
                mask_sponsor_code(session.sponsor_code),
                mask_sponsor_code(sponsor_code),
            )
            return False
        return True

    def clear(self, jar: CookieJar) -> None:
        """Delete the session cookie."""
        jar.delete_cookie(SESSION_COOKIE_NAME, path=_COOKIE_PATH)
        _logger.info("Session cleared")


def _parse_payload(payload: object) -> SessionData | None:
    if not isinstance(payload, dict):
        return None
    email = payload.get("email")
    sponsor_code = payload.get("sponsorCode")
    expires_raw = payload.get("expires")
    if not all(isinstance(value, str) for value in (email, sponsor_code, expires_raw)):
        return None
    try:
        expires = datetime.fromisoformat(expires_raw)
    except ValueError:
        return None
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=UTC)
    return SessionData(email=email, sponsor_code=sponsor_code, expires=expires)
