"""Request guards shared by the routers."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from sponsor_portal.api.cookies import StarletteCookieJar
from sponsor_portal.domain.sponsorships import Sponsorship  # noqa: TC001
from sponsor_portal.errors import (
    INVALID_REQUEST,
    TOO_MANY_REQUESTS,
    UNAUTHORIZED,
    AuthenticationError,
    ThrottledError,
    ValidationError,
)
from sponsor_portal.validation import validate_sponsor_code

if TYPE_CHECKING:
    from sponsor_portal.containers import AppContainer
    from sponsor_portal.services.rate_limit import Endpoint

_logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def client_identity(request: Request, *, trust_proxy_headers: bool = False) -> str:
    """Client address for rate limiting.

    Forwarding headers are client-controlled, so they are only read when the
    app is deployed behind a proxy that overwrites them.
    """
    if not trust_proxy_headers:
        return request.client.host if request.client is not None else "unknown"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def rate_limited(endpoint: Endpoint) -> Callable[[Request], Awaitable[None]]:
    """Build a dependency that counts the request against an endpoint limit."""

    async def check_rate_limit(request: Request) -> None:
        container = get_container(request)
        decision = container.rate_limiter.check(
            client_identity(
                request, trust_proxy_headers=container.settings.trust_proxy_headers
            ),
            endpoint,
        )
        if not decision.allowed:
            _logger.warning(
                "Rate limit exceeded: endpoint=%s retry_after=%s",
                endpoint.value,
                decision.retry_after_seconds,
            )
            raise ThrottledError(
                TOO_MANY_REQUESTS, retry_after_seconds=decision.retry_after_seconds
            )

    return check_rate_limit


async def require_admin(request: Request) -> None:
    """Ensure requests carry a valid admin token header."""
    container = get_container(request)
    if not container.admin_verifier.verify_headers(request.headers):
        raise AuthenticationError(UNAUTHORIZED)


async def require_sponsor(request: Request) -> Sponsorship:
    """Return the live sponsorship behind the session cookie."""
    container = get_container(request)
    return container.session_service.require_auth(StarletteCookieJar(request))


async def require_sponsor_for_code(sponsor_code: str, request: Request) -> Sponsorship:
    """Require a live session bound to exactly the code in the path."""
    container = get_container(request)
    jar = StarletteCookieJar(request)
    code = validate_sponsor_code(sponsor_code)
    if not container.session_service.verify_for_code(jar, code):
        raise AuthenticationError(UNAUTHORIZED)
    return container.session_service.require_auth(jar)


async def read_json_body(request: Request, model: type[ModelT]) -> ModelT:
    """Parse the JSON body inside the handler, after the route's guards ran."""
    try:
        payload = await request.json()
    except ValueError:
        _logger.info("Rejected malformed JSON body: path=%s", request.url.path)
        raise ValidationError(INVALID_REQUEST) from None
    try:
        return model.model_validate(payload)
    except ModelValidationError as exc:
        _logger.info(
            "Rejected malformed request: path=%s errors=%s",
            request.url.path,
            exc.error_count(),
        )
        raise ValidationError(INVALID_REQUEST) from None
