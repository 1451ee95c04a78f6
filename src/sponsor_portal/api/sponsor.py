"""Sponsor-facing endpoints: sign-in, profile and updates."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response

from sponsor_portal.api.cookies import StarletteCookieJar
from sponsor_portal.api.dependencies import (
    get_container,
    rate_limited,
    read_json_body,
    require_sponsor,
    require_sponsor_for_code,
)
from sponsor_portal.api.models import VerifyRequest
from sponsor_portal.app_logging import mask_email, mask_sponsor_code
from sponsor_portal.domain.fields import child_profile_to_api, sponsor_update_to_api
from sponsor_portal.domain.sponsorships import (  # noqa: TC001
    Sponsorship,
    child_profile,
)
from sponsor_portal.errors import INVALID_CREDENTIALS, AuthenticationError
from sponsor_portal.services.rate_limit import Endpoint
from sponsor_portal.validation import validate_email, validate_sponsor_code

router = APIRouter(prefix="/sponsor", tags=["sponsor"])

_logger = logging.getLogger(__name__)


@router.post("/verify", dependencies=[Depends(rate_limited(Endpoint.LOGIN))])
async def verify_sponsor(request: Request, response: Response) -> dict[str, object]:
    """Check sponsor credentials and start a session."""
    container = get_container(request)
    body = await read_json_body(request, VerifyRequest)
    email = validate_email(body.email)
    sponsor_code = validate_sponsor_code(body.sponsor_code)

    sponsorship = container.credential_verifier.verify(email, sponsor_code)
    if sponsorship is None:
        _logger.info(
            "Sponsor sign-in failed: email=%s code=%s",
            mask_email(email),
            mask_sponsor_code(sponsor_code),
        )
        raise AuthenticationError(INVALID_CREDENTIALS)

    container.session_service.issue(sponsorship, StarletteCookieJar(request, response))
    _logger.info(
        "Sponsor signed in: email=%s code=%s",
        mask_email(email),
        mask_sponsor_code(sponsorship.sponsor_code),
    )
    return {
        "success": True,
        "sponsorCode": sponsorship.sponsor_code,
        "name": sponsorship.sponsor_name or "",
    }


@router.post("/logout")
async def logout(request: Request, response: Response) -> dict[str, bool]:
    """Clear the session cookie."""
    container = get_container(request)
    container.session_service.clear(StarletteCookieJar(request, response))
    return {"success": True}


@router.get("/me")
async def current_sponsor(
    request: Request, sponsorship: Sponsorship = Depends(require_sponsor)
) -> dict[str, object]:
    """Return the signed-in sponsor's summary and child profile."""
    container = get_container(request)
    latest = container.update_service.most_recent_for_child(sponsorship.child_id)
    return {
        "sponsorCode": sponsorship.sponsor_code,
        "email": sponsorship.sponsor_email,
        "name": sponsorship.sponsor_name or "",
        "child": child_profile_to_api(child_profile(sponsorship)),
        "lastRequestAt": _isoformat(sponsorship.last_request_at),
        "nextRequestEligibleAt": _isoformat(sponsorship.next_request_eligible_at),
        "lastUpdatePublishedAt": _isoformat(latest.published_at if latest else None),
    }


@router.get("/{sponsor_code}/updates")
async def list_updates(
    request: Request, sponsorship: Sponsorship = Depends(require_sponsor_for_code)
) -> dict[str, object]:
    """Return the published updates for the sponsor's child."""
    container = get_container(request)
    updates = container.update_service.list_for_child(sponsorship.child_id)
    return {"updates": [sponsor_update_to_api(update) for update in updates]}


@router.post(
    "/{sponsor_code}/request-update",
    dependencies=[Depends(rate_limited(Endpoint.UPDATE_REQUEST))],
)
async def request_update(
    request: Request, sponsorship: Sponsorship = Depends(require_sponsor_for_code)
) -> dict[str, object]:
    """Ask the field team for a new update, subject to the cooldown."""
    container = get_container(request)
    record = container.update_service.request_update(sponsorship.sponsor_code)
    return {
        "success": True,
        "updateId": str(record.id),
        "requestedAt": _isoformat(record.requested_at),
    }


def _isoformat(value: object) -> str | None:
    return value.isoformat() if value is not None else None
