"""Public endpoints: the sponsorship catalog and donation checkout."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from sponsor_portal.api.dependencies import (
    get_container,
    rate_limited,
    read_json_body,
)
from sponsor_portal.api.models import CheckoutRequestBody
from sponsor_portal.domain.fields import child_profile_to_api
from sponsor_portal.services.rate_limit import Endpoint

router = APIRouter(tags=["public"])


@router.get("/children/available")
async def available_children(request: Request) -> dict[str, object]:
    """Return children still waiting for a sponsor."""
    container = get_container(request)
    children = container.sponsorship_service.list_available_children()
    return {"children": [child_profile_to_api(child) for child in children]}


@router.post("/create-checkout", dependencies=[Depends(rate_limited(Endpoint.CHECKOUT))])
async def create_checkout(request: Request) -> dict[str, str]:
    """Start a hosted checkout for a one-time or monthly donation."""
    container = get_container(request)
    body = await read_json_body(request, CheckoutRequestBody)
    session = await container.donation_service.create_checkout(
        amount=body.amount,
        email=body.email,
        name=body.name,
        monthly=body.is_monthly is True,
    )
    return {"sessionId": session.id, "url": session.url}
