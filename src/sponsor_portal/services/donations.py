"""Donation checkout through an external payment gateway."""

import logging
from dataclasses import dataclass
from typing import Protocol

from sponsor_portal.app_logging import mask_email
from sponsor_portal.errors import PortalError
from sponsor_portal.validation import (
    MAX_NAME_LENGTH,
    sanitize_string,
    validate_donation_amount,
    validate_email,
)

_logger = logging.getLogger(__name__)

PAYMENT_CONFIG_ERROR = "Payment system configuration error. Please contact support."


@dataclass(frozen=True)
class CheckoutRequest:
    """Validated donation ready to hand to the gateway."""

    amount_cents: int
    donor_name: str
    monthly: bool
    success_url: str
    cancel_url: str
    email: str | None = None


@dataclass(frozen=True)
class CheckoutSession:
    """Gateway-hosted checkout the donor is redirected to."""

    id: str
    url: str


class CheckoutGateway(Protocol):
    """Interface for creating hosted checkout sessions."""

    async def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        """Create a checkout session; raise GatewayError on failure."""


@dataclass
class DonationService:
    """Validates donation input and starts a hosted checkout."""

    gateway: CheckoutGateway | None
    site_url: str

    async def create_checkout(
        self,
        amount: object,
        email: object = None,
        name: object = None,
        monthly: bool = False,
    ) -> CheckoutSession:
        """Validate the donation and return the gateway session."""
        amount_cents = validate_donation_amount(amount)
        donor_email = validate_email(email) if email else None
        donor_name = sanitize_string(name)[:MAX_NAME_LENGTH] or "Anonymous"
        if self.gateway is None:
            _logger.error("Checkout requested but no payment gateway is configured")
            raise PortalError(PAYMENT_CONFIG_ERROR)

        base_url = self.site_url.rstrip("/")
        session = await self.gateway.create_checkout_session(
            CheckoutRequest(
                amount_cents=amount_cents,
                donor_name=donor_name,
                monthly=monthly,
                success_url=(
                    f"{base_url}/donate/success?session_id={{CHECKOUT_SESSION_ID}}"
                ),
                cancel_url=f"{base_url}/#donate",
                email=donor_email,
            )
        )
        _logger.info(
            "Checkout session created: session_id=%s monthly=%s email=%s",
            session.id,
            monthly,
            mask_email(donor_email),
        )
        return session
