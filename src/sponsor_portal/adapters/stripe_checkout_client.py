"""Stripe Checkout gateway backed by the Stripe SDK."""

import logging
from dataclasses import dataclass
from typing import Any

import stripe

from sponsor_portal.errors import GatewayError
from sponsor_portal.services.donations import (
    CheckoutGateway,
    CheckoutRequest,
    CheckoutSession,
)

_logger = logging.getLogger(__name__)

CHECKOUT_FAILURE = "Failed to create checkout session"


@dataclass
class StripeCheckoutClient(CheckoutGateway):
    """Creates hosted checkout sessions through ``stripe.StripeClient``."""

    client: stripe.StripeClient
    http_client: stripe.HTTPClient | None = None

    @classmethod
    def create(cls, secret_key: str, base_url: str) -> "StripeCheckoutClient":
        """Create a Stripe client that sends requests over httpx."""
        http_client = stripe.HTTPXClient(timeout=15)
        return cls(
            client=stripe.StripeClient(
                secret_key,
                base_addresses={"api": base_url.rstrip("/")},
                http_client=http_client,
            ),
            http_client=http_client,
        )

    async def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        """Create a hosted checkout session for a one-time or monthly gift."""
        try:
            session = await self.client.checkout.sessions.create_async(
                params=checkout_params(request)
            )
        except stripe.StripeError as exc:
            _logger.error(
                "Stripe checkout request failed: error_type=%s status=%s",
                type(exc).__name__,
                exc.http_status,
            )
            raise GatewayError(CHECKOUT_FAILURE) from exc

        session_id = getattr(session, "id", None)
        session_url = getattr(session, "url", None)
        if not isinstance(session_id, str) or not isinstance(session_url, str):
            _logger.error("Stripe checkout response missing id or url")
            raise GatewayError(CHECKOUT_FAILURE)
        return CheckoutSession(id=session_id, url=session_url)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self.http_client is not None:
            await self.http_client.close_async()


def checkout_params(request: CheckoutRequest) -> dict[str, Any]:
    """Build the Checkout Session parameters for a donation."""
    dollars = _format_dollars(request.amount_cents)
    donation_type = "monthly" if request.monthly else "one-time"
    if request.monthly:
        product_name = "Monthly Donation to Be A Number, International"
        description = f"Thank you for changing lives. Your monthly gift of ${dollars}"
    else:
        product_name = "Donation to Be A Number, International"
        description = f"Thank you for changing lives. Your contribution of ${dollars}"
    description += (
        " supports sustainable community systems in Northern Uganda: healthcare,"
        " education, workforce development and economic empowerment."
    )
    price_data: dict[str, Any] = {
        "currency": "usd",
        "unit_amount": request.amount_cents,
        "product_data": {"name": product_name, "description": description},
    }
    params: dict[str, Any] = {
        "mode": "subscription" if request.monthly else "payment",
        "payment_method_types": ["card"],
        "success_url": request.success_url,
        "cancel_url": request.cancel_url,
        "line_items": [{"quantity": 1, "price_data": price_data}],
        "metadata": {"donor_name": request.donor_name, "donation_type": donation_type},
        "allow_promotion_codes": False,
        "billing_address_collection": "required",
        "custom_fields": [
            {
                "key": "organization",
                "label": {
                    "type": "custom",
                    "custom": "Organization Name (if applicable)",
                },
                "type": "text",
                "optional": True,
            }
        ],
    }
    if request.monthly:
        price_data["recurring"] = {"interval": "month"}
        params["subscription_data"] = {
            "metadata": {"donation_type": "monthly", "amount": dollars}
        }
    if request.email:
        params["customer_email"] = request.email
    return params


def _format_dollars(amount_cents: int) -> str:
    whole, cents = divmod(amount_cents, 100)
    return str(whole) if cents == 0 else f"{whole}.{cents:02d}"
