"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from sponsor_portal.adapters.stripe_checkout_client import StripeCheckoutClient
from sponsor_portal.adapters.supabase_sponsorship_repository import (
    SupabaseSponsorshipRepository,
)
from sponsor_portal.adapters.supabase_update_repository import (
    SupabaseUpdateRepository,
)
from sponsor_portal.config import Settings, parse_admin_token
from sponsor_portal.services.admin_auth import AdminTokenVerifier
from sponsor_portal.services.credentials import CredentialVerifier
from sponsor_portal.services.donations import DonationService
from sponsor_portal.services.rate_limit import Endpoint, RateLimiter, RateLimitRule
from sponsor_portal.services.sessions import SessionService
from sponsor_portal.services.sponsorships import SponsorshipService
from sponsor_portal.services.throttle import RequestThrottle
from sponsor_portal.services.updates import UpdateService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    sponsorship_service: SponsorshipService
    credential_verifier: CredentialVerifier
    session_service: SessionService
    admin_verifier: AdminTokenVerifier
    update_service: UpdateService
    rate_limiter: RateLimiter
    donation_service: DonationService
    close_resources: Callable[[], Awaitable[None]]


def rate_limit_rules(settings: Settings) -> dict[Endpoint, RateLimitRule]:
    """Map each endpoint class to its configured limit."""
    return {
        Endpoint.LOGIN: RateLimitRule(
            settings.login_rate_limit, settings.login_rate_window_seconds
        ),
        Endpoint.CHECKOUT: RateLimitRule(
            settings.checkout_rate_limit, settings.checkout_rate_window_seconds
        ),
        Endpoint.UPDATE_SUBMISSION: RateLimitRule(
            settings.submission_rate_limit, settings.submission_rate_window_seconds
        ),
        Endpoint.UPDATE_REQUEST: RateLimitRule(
            settings.update_request_rate_limit,
            settings.update_request_rate_window_seconds,
        ),
    }


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    sponsorship_repository = SupabaseSponsorshipRepository(supabase_client)
    update_repository = SupabaseUpdateRepository(supabase_client)
    throttle = RequestThrottle(
        repository=sponsorship_repository,
        cooldown=timedelta(days=resolved_settings.update_request_cooldown_days),
    )
    stripe_client = (
        StripeCheckoutClient.create(
            secret_key=resolved_settings.stripe_secret_key,
            base_url=resolved_settings.stripe_api_base,
        )
        if resolved_settings.stripe_secret_key
        else None
    )

    async def close_resources() -> None:
        if stripe_client is not None:
            await stripe_client.close()

    return AppContainer(
        settings=resolved_settings,
        sponsorship_service=SponsorshipService(
            sponsorship_repository,
            code_prefix=resolved_settings.sponsor_code_prefix,
        ),
        credential_verifier=CredentialVerifier(sponsorship_repository),
        session_service=SessionService(
            sponsorship_repository,
            secret=resolved_settings.session_secret,
            max_age_days=resolved_settings.session_max_age_days,
            secure_cookies=resolved_settings.cookie_secure,
        ),
        admin_verifier=AdminTokenVerifier(
            parse_admin_token(resolved_settings.admin_api_token)
        ),
        update_service=UpdateService(
            repository=update_repository,
            sponsorship_repository=sponsorship_repository,
            throttle=throttle,
        ),
        rate_limiter=RateLimiter(rate_limit_rules(resolved_settings)),
        donation_service=DonationService(
            gateway=stripe_client, site_url=resolved_settings.site_url
        ),
        close_resources=close_resources,
    )
