"""Domain models for donor-to-child sponsorships."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sponsor_portal.domain.models import PhotoRef


class AuthStatus(str, Enum):
    """Whether the sponsor may sign in."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"


class SponsorshipStatus(str, Enum):
    """Lifecycle of the sponsorship itself."""

    ACTIVE = "Active"
    PAUSED = "Paused"
    ENDED = "Ended"
    AWAITING_SPONSOR = "Awaiting Sponsor"


@dataclass(frozen=True)
class Sponsorship:
    """Represents a sponsorship row."""

    id: UUID
    sponsor_code: str
    sponsor_email: str
    child_id: str
    child_display_name: str
    auth_status: AuthStatus
    visible_to_sponsor: bool
    status: SponsorshipStatus | None = None
    sponsor_name: str | None = None
    child_photo: tuple[PhotoRef, ...] = ()
    child_age: str | None = None
    child_location: str | None = None
    sponsorship_start_date: date | None = None
    last_request_at: datetime | None = None
    next_request_eligible_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def can_sign_in(self) -> bool:
        """Only active, sponsor-visible sponsorships may hold a session."""
        return self.auth_status is AuthStatus.ACTIVE and self.visible_to_sponsor is True


@dataclass(frozen=True)
class ChildProfile:
    """Sponsor-facing view of the sponsored child."""

    id: str
    display_name: str
    age: str | None
    location: str | None
    photo: PhotoRef | None
    sponsorship_start_date: date | None


def child_profile(sponsorship: Sponsorship) -> ChildProfile:
    """Project a sponsorship onto the child profile shown to sponsors."""
    return ChildProfile(
        id=sponsorship.child_id,
        display_name=sponsorship.child_display_name,
        age=sponsorship.child_age,
        location=sponsorship.child_location,
        photo=sponsorship.child_photo[0] if sponsorship.child_photo else None,
        sponsorship_start_date=sponsorship.sponsorship_start_date,
    )
