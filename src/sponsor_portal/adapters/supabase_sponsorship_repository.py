"""Supabase-backed sponsorship repository."""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from supabase import Client

from sponsor_portal.adapters.supabase_rows import (
    isoformat_or_none,
    parse_date,
    parse_datetime,
    parse_photos,
    store_errors,
)
from sponsor_portal.app_logging import mask_email, mask_sponsor_code
from sponsor_portal.domain.fields import SPONSORSHIP_API_FIELDS
from sponsor_portal.domain.sponsorships import (
    AuthStatus,
    Sponsorship,
    SponsorshipStatus,
)
from sponsor_portal.services.sponsorships import SponsorshipRepository

_TABLE = "sponsorships"
_SELECT = ", ".join(SPONSORSHIP_API_FIELDS)


@dataclass
class SupabaseSponsorshipRepository(SponsorshipRepository):
    """Supabase implementation for sponsorships."""

    client: Client

    def find_by_credentials(self, email: str, sponsor_code: str) -> Sponsorship | None:
        """Return the active, visible sponsorship matching email and code."""
        with store_errors(
            _TABLE,
            "find_by_credentials",
            email=mask_email(email),
            code=mask_sponsor_code(sponsor_code),
        ):
            response = (
                self.client.table(_TABLE)
                .select(_SELECT)
                .eq("sponsor_email", email)
                .eq("sponsor_code", sponsor_code)
                .eq("auth_status", AuthStatus.ACTIVE.value)
                .eq("visible_to_sponsor", True)
                .limit(1)
                .execute()
            )
        return _first(response.data)

    def find_active_by_code(self, sponsor_code: str) -> Sponsorship | None:
        """Return the active, visible sponsorship for a code."""
        with store_errors(
            _TABLE, "find_active_by_code", code=mask_sponsor_code(sponsor_code)
        ):
            response = (
                self.client.table(_TABLE)
                .select(_SELECT)
                .eq("sponsor_code", sponsor_code)
                .eq("auth_status", AuthStatus.ACTIVE.value)
                .eq("visible_to_sponsor", True)
                .limit(1)
                .execute()
            )
        return _first(response.data)

    def find_by_code(self, sponsor_code: str) -> Sponsorship | None:
        """Return the sponsorship for a code in any status."""
        with store_errors(_TABLE, "find_by_code", code=mask_sponsor_code(sponsor_code)):
            response = (
                self.client.table(_TABLE)
                .select(_SELECT)
                .eq("sponsor_code", sponsor_code)
                .limit(1)
                .execute()
            )
        return _first(response.data)

    def get_by_id(self, sponsorship_id: UUID) -> Sponsorship | None:
        """Return a sponsorship by row id."""
        with store_errors(_TABLE, "get_by_id", sponsorship_id=str(sponsorship_id)):
            response = (
                self.client.table(_TABLE)
                .select(_SELECT)
                .eq("id", str(sponsorship_id))
                .limit(1)
                .execute()
            )
        return _first(response.data)

    def list_active(self) -> list[Sponsorship]:
        """Return active, visible sponsorships ordered by code."""
        with store_errors(_TABLE, "list_active"):
            response = (
                self.client.table(_TABLE)
                .select(_SELECT)
                .eq("auth_status", AuthStatus.ACTIVE.value)
                .eq("visible_to_sponsor", True)
                .order("sponsor_code")
                .execute()
            )
        return [_to_sponsorship(row) for row in response.data or []]

    def list_awaiting_sponsor(self) -> list[Sponsorship]:
        """Return sponsorships waiting for a sponsor, ordered by child name."""
        with store_errors(_TABLE, "list_awaiting_sponsor"):
            response = (
                self.client.table(_TABLE)
                .select(_SELECT)
                .eq("status", SponsorshipStatus.AWAITING_SPONSOR.value)
                .order("child_display_name")
                .execute()
            )
        return [_to_sponsorship(row) for row in response.data or []]

    def code_exists(self, sponsor_code: str) -> bool:
        """Return true when a sponsorship already uses the code."""
        with store_errors(_TABLE, "code_exists", code=mask_sponsor_code(sponsor_code)):
            response = (
                self.client.table(_TABLE)
                .select("id")
                .eq("sponsor_code", sponsor_code)
                .limit(1)
                .execute()
            )
        return bool(response.data)

    def claim_request_slot(
        self, sponsorship_id: UUID, now: datetime, next_eligible_at: datetime
    ) -> bool:
        """Record a request in one conditional UPDATE while the slot is open."""
        now_iso = now.isoformat()
        with store_errors(
            _TABLE, "claim_request_slot", sponsorship_id=str(sponsorship_id)
        ):
            response = (
                self.client.table(_TABLE)
                .update(
                    {
                        "last_request_at": now_iso,
                        "next_request_eligible_at": next_eligible_at.isoformat(),
                    }
                )
                .eq("id", str(sponsorship_id))
                .or_(
                    "next_request_eligible_at.is.null,"
                    f'next_request_eligible_at.lte."{now_iso}"'
                )
                .execute()
            )
        return bool(response.data)

    def release_request_slot(
        self,
        sponsorship_id: UUID,
        claimed_next_eligible_at: datetime,
        previous_last_request_at: datetime | None,
        previous_next_eligible_at: datetime | None,
    ) -> None:
        """Restore the previous window if our claim is still the latest."""
        with store_errors(
            _TABLE, "release_request_slot", sponsorship_id=str(sponsorship_id)
        ):
            self.client.table(_TABLE).update(
                {
                    "last_request_at": isoformat_or_none(previous_last_request_at),
                    "next_request_eligible_at": isoformat_or_none(
                        previous_next_eligible_at
                    ),
                }
            ).eq("id", str(sponsorship_id)).eq(
                "next_request_eligible_at", claimed_next_eligible_at.isoformat()
            ).execute()

    def assign_sponsor(  # noqa: PLR0913
        self,
        sponsorship_id: UUID,
        sponsor_code: str,
        sponsor_email: str,
        sponsor_name: str | None,
        start_date: date,
    ) -> Sponsorship | None:
        """Activate an awaiting sponsorship for a new sponsor."""
        payload: dict[str, object] = {
            "sponsor_code": sponsor_code,
            "sponsor_email": sponsor_email,
            "auth_status": AuthStatus.ACTIVE.value,
            "status": SponsorshipStatus.ACTIVE.value,
            "visible_to_sponsor": True,
            "sponsorship_start_date": start_date.isoformat(),
        }
        if sponsor_name:
            payload["sponsor_name"] = sponsor_name
        with store_errors(
            _TABLE,
            "assign_sponsor",
            sponsorship_id=str(sponsorship_id),
            email=mask_email(sponsor_email),
        ):
            response = (
                self.client.table(_TABLE)
                .update(payload)
                .eq("id", str(sponsorship_id))
                .eq("status", SponsorshipStatus.AWAITING_SPONSOR.value)
                .execute()
            )
        return _first(response.data)


def _first(rows: list[dict[str, object]] | None) -> Sponsorship | None:
    if not rows:
        return None
    return _to_sponsorship(rows[0])


def _to_sponsorship(row: dict[str, object]) -> Sponsorship:
    status = row.get("status")
    return Sponsorship(
        id=UUID(str(row["id"])),
        sponsor_code=str(row.get("sponsor_code") or ""),
        sponsor_email=str(row.get("sponsor_email") or ""),
        sponsor_name=row.get("sponsor_name"),
        child_id=str(row.get("child_id") or ""),
        child_display_name=str(row.get("child_display_name") or ""),
        child_photo=parse_photos(row.get("child_photo")),
        child_age=row.get("child_age"),
        child_location=row.get("child_location"),
        sponsorship_start_date=parse_date(row.get("sponsorship_start_date")),
        auth_status=AuthStatus(row["auth_status"]),
        status=SponsorshipStatus(status) if status else None,
        visible_to_sponsor=row.get("visible_to_sponsor") is True,
        last_request_at=parse_datetime(row.get("last_request_at")),
        next_request_eligible_at=parse_datetime(row.get("next_request_eligible_at")),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
    )
