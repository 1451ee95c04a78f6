"""Explicit column <-> API field name tables.

Columns are the persisted snake_case names; API fields are the camelCase
names used in JSON responses and admin form posts. Each table must be
one-to-one, which is checked when this module is imported.
"""

from dataclasses import fields
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sponsor_portal.domain.models import PhotoRef
from sponsor_portal.domain.sponsorships import ChildProfile, Sponsorship
from sponsor_portal.domain.updates import UpdateRecord

SPONSORSHIP_API_FIELDS: dict[str, str] = {
    "id": "id",
    "sponsor_code": "sponsorCode",
    "sponsor_email": "sponsorEmail",
    "sponsor_name": "sponsorName",
    "child_id": "childId",
    "child_display_name": "childDisplayName",
    "child_photo": "childPhoto",
    "child_age": "childAge",
    "child_location": "childLocation",
    "sponsorship_start_date": "sponsorshipStartDate",
    "auth_status": "authStatus",
    "status": "status",
    "visible_to_sponsor": "visibleToSponsor",
    "last_request_at": "lastRequestAt",
    "next_request_eligible_at": "nextRequestEligibleAt",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

UPDATE_API_FIELDS: dict[str, str] = {
    "id": "id",
    "child_id": "childId",
    "sponsor_code": "sponsorCode",
    "update_type": "updateType",
    "title": "title",
    "content": "content",
    "photos": "photos",
    "status": "status",
    "visible_to_sponsor": "visibleToSponsor",
    "requested_by_sponsor": "requestedBySponsor",
    "requested_at": "requestedAt",
    "published_at": "publishedAt",
    "submitted_by": "submittedBy",
    "submitted_at": "submittedAt",
    "reviewed_by": "reviewedBy",
    "reviewed_at": "reviewedAt",
    "rejection_reason": "rejectionReason",
    "correction_notes": "correctionNotes",
    "supersedes_update": "supersedesUpdate",
    "superseded_by": "supersededBy",
    "created_at": "createdAt",
}

CHILD_PROFILE_API_FIELDS: dict[str, str] = {
    "id": "id",
    "display_name": "displayName",
    "age": "age",
    "location": "location",
    "photo": "photo",
    "sponsorship_start_date": "sponsorshipStartDate",
}

_SPONSOR_UPDATE_FIELDS = (
    "id",
    "updateType",
    "title",
    "content",
    "photos",
    "publishedAt",
    "submittedBy",
)


def _invert(mapping: dict[str, str], name: str) -> dict[str, str]:
    inverse = {api_field: column for column, api_field in mapping.items()}
    if len(inverse) != len(mapping):
        raise ValueError(f"{name} field table is not one-to-one")
    return inverse


SPONSORSHIP_COLUMNS = _invert(SPONSORSHIP_API_FIELDS, "sponsorship")
UPDATE_COLUMNS = _invert(UPDATE_API_FIELDS, "update")
CHILD_PROFILE_COLUMNS = _invert(CHILD_PROFILE_API_FIELDS, "child profile")


def to_api(columns: dict[str, object], mapping: dict[str, str]) -> dict[str, object]:
    """Rename column keys to API field names; unknown columns are an error."""
    return {mapping[column]: value for column, value in columns.items()}


def from_api(payload: dict[str, object], inverse: dict[str, str]) -> dict[str, object]:
    """Rename known API field names to columns, dropping anything else."""
    return {inverse[key]: value for key, value in payload.items() if key in inverse}


def sponsorship_to_api(sponsorship: Sponsorship) -> dict[str, object]:
    """Serialize a sponsorship for admin responses."""
    return to_api(_columns(sponsorship), SPONSORSHIP_API_FIELDS)


def update_to_api(update: UpdateRecord) -> dict[str, object]:
    """Serialize an update with every review field, for admin responses."""
    return to_api(_columns(update), UPDATE_API_FIELDS)


def sponsor_update_to_api(update: UpdateRecord) -> dict[str, object]:
    """Serialize a published update with only the fields a sponsor sees."""
    full = update_to_api(update)
    return {key: full[key] for key in _SPONSOR_UPDATE_FIELDS}


def child_profile_to_api(profile: ChildProfile) -> dict[str, object]:
    """Serialize a child profile."""
    return to_api(_columns(profile), CHILD_PROFILE_API_FIELDS)


def _columns(record: object) -> dict[str, object]:
    return {field.name: _plain(getattr(record, field.name)) for field in fields(record)}


def _plain(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, PhotoRef):
        return {"url": value.url, "filename": value.filename}
    if isinstance(value, tuple):
        return [_plain(item) for item in value]
    return value
