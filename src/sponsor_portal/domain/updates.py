"""Domain models for child updates and their review state."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from sponsor_portal.domain.models import PhotoRef


class UpdateType(str, Enum):
    """Kinds of update the field team can send."""

    PROGRESS_REPORT = "Progress Report"
    PHOTO_UPDATE = "Photo Update"
    SPECIAL_NOTE = "Special Note"
    HOLIDAY_GREETING = "Holiday Greeting"
    MILESTONE = "Milestone"


class UpdateStatus(str, Enum):
    """Review states of an update."""

    DRAFT = "Draft"
    PENDING_REVIEW = "Pending Review"
    PUBLISHED = "Published"
    REJECTED = "Rejected"
    NEEDS_CORRECTION = "Needs Correction"


CORRECTABLE_STATUSES = frozenset({UpdateStatus.REJECTED, UpdateStatus.NEEDS_CORRECTION})


@dataclass(frozen=True)
class UpdateRecord:
    """Represents a persisted update row."""

    id: UUID
    child_id: str
    update_type: UpdateType
    title: str
    content: str
    status: UpdateStatus
    visible_to_sponsor: bool
    sponsor_code: str | None = None
    photos: tuple[PhotoRef, ...] = ()
    requested_by_sponsor: bool = False
    requested_at: datetime | None = None
    published_at: datetime | None = None
    submitted_by: str | None = None
    submitted_at: datetime | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    correction_notes: str | None = None
    supersedes_update: UUID | None = None
    superseded_by: UUID | None = None
    created_at: datetime | None = None

    @property
    def is_visible(self) -> bool:
        """Visible to the sponsor only once published."""
        return self.status is UpdateStatus.PUBLISHED and self.visible_to_sponsor


@dataclass(frozen=True)
class NewUpdate:
    """Payload for inserting an update; new rows are never sponsor-visible."""

    child_id: str
    update_type: UpdateType
    title: str
    content: str
    status: UpdateStatus
    sponsor_code: str | None = None
    photos: tuple[PhotoRef, ...] = ()
    requested_by_sponsor: bool = False
    requested_at: datetime | None = None
    submitted_by: str | None = None
    submitted_at: datetime | None = None
    supersedes_update: UUID | None = None


@dataclass(frozen=True)
class ReviewStamp:
    """Fields written by an admin review transition."""

    status: UpdateStatus
    reviewed_at: datetime
    reviewed_by: str | None = None
    published_at: datetime | None = None
    rejection_reason: str | None = None
    correction_notes: str | None = None
