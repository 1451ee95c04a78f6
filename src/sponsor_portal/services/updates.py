"""Update review workflow.

States and admin transitions::

    Draft -> Pending Review -> Published
                            -> Rejected
                            -> Needs Correction

Rejected and Needs Correction are terminal for their row. A correction is a
new Pending Review row whose ``supersedes_update`` points at the old row,
while the old row's ``superseded_by`` points forward; both links are written
in one store transaction.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from sponsor_portal.app_logging import mask_sponsor_code
from sponsor_portal.domain.models import PhotoRef
from sponsor_portal.domain.updates import (
    CORRECTABLE_STATUSES,
    NewUpdate,
    ReviewStamp,
    UpdateRecord,
    UpdateStatus,
    UpdateType,
)
from sponsor_portal.errors import (
    InvalidTransitionError,
    NotFoundError,
    StoreError,
    ThrottledError,
)
from sponsor_portal.services.sponsorships import SponsorshipRepository
from sponsor_portal.services.throttle import RequestThrottle

_logger = logging.getLogger(__name__)

_REQUEST_TITLE = "Update Requested"
_REQUEST_CONTENT = "Sponsor requested a new update."


class UpdateRepository(Protocol):
    """Persistence interface for updates."""

    def create_update(self, update: NewUpdate) -> UpdateRecord:
        """Insert an update row and return it."""

    def get_update(self, update_id: UUID) -> UpdateRecord | None:
        """Return an update by id, if present."""

    def list_published_for_child(self, child_id: str) -> list[UpdateRecord]:
        """Return published, visible updates for a child, newest first."""

    def most_recent_published_for_child(self, child_id: str) -> UpdateRecord | None:
        """Return the latest published update for a child."""

    def list_by_status(self, status: UpdateStatus) -> list[UpdateRecord]:
        """Return updates in a status, newest first."""

    def apply_review(
        self, update_id: UUID, expected_status: UpdateStatus, stamp: ReviewStamp
    ) -> UpdateRecord | None:
        """Write the stamp only while the row is in ``expected_status``.

        Visibility is set to true exactly when the stamp publishes. Returns
        None when no row matched.
        """

    def create_correction(
        self, original_id: UUID, update: NewUpdate
    ) -> UpdateRecord | None:
        """Insert a superseding update and link the original in one transaction.

        Returns None when the original is missing, not correctable or already
        superseded.
        """


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class UpdateService:
    """Drives updates through review and enforces who sees what."""

    repository: UpdateRepository
    sponsorship_repository: SponsorshipRepository
    throttle: RequestThrottle
    clock: Callable[[], datetime] = field(default=_utcnow)

    def request_update(self, sponsor_code: str) -> UpdateRecord:
        """Create a sponsor-requested update if the cooldown allows it."""
        sponsorship = self.sponsorship_repository.find_active_by_code(sponsor_code)
        if sponsorship is None:
            raise NotFoundError("Sponsorship not found")

        now = self.clock()
        decision = self.throttle.check_and_record(sponsorship, now)
        if not decision.allowed:
            raise ThrottledError(
                _wait_message(decision.next_eligible_at, now),
                retry_after_seconds=decision.retry_after_seconds(now),
                next_eligible_at=decision.next_eligible_at,
            )

        try:
            record = self.repository.create_update(
                NewUpdate(
                    child_id=sponsorship.child_id,
                    sponsor_code=sponsorship.sponsor_code,
                    update_type=UpdateType.PROGRESS_REPORT,
                    title=_REQUEST_TITLE,
                    content=_REQUEST_CONTENT,
                    status=UpdateStatus.PENDING_REVIEW,
                    requested_by_sponsor=True,
                    requested_at=now,
                )
            )
        except StoreError:
            try:
                self.throttle.release(sponsorship, decision)
            except StoreError:
                _logger.exception(
                    "Failed to release request slot: code=%s",
                    mask_sponsor_code(sponsor_code),
                )
            raise

        _logger.info(
            "Update requested: code=%s update_id=%s",
            mask_sponsor_code(sponsor_code),
            record.id,
        )
        return record

    def submit_update(  # noqa: PLR0913
        self,
        sponsor_code: str,
        update_type: UpdateType,
        title: str,
        content: str,
        submitted_by: str,
        photos: tuple[PhotoRef, ...] = (),
        as_draft: bool = False,
    ) -> UpdateRecord:
        """Store a field-team update for the child behind a sponsor code."""
        sponsorship = self.sponsorship_repository.find_by_code(sponsor_code)
        if sponsorship is None or not sponsorship.child_id:
            raise NotFoundError("Child ID not found for this sponsor code")

        record = self.repository.create_update(
            NewUpdate(
                child_id=sponsorship.child_id,
                sponsor_code=sponsor_code,
                update_type=update_type,
                title=title,
                content=content,
                status=UpdateStatus.DRAFT if as_draft else UpdateStatus.PENDING_REVIEW,
                photos=photos,
                submitted_by=submitted_by,
                submitted_at=self.clock(),
            )
        )
        _logger.info(
            "Update submitted: update_id=%s child_id=%s status=%s",
            record.id,
            record.child_id,
            record.status.value,
        )
        return record

    def submit_draft(self, update_id: UUID, reviewed_by: str | None = None) -> UpdateRecord:
        """Move a draft into the review queue."""
        return self._transition(
            update_id,
            source=UpdateStatus.DRAFT,
            stamp=ReviewStamp(
                status=UpdateStatus.PENDING_REVIEW,
                reviewed_at=self.clock(),
                reviewed_by=reviewed_by,
            ),
        )

    def publish(self, update_id: UUID, reviewed_by: str | None = None) -> UpdateRecord:
        """Publish a pending update and make it visible to the sponsor."""
        now = self.clock()
        return self._transition(
            update_id,
            source=UpdateStatus.PENDING_REVIEW,
            stamp=ReviewStamp(
                status=UpdateStatus.PUBLISHED,
                reviewed_at=now,
                reviewed_by=reviewed_by,
                published_at=now,
            ),
        )

    def reject(
        self, update_id: UUID, reason: str, reviewed_by: str | None = None
    ) -> UpdateRecord:
        """Reject a pending update with a reason."""
        return self._transition(
            update_id,
            source=UpdateStatus.PENDING_REVIEW,
            stamp=ReviewStamp(
                status=UpdateStatus.REJECTED,
                reviewed_at=self.clock(),
                reviewed_by=reviewed_by,
                rejection_reason=reason,
            ),
        )

    def request_correction(
        self, update_id: UUID, notes: str, reviewed_by: str | None = None
    ) -> UpdateRecord:
        """Send a pending update back for correction."""
        return self._transition(
            update_id,
            source=UpdateStatus.PENDING_REVIEW,
            stamp=ReviewStamp(
                status=UpdateStatus.NEEDS_CORRECTION,
                reviewed_at=self.clock(),
                reviewed_by=reviewed_by,
                correction_notes=notes,
            ),
        )

    def create_correction(  # noqa: PLR0913
        self,
        update_id: UUID,
        title: str,
        content: str,
        submitted_by: str,
        update_type: UpdateType | None = None,
        photos: tuple[PhotoRef, ...] = (),
    ) -> UpdateRecord:
        """Create a pending resubmission that supersedes a rejected update."""
        original = self.get(update_id)
        if original.status not in CORRECTABLE_STATUSES:
            raise InvalidTransitionError(
                f"Only rejected updates or updates needing correction can be "
                f"corrected, not {original.status.value}"
            )
        if original.superseded_by is not None:
            raise InvalidTransitionError("Update has already been corrected")

        created = self.repository.create_correction(
            original.id,
            NewUpdate(
                child_id=original.child_id,
                sponsor_code=original.sponsor_code,
                update_type=update_type or original.update_type,
                title=title,
                content=content,
                status=UpdateStatus.PENDING_REVIEW,
                photos=photos,
                submitted_by=submitted_by,
                submitted_at=self.clock(),
                supersedes_update=original.id,
            ),
        )
        if created is None:
            raise InvalidTransitionError("Update has already been corrected")
        _logger.info("Correction created: original=%s new=%s", original.id, created.id)
        return created

    def get(self, update_id: UUID) -> UpdateRecord:
        """Return an update or raise NotFoundError."""
        record = self.repository.get_update(update_id)
        if record is None:
            raise NotFoundError("Update not found")
        return record

    def list_for_child(self, child_id: str) -> list[UpdateRecord]:
        """Return the updates a sponsor may see, newest first."""
        return [
            update
            for update in self.repository.list_published_for_child(child_id)
            if update.is_visible
        ]

    def most_recent_for_child(self, child_id: str) -> UpdateRecord | None:
        """Return the newest published update for a child."""
        return self.repository.most_recent_published_for_child(child_id)

    def list_pending(self) -> list[UpdateRecord]:
        """Return the admin review queue."""
        return self.repository.list_by_status(UpdateStatus.PENDING_REVIEW)

    def list_published(self) -> list[UpdateRecord]:
        """Return every published update, for overdue reporting."""
        return self.repository.list_by_status(UpdateStatus.PUBLISHED)

    def correction_chain(self, update_id: UUID) -> list[UpdateRecord]:
        """Return the full correction chain containing an update, oldest first."""
        current = self.get(update_id)
        visited = {current.id}
        while current.supersedes_update is not None:
            current = self._chain_link(current.supersedes_update, visited)

        chain = [current]
        visited = {current.id}
        while current.superseded_by is not None:
            current = self._chain_link(current.superseded_by, visited)
            chain.append(current)
        return chain

    def _chain_link(self, update_id: UUID, visited: set[UUID]) -> UpdateRecord:
        if update_id in visited:
            raise StoreError(
                operation="correction_chain",
                entity="updates",
                message="Correction chain contains a cycle",
            )
        visited.add(update_id)
        return self.get(update_id)

    def _transition(
        self, update_id: UUID, source: UpdateStatus, stamp: ReviewStamp
    ) -> UpdateRecord:
        current = self.get(update_id)
        if current.status is stamp.status:
            return current
        if current.status is not source:
            raise InvalidTransitionError(
                f"Cannot move an update from {current.status.value} "
                f"to {stamp.status.value}"
            )

        updated = self.repository.apply_review(update_id, source, stamp)
        if updated is None:
            # A concurrent review moved the row first; report its outcome.
            latest = self.get(update_id)
            if latest.status is stamp.status:
                return latest
            raise InvalidTransitionError(
                f"Cannot move an update from {latest.status.value} "
                f"to {stamp.status.value}"
            )
        _logger.info(
            "Update reviewed: update_id=%s status=%s reviewed_by=%s",
            update_id,
            stamp.status.value,
            stamp.reviewed_by,
        )
        return updated


def _wait_message(next_eligible_at: datetime, now: datetime) -> str:
    remaining = next_eligible_at - now
    days = remaining.days + (1 if remaining.seconds or remaining.microseconds else 0)
    if days <= 1:
        return (
            "You can request another update after "
            f"{next_eligible_at.strftime('%B %d, %Y')}."
        )
    return (
        f"You can request another update in {days} days "
        f"(after {next_eligible_at.strftime('%B %d, %Y')})."
    )
