"""Supabase-backed update repository."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from sponsor_portal.adapters.supabase_rows import (
    dump_photos,
    isoformat_or_none,
    parse_datetime,
    parse_photos,
    store_errors,
)
from sponsor_portal.domain.fields import UPDATE_API_FIELDS
from sponsor_portal.domain.updates import (
    NewUpdate,
    ReviewStamp,
    UpdateRecord,
    UpdateStatus,
    UpdateType,
)
from sponsor_portal.errors import StoreError
from sponsor_portal.services.updates import UpdateRepository

_TABLE = "updates"
_SELECT = ", ".join(UPDATE_API_FIELDS)
_CORRECTION_FUNCTION = "create_update_correction"


@dataclass
class SupabaseUpdateRepository(UpdateRepository):
    """Supabase implementation for updates."""

    client: Client

    def create_update(self, update: NewUpdate) -> UpdateRecord:
        """Insert an update row and return it."""
        with store_errors(_TABLE, "create_update", child_id=update.child_id):
            response = (
                self.client.table(_TABLE).insert(_insert_payload(update)).execute()
            )
        if not response.data:
            raise StoreError(operation="create_update", entity=_TABLE)
        return _to_update(response.data[0])

    def get_update(self, update_id: UUID) -> UpdateRecord | None:
        """Return an update by id."""
        with store_errors(_TABLE, "get_update", update_id=str(update_id)):
            response = (
                self.client.table(_TABLE)
                .select(_SELECT)
                .eq("id", str(update_id))
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _to_update(response.data[0])

    def list_published_for_child(self, child_id: str) -> list[UpdateRecord]:
        """Return published, visible updates for a child, newest first."""
        with store_errors(_TABLE, "list_published_for_child", child_id=child_id):
            response = (
                self.client.table(_TABLE)
                .select(_SELECT)
                .eq("child_id", child_id)
                .eq("status", UpdateStatus.PUBLISHED.value)
                .eq("visible_to_sponsor", True)
                .order("published_at", desc=True)
                .execute()
            )
        return [_to_update(row) for row in response.data or []]

    def most_recent_published_for_child(self, child_id: str) -> UpdateRecord | None:
        """Return the latest published update for a child."""
        with store_errors(_TABLE, "most_recent_published_for_child", child_id=child_id):
            response = (
                self.client.table(_TABLE)
                .select(_SELECT)
                .eq("child_id", child_id)
                .eq("status", UpdateStatus.PUBLISHED.value)
                .order("published_at", desc=True)
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _to_update(response.data[0])

    def list_by_status(self, status: UpdateStatus) -> list[UpdateRecord]:
        """Return updates in a status, newest first."""
        order_column = (
            "published_at" if status is UpdateStatus.PUBLISHED else "created_at"
        )
        with store_errors(_TABLE, "list_by_status", status=status.value):
            response = (
                self.client.table(_TABLE)
                .select(_SELECT)
                .eq("status", status.value)
                .order(order_column, desc=True)
                .execute()
            )
        return [_to_update(row) for row in response.data or []]

    def apply_review(
        self, update_id: UUID, expected_status: UpdateStatus, stamp: ReviewStamp
    ) -> UpdateRecord | None:
        """Write a review stamp while the row is still in the expected status."""
        payload: dict[str, object] = {
            "status": stamp.status.value,
            "visible_to_sponsor": stamp.status is UpdateStatus.PUBLISHED,
            "reviewed_by": stamp.reviewed_by,
            "reviewed_at": stamp.reviewed_at.isoformat(),
        }
        if stamp.published_at is not None:
            payload["published_at"] = stamp.published_at.isoformat()
        if stamp.rejection_reason is not None:
            payload["rejection_reason"] = stamp.rejection_reason
        if stamp.correction_notes is not None:
            payload["correction_notes"] = stamp.correction_notes
        with store_errors(
            _TABLE,
            "apply_review",
            update_id=str(update_id),
            status=stamp.status.value,
        ):
            response = (
                self.client.table(_TABLE)
                .update(payload)
                .eq("id", str(update_id))
                .eq("status", expected_status.value)
                .execute()
            )
        if not response.data:
            return None
        return _to_update(response.data[0])

    def create_correction(
        self, original_id: UUID, update: NewUpdate
    ) -> UpdateRecord | None:
        """Call the transactional correction function in the database."""
        with store_errors(_TABLE, "create_correction", original_id=str(original_id)):
            response = self.client.rpc(
                _CORRECTION_FUNCTION,
                {
                    "original_id": str(original_id),
                    "correction": _insert_payload(update),
                },
            ).execute()
        rows = response.data
        if isinstance(rows, dict):
            rows = [rows]
        if not rows:
            return None
        return _to_update(rows[0])


def _insert_payload(update: NewUpdate) -> dict[str, object]:
    payload: dict[str, object] = {
        "child_id": update.child_id,
        "update_type": update.update_type.value,
        "title": update.title,
        "content": update.content,
        "status": update.status.value,
        "visible_to_sponsor": False,
        "requested_by_sponsor": update.requested_by_sponsor,
        "requested_at": isoformat_or_none(update.requested_at),
        "submitted_by": update.submitted_by,
        "submitted_at": isoformat_or_none(update.submitted_at),
    }
    if update.sponsor_code:
        payload["sponsor_code"] = update.sponsor_code
    photos = dump_photos(update.photos)
    if photos:
        payload["photos"] = photos
    if update.supersedes_update is not None:
        payload["supersedes_update"] = str(update.supersedes_update)
    return payload


def _optional_uuid(value: object) -> UUID | None:
    if isinstance(value, str) and value:
        return UUID(value)
    return None


def _to_update(row: dict[str, object]) -> UpdateRecord:
    return UpdateRecord(
        id=UUID(str(row["id"])),
        child_id=str(row["child_id"]),
        sponsor_code=row.get("sponsor_code"),
        update_type=UpdateType(row["update_type"]),
        title=str(row.get("title") or ""),
        content=str(row.get("content") or ""),
        photos=parse_photos(row.get("photos")),
        status=UpdateStatus(row["status"]),
        visible_to_sponsor=row.get("visible_to_sponsor") is True,
        requested_by_sponsor=row.get("requested_by_sponsor") is True,
        requested_at=parse_datetime(row.get("requested_at")),
        published_at=parse_datetime(row.get("published_at")),
        submitted_by=row.get("submitted_by"),
        submitted_at=parse_datetime(row.get("submitted_at")),
        reviewed_by=row.get("reviewed_by"),
        reviewed_at=parse_datetime(row.get("reviewed_at")),
        rejection_reason=row.get("rejection_reason"),
        correction_notes=row.get("correction_notes"),
        supersedes_update=_optional_uuid(row.get("supersedes_update")),
        superseded_by=_optional_uuid(row.get("superseded_by")),
        created_at=parse_datetime(row.get("created_at")),
    )
