"""Admin API endpoints with token auth."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Body, Depends, Request

from sponsor_portal.api.dependencies import get_container, rate_limited, require_admin
from sponsor_portal.api.models import (  # noqa: TC001
    CorrectionNotesRequest,
    CorrectionRequest,
    RejectRequest,
    ReviewRequest,
)
from sponsor_portal.domain.fields import (
    SPONSORSHIP_COLUMNS,
    UPDATE_COLUMNS,
    from_api,
    sponsorship_to_api,
    update_to_api,
)
from sponsor_portal.domain.models import PhotoRef
from sponsor_portal.errors import AuthenticationError
from sponsor_portal.services.rate_limit import Endpoint
from sponsor_portal.validation import (
    MAX_NAME_LENGTH,
    MAX_REASON_LENGTH,
    sanitize_string,
    validate_email,
    validate_required_string,
    validate_sponsor_code,
    validate_update_content,
    validate_update_title,
    validate_update_type,
)

router = APIRouter(prefix="/admin", tags=["admin"])

_logger = logging.getLogger(__name__)

INVALID_ADMIN_PASSWORD = "Unauthorized - Invalid admin password"
_DRAFT_FLAGS = {"true", "1", "on", "yes"}


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post(
    "/updates/submit",
    dependencies=[Depends(rate_limited(Endpoint.UPDATE_SUBMISSION))],
)
async def submit_update(request: Request) -> dict[str, object]:
    """Accept a field-team update posted as a form."""
    container = get_container(request)
    form = await request.form()
    if not (
        container.admin_verifier.verify_headers(request.headers)
        or container.admin_verifier.verify_form_token(form.get("adminPassword"))
    ):
        _logger.warning("Unauthorized update submission attempt")
        raise AuthenticationError(INVALID_ADMIN_PASSWORD)

    fields = from_api(dict(form), UPDATE_COLUMNS)
    sponsor_code = validate_sponsor_code(fields.get("sponsor_code"))
    title = validate_update_title(fields.get("title"))
    content = validate_update_content(fields.get("content"))
    submitted_by = validate_required_string(fields.get("submitted_by"), "Submitted by")
    update_type = validate_update_type(fields.get("update_type"))
    as_draft = sanitize_string(form.get("asDraft")).lower() in _DRAFT_FLAGS

    record = container.update_service.submit_update(
        sponsor_code=sponsor_code,
        update_type=update_type,
        title=title,
        content=content,
        submitted_by=submitted_by,
        as_draft=as_draft,
    )
    return {
        "success": True,
        "updateId": str(record.id),
        "status": record.status.value,
        "message": "Update submitted successfully. Photos can be added later.",
    }


@router.get("/updates/pending", dependencies=[Depends(require_admin)])
async def pending_updates(request: Request) -> dict[str, object]:
    """Return the review queue."""
    container = get_container(request)
    return {
        "updates": [
            update_to_api(update) for update in container.update_service.list_pending()
        ]
    }


@router.get("/updates/published", dependencies=[Depends(require_admin)])
async def published_updates(request: Request) -> dict[str, object]:
    """Return every published update."""
    container = get_container(request)
    return {
        "updates": [
            update_to_api(update)
            for update in container.update_service.list_published()
        ]
    }


@router.get("/updates/{update_id}", dependencies=[Depends(require_admin)])
async def update_detail(update_id: UUID, request: Request) -> dict[str, object]:
    """Return one update with its review fields."""
    container = get_container(request)
    return {"update": update_to_api(container.update_service.get(update_id))}


@router.get("/updates/{update_id}/chain", dependencies=[Depends(require_admin)])
async def correction_chain(update_id: UUID, request: Request) -> dict[str, object]:
    """Return the correction chain containing an update, oldest first."""
    container = get_container(request)
    chain = container.update_service.correction_chain(update_id)
    return {"chain": [update_to_api(update) for update in chain]}


@router.post("/updates/{update_id}/publish", dependencies=[Depends(require_admin)])
async def publish_update(
    update_id: UUID, request: Request, body: ReviewRequest | None = None
) -> dict[str, object]:
    """Publish a pending update."""
    container = get_container(request)
    record = container.update_service.publish(
        update_id, reviewed_by=_reviewer(body)
    )
    return {"update": update_to_api(record)}


@router.post("/updates/{update_id}/reject", dependencies=[Depends(require_admin)])
async def reject_update(
    update_id: UUID, body: RejectRequest, request: Request
) -> dict[str, object]:
    """Reject a pending update with a reason."""
    container = get_container(request)
    reason = validate_required_string(
        body.reason, "Rejection reason", max_length=MAX_REASON_LENGTH
    )
    record = container.update_service.reject(
        update_id, reason, reviewed_by=_reviewer(body)
    )
    return {"update": update_to_api(record)}


@router.post(
    "/updates/{update_id}/request-correction", dependencies=[Depends(require_admin)]
)
async def request_correction(
    update_id: UUID, body: CorrectionNotesRequest, request: Request
) -> dict[str, object]:
    """Send a pending update back to the field team."""
    container = get_container(request)
    notes = validate_required_string(
        body.notes, "Correction notes", max_length=MAX_REASON_LENGTH
    )
    record = container.update_service.request_correction(
        update_id, notes, reviewed_by=_reviewer(body)
    )
    return {"update": update_to_api(record)}


@router.post("/updates/{update_id}/corrections", dependencies=[Depends(require_admin)])
async def create_correction(
    update_id: UUID, body: CorrectionRequest, request: Request
) -> dict[str, object]:
    """Create a resubmission that supersedes a rejected update."""
    container = get_container(request)
    title = validate_update_title(body.title)
    content = validate_update_content(body.content)
    submitted_by = validate_required_string(body.submitted_by, "Submitted by")
    update_type = (
        validate_update_type(body.update_type) if body.update_type else None
    )
    record = container.update_service.create_correction(
        update_id,
        title=title,
        content=content,
        submitted_by=submitted_by,
        update_type=update_type,
        photos=tuple(
            PhotoRef(url=photo.url, filename=photo.filename) for photo in body.photos
        ),
    )
    return {"update": update_to_api(record)}


@router.post("/updates/{update_id}/submit-draft", dependencies=[Depends(require_admin)])
async def submit_draft(
    update_id: UUID, request: Request, body: ReviewRequest | None = None
) -> dict[str, object]:
    """Move a draft into the review queue."""
    container = get_container(request)
    record = container.update_service.submit_draft(
        update_id, reviewed_by=_reviewer(body)
    )
    return {"update": update_to_api(record)}


@router.post(
    "/sponsorships/{sponsorship_id}/assign", dependencies=[Depends(require_admin)]
)
async def assign_sponsor(
    sponsorship_id: UUID,
    request: Request,
    payload: dict[str, Any] = Body(...),
) -> dict[str, object]:
    """Assign a new sponsor to a child awaiting one."""
    container = get_container(request)
    fields = from_api(payload, SPONSORSHIP_COLUMNS)
    sponsor_email = validate_email(fields.get("sponsor_email"))
    sponsor_name = sanitize_string(fields.get("sponsor_name"))[:MAX_NAME_LENGTH]
    assigned = container.sponsorship_service.assign_sponsor(
        sponsorship_id, sponsor_email, sponsor_name or None
    )
    return {"sponsorship": sponsorship_to_api(assigned)}


def _reviewer(body: ReviewRequest | None) -> str | None:
    if body is None:
        return None
    return sanitize_string(body.reviewed_by)[:MAX_NAME_LENGTH] or None
