"""Shared helpers for Supabase-backed repositories."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime

import httpx
from postgrest.exceptions import APIError

from sponsor_portal.domain.models import PhotoRef
from sponsor_portal.errors import StoreError

_logger = logging.getLogger(__name__)


@contextmanager
def store_errors(entity: str, operation: str, **context: object) -> Iterator[None]:
    """Translate PostgREST and transport failures into StoreError."""
    try:
        yield
    except (APIError, httpx.HTTPError) as exc:
        _logger.error(
            "Store operation failed: entity=%s operation=%s context=%s "
            "error_type=%s code=%s",
            entity,
            operation,
            context,
            type(exc).__name__,
            getattr(exc, "code", None),
        )
        raise StoreError(operation=operation, entity=entity) from exc


def parse_datetime(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


def parse_date(value: object) -> date | None:
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    return None


def isoformat_or_none(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_photos(value: object) -> tuple[PhotoRef, ...]:
    """Parse a JSONB photo array, skipping entries without a url."""
    if not isinstance(value, list):
        return ()
    photos = []
    for item in value:
        if isinstance(item, dict) and isinstance(item.get("url"), str):
            filename = item.get("filename")
            photos.append(
                PhotoRef(
                    url=item["url"],
                    filename=filename if isinstance(filename, str) else None,
                )
            )
    return tuple(photos)


def dump_photos(photos: tuple[PhotoRef, ...]) -> list[dict[str, object]] | None:
    if not photos:
        return None
    return [{"url": photo.url, "filename": photo.filename} for photo in photos]
