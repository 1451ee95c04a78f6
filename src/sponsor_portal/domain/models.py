"""Shared domain value objects."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PhotoRef:
    """Reference to a photo held in external object storage."""

    url: str
    filename: str | None = None
