"""Domain models for sponsor sessions."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SessionData:
    """Contents of a sponsor session cookie."""

    email: str
    sponsor_code: str
    expires: datetime


@dataclass(frozen=True)
class SessionToken:
    """A freshly issued, signed session cookie value."""

    value: str
    expires: datetime
