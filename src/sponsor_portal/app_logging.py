"""Logging configuration helpers."""

import logging


def configure_logging() -> None:
    """Configure application logging with a single stream handler."""
    logger = logging.getLogger("sponsor_portal")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def mask_email(email: str | None) -> str:
    """Mask an email address for log output, keeping the first letter and domain."""
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    if not local:
        return f"***@{domain}"
    return f"{local[0]}***@{domain}"


def mask_sponsor_code(code: str | None) -> str:
    """Mask a sponsor code for log output, keeping the prefix and last two chars."""
    if not code or len(code) <= 6:
        return "***"
    prefix, separator, _ = code.partition("-")
    if not separator:
        return f"{code[:2]}***{code[-2:]}"
    return f"{prefix}-***{code[-2:]}"
