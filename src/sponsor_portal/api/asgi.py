"""ASGI entrypoint for the sponsor portal API."""

from sponsor_portal.api.app import create_app
from sponsor_portal.containers import build_container

app = create_app(build_container())
