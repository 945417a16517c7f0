"""ASGI entrypoint for the resource card API."""

from resource_card.api.app import create_app
from resource_card.containers import build_container

app = create_app(build_container())
