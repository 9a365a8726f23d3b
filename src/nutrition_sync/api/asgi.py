"""ASGI entrypoint for the nutrition sync endpoint."""

from nutrition_sync.api.app import create_app
from nutrition_sync.containers import build_container

app = create_app(build_container())
