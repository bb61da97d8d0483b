"""ASGI entrypoint for the image explorer API."""

from mars_image_explorer.api.app import create_app
from mars_image_explorer.containers import build_container

app = create_app(build_container())
