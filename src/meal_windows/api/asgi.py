"""ASGI entrypoint for the meal window redistribution API."""

from meal_windows.api.app import create_app
from meal_windows.containers import build_container

app = create_app(build_container())
