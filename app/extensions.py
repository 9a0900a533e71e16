"""Shared Flask extensions for the application."""
from __future__ import annotations

from typing import Callable

from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy

# SQLAlchemy database instance shared across the app.
db = SQLAlchemy()

EVENT_KINDS = ("appointment_created", "status_changed")

Handler = Callable[[dict], None]


class EventBus:
    """Holds the subscribers of each appointment event kind, per app."""

    def __init__(self, app: Flask | None = None) -> None:
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        app.extensions["event_bus"] = {kind: [] for kind in EVENT_KINDS}

    def _handlers(self, app: Flask | None = None) -> dict[str, list[Handler]]:
        return (app or current_app).extensions["event_bus"]

    def subscribe(self, kind: str, handler: Handler, app: Flask | None = None) -> None:
        if kind not in EVENT_KINDS:
            raise ValueError(f"Unknown event kind: {kind}")
        self._handlers(app)[kind].append(handler)

    def publish(self, payload: dict) -> None:
        for handler in self._handlers()[payload["kind"]]:
            handler(payload)


# Appointment event bus; subscribers are registered by create_app.
event_bus = EventBus()
