"""Flask blueprints."""

from __future__ import annotations

from flask import Flask

from .apt import apt_bp


def register_blueprints(app: Flask) -> None:
    """Register every blueprint on the app."""
    app.register_blueprint(apt_bp)
