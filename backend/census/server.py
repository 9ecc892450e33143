from __future__ import annotations

import logging
import sys
from typing import Any, Mapping

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.errors import CensusError
from .game.service import RoomService
from .game.store import RoomStore, create_store
from .logging_config import setup_logging
from .realtime.broadcaster import SocketIOBroadcaster
from .realtime.handlers import register_socketio_handlers
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp

logger = logging.getLogger(__name__)


def _resolve_async_mode(configured: str) -> str:
    if configured:
        return configured
    # Default choice:
    # - Windows: threading (eventlet has known compatibility issues on newer Python)
    # - Python >= 3.13: threading (safer default)
    # - Otherwise: eventlet
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(CensusError)
    def handle_census_error(e: CensusError):
        if e.status >= 500:
            logger.error("Request failed: %s", e)
        return jsonify({"error": e.code, "message": e.message}), e.status

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error")
        return jsonify({"error": "internal_error", "message": "Internal error"}), 500


def create_app(
    overrides: Mapping[str, Any] | None = None,
    store: RoomStore | None = None,
) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    setup_logging(app.config.get("LOG_LEVEL"))

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=_resolve_async_mode(app.config.get("SOCKETIO_ASYNC_MODE", "")),
    )

    service = RoomService(
        store=store or create_store(app.config),
        broadcaster=SocketIOBroadcaster(socketio),
    )
    app.extensions["census"] = service

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")

    register_socketio_handlers(socketio, service)
    _register_error_handlers(app)

    return app, socketio
