from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .catalog.controller import register as register_catalog
from .common.http import ok, register_error_handlers
from .common.logging_setup import configure_logging
from .config import get_settings_module
from .container import Container, build_container
from .core.exceptions import StoreError
from .database.bootstrap import ensure_indexes, list_collections
from .edits.controller import register as register_edits
from .promotion.controller import register as register_promotion
from .register.controller import register as register_register
from .sessions.controller import register as register_sessions
from .teachers.controller import register as register_teachers

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    """Application factory. Pass a prebuilt `container` to run over other repositories."""

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(log_file=getattr(settings, "LOG_FILE", None), level=getattr(settings, "LOG_LEVEL", "INFO"))
    mongo_config = getattr(settings, "MONGO_CONFIG")
    logger.info(f"Starting attendance register - settings={settings_module} db={mongo_config.get('database')}")

    if container is None:
        container = build_container(
            mongo_config=mongo_config,
            cache_ttl_seconds=int(getattr(settings, "CACHE_TTL_SECONDS", 300)),
            undo_window_hours=int(getattr(settings, "UNDO_WINDOW_HOURS", 24)),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            ensure_indexes(container.conn.db)
            logger.info(f"Collections: {', '.join(list_collections(container.conn.db))}")
    app.extensions["attendance_register"] = container

    CORS(app, resources={r"/api/*": {"origins": "*"}})
    limiter = Limiter(
        key_func=get_remote_address,
        app=app,
        default_limits=[getattr(settings, "RATE_LIMIT_API", "100 per minute")],
        storage_uri="memory://",
    )

    register_error_handlers(app)

    @app.route("/health", methods=["GET"], endpoint="health")
    @limiter.exempt
    def health():
        database = "not configured"
        if container.conn is not None:
            try:
                container.conn.ping()
                database = "connected"
            except StoreError:
                database = "unreachable"
        return ok(
            {"status": "OK"},
            database=database,
            cache={"size": len(container.cache), "ttl": f"{int(container.cache.ttl_seconds)}s"},
        )

    register_sessions(app, container)
    register_register(app, container)
    register_edits(app, container)
    register_catalog(app, container)
    register_promotion(app, container)
    register_teachers(app, container)

    return app
