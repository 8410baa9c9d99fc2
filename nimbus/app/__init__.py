#nimbus/app/__init__.py


from __future__ import annotations

import os
from pathlib import Path

from flask import Flask

from nimbus.app.extensions import db, migrate, sock
from nimbus.app.settings import get_app_settings, load_settings, store_settings
from nimbus.utils.logs import logger


def _ensure_directories(database_uri: str, *, log_dir: Path) -> None:
    """Create filesystem paths required by the application when appropriate."""

    if database_uri.startswith("sqlite:///"):
        path = database_uri.replace("sqlite:///", "")
        if path and path != ":memory:":
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    else:
        os.makedirs(log_dir, exist_ok=True)


def create_app(config_name: str | None = None) -> Flask:

    logger.process("Criando app")
    settings = load_settings(config_name)
    app = Flask(__name__)
    app.config.update(settings.as_flask_config())
    app.debug = settings.debug
    app.testing = settings.testing
    store_settings(app, settings)
    logger.info("app criado")

    logger.process("Configurando app")
    logger.warning(f"USANDO DB: {settings.database.url}")
    _ensure_directories(settings.database.url, log_dir=Path(settings.log_dir))
    logger.info("app configurado")

    logger.process("Iniciando extensões")
    db.init_app(app)
    migrate.init_app(app, db)
    sock.init_app(app)
    init_runtime(app)
    logger.info("extensões iniciadas")

    from nimbus import models  # noqa: F401  registra as tabelas no metadata

    with app.app_context():
        db.create_all()
    logger.info("db criado")

    logger.info("Registrando blueprints")
    register_blueprints(app)

    return app


def init_runtime(app: Flask) -> None:
    """Objetos compartilhados entre requisições, conexões WebSocket e o job."""

    from nimbus.repository.Measurement_repository import ParameterWriteLocks
    from nimbus.services.realtime_service import Broadcaster

    app.extensions["broadcaster"] = Broadcaster()
    app.extensions["parameter_write_locks"] = ParameterWriteLocks()


def register_blueprints(app: Flask) -> None:
    from nimbus.app.routes.api import api_bp
    from nimbus.app.routes.realtime_routes import realtime_bp

    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(realtime_bp)
    logger.info("API registrada")
    settings = get_app_settings(app)
    logger.info("Canal realtime em /ws (fila=%s)", settings.realtime.queue_size)
