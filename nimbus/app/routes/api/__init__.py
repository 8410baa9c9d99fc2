"""API blueprint aggregator."""
from __future__ import annotations

from flask import Blueprint, jsonify
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from nimbus.app.extensions import db
from nimbus.utils.errors import NimbusError, ValidationError
from nimbus.utils.logs import logger

api_bp = Blueprint("apii", __name__)

from .alarm_api import alarm_api_bp
from .alert_api import alert_api_bp
from .measurement_api import measurement_api_bp
from .station_activity_api import station_activity_api_bp

api_bp.register_blueprint(measurement_api_bp)
api_bp.register_blueprint(alarm_api_bp)
api_bp.register_blueprint(alert_api_bp)
api_bp.register_blueprint(station_activity_api_bp)


@api_bp.errorhandler(NimbusError)
def handle_domain_error(exc: NimbusError):
    if exc.status_code >= 500:
        logger.error("Erro na API: %s contexto=%s", exc.message, exc.context)
    else:
        logger.info("Requisição recusada (%s): %s", exc.status_code, exc.message)
    return jsonify(exc.to_dict()), exc.status_code


@api_bp.errorhandler(PydanticValidationError)
def handle_pydantic_error(exc: PydanticValidationError):
    error = ValidationError.from_pydantic(exc)
    return jsonify(error.to_dict()), error.status_code


@api_bp.errorhandler(HTTPException)
def handle_http_error(exc: HTTPException):
    return jsonify({"message": exc.description}), exc.code


@api_bp.errorhandler(Exception)
def handle_unexpected_error(exc: Exception):
    db.session.rollback()
    logger.exception("Erro inesperado na API")
    return jsonify({"message": "Erro interno do servidor."}), 500


__all__ = ["api_bp"]
