"""Station heartbeat endpoints and the on-demand fleet summary."""
from __future__ import annotations

from flask import Blueprint, jsonify

from nimbus.jobs.fleet_health_job import compute_fleet_summary
from nimbus.services.station_activity_service import (
    StationActivityService,
    serialize_log,
    serialize_processing,
    serialize_status,
)
from nimbus.utils.errors import ValidationError

from .common import app_timezone, broadcaster, json_body

station_activity_api_bp = Blueprint("api_station_activity", __name__)


def _body() -> dict:
    payload = json_body()
    if not isinstance(payload, dict):
        raise ValidationError(
            issues=[{"field": "body", "message": "Corpo da requisição deve ser um objeto JSON."}]
        )
    return payload


def _station_id(payload: dict) -> str:
    station_id = payload.get("station_id", payload.get("id_estacao"))
    if station_id is None or str(station_id).strip() == "":
        raise ValidationError(
            issues=[{"field": "station_id", "message": "station_id é obrigatório."}]
        )
    return str(station_id).strip()


@station_activity_api_bp.route("/station-status", methods=["POST"])
def create_station_status():
    payload = _body()
    row = StationActivityService(broadcaster=broadcaster()).record_status(
        _station_id(payload), payload.get("status")
    )
    return jsonify(serialize_status(row)), 201


@station_activity_api_bp.route("/station-status/summary", methods=["GET"])
def station_status_summary():
    return jsonify(compute_fleet_summary(tz=app_timezone()))


@station_activity_api_bp.route("/station-logs", methods=["POST"])
def create_station_log():
    payload = _body()
    row = StationActivityService(broadcaster=broadcaster()).record_log(
        _station_id(payload), payload.get("data_sent")
    )
    return jsonify(serialize_log(row)), 201


@station_activity_api_bp.route("/station-logs/today", methods=["GET"])
def station_logs_today():
    summary = compute_fleet_summary(tz=app_timezone())
    return jsonify(
        {"dataSentTodayMB": summary["dataSentTodayMB"], "timestamp": summary["timestamp"]}
    )


@station_activity_api_bp.route("/processing-logs", methods=["POST"])
def create_processing_log():
    row = StationActivityService(broadcaster=broadcaster()).record_processing()
    return jsonify(serialize_processing(row)), 201


__all__ = ["station_activity_api_bp"]
