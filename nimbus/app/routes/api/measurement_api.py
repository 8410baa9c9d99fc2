"""Measurement ingestion and query endpoints."""
from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, jsonify, request

from nimbus.models.Measurements import Measurement
from nimbus.repository.Measurement_repository import MeasurementRepo
from nimbus.services.measurement_ingest_service import MeasurementIngestService
from nimbus.utils.dates import local_today, parse_day
from nimbus.utils.errors import ValidationError

from .common import app_timezone, broadcaster, json_body, paginated, pagination_args, write_locks

measurement_api_bp = Blueprint("api_measurements", __name__)


def serialize_measurement(measurement: Measurement) -> Dict[str, Any]:
    return {
        "id": measurement.id,
        "parameter_id": measurement.parameter_id,
        "value": measurement.value,
        "timestamp": measurement.timestamp,
    }


@measurement_api_bp.route("/measurements", methods=["POST"])
def create_measurement():
    service = MeasurementIngestService(broadcaster=broadcaster(), locks=write_locks())
    result = service.ingest(json_body())

    body = serialize_measurement(result.measurement)
    body["alarms_created"] = len(result.alarms)
    if result.duplicates:
        body["duplicate_alarms"] = result.duplicates
    if result.misconfigured_rules:
        body["misconfigured_rules"] = result.misconfigured_rules
    return jsonify(body), 201


@measurement_api_bp.route("/measurements", methods=["GET"])
def list_measurements():
    page, limit = pagination_args()
    result = MeasurementRepo().list_paginated(page, limit)
    return jsonify(paginated(result, serialize_measurement))


@measurement_api_bp.route("/measurements/<int:measurement_id>", methods=["GET"])
def get_measurement(measurement_id: int):
    measurement = MeasurementRepo().get_or_404(measurement_id)
    return jsonify(serialize_measurement(measurement))


@measurement_api_bp.route("/measurements/<int:measurement_id>", methods=["DELETE"])
def delete_measurement(measurement_id: int):
    MeasurementRepo().delete_by_id(measurement_id)
    return "", 204


@measurement_api_bp.route("/parameters/<int:parameter_id>/measurements", methods=["GET"])
def list_parameter_measurements(parameter_id: int):
    page, limit = pagination_args()
    result = MeasurementRepo().list_by_parameter(parameter_id, page, limit)
    return jsonify(paginated(result, serialize_measurement))


@measurement_api_bp.route("/parameters/<int:parameter_id>/measurements/day", methods=["GET"])
def list_parameter_measurements_for_day(parameter_id: int):
    tz = app_timezone()
    try:
        day = parse_day(request.args.get("date")) or local_today(tz)
    except ValueError as exc:
        raise ValidationError(issues=[{"field": "date", "message": str(exc)}]) from exc

    items = MeasurementRepo().list_by_parameter_for_day(parameter_id, day, tz)
    return jsonify(
        {
            "parameter_id": parameter_id,
            "date": day.isoformat(),
            "data": [serialize_measurement(item) for item in items],
        }
    )


__all__ = ["measurement_api_bp", "serialize_measurement"]
