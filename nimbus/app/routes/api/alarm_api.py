"""Alarm endpoints."""
from __future__ import annotations

from flask import Blueprint, jsonify
from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic import ValidationError as PydanticValidationError

from nimbus.repository.Alarms_repository import AlarmQuery, AlarmRepo
from nimbus.services.Alarms_service import AlarmRecorder, serialize_alarm
from nimbus.utils.constants import MAX_DB_INT
from nimbus.utils.errors import ValidationError

from .common import (
    app_timezone,
    broadcaster,
    choice_arg,
    json_body,
    optional_float_arg,
    optional_int_arg,
    paginated,
    pagination_args,
)

alarm_api_bp = Blueprint("api_alarms", __name__)


class AlarmIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: StrictInt = Field(le=MAX_DB_INT)
    measurement_id: StrictInt = Field(le=MAX_DB_INT)
    alert_id: StrictInt = Field(le=MAX_DB_INT)


@alarm_api_bp.route("/alarms", methods=["POST"])
def create_alarm():
    payload = json_body()
    if not isinstance(payload, dict):
        raise ValidationError(
            "Erro de validação",
            issues=[{"field": "body", "message": "Corpo da requisição deve ser um objeto JSON."}],
        )
    try:
        data = AlarmIn.model_validate(payload)
    except PydanticValidationError as exc:
        error = ValidationError.from_pydantic(exc)
        error.message = "Erro de validação"
        raise error from exc

    alarm = AlarmRecorder(broadcaster=broadcaster()).record(
        data.user_id, data.measurement_id, data.alert_id
    )
    return jsonify(serialize_alarm(alarm)), 201


@alarm_api_bp.route("/alarms", methods=["GET"])
def list_alarms():
    page, limit = pagination_args()
    params = AlarmQuery(
        page=page,
        limit=limit,
        sort_by=choice_arg("sort_by", ("created_at", "value"), "created_at"),
        sort_order=choice_arg("sort_order", ("asc", "desc"), "desc"),
        alert_id=optional_int_arg("alert_id"),
        rule_id=optional_int_arg("rule_id"),
        value_min=optional_float_arg("value_min"),
        value_max=optional_float_arg("value_max"),
        value_search=optional_float_arg("value_search"),
    )
    return jsonify(paginated(AlarmRepo().paginate(params), serialize_alarm))


@alarm_api_bp.route("/alarms/today", methods=["GET"])
def list_alarms_today():
    alarms = AlarmRepo().list_for_day(tz=app_timezone())
    return jsonify([serialize_alarm(alarm) for alarm in alarms])


@alarm_api_bp.route("/alarms/<int:user_id>/<int:measurement_id>/<int:alert_id>", methods=["GET"])
def get_alarm(user_id: int, measurement_id: int, alert_id: int):
    alarm = AlarmRepo().get_by_key_or_404(user_id, measurement_id, alert_id)
    return jsonify(serialize_alarm(alarm))


@alarm_api_bp.route("/alarms/<int:user_id>/<int:measurement_id>/<int:alert_id>", methods=["DELETE"])
def delete_alarm(user_id: int, measurement_id: int, alert_id: int):
    AlarmRepo().delete_by_key(user_id, measurement_id, alert_id)
    return "", 204


__all__ = ["alarm_api_bp"]
