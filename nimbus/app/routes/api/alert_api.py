"""Alert rule, alert and subscription administration endpoints."""
from __future__ import annotations

from flask import Blueprint, jsonify

from nimbus.services.alert_admin_service import (
    AlertAdminService,
    serialize_alert,
    serialize_rule,
)

from .common import json_body

alert_api_bp = Blueprint("api_alerts", __name__)


@alert_api_bp.route("/alert-rules", methods=["GET"])
def list_rules():
    return jsonify([serialize_rule(rule) for rule in AlertAdminService().list_rules()])


@alert_api_bp.route("/alert-rules", methods=["POST"])
def create_rule():
    rule = AlertAdminService().create_rule(json_body())
    return jsonify(serialize_rule(rule)), 201


@alert_api_bp.route("/alert-rules/<int:rule_id>", methods=["GET"])
def get_rule(rule_id: int):
    return jsonify(serialize_rule(AlertAdminService().get_rule(rule_id)))


@alert_api_bp.route("/alert-rules/<int:rule_id>", methods=["PUT"])
def update_rule(rule_id: int):
    rule = AlertAdminService().update_rule(rule_id, json_body())
    return jsonify(serialize_rule(rule))


@alert_api_bp.route("/alert-rules/<int:rule_id>", methods=["DELETE"])
def delete_rule(rule_id: int):
    AlertAdminService().delete_rule(rule_id)
    return "", 204


@alert_api_bp.route("/alerts", methods=["GET"])
def list_alerts():
    return jsonify([serialize_alert(alert) for alert in AlertAdminService().list_alerts()])


@alert_api_bp.route("/alerts", methods=["POST"])
def create_alert():
    alert = AlertAdminService().create_alert(json_body())
    return jsonify(serialize_alert(alert)), 201


@alert_api_bp.route("/alerts/<int:alert_id>", methods=["GET"])
def get_alert(alert_id: int):
    return jsonify(serialize_alert(AlertAdminService().get_alert(alert_id)))


@alert_api_bp.route("/alerts/<int:alert_id>", methods=["PUT"])
def update_alert(alert_id: int):
    alert = AlertAdminService().update_alert(alert_id, json_body())
    return jsonify(serialize_alert(alert))


@alert_api_bp.route("/alerts/<int:alert_id>", methods=["DELETE"])
def delete_alert(alert_id: int):
    AlertAdminService().delete_alert(alert_id)
    return "", 204


@alert_api_bp.route("/alerts/<int:alert_id>/subscribers", methods=["POST"])
def subscribe(alert_id: int):
    payload = json_body() or {}
    user_id = payload.get("user_id") if isinstance(payload, dict) else None
    alert = AlertAdminService().subscribe(alert_id, user_id)
    return jsonify(serialize_alert(alert)), 201


@alert_api_bp.route("/alerts/<int:alert_id>/subscribers/<int:user_id>", methods=["DELETE"])
def unsubscribe(alert_id: int, user_id: int):
    AlertAdminService().unsubscribe(alert_id, user_id)
    return "", 204


__all__ = ["alert_api_bp"]
