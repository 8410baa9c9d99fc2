"""Registro de alarmes com difusão em tempo real e notificação por email."""

from __future__ import annotations

from html import escape
from typing import Any, Dict, Optional, Tuple

from flask import has_app_context
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from nimbus.app.settings import get_app_settings
from nimbus.models.Alarms import Alarm
from nimbus.models.Alerts import Alert
from nimbus.models.Measurements import Measurement
from nimbus.models.Users import User
from nimbus.repository.Alarms_repository import AlarmRepo
from nimbus.services.email_service import send_email
from nimbus.services.realtime_service import Broadcaster, get_broadcaster
from nimbus.utils.dates import format_br, resolve_zone, to_iso
from nimbus.utils.errors import DuplicateAlarmError, ForeignKeyError
from nimbus.utils.logs import logger


def serialize_alarm(alarm: Alarm) -> Dict[str, Any]:
    measurement = alarm.measurement
    alert = alarm.alert
    return {
        "user_id": alarm.user_id,
        "measurement_id": alarm.measurement_id,
        "alert_id": alarm.alert_id,
        "created_at": to_iso(alarm.created_at),
        "value": measurement.value if measurement is not None else None,
        "parameter_id": measurement.parameter_id if measurement is not None else None,
        "timestamp": measurement.timestamp if measurement is not None else None,
        "alert_title": alert.title if alert is not None else None,
        "rule_id": alert.alert_rule_id if alert is not None else None,
    }


def alarm_event(alarm: Alarm) -> Dict[str, Any]:
    return {"type": "NEW_ALARM", "alarm": serialize_alarm(alarm)}


class AlarmRecorder:
    def __init__(
        self,
        session=None,
        broadcaster: Optional[Broadcaster] = None,
        notify_by_email: Optional[bool] = None,
    ):
        self.alarm_repo = AlarmRepo(session=session)
        self.session = self.alarm_repo.session
        self.broadcaster = broadcaster if broadcaster is not None else get_broadcaster()
        if notify_by_email is None:
            notify_by_email = (
                has_app_context() and get_app_settings().features.enable_email
            )
        self.notify_by_email = notify_by_email

    def _require(self, model, key, field: str):
        obj = self.session.get(model, key)
        if obj is None:
            raise ForeignKeyError(field, status_code=409)
        return obj

    def record(self, user_id: int, measurement_id: int, alert_id: int) -> Alarm:
        """Grava o alarme, faz commit e só então difunde ``NEW_ALARM``."""

        user = self._require(User, user_id, "user_id")
        self._require(Measurement, measurement_id, "measurement_id")
        alert = self._require(Alert, alert_id, "alert_id")

        if self.alarm_repo.get_by_key(user_id, measurement_id, alert_id) is not None:
            raise DuplicateAlarmError(user_id, measurement_id, alert_id)

        alarm = Alarm(user_id=user_id, measurement_id=measurement_id, alert_id=alert_id)
        try:
            self.session.add(alarm)
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            if self.alarm_repo.get_by_key(user_id, measurement_id, alert_id) is not None:
                raise DuplicateAlarmError(user_id, measurement_id, alert_id) from exc
            logger.warning("Violação de integridade ao gravar alarme: %s", exc.orig)
            raise ForeignKeyError("alarm", status_code=409) from exc
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(
                "Erro ao gravar alarme user=%s medida=%s alerta=%s",
                user_id,
                measurement_id,
                alert_id,
            )
            raise

        logger.info(
            "Alarme registrado user=%s medida=%s alerta=%s",
            user_id,
            measurement_id,
            alert_id,
        )
        self._publish(alarm)
        if self.notify_by_email:
            self._notify(user, alert, alarm)
        return alarm

    def _publish(self, alarm: Alarm) -> None:
        if self.broadcaster is None:
            logger.debug("Broadcaster indisponível; NEW_ALARM não difundido")
            return
        self.broadcaster.broadcast(alarm_event(alarm))

    # ------------------------------------------------------------------
    # Email helpers
    # ------------------------------------------------------------------
    def _notify(self, user: User, alert: Alert, alarm: Alarm) -> None:
        if not user.email:
            logger.debug("Usuário %s sem email; notificação ignorada", user.id)
            return
        subject = f"[ALERTA] {alert.title}"
        text_body, html_body = self._format_body(user, alert, alarm)
        try:
            send_email(subject, text_body, [user.email], html_body=html_body)
        except Exception:
            logger.exception(
                "Erro ao notificar usuário %s sobre alarme %s", user.id, alarm.key
            )

    @staticmethod
    def _format_body(user: User, alert: Alert, alarm: Alarm) -> Tuple[str, str]:
        tz = resolve_zone(get_app_settings().timezone) if has_app_context() else None
        moment = format_br(alarm.created_at, tz)
        measurement = alarm.measurement
        value = measurement.value if measurement is not None else None
        name = user.name or "usuário"
        text_body = (
            f"Olá {name},\n\n"
            f"Um novo alerta foi registrado no sistema.\n"
            f"Título: {alert.title}\n"
            f"Mensagem: {alert.body or 'Sem mensagem adicional.'}\n"
            f"Valor medido: {value}\n"
            f"Data/Hora: {moment}\n\n"
            "Equipe Nimbus"
        )
        html_body = (
            "<h1>Novo Alerta Gerado</h1>"
            f"<p>Olá {escape(name)},</p>"
            "<p>Um novo alerta foi registrado no sistema:</p>"
            f"<p><strong>Título:</strong> {escape(alert.title)}</p>"
            f"<p><strong>Mensagem:</strong> {escape(alert.body or 'Sem mensagem adicional.')}</p>"
            f"<p><strong>Valor medido:</strong> {escape(str(value))}</p>"
            f"<p><strong>Data/Hora:</strong> {escape(moment)}</p>"
            "<hr><p>Equipe Nimbus</p>"
        )
        return text_body, html_body


__all__ = ["AlarmRecorder", "alarm_event", "serialize_alarm"]
