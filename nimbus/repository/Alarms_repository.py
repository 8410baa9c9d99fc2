from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nimbus.models.Alarms import Alarm
from nimbus.models.Alerts import Alert
from nimbus.models.Measurements import Measurement
from nimbus.repository.Base_repository import BaseRepo, Page
from nimbus.utils.dates import day_bounds_utc, local_today
from nimbus.utils.errors import NotFoundError
from nimbus.utils.logs import logger

ALARM_NOT_FOUND_MESSAGE = "Alarme não encontrado"


@dataclass
class AlarmQuery:
    page: int = 1
    limit: int = 10
    sort_by: str = "created_at"
    sort_order: str = "desc"
    alert_id: Optional[int] = None
    rule_id: Optional[int] = None
    value_min: Optional[float] = None
    value_max: Optional[float] = None
    value_search: Optional[float] = None


class AlarmRepo(BaseRepo):
    not_found_message = ALARM_NOT_FOUND_MESSAGE

    def __init__(self, session: Optional[Session] = None):
        super().__init__(Alarm, session=session)

    def get_by_key(self, user_id: int, measurement_id: int, alert_id: int) -> Optional[Alarm]:
        return self.get((user_id, measurement_id, alert_id))

    def get_by_key_or_404(self, user_id: int, measurement_id: int, alert_id: int) -> Alarm:
        alarm = self.get_by_key(user_id, measurement_id, alert_id)
        if alarm is None:
            raise NotFoundError(
                ALARM_NOT_FOUND_MESSAGE,
                context={
                    "user_id": user_id,
                    "measurement_id": measurement_id,
                    "alert_id": alert_id,
                },
            )
        return alarm

    def delete_by_key(self, user_id: int, measurement_id: int, alert_id: int) -> bool:
        alarm = self.get_by_key_or_404(user_id, measurement_id, alert_id)
        return self.delete(alarm)

    def list_recent(self) -> List[Alarm]:
        try:
            return self.session.query(Alarm).order_by(Alarm.created_at.desc()).all()
        except SQLAlchemyError:
            logger.exception("Erro list_recent alarms")
            raise

    def list_for_day(self, day: Optional[date] = None, tz: str = "UTC") -> List[Alarm]:
        target = day or local_today(tz)
        start, end = day_bounds_utc(target, tz)
        query = (
            self.session.query(Alarm)
            .filter(Alarm.created_at >= start, Alarm.created_at <= end)
            .order_by(Alarm.created_at.desc())
        )
        try:
            return query.all()
        except SQLAlchemyError:
            logger.exception("Erro ao listar alarmes do dia %s", target)
            raise

    def paginate(self, params: AlarmQuery) -> Page:
        query = self.session.query(Alarm).join(
            Measurement, Alarm.measurement_id == Measurement.id
        )

        if params.alert_id is not None:
            query = query.filter(Alarm.alert_id == params.alert_id)
        if params.rule_id is not None:
            query = query.join(Alert, Alarm.alert_id == Alert.id).filter(
                Alert.alert_rule_id == params.rule_id
            )
        if params.value_search is not None:
            query = query.filter(Measurement.value == params.value_search)
        if params.value_min is not None:
            query = query.filter(Measurement.value >= params.value_min)
        if params.value_max is not None:
            query = query.filter(Measurement.value <= params.value_max)

        column = Measurement.value if params.sort_by == "value" else Alarm.created_at
        ordering = column.asc() if params.sort_order == "asc" else column.desc()
        query = query.order_by(ordering, Alarm.measurement_id.desc())

        return self._paginate(query, params.page, params.limit)
