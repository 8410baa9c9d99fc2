from datetime import date
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nimbus.models.StationActivity import StationLog, StationStatus
from nimbus.models.Stations import Station
from nimbus.repository.Base_repository import BaseRepo
from nimbus.utils.dates import day_bounds_utc
from nimbus.utils.logs import logger


class StationRepo(BaseRepo):
    not_found_message = "Estação não encontrada."

    def __init__(self, session: Optional[Session] = None):
        super().__init__(Station, session=session)


class StationStatusRepo(BaseRepo):
    def __init__(self, session: Optional[Session] = None):
        super().__init__(StationStatus, session=session)

    def latest_status_counts(self) -> Dict[str, int]:
        """Conta estações por status considerando apenas o registro mais recente de cada uma.

        Estações sem nenhum registro não entram na contagem.
        """

        ranked = (
            self.session.query(
                StationStatus.station_id.label("station_id"),
                StationStatus.status.label("status"),
                func.row_number()
                .over(
                    partition_by=StationStatus.station_id,
                    order_by=(StationStatus.created_at.desc(), StationStatus.id.desc()),
                )
                .label("rn"),
            )
        ).subquery()

        query = (
            self.session.query(ranked.c.status, func.count())
            .filter(ranked.c.rn == 1)
            .group_by(ranked.c.status)
        )
        try:
            rows = query.all()
        except SQLAlchemyError:
            logger.exception("Erro ao consultar último status das estações")
            raise
        return {status: int(count) for status, count in rows}


class StationLogRepo(BaseRepo):
    def __init__(self, session: Optional[Session] = None):
        super().__init__(StationLog, session=session)

    def sum_data_sent_for_day(self, day: date, tz: str) -> int:
        start, end = day_bounds_utc(day, tz)
        query = self.session.query(func.coalesce(func.sum(StationLog.data_sent), 0)).filter(
            StationLog.created_at >= start, StationLog.created_at <= end
        )
        try:
            return int(query.scalar() or 0)
        except SQLAlchemyError:
            logger.exception("Erro ao somar dados enviados no dia %s", day)
            raise
