"""Persistência das medidas enviadas pelas estações."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from nimbus.models.Measurements import Measurement
from nimbus.models.Stations import Parameter
from nimbus.repository.Base_repository import BaseRepo, Page
from nimbus.utils.dates import day_bounds_epoch, local_today
from nimbus.utils.errors import ForeignKeyError, NotFoundError
from nimbus.utils.logs import logger

UNKNOWN_PARAMETER_MESSAGE = (
    "Erro de chave estrangeira: o parâmetro fornecido não existe."
)


class ParameterWriteLocks:
    """Um ``threading.Lock`` por parâmetro para serializar gravações."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def lock_for(self, parameter_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(parameter_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[parameter_id] = lock
            return lock

    @contextmanager
    def hold(self, parameter_id: int) -> Iterator[None]:
        lock = self.lock_for(parameter_id)
        with lock:
            yield


class MeasurementRepo(BaseRepo):
    not_found_message = "Medida não encontrada."

    def __init__(
        self,
        session: Optional[Session] = None,
        locks: Optional[ParameterWriteLocks] = None,
    ) -> None:
        super().__init__(Measurement, session=session)
        self.locks = locks or ParameterWriteLocks()

    def _parameter_exists(self, parameter_id: int) -> bool:
        return self.session.get(Parameter, parameter_id) is not None

    def append(self, parameter_id: int, value: float, timestamp: int) -> Measurement:
        """Grava uma medida e faz commit para que a avaliação leia a linha confirmada."""

        with self.locks.hold(parameter_id):
            if not self._parameter_exists(parameter_id):
                raise ForeignKeyError("parameter_id", UNKNOWN_PARAMETER_MESSAGE)

            measurement = Measurement(
                parameter_id=parameter_id, value=value, timestamp=timestamp
            )
            try:
                self.session.add(measurement)
                self.session.commit()
            except IntegrityError as exc:
                self.session.rollback()
                if not self._parameter_exists(parameter_id):
                    # parâmetro removido entre a checagem e o commit
                    raise ForeignKeyError("parameter_id", UNKNOWN_PARAMETER_MESSAGE) from exc
                logger.error(
                    "Violação de integridade ao gravar medida parameter_id=%s: %s",
                    parameter_id,
                    exc.orig,
                )
                raise
            except SQLAlchemyError:
                self.session.rollback()
                logger.exception("Erro ao gravar medida parameter_id=%s", parameter_id)
                raise
            return measurement

    def list_paginated(self, page: int = 1, limit: int = 10) -> Page:
        query = self.session.query(Measurement).order_by(
            Measurement.timestamp.desc(), Measurement.id.desc()
        )
        return self._paginate(query, page, limit)

    def list_by_parameter(self, parameter_id: int, page: int = 1, limit: int = 10) -> Page:
        if not self._parameter_exists(parameter_id):
            raise NotFoundError(
                "Parâmetro não encontrado.", context={"parameter_id": parameter_id}
            )
        query = (
            self.session.query(Measurement)
            .filter(Measurement.parameter_id == parameter_id)
            .order_by(Measurement.timestamp.desc(), Measurement.id.desc())
        )
        return self._paginate(query, page, limit)

    def list_by_parameter_for_day(
        self,
        parameter_id: int,
        day: Optional[date] = None,
        tz: str = "UTC",
    ) -> List[Measurement]:
        """Medidas do parâmetro entre 00:00:00 e 23:59:59 do dia (inclusive)."""

        target = day or local_today(tz)
        start, end = day_bounds_epoch(target, tz)
        query = (
            self.session.query(Measurement)
            .filter(
                Measurement.parameter_id == parameter_id,
                Measurement.timestamp >= start,
                Measurement.timestamp <= end,
            )
            .order_by(Measurement.timestamp.desc(), Measurement.id.desc())
        )
        try:
            return query.all()
        except SQLAlchemyError:
            logger.exception(
                "Erro ao listar medidas do dia parameter_id=%s dia=%s", parameter_id, target
            )
            raise
