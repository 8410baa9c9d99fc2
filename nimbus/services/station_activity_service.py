"""Heartbeats das estações: status de conectividade, volume enviado e processamento."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from nimbus.models.StationActivity import (
    ProcessingLog,
    StationLog,
    StationStatus,
    StationStatusValue,
)
from nimbus.models.Stations import Station
from nimbus.repository.Base_repository import BaseRepo
from nimbus.repository.Station_repository import StationLogRepo, StationStatusRepo
from nimbus.services.realtime_service import Broadcaster, get_broadcaster
from nimbus.utils.constants import MAX_DB_INT
from nimbus.utils.dates import to_iso
from nimbus.utils.errors import ForeignKeyError, ValidationError
from nimbus.utils.logs import logger

# tipo da mensagem -> chaves aceitas para o corpo (formato novo e legado do simulador)
INBOUND_KEYS = {
    "STATUS_UPDATE": ("stationStatus", "estacaoStatus"),
    "LOG_UPDATE": ("stationLog", "estacaoLog"),
    "PROCESSING_LOG": ("processingLog", "dataProcessingLog"),
}


def serialize_status(row: StationStatus) -> Dict[str, Any]:
    return {
        "id": row.id,
        "station_id": row.station_id,
        "status": row.status,
        "created_at": to_iso(row.created_at),
    }


def serialize_log(row: StationLog) -> Dict[str, Any]:
    return {
        "id": row.id,
        "station_id": row.station_id,
        "data_sent": row.data_sent,
        "created_at": to_iso(row.created_at),
    }


def serialize_processing(row: ProcessingLog) -> Dict[str, Any]:
    return {"id": row.id, "created_at": to_iso(row.created_at)}


def _parse_status(raw: Any) -> str:
    try:
        return StationStatusValue(str(raw).strip().upper()).value
    except ValueError as exc:
        raise ValidationError(
            issues=[{"field": "status", "message": "Status deve ser ONLINE ou OFFLINE."}]
        ) from exc


def _parse_data_sent(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or not 0 < raw <= MAX_DB_INT:
        raise ValidationError(
            issues=[
                {
                    "field": "data_sent",
                    "message": "data_sent deve ser um inteiro positivo (KB).",
                }
            ]
        )
    return raw


def _station_key(body: Dict[str, Any]) -> Any:
    for key in ("station_id", "id_estacao", "stationId"):
        if body.get(key) is not None:
            return str(body[key])
    raise ValidationError(
        issues=[{"field": "station_id", "message": "station_id é obrigatório."}]
    )


class StationActivityService:
    def __init__(self, session=None, broadcaster: Optional[Broadcaster] = None):
        self.status_repo = StationStatusRepo(session=session)
        self.log_repo = StationLogRepo(session=session)
        self.processing_repo = BaseRepo(ProcessingLog, session=session)
        self.session = self.status_repo.session
        self.broadcaster = broadcaster if broadcaster is not None else get_broadcaster()

    def _require_station(self, station_id: str) -> None:
        if self.session.get(Station, station_id) is None:
            raise ForeignKeyError("station_id", status_code=409)

    def _add(self, repo: BaseRepo, row):
        try:
            return repo.add(row)
        except IntegrityError as exc:
            raise ForeignKeyError("station_id", status_code=409) from exc

    def _publish(self, payload: Dict[str, Any]) -> None:
        if self.broadcaster is not None:
            self.broadcaster.broadcast(payload)

    def record_status(self, station_id: str, status: Any) -> StationStatus:
        value = _parse_status(status)
        self._require_station(station_id)
        row = self._add(self.status_repo, StationStatus(station_id=station_id, status=value))
        logger.info("Status da estação %s: %s", station_id, value)
        self._publish({"type": "STATUS_UPDATE", "stationStatus": serialize_status(row)})
        return row

    def record_log(self, station_id: str, data_sent: Any) -> StationLog:
        kb = _parse_data_sent(data_sent)
        self._require_station(station_id)
        row = self._add(self.log_repo, StationLog(station_id=station_id, data_sent=kb))
        logger.debug("Estação %s enviou %s KB", station_id, kb)
        self._publish({"type": "LOG_UPDATE", "stationLog": serialize_log(row)})
        return row

    def record_processing(self) -> ProcessingLog:
        row = self.processing_repo.add(ProcessingLog())
        self._publish({"type": "PROCESSING_LOG", "processingLog": serialize_processing(row)})
        return row

    def handle_message(self, raw: Any) -> Optional[Any]:
        """Encaminha uma mensagem recebida pelo canal realtime.

        JSON inválido, tipos desconhecidos e dados rejeitados são registrados e
        ignorados; nada é devolvido aos clientes.
        """

        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8", errors="replace")
        if isinstance(raw, str):
            try:
                message = json.loads(raw)
            except ValueError:
                logger.warning("Mensagem realtime com JSON inválido ignorada")
                return None
        else:
            message = raw

        if not isinstance(message, dict):
            logger.warning("Mensagem realtime sem objeto JSON ignorada")
            return None

        msg_type = message.get("type")
        keys = INBOUND_KEYS.get(msg_type)
        if keys is None:
            logger.warning("Tipo de mensagem realtime desconhecido ignorado: %r", msg_type)
            return None

        body = next((message[k] for k in keys if isinstance(message.get(k), dict)), {})
        try:
            if msg_type == "STATUS_UPDATE":
                return self.record_status(_station_key(body), body.get("status"))
            if msg_type == "LOG_UPDATE":
                return self.record_log(_station_key(body), body.get("data_sent"))
            return self.record_processing()
        except (ValidationError, ForeignKeyError) as exc:
            logger.warning("Mensagem realtime %s rejeitada: %s", msg_type, exc.message)
            return None


__all__ = [
    "INBOUND_KEYS",
    "StationActivityService",
    "serialize_log",
    "serialize_processing",
    "serialize_status",
]
