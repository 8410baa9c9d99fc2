"""Pipeline de ingestão: valida, grava, avalia regras e registra alarmes."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic import ValidationError as PydanticValidationError

from nimbus.models.Alarms import Alarm
from nimbus.models.Measurements import Measurement
from nimbus.repository.Measurement_repository import MeasurementRepo, ParameterWriteLocks
from nimbus.services.Alarms_service import AlarmRecorder
from nimbus.services.alert_rule_engine import AlertRuleEngine
from nimbus.services.realtime_service import Broadcaster
from nimbus.utils.constants import MAX_DB_BIGINT, MAX_DB_INT
from nimbus.utils.errors import DuplicateAlarmError, ForeignKeyError, ValidationError
from nimbus.utils.logs import logger


class MeasurementIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    parameter_id: StrictInt = Field(
        gt=0,
        le=MAX_DB_INT,
        validation_alias=AliasChoices("parameter_id", "parameterID", "id_parametro"),
    )
    value: float = Field(
        allow_inf_nan=False, validation_alias=AliasChoices("value", "valor")
    )
    timestamp: StrictInt = Field(
        ge=0,
        le=MAX_DB_BIGINT,
        validation_alias=AliasChoices("timestamp", "timestampSeconds", "data_hora"),
    )

    @field_validator("value", mode="before")
    @classmethod
    def _numeric_value(cls, raw: Any) -> Any:
        # aceita apenas números JSON; strings e booleanos são rejeitados
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError("value deve ser um número.")
        if isinstance(raw, float) and not math.isfinite(raw):
            raise ValueError("value deve ser um número finito.")
        return raw


def validate_measurement(payload: Any) -> MeasurementIn:
    if not isinstance(payload, dict):
        raise ValidationError(
            issues=[{"field": "body", "message": "Corpo da requisição deve ser um objeto JSON."}]
        )
    try:
        return MeasurementIn.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


@dataclass
class IngestResult:
    measurement: Measurement
    alarms: List[Alarm] = field(default_factory=list)
    duplicates: int = 0
    misconfigured_rules: List[int] = field(default_factory=list)


class MeasurementIngestService:
    def __init__(
        self,
        session=None,
        broadcaster: Optional[Broadcaster] = None,
        locks: Optional[ParameterWriteLocks] = None,
        notify_by_email: Optional[bool] = None,
    ):
        self.measurement_repo = MeasurementRepo(session=session, locks=locks)
        self.engine = AlertRuleEngine(session=session)
        self.recorder = AlarmRecorder(
            session=session, broadcaster=broadcaster, notify_by_email=notify_by_email
        )

    def ingest(self, payload: Dict[str, Any]) -> IngestResult:
        data = validate_measurement(payload)
        measurement = self.measurement_repo.append(
            data.parameter_id, data.value, data.timestamp
        )
        logger.debug(
            "Medida gravada id=%s parameter=%s value=%s",
            measurement.id,
            measurement.parameter_id,
            measurement.value,
        )

        report = self.engine.evaluate_detailed(measurement)
        result = IngestResult(
            measurement=measurement, misconfigured_rules=list(report.misconfigured_rules)
        )

        for triggered in report.triggered:
            try:
                alarm = self.recorder.record(
                    triggered.user_id, triggered.measurement_id, triggered.alert_id
                )
            except DuplicateAlarmError:
                result.duplicates += 1
                logger.info(
                    "Alarme duplicado ignorado user=%s medida=%s alerta=%s",
                    triggered.user_id,
                    triggered.measurement_id,
                    triggered.alert_id,
                )
                continue
            except ForeignKeyError as exc:
                logger.warning(
                    "Alarme não registrado para user=%s alerta=%s: %s",
                    triggered.user_id,
                    triggered.alert_id,
                    exc.message,
                )
                continue
            result.alarms.append(alarm)

        if result.alarms:
            logger.info(
                "Medida %s gerou %s alarme(s)", measurement.id, len(result.alarms)
            )
        return result


__all__ = [
    "IngestResult",
    "MeasurementIn",
    "MeasurementIngestService",
    "validate_measurement",
]
