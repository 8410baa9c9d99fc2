"""Administração de regras de alerta, alertas e assinaturas."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic import ValidationError as PydanticValidationError

from nimbus.models.Alerts import Alert, AlertRule
from nimbus.models.Stations import Parameter
from nimbus.models.Users import User
from nimbus.repository.Alerts_repository import AlertRepo, AlertRuleRepo
from nimbus.utils.constants import MAX_DB_INT
from nimbus.utils.dates import to_iso
from nimbus.utils.errors import ConflictError, ForeignKeyError, NotFoundError, ValidationError
from nimbus.utils.logs import logger


def _reject_non_numeric(raw: Any) -> Any:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError("threshold deve ser um número.")
    return raw


class AlertRuleIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # texto livre; só é interpretado pelo motor de avaliação
    operator: str = Field(min_length=1, max_length=10)
    threshold: float
    parameter_id: Optional[StrictInt] = Field(default=None, gt=0, le=MAX_DB_INT)

    @field_validator("threshold", mode="before")
    @classmethod
    def _numeric_threshold(cls, raw: Any) -> Any:
        return _reject_non_numeric(raw)


class AlertRuleUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    operator: Optional[str] = Field(default=None, min_length=1, max_length=10)
    threshold: Optional[float] = None
    parameter_id: Optional[StrictInt] = Field(default=None, gt=0, le=MAX_DB_INT)

    @field_validator("threshold", mode="before")
    @classmethod
    def _numeric_threshold(cls, raw: Any) -> Any:
        return raw if raw is None else _reject_non_numeric(raw)


class AlertIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1, max_length=150)
    body: Optional[str] = None
    alert_rule_id: Optional[StrictInt] = Field(default=None, gt=0, le=MAX_DB_INT)
    parameter_id: Optional[StrictInt] = Field(default=None, gt=0, le=MAX_DB_INT)
    subscriber_ids: List[Annotated[StrictInt, Field(gt=0, le=MAX_DB_INT)]] = Field(
        default_factory=list
    )


class AlertUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(default=None, min_length=1, max_length=150)
    body: Optional[str] = None
    alert_rule_id: Optional[StrictInt] = Field(default=None, gt=0, le=MAX_DB_INT)
    parameter_id: Optional[StrictInt] = Field(default=None, gt=0, le=MAX_DB_INT)


def parse_body(schema: Type[BaseModel], payload: Any) -> BaseModel:
    if not isinstance(payload, dict):
        raise ValidationError(
            issues=[{"field": "body", "message": "Corpo da requisição deve ser um objeto JSON."}]
        )
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


def serialize_rule(rule: AlertRule) -> Dict[str, Any]:
    return {
        "id": rule.id,
        "operator": rule.operator,
        "threshold": rule.threshold,
        "parameter_id": rule.parameter_id,
        "created_at": to_iso(rule.created_at),
        "alert_ids": [alert.id for alert in rule.alerts],
    }


def serialize_alert(alert: Alert) -> Dict[str, Any]:
    return {
        "id": alert.id,
        "title": alert.title,
        "body": alert.body,
        "alert_rule_id": alert.alert_rule_id,
        "parameter_id": alert.parameter_id,
        "created_at": to_iso(alert.created_at),
        "updated_at": to_iso(alert.updated_at),
        "subscriber_ids": [user.id for user in alert.subscribers],
    }


class AlertAdminService:
    def __init__(self, session=None):
        self.rule_repo = AlertRuleRepo(session=session)
        self.alert_repo = AlertRepo(session=session)
        self.session = self.rule_repo.session

    def _check_ref(self, model, key: Optional[int], field: str) -> None:
        if key is not None and self.session.get(model, key) is None:
            raise ForeignKeyError(field, status_code=409)

    # ------------------------------------------------------------------
    # Regras
    # ------------------------------------------------------------------
    def list_rules(self) -> List[AlertRule]:
        return self.rule_repo.list_all()

    def get_rule(self, rule_id: int) -> AlertRule:
        return self.rule_repo.get_or_404(rule_id)

    def create_rule(self, payload: Any) -> AlertRule:
        data = parse_body(AlertRuleIn, payload)
        self._check_ref(Parameter, data.parameter_id, "parameter_id")
        rule = AlertRule(
            operator=data.operator.strip(),
            threshold=data.threshold,
            parameter_id=data.parameter_id,
        )
        self.rule_repo.add(rule)
        logger.info("Regra de alerta criada id=%s (%s %s)", rule.id, rule.operator, rule.threshold)
        return rule

    def update_rule(self, rule_id: int, payload: Any) -> AlertRule:
        rule = self.get_rule(rule_id)
        data = parse_body(AlertRuleUpdate, payload)
        changes = data.model_dump(exclude_unset=True)
        changes = {k: v for k, v in changes.items() if v is not None or k == "parameter_id"}
        if "parameter_id" in changes:
            self._check_ref(Parameter, changes["parameter_id"], "parameter_id")
        for key, value in changes.items():
            setattr(rule, key, value.strip() if key == "operator" and value else value)
        self.rule_repo.add(rule)
        return rule

    def delete_rule(self, rule_id: int) -> None:
        rule = self.get_rule(rule_id)
        # alertas ligados à regra ficam sem regra (alert_rule_id = NULL)
        self.rule_repo.delete(rule)
        logger.info("Regra de alerta removida id=%s", rule_id)

    # ------------------------------------------------------------------
    # Alertas
    # ------------------------------------------------------------------
    def list_alerts(self) -> List[Alert]:
        return self.alert_repo.list_all()

    def get_alert(self, alert_id: int) -> Alert:
        return self.alert_repo.get_or_404(alert_id)

    def create_alert(self, payload: Any) -> Alert:
        data = parse_body(AlertIn, payload)
        self._check_ref(AlertRule, data.alert_rule_id, "alert_rule_id")
        self._check_ref(Parameter, data.parameter_id, "parameter_id")

        subscribers = []
        for user_id in dict.fromkeys(data.subscriber_ids):
            user = self.session.get(User, user_id)
            if user is None:
                raise ForeignKeyError("subscriber_ids", status_code=409)
            subscribers.append(user)

        alert = Alert(
            title=data.title,
            body=data.body,
            alert_rule_id=data.alert_rule_id,
            parameter_id=data.parameter_id,
        )
        alert.subscribers.extend(subscribers)
        self.alert_repo.add(alert)
        logger.info("Alerta criado id=%s regra=%s", alert.id, alert.alert_rule_id)
        return alert

    def update_alert(self, alert_id: int, payload: Any) -> Alert:
        alert = self.get_alert(alert_id)
        data = parse_body(AlertUpdate, payload)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("title", "") is None:
            changes.pop("title")
        if "alert_rule_id" in changes:
            self._check_ref(AlertRule, changes["alert_rule_id"], "alert_rule_id")
        if "parameter_id" in changes:
            self._check_ref(Parameter, changes["parameter_id"], "parameter_id")
        for key, value in changes.items():
            setattr(alert, key, value)
        self.alert_repo.add(alert)
        return alert

    def delete_alert(self, alert_id: int) -> None:
        """Remove o alerta junto com assinaturas e alarmes; medidas e regras permanecem."""

        alert = self.get_alert(alert_id)
        self.alert_repo.delete(alert)
        logger.info("Alerta removido id=%s", alert_id)

    # ------------------------------------------------------------------
    # Assinaturas
    # ------------------------------------------------------------------
    def subscribe(self, alert_id: int, user_id: Any) -> Alert:
        alert = self.get_alert(alert_id)
        if (
            isinstance(user_id, bool)
            or not isinstance(user_id, int)
            or not 0 < user_id <= MAX_DB_INT
        ):
            raise ValidationError(
                issues=[{"field": "user_id", "message": "user_id deve ser um inteiro positivo."}]
            )
        user = self.session.get(User, user_id)
        if user is None:
            raise ForeignKeyError("user_id", status_code=409)
        if user in alert.subscribers:
            raise ConflictError(
                "Usuário já inscrito neste alerta.",
                context={"alert_id": alert_id, "user_id": user_id},
            )
        alert.subscribers.append(user)
        self.alert_repo.add(alert)
        return alert

    def unsubscribe(self, alert_id: int, user_id: int) -> Alert:
        alert = self.get_alert(alert_id)
        user = next((u for u in alert.subscribers if u.id == user_id), None)
        if user is None:
            raise NotFoundError(
                "Assinatura não encontrada.",
                context={"alert_id": alert_id, "user_id": user_id},
            )
        alert.subscribers.remove(user)
        self.alert_repo.add(alert)
        return alert


__all__ = [
    "AlertAdminService",
    "AlertIn",
    "AlertRuleIn",
    "parse_body",
    "serialize_alert",
    "serialize_rule",
]
