"""Avaliação das regras de alerta contra uma medida recém-gravada."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from nimbus.models.Alerts import AlertRule
from nimbus.models.Measurements import Measurement
from nimbus.repository.Alerts_repository import AlertRuleRepo
from nimbus.utils.logs import logger


class UnknownOperatorError(ValueError):
    """Operador de regra fora do conjunto suportado (erro de configuração)."""

    def __init__(self, operator) -> None:
        super().__init__(f"Operador de comparação desconhecido: {operator!r}")
        self.operator = operator


class ComparisonOperator(enum.Enum):
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    EQ = "=="

    @classmethod
    def parse(cls, text: Optional[str]) -> "ComparisonOperator":
        if isinstance(text, str):
            try:
                return cls(text.strip())
            except ValueError:
                pass
        raise UnknownOperatorError(text)

    def compare(self, value: float, threshold: float) -> bool:
        if self is ComparisonOperator.GT:
            return value > threshold
        if self is ComparisonOperator.LT:
            return value < threshold
        if self is ComparisonOperator.GE:
            return value >= threshold
        if self is ComparisonOperator.LE:
            return value <= threshold
        if self is ComparisonOperator.EQ:
            # igualdade exata de float, sem tolerância
            return value == threshold
        raise AssertionError(f"Operador sem implementação: {self!r}")


@dataclass(frozen=True)
class TriggeredAlert:
    user_id: int
    measurement_id: int
    alert_id: int
    rule_id: int


@dataclass
class EvaluationReport:
    triggered: List[TriggeredAlert] = field(default_factory=list)
    misconfigured_rules: List[int] = field(default_factory=list)


class AlertRuleEngine:
    def __init__(self, session: Optional[Session] = None) -> None:
        self.rule_repo = AlertRuleRepo(session=session)

    def evaluate(self, measurement: Measurement) -> List[TriggeredAlert]:
        return self.evaluate_detailed(measurement).triggered

    def evaluate_detailed(self, measurement: Measurement) -> EvaluationReport:
        """Gera um alerta disparado por (regra satisfeita, alerta, assinante).

        Regras com operador inválido nunca disparam; são registradas como erro de
        configuração e a varredura continua.
        """

        report = EvaluationReport()
        rules: List[AlertRule] = self.rule_repo.list_for_parameter(measurement.parameter_id)

        for rule in rules:
            try:
                operator = ComparisonOperator.parse(rule.operator)
            except UnknownOperatorError:
                logger.error(
                    "Regra de alerta mal configurada id=%s operador=%r; ignorando",
                    rule.id,
                    rule.operator,
                )
                report.misconfigured_rules.append(rule.id)
                continue

            if not operator.compare(measurement.value, rule.threshold):
                continue

            logger.info(
                "Regra %s satisfeita: %s %s %s (medida=%s)",
                rule.id,
                measurement.value,
                operator.value,
                rule.threshold,
                measurement.id,
            )
            for alert in rule.alerts:
                for user in alert.subscribers:
                    report.triggered.append(
                        TriggeredAlert(
                            user_id=user.id,
                            measurement_id=measurement.id,
                            alert_id=alert.id,
                            rule_id=rule.id,
                        )
                    )

        return report


__all__ = [
    "AlertRuleEngine",
    "ComparisonOperator",
    "EvaluationReport",
    "TriggeredAlert",
    "UnknownOperatorError",
]
