from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nimbus.models.Alerts import Alert, AlertRule
from nimbus.repository.Base_repository import BaseRepo
from nimbus.utils.logs import logger


class AlertRuleRepo(BaseRepo):
    not_found_message = "Regra de alerta não encontrada."

    def __init__(self, session: Optional[Session] = None):
        super().__init__(AlertRule, session=session)

    def list_for_parameter(self, parameter_id: int) -> List[AlertRule]:
        try:
            return (
                self.session.query(AlertRule)
                .filter(AlertRule.parameter_id == parameter_id)
                .order_by(AlertRule.id)
                .all()
            )
        except SQLAlchemyError:
            logger.exception("Erro ao listar regras do parâmetro %s", parameter_id)
            raise


class AlertRepo(BaseRepo):
    not_found_message = "Alerta não encontrado."

    def __init__(self, session: Optional[Session] = None):
        super().__init__(Alert, session=session)

    def list_for_rule(self, rule_id: int) -> List[Alert]:
        return self.session.query(Alert).filter(Alert.alert_rule_id == rule_id).order_by(Alert.id).all()
