import os
from dataclasses import dataclass, field
from typing import List, Optional

from nimbus.app import create_app, db
from nimbus.app.settings import get_app_settings
from nimbus.jobs.fleet_health_job import create_fleet_health_scheduler
from nimbus.models import AccessLevel, Alert, AlertRule, Parameter, ParameterType, Station, User
from nimbus.utils.logs import logger


# ===========================================================
# DADOS DE DEMONSTRAÇÃO
# ===========================================================
@dataclass(frozen=True)
class RuleTemplate:
    operator: str
    threshold: float
    title: str
    body: str


@dataclass(frozen=True)
class ParameterTemplate:
    type_name: str
    unit: str
    description: str
    rules: List[RuleTemplate] = field(default_factory=list)


DEMO_STATION_ID = "EST001"
DEMO_ADMIN_EMAIL = "admin@example.com"
DEMO_PARAMETERS = [
    ParameterTemplate(
        type_name="Temperatura",
        unit="°C",
        description="Temperatura do ar",
        rules=[
            RuleTemplate(">", 35.0, "Temperatura alta", "Temperatura acima de 35 °C"),
            RuleTemplate("<", 5.0, "Temperatura baixa", "Temperatura abaixo de 5 °C"),
        ],
    ),
    ParameterTemplate(
        type_name="Umidade",
        unit="%",
        description="Umidade relativa do ar",
        rules=[RuleTemplate("<=", 20.0, "Umidade crítica", "Umidade relativa em nível crítico")],
    ),
]


def _get_or_create(model, defaults: Optional[dict] = None, **filters):
    instance = db.session.query(model).filter_by(**filters).first()
    if instance is None:
        instance = model(**filters, **(defaults or {}))
        db.session.add(instance)
        db.session.flush()
    return instance


def seed_demo_data() -> None:
    """Garante nível de acesso, administrador, estação EST001 e regras de exemplo."""

    level = _get_or_create(AccessLevel, description="Administrador")
    admin = _get_or_create(
        User,
        email=DEMO_ADMIN_EMAIL,
        defaults={"name": "Admin", "access_level_id": level.id},
    )
    station = db.session.get(Station, DEMO_STATION_ID)
    if station is None:
        station = Station(id=DEMO_STATION_ID, name="Estação de demonstração", user_id=admin.id)
        db.session.add(station)
        db.session.flush()

    for template in DEMO_PARAMETERS:
        ptype = _get_or_create(ParameterType, name=template.type_name, defaults={"unit": template.unit})
        parameter = _get_or_create(
            Parameter,
            station_id=station.id,
            parameter_type_id=ptype.id,
            defaults={"description": template.description},
        )
        for rule_template in template.rules:
            rule = _get_or_create(
                AlertRule,
                parameter_id=parameter.id,
                operator=rule_template.operator,
                threshold=rule_template.threshold,
            )
            alert = _get_or_create(
                Alert,
                alert_rule_id=rule.id,
                title=rule_template.title,
                defaults={"body": rule_template.body, "parameter_id": parameter.id},
            )
            if admin not in alert.subscribers:
                alert.subscribers.append(admin)

    db.session.commit()
    logger.info("Dados de demonstração garantidos para a estação %s", station.id)


# ===========================================================
# MAIN
# ===========================================================
if __name__ == "__main__":
    app = create_app(os.getenv("APP_ENV"))
    settings = get_app_settings(app)

    if os.getenv("SEED_DEMO_DATA", "1") != "0":
        with app.app_context():
            seed_demo_data()

    scheduler = None
    if settings.features.enable_aggregator:
        scheduler = create_fleet_health_scheduler(app)
        scheduler.start()
    else:
        logger.info("Job de resumo da frota desativado (ENABLE_AGGREGATOR=false)")

    port = int(os.getenv("PORT", "5000"))
    logger.process(f"Iniciando servidor Flask em http://0.0.0.0:{port}")
    try:
        app.run(host="0.0.0.0", port=port, debug=settings.debug, use_reloader=False)
    finally:
        if scheduler is not None:
            scheduler.stop()
