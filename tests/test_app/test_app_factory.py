from nimbus.app.settings import AppSettings, get_app_settings
from nimbus.repository.Measurement_repository import ParameterWriteLocks
from nimbus.services.realtime_service import Broadcaster, get_broadcaster


def test_app_uses_testing_config(app):
    settings = get_app_settings(app)
    assert settings.testing is True
    assert settings.database.url == "sqlite:///:memory:"
    assert settings.features.enable_aggregator is False
    assert settings.mail.suppress_send is True
    assert settings.timezone == "America/Sao_Paulo"


def test_blueprints_and_websocket_route_are_registered(app):
    assert "apii" in app.blueprints
    assert "realtime" in app.blueprints
    assert "/ws" in {rule.rule for rule in app.url_map.iter_rules()}


def test_runtime_objects_live_on_the_app(app):
    assert isinstance(app.extensions["broadcaster"], Broadcaster)
    assert isinstance(app.extensions["parameter_write_locks"], ParameterWriteLocks)
    assert get_broadcaster() is app.extensions["broadcaster"]


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("AGGREGATOR__INTERVAL_SECONDS", "15")
    monkeypatch.setenv("APP_TIMEZONE", "UTC")

    settings = AppSettings().with_environment("production")

    assert settings.aggregator.interval_seconds == 15
    assert settings.timezone == "UTC"
    assert settings.database.url.endswith("/nimbus_prod")
    assert settings.database.engine_options["pool_size"] == 30


def test_unexpected_errors_become_500(client, monkeypatch):
    from nimbus.repository.Measurement_repository import MeasurementRepo

    def boom(self, page, limit):
        raise RuntimeError("falha inesperada")

    monkeypatch.setattr(MeasurementRepo, "list_paginated", boom)

    response = client.get("/api/measurements")

    assert response.status_code == 500
    assert response.get_json() == {"message": "Erro interno do servidor."}


def test_postgres_gets_a_statement_timeout_from_the_aggregator_budget(monkeypatch):
    monkeypatch.setenv("AGGREGATOR__MAX_RUN_SECONDS", "12.5")

    settings = AppSettings().with_environment("production")
    options = settings.as_flask_config()["SQLALCHEMY_ENGINE_OPTIONS"]

    assert options["connect_args"] == {"options": "-c statement_timeout=12500"}
    assert "connect_args" not in settings.database.engine_options


def test_sqlite_has_no_statement_timeout(app):
    assert "connect_args" not in app.config["SQLALCHEMY_ENGINE_OPTIONS"]
