# tests/conftest.py
import json

import pytest

from nimbus.app import create_app
from nimbus.app.extensions import db as _db
from nimbus.models import (
    AccessLevel,
    Alert,
    AlertRule,
    Measurement,
    Parameter,
    ParameterType,
    Station,
    User,
)
from nimbus.repository.Alarms_repository import AlarmRepo
from nimbus.repository.Measurement_repository import MeasurementRepo
from nimbus.services.realtime_service import Broadcaster


@pytest.fixture(scope="session")
def app():
    """Cria a aplicação Flask em modo testing (session scope)."""
    app = create_app("testing")

    # criar contexto da app
    ctx = app.app_context()
    ctx.push()

    yield app

    ctx.pop()


@pytest.fixture(scope="function")
def db(app):
    """Cria todas as tabelas antes do teste e remove depois (function scope)."""
    _db.create_all()
    yield _db
    _db.session.remove()
    _db.drop_all()


@pytest.fixture(scope="function")
def client(app, db):
    """Test client usando a app e DB em memória."""
    return app.test_client()


class RecordingTransport:
    """Transporte em memória que guarda as mensagens recebidas (já decodificadas)."""

    def __init__(self, fail=False):
        self.fail = fail
        self.messages = []
        self.closed = False

    def send(self, data):
        if self.fail:
            raise ConnectionError("cliente caiu")
        self.messages.append(json.loads(data))

    def close(self):
        self.closed = True

    def of_type(self, msg_type):
        return [m for m in self.messages if m.get("type") == msg_type]


@pytest.fixture
def make_transport():
    return RecordingTransport


@pytest.fixture
def broadcaster():
    return Broadcaster()


@pytest.fixture
def transport(broadcaster):
    recorder = RecordingTransport()
    broadcaster.subscribe(recorder)
    return recorder


@pytest.fixture
def app_transport(app):
    """Assinante no broadcaster da aplicação (usado pelos testes de API)."""
    recorder = RecordingTransport()
    hub = app.extensions["broadcaster"]
    subscription = hub.subscribe(recorder)
    yield recorder
    hub.unsubscribe(subscription)


class Factory:
    def __init__(self, session):
        self.session = session
        self._emails = 0

    def user(self, name="Ana", email=None):
        level = self.session.query(AccessLevel).first()
        if level is None:
            level = AccessLevel(description="Administrador")
            self.session.add(level)
            self.session.flush()
        self._emails += 1
        user = User(
            name=name,
            email=email or f"user{self._emails}@example.com",
            access_level_id=level.id,
        )
        self.session.add(user)
        self.session.commit()
        return user

    def station(self, station_id="EST001", name="Estação Centro"):
        station = Station(id=station_id, name=name)
        self.session.add(station)
        self.session.commit()
        return station

    def parameter(self, station=None, type_name="Temperatura", unit="°C"):
        station = station or self.session.get(Station, "EST001") or self.station()
        ptype = ParameterType(name=type_name, unit=unit)
        parameter = Parameter(station=station, parameter_type=ptype, description=type_name)
        self.session.add_all([ptype, parameter])
        self.session.commit()
        return parameter

    def rule(self, parameter, operator=">", threshold=30.0):
        rule = AlertRule(
            operator=operator,
            threshold=threshold,
            parameter_id=parameter.id if parameter is not None else None,
        )
        self.session.add(rule)
        self.session.commit()
        return rule

    def alert(self, rule, subscribers=(), title="Temperatura alta"):
        alert = Alert(
            title=title,
            body="Valor acima do limite",
            alert_rule_id=rule.id if rule is not None else None,
        )
        alert.subscribers.extend(subscribers)
        self.session.add(alert)
        self.session.commit()
        return alert

    def measurement(self, parameter, value=20.0, timestamp=1_700_000_000):
        measurement = Measurement(parameter_id=parameter.id, value=value, timestamp=timestamp)
        self.session.add(measurement)
        self.session.commit()
        return measurement


@pytest.fixture
def factory(db):
    return Factory(_db.session)


# Repositories (utilizam db.session por padrão)
@pytest.fixture(scope="function")
def measurement_repo(db):
    return MeasurementRepo(session=_db.session)


@pytest.fixture(scope="function")
def alarm_repo(db):
    return AlarmRepo(session=_db.session)
