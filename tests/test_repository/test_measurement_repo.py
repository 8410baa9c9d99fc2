import threading
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from nimbus.models import Alarm, Measurement
from nimbus.repository.Measurement_repository import ParameterWriteLocks
from nimbus.utils.errors import ForeignKeyError, NotFoundError

# 2024-05-10 00:00:00 em São Paulo (UTC-3)
DAY_START = int(datetime(2024, 5, 10, 3, 0, tzinfo=timezone.utc).timestamp())


def test_append_requires_an_existing_parameter(measurement_repo):
    with pytest.raises(ForeignKeyError) as excinfo:
        measurement_repo.append(404, 1.0, 1)

    assert excinfo.value.field == "parameter_id"


def test_append_accepts_any_value(measurement_repo, factory):
    parameter = factory.parameter()

    measurement = measurement_repo.append(parameter.id, -1e9, 0)

    assert measurement.id is not None
    assert measurement.value == -1e9


def test_list_paginated_is_newest_first(measurement_repo, factory):
    parameter = factory.parameter()
    for ts in (30, 10, 20, 40, 50):
        factory.measurement(parameter, value=float(ts), timestamp=ts)

    page = measurement_repo.list_paginated(page=2, limit=2)

    assert [m.timestamp for m in page.items] == [30, 20]
    assert page.meta() == {
        "totalItems": 5,
        "currentPage": 2,
        "totalPages": 3,
        "itemsPerPage": 2,
    }


def test_list_by_parameter_filters_and_checks_existence(measurement_repo, factory):
    station = factory.station()
    temperature = factory.parameter(station)
    humidity = factory.parameter(station, "Umidade", "%")
    factory.measurement(temperature, timestamp=1)
    factory.measurement(humidity, timestamp=2)

    page = measurement_repo.list_by_parameter(temperature.id)

    assert [m.parameter_id for m in page.items] == [temperature.id]
    with pytest.raises(NotFoundError):
        measurement_repo.list_by_parameter(999)


def test_day_listing_is_inclusive_on_both_ends(measurement_repo, factory):
    parameter = factory.parameter()
    end = DAY_START + 86_399
    for ts in (DAY_START - 1, DAY_START, DAY_START + 3600, end, end + 1):
        factory.measurement(parameter, timestamp=ts)

    items = measurement_repo.list_by_parameter_for_day(
        parameter.id, date(2024, 5, 10), "America/Sao_Paulo"
    )

    assert [m.timestamp for m in items] == [end, DAY_START + 3600, DAY_START]


def test_delete_removes_the_measurement_and_its_alarms(db, measurement_repo, factory):
    user = factory.user()
    parameter = factory.parameter()
    alert = factory.alert(factory.rule(parameter), [user])
    measurement = factory.measurement(parameter, value=99.0)
    db.session.add(Alarm(user_id=user.id, measurement_id=measurement.id, alert_id=alert.id))
    db.session.commit()

    measurement_repo.delete_by_id(measurement.id)

    assert db.session.query(Measurement).count() == 0
    assert db.session.query(Alarm).count() == 0
    with pytest.raises(NotFoundError):
        measurement_repo.delete_by_id(measurement.id)


def test_write_locks_are_per_parameter():
    locks = ParameterWriteLocks()

    assert locks.lock_for(1) is locks.lock_for(1)
    assert locks.lock_for(1) is not locks.lock_for(2)

    with locks.hold(1):
        assert locks.lock_for(1).locked()
        acquired = []
        worker = threading.Thread(target=lambda: acquired.append(locks.lock_for(2).acquire(blocking=False)))
        worker.start()
        worker.join()
        assert acquired == [True]


def test_integrity_error_on_existing_parameter_is_not_a_foreign_key_error(
    db, measurement_repo, factory
):
    parameter = factory.parameter()

    with pytest.raises(IntegrityError):
        measurement_repo.append(parameter.id, None, 1)

    assert db.session.query(Measurement).count() == 0
