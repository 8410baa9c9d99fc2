from datetime import datetime, timedelta, timezone

import pytest

from nimbus.models import Alarm
from nimbus.repository.Alarms_repository import AlarmQuery
from nimbus.utils.errors import NotFoundError


@pytest.fixture
def alarms(db, factory):
    """Três alarmes para o mesmo usuário com valores 10, 25 e 40."""
    user = factory.user()
    parameter = factory.parameter()
    hot_rule = factory.rule(parameter, ">", 5.0)
    cold_rule = factory.rule(parameter, "<", 100.0)
    hot = factory.alert(hot_rule, [user], title="Quente")
    cold = factory.alert(cold_rule, [user], title="Frio")

    base = datetime.now(timezone.utc) - timedelta(minutes=3)
    rows = []
    for offset, (value, alert) in enumerate([(10.0, hot), (25.0, cold), (40.0, hot)]):
        measurement = factory.measurement(parameter, value=value, timestamp=1_000 + offset)
        alarm = Alarm(
            user_id=user.id,
            measurement_id=measurement.id,
            alert_id=alert.id,
            created_at=base + timedelta(minutes=offset),
        )
        db.session.add(alarm)
        rows.append(alarm)
    db.session.commit()
    return {"user": user, "hot": hot, "cold": cold, "cold_rule": cold_rule, "rows": rows}


def _values(page):
    return [alarm.measurement.value for alarm in page.items]


def test_default_sort_is_newest_first(alarm_repo, alarms):
    page = alarm_repo.paginate(AlarmQuery())

    assert _values(page) == [40.0, 25.0, 10.0]
    assert page.meta()["totalItems"] == 3


def test_sort_by_value_ascending(alarm_repo, alarms):
    page = alarm_repo.paginate(AlarmQuery(sort_by="value", sort_order="asc"))

    assert _values(page) == [10.0, 25.0, 40.0]


def test_filters_by_alert_rule_and_value(alarm_repo, alarms):
    assert _values(alarm_repo.paginate(AlarmQuery(alert_id=alarms["hot"].id))) == [40.0, 10.0]
    assert _values(alarm_repo.paginate(AlarmQuery(rule_id=alarms["cold_rule"].id))) == [25.0]
    assert _values(alarm_repo.paginate(AlarmQuery(value_min=20, value_max=30))) == [25.0]
    assert _values(alarm_repo.paginate(AlarmQuery(value_search=40))) == [40.0]


def test_pagination_limits_items(alarm_repo, alarms):
    page = alarm_repo.paginate(AlarmQuery(page=2, limit=2))

    assert _values(page) == [10.0]
    assert page.total_pages == 2


def test_list_for_day_uses_local_bounds(db, alarm_repo, alarms):
    old = alarms["rows"][0]
    old.created_at = datetime.now(timezone.utc) - timedelta(days=3)
    db.session.commit()

    today = alarm_repo.list_for_day(tz="America/Sao_Paulo")

    assert old not in today
    assert len(today) == 2


def test_get_and_delete_by_key(alarm_repo, alarms):
    alarm = alarms["rows"][1]
    key = (alarm.user_id, alarm.measurement_id, alarm.alert_id)

    assert alarm_repo.get_by_key(*key) is alarm
    alarm_repo.delete_by_key(*key)
    assert alarm_repo.get_by_key(*key) is None
    with pytest.raises(NotFoundError) as excinfo:
        alarm_repo.delete_by_key(*key)
    assert excinfo.value.message == "Alarme não encontrado"
