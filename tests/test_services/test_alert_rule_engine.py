import pytest

from nimbus.services.alert_rule_engine import (
    AlertRuleEngine,
    ComparisonOperator,
    TriggeredAlert,
    UnknownOperatorError,
)


@pytest.mark.parametrize(
    "text, value, threshold, expected",
    [
        (">", 31.0, 30.0, True),
        (">", 30.0, 30.0, False),
        ("<", 29.9, 30.0, True),
        (">=", 30.0, 30.0, True),
        ("<=", 30.1, 30.0, False),
        ("==", 30.0, 30.0, True),
        ("==", 30.0000001, 30.0, False),
        (" >= ", 31.0, 30.0, True),
    ],
)
def test_operator_semantics(text, value, threshold, expected):
    assert ComparisonOperator.parse(text).compare(value, threshold) is expected


@pytest.mark.parametrize("text", ["=>", "!=", "", "gt", None])
def test_unknown_operator_is_rejected(text):
    with pytest.raises(UnknownOperatorError):
        ComparisonOperator.parse(text)


def test_fan_out_one_trigger_per_alert_and_subscriber(db, factory):
    ana, bruno = factory.user("Ana"), factory.user("Bruno")
    parameter = factory.parameter()
    rule = factory.rule(parameter, ">", 30.0)
    first = factory.alert(rule, [ana, bruno], title="Calor")
    second = factory.alert(rule, [ana], title="Calor extremo")
    measurement = factory.measurement(parameter, value=35.0)

    triggered = AlertRuleEngine(session=db.session).evaluate(measurement)

    assert sorted(triggered, key=lambda t: (t.alert_id, t.user_id)) == [
        TriggeredAlert(ana.id, measurement.id, first.id, rule.id),
        TriggeredAlert(bruno.id, measurement.id, first.id, rule.id),
        TriggeredAlert(ana.id, measurement.id, second.id, rule.id),
    ]


def test_rule_without_alerts_or_subscribers_produces_nothing(db, factory):
    parameter = factory.parameter()
    rule = factory.rule(parameter, ">", 0.0)
    factory.alert(rule, [])
    measurement = factory.measurement(parameter, value=10.0)

    assert AlertRuleEngine(session=db.session).evaluate(measurement) == []


def test_only_rules_of_the_measurement_parameter_are_evaluated(db, factory):
    user = factory.user()
    station = factory.station("EST002")
    temperature = factory.parameter(station)
    humidity = factory.parameter(station, "Umidade", "%")
    factory.alert(factory.rule(humidity, ">", 0.0), [user])
    factory.alert(factory.rule(None, ">", 0.0), [user])
    measurement = factory.measurement(temperature, value=50.0)

    assert AlertRuleEngine(session=db.session).evaluate(measurement) == []


def test_misconfigured_rule_fails_closed_and_scan_continues(db, factory, caplog):
    user = factory.user()
    parameter = factory.parameter()
    broken = factory.rule(parameter, "=>", 10.0)
    factory.alert(broken, [user], title="Regra quebrada")
    good = factory.rule(parameter, ">", 10.0)
    good_alert = factory.alert(good, [user], title="Regra boa")
    measurement = factory.measurement(parameter, value=20.0)

    report = AlertRuleEngine(session=db.session).evaluate_detailed(measurement)

    assert report.misconfigured_rules == [broken.id]
    assert [t.alert_id for t in report.triggered] == [good_alert.id]
    assert any(
        record.levelname == "ERROR" and "mal configurada" in record.getMessage()
        for record in caplog.records
    )
