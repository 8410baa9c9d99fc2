from nimbus.models import Alarm, Alert


def test_rule_and_alert_lifecycle(client, db, factory):
    user = factory.user()
    parameter = factory.parameter()

    rule = client.post(
        "/api/alert-rules",
        json={"operator": ">=", "threshold": 25, "parameter_id": parameter.id},
    )
    assert rule.status_code == 201
    rule_id = rule.get_json()["id"]

    alert = client.post(
        "/api/alerts",
        json={"title": "Calor", "body": "Acima de 25", "alert_rule_id": rule_id, "subscriber_ids": [user.id]},
    )
    assert alert.status_code == 201
    alert_body = alert.get_json()
    assert alert_body["subscriber_ids"] == [user.id]

    updated = client.put(f"/api/alert-rules/{rule_id}", json={"threshold": 30})
    assert updated.get_json()["threshold"] == 30.0
    assert client.get(f"/api/alert-rules/{rule_id}").get_json()["alert_ids"] == [alert_body["id"]]

    assert client.delete(f"/api/alert-rules/{rule_id}").status_code == 204
    assert client.get(f"/api/alerts/{alert_body['id']}").get_json()["alert_rule_id"] is None


def test_operator_is_stored_as_given(client, db):
    response = client.post("/api/alert-rules", json={"operator": "=>", "threshold": 1.0})

    assert response.status_code == 201
    assert response.get_json()["operator"] == "=>"


def test_rule_validation(client, db):
    response = client.post(
        "/api/alert-rules", json={"operator": "x" * 11, "threshold": "alto"}
    )

    assert response.status_code == 400
    fields = {e["field"] for e in response.get_json()["errors"]}
    assert fields == {"operator", "threshold"}


def test_rule_with_unknown_parameter(client, db):
    response = client.post(
        "/api/alert-rules", json={"operator": ">", "threshold": 1.0, "parameter_id": 55}
    )

    assert response.status_code == 409
    assert response.get_json()["field"] == "parameter_id"


def test_subscriptions(client, db, factory):
    ana, bruno = factory.user("Ana"), factory.user("Bruno")
    alert = factory.alert(factory.rule(factory.parameter()), [ana])

    added = client.post(f"/api/alerts/{alert.id}/subscribers", json={"user_id": bruno.id})
    assert added.status_code == 201
    assert added.get_json()["subscriber_ids"] == [ana.id, bruno.id]

    again = client.post(f"/api/alerts/{alert.id}/subscribers", json={"user_id": bruno.id})
    assert again.status_code == 409

    assert client.delete(f"/api/alerts/{alert.id}/subscribers/{ana.id}").status_code == 204
    assert client.delete(f"/api/alerts/{alert.id}/subscribers/{ana.id}").status_code == 404


def test_delete_alert_cascades(client, db, factory):
    user = factory.user()
    parameter = factory.parameter()
    alert = factory.alert(factory.rule(parameter), [user])
    measurement = factory.measurement(parameter)
    db.session.add(Alarm(user_id=user.id, measurement_id=measurement.id, alert_id=alert.id))
    db.session.commit()

    assert client.delete(f"/api/alerts/{alert.id}").status_code == 204
    assert db.session.query(Alert).count() == 0
    assert db.session.query(Alarm).count() == 0
    assert client.get(f"/api/alerts/{alert.id}").status_code == 404


def test_out_of_range_ids_are_rejected(client, db, factory):
    alert = factory.alert(factory.rule(factory.parameter()))

    rule = client.post(
        "/api/alert-rules", json={"operator": ">", "threshold": 1.0, "parameter_id": 2**40}
    )
    created = client.post("/api/alerts", json={"title": "X", "subscriber_ids": [2**40]})
    subscribe = client.post(f"/api/alerts/{alert.id}/subscribers", json={"user_id": 2**40})

    assert rule.status_code == created.status_code == subscribe.status_code == 400
    assert rule.get_json()["errors"][0]["field"] == "parameter_id"
    assert created.get_json()["errors"][0]["field"] == "subscriber_ids.0"
    assert subscribe.get_json()["errors"][0]["field"] == "user_id"
