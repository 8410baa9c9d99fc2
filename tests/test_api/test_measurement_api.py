from datetime import datetime, timezone

from nimbus.models import Alarm


def test_post_measurement_creates_alarms_and_broadcasts(client, factory, app_transport):
    user = factory.user()
    parameter = factory.parameter()
    factory.alert(factory.rule(parameter, ">", 30.0), [user])

    response = client.post(
        "/api/measurements",
        json={"parameter_id": parameter.id, "value": 35.2, "timestamp": 1_715_000_000},
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["parameter_id"] == parameter.id
    assert body["value"] == 35.2
    assert body["alarms_created"] == 1
    assert len(app_transport.of_type("NEW_ALARM")) == 1


def test_post_measurement_validation_errors(client, db):
    response = client.post("/api/measurements", json={"parameter_id": "x", "value": "y"})

    assert response.status_code == 400
    body = response.get_json()
    assert body["message"] == "Erro de validação nos dados enviados."
    fields = {issue["field"] for issue in body["errors"]}
    assert {"parameter_id", "value", "timestamp"} <= fields


def test_post_measurement_unknown_parameter(client, db):
    response = client.post(
        "/api/measurements", json={"parameter_id": 77, "value": 1.0, "timestamp": 1}
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == (
        "Erro de chave estrangeira: o parâmetro fornecido não existe."
    )


def test_list_get_and_delete(client, db, factory):
    parameter = factory.parameter()
    older = factory.measurement(parameter, timestamp=10)
    newer = factory.measurement(parameter, timestamp=20)

    listing = client.get("/api/measurements?limit=1").get_json()
    assert [m["id"] for m in listing["data"]] == [newer.id]
    assert listing["meta"] == {
        "totalItems": 2,
        "currentPage": 1,
        "totalPages": 2,
        "itemsPerPage": 1,
    }

    assert client.get(f"/api/measurements/{older.id}").get_json()["timestamp"] == 10
    assert client.delete(f"/api/measurements/{older.id}").status_code == 204
    missing = client.get(f"/api/measurements/{older.id}")
    assert missing.status_code == 404
    assert missing.get_json()["message"] == "Medida não encontrada."


def test_delete_measurement_cascades_to_alarms(client, db, factory):
    user = factory.user()
    parameter = factory.parameter()
    alert = factory.alert(factory.rule(parameter), [user])
    measurement = factory.measurement(parameter, value=50.0)
    db.session.add(Alarm(user_id=user.id, measurement_id=measurement.id, alert_id=alert.id))
    db.session.commit()

    assert client.delete(f"/api/measurements/{measurement.id}").status_code == 204
    assert db.session.query(Alarm).count() == 0


def test_invalid_pagination_is_rejected(client, db):
    response = client.get("/api/measurements?page=0")

    assert response.status_code == 400
    assert response.get_json()["errors"][0]["field"] == "page"


def test_parameter_listing_and_day_view(client, db, factory):
    parameter = factory.parameter()
    start = int(datetime(2024, 5, 10, 3, 0, tzinfo=timezone.utc).timestamp())
    factory.measurement(parameter, timestamp=start)
    factory.measurement(parameter, timestamp=start - 1)

    paged = client.get(f"/api/parameters/{parameter.id}/measurements").get_json()
    assert paged["meta"]["totalItems"] == 2

    day = client.get(f"/api/parameters/{parameter.id}/measurements/day?date=2024-05-10")
    assert day.status_code == 200
    assert [m["timestamp"] for m in day.get_json()["data"]] == [start]

    assert client.get("/api/parameters/999/measurements").status_code == 404
    bad = client.get(f"/api/parameters/{parameter.id}/measurements/day?date=10/05/2024")
    assert bad.status_code == 400
    assert bad.get_json()["errors"][0]["field"] == "date"


def test_post_measurement_rejects_nan_on_the_value_field(client, db, factory):
    parameter = factory.parameter()

    response = client.post(
        "/api/measurements",
        data=f'{{"parameter_id": {parameter.id}, "value": NaN, "timestamp": 1}}',
        content_type="application/json",
    )

    assert response.status_code == 400
    assert [e["field"] for e in response.get_json()["errors"]] == ["value"]


def test_post_measurement_rejects_out_of_range_integers(client, db, factory):
    parameter = factory.parameter()

    huge_timestamp = client.post(
        "/api/measurements",
        json={"parameter_id": parameter.id, "value": 1.0, "timestamp": 2**70},
    )
    huge_parameter = client.post(
        "/api/measurements", json={"parameter_id": 2**70, "value": 1.0, "timestamp": 1}
    )

    assert huge_timestamp.status_code == 400
    assert huge_timestamp.get_json()["errors"][0]["field"] == "timestamp"
    assert huge_parameter.status_code == 400
    assert huge_parameter.get_json()["errors"][0]["field"] == "parameter_id"


def test_post_measurement_accepts_the_largest_timestamp(client, db, factory):
    parameter = factory.parameter()

    response = client.post(
        "/api/measurements",
        json={"parameter_id": parameter.id, "value": 1.0, "timestamp": 2**63 - 1},
    )

    assert response.status_code == 201
