from __future__ import annotations

from datetime import timedelta

from conftest import future_hour
from models.audit_log import AuditLog
from models.station import Station

PAYLOAD = {
    "name": "Colombo Central",
    "address": "12 Galle Road",
    "geoLocation": {"latitude": 6.9271, "longitude": 79.8612},
    "type": "dc",
    "connectorTypes": ["CCS2", "CHAdeMO"],
    "numberOfConnectors": 2,
    "operatingHours": "06:00-22:00",
}


def test_create_station(client, backoffice, login) -> None:
    resp = client.post("/chargingstation/create", json=PAYLOAD, headers=login(backoffice))
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["type"] == "DC"
    assert body["active"] is True
    assert body["geoLocation"] == {"latitude": 6.9271, "longitude": 79.8612}
    assert AuditLog.query.filter_by(action="STATION_CREATE").count() == 1


def test_create_accepts_pascal_case_and_rejects_duplicates(client, backoffice, login) -> None:
    headers = login(backoffice)
    legacy = {"Name": "Kandy Hub", "Address": "1 Temple St", "Type": "AC"}
    assert client.post("/chargingstation/create", json=legacy, headers=headers).status_code == 201

    dup = {"name": "  kandy hub ", "address": "1 TEMPLE ST"}
    resp = client.post("/chargingstation/create", json=dup, headers=headers)
    assert resp.status_code == 409


def test_create_validation_and_roles(client, backoffice, operator, login) -> None:
    headers = login(backoffice)
    assert client.post("/chargingstation/create", json={"name": "x"}, headers=headers).status_code == 400
    bad_type = dict(PAYLOAD, type="Plasma")
    assert client.post("/chargingstation/create", json=bad_type, headers=headers).status_code == 400
    bad_geo = dict(PAYLOAD, geoLocation={"latitude": 123, "longitude": 0})
    assert client.post("/chargingstation/create", json=bad_geo, headers=headers).status_code == 400

    assert client.post("/chargingstation/create", json=PAYLOAD, headers=login(operator)).status_code == 403
    assert client.post("/chargingstation/create", json=PAYLOAD).status_code == 401


def test_partial_update(client, station, operator, login) -> None:
    headers = login(operator)
    resp = client.patch(f"/chargingstation/partial/{station.id}", json={"numberOfConnectors": 4}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["numberOfConnectors"] == 4
    assert resp.get_json()["name"] == "Colombo Central"

    bad = client.patch(f"/chargingstation/partial/{station.id}", json={"numberOfConnectors": 0}, headers=headers)
    assert bad.status_code == 400
    assert client.patch("/chargingstation/partial/9999", json={}, headers=headers).status_code == 404


def test_listing_hides_private_stations_from_owners(client, make_station, owner, operator, login) -> None:
    make_station("Public One")
    private = make_station("Depot Only", is_public=False)

    owner_view = client.get("/chargingstation/all", headers=login(owner)).get_json()
    assert [s["name"] for s in owner_view] == ["Public One"]
    assert client.get(f"/chargingstation/{private.id}", headers=login(owner)).status_code == 404

    staff_view = client.get("/chargingstation/all", headers=login(operator)).get_json()
    assert {s["name"] for s in staff_view} == {"Public One", "Depot Only"}


def test_activate_deactivate(client, station, operator, login) -> None:
    headers = login(operator)
    assert client.post(f"/chargingstation/deactivate/{station.id}", headers=headers).get_json()["active"] is False
    assert client.post(f"/chargingstation/deactivate/{station.id}", headers=headers).status_code == 200
    assert client.post(f"/chargingstation/activate/{station.id}", headers=headers).get_json()["active"] is True


def test_delete_requires_confirmation_when_dependents_exist(client, station, make_slot, backoffice, login) -> None:
    headers = login(backoffice)
    make_slot(station, future_hour())
    make_slot(station, future_hour() + timedelta(hours=1))

    preview = client.get(f"/chargingstation/dependencies/{station.id}", headers=headers)
    assert preview.get_json() == {"bookingsCount": 0, "slotsCount": 2}

    resp = client.delete(f"/chargingstation/delete/{station.id}", headers=headers)
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "DEPENDENCIES_EXIST"
    assert resp.get_json()["dependencies"] == {"bookingsCount": 0, "slotsCount": 2}

    resp = client.delete(f"/chargingstation/delete/{station.id}?confirm=true", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["deleted"] == {"stations": 1, "slots": 2, "bookings": 0}
    assert Station.query.count() == 0


def test_slot_init_list_and_deinit(client, station, operator, owner, login) -> None:
    staff = login(operator)
    day = future_hour().date().isoformat()

    resp = client.post(f"/chargingslot/init/{station.id}/{day}", headers=staff)
    assert resp.status_code == 201
    assert resp.get_json()["count"] == 16

    again = client.post(f"/chargingslot/init/{station.id}/{day}", headers=staff)
    assert again.status_code == 409
    assert again.get_json()["code"] == "ALREADY_INITIALIZED"

    listed = client.get(f"/chargingslot/all/{station.id}/{day}", headers=login(owner)).get_json()
    assert len(listed) == 16
    assert listed[0]["startTime"].endswith("06:00:00")

    assert client.post(f"/chargingslot/init/{station.id}/{day}", headers=login(owner)).status_code == 403
    assert client.get(f"/chargingslot/all/{station.id}/not-a-date", headers=staff).status_code == 400

    removed = client.delete(f"/chargingslot/deinit/{station.id}/{day}", headers=staff)
    assert removed.status_code == 200
    assert removed.get_json()["removed"] == 16


def test_slot_init_on_inactive_station(client, make_station, operator, login) -> None:
    closed = make_station("Closed", active=False)
    day = future_hour().date().isoformat()
    resp = client.post(f"/chargingslot/init/{closed.id}/{day}", headers=login(operator))
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "STATION_INACTIVE"
