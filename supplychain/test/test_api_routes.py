"""
Tests for the JSON API: status codes, error bodies and an end-to-end flow.
"""
import pytest


@pytest.fixture
def api_catalog(client):
    leg = client.post('/api/raw-materials', json={"name": "Chair Leg", "sku": "LEG-001", "quantity": 400})
    seat = client.post('/api/raw-materials', json={"name": "Chair Seat", "sku": "SEAT-001", "quantity": 100})
    chair = client.post('/api/produced-goods', json={
        "name": "Dining Chair", "sku": "CHAIR-001", "recipe": {"LEG-001": 4, "SEAT-001": 1},
    })
    assert (leg.status_code, seat.status_code, chair.status_code) == (201, 201, 201)
    return {'leg': leg.get_json()['id'], 'seat': seat.get_json()['id'], 'chair': chair.get_json()['id']}


def test_list_catalog(client, api_catalog):
    materials = client.get('/api/raw-materials').get_json()
    goods = client.get('/api/produced-goods').get_json()

    assert [(m['sku'], m['quantity'], m['unit']) for m in materials] == [("LEG-001", 400, "pcs"), ("SEAT-001", 100, "pcs")]
    assert goods[0]['recipe'] == {"LEG-001": 4, "SEAT-001": 1}


def test_duplicate_sku_is_conflict(client, api_catalog):
    response = client.post('/api/raw-materials', json={"name": "Leg", "sku": "LEG-001"})

    assert response.status_code == 409
    assert response.get_json()['error'] == "DuplicateSku"


def test_unknown_recipe_sku_is_not_found(client, api_catalog):
    response = client.post('/api/produced-goods', json={"name": "Stool", "sku": "STOOL-1", "recipe": {"TOP-1": 1}})

    assert response.status_code == 404
    assert response.get_json()['skus'] == ["TOP-1"]


def test_non_json_body_is_bad_request(client, api_catalog):
    response = client.post('/api/sales', data="good_id=1", content_type="application/x-www-form-urlencoded")

    assert response.status_code == 400
    assert response.get_json()['error'] == "InvalidInput"


def test_produce_and_sell(client, api_catalog):
    produced = client.post(f"/api/produced-goods/{api_catalog['chair']}/produce", json={"units": 10})
    assert produced.status_code == 200
    assert produced.get_json()['quantity'] == 10

    sale = client.post('/api/sales', json={"good_id": api_catalog['chair'], "quantity": 4, "payment_status": "PAID"})
    assert sale.status_code == 201
    assert sale.get_json()['remaining_quantity'] == 6

    oversell = client.post('/api/sales', json={"good_id": api_catalog['chair'], "quantity": 7, "payment_status": "PAID"})
    assert oversell.status_code == 409
    body = oversell.get_json()
    assert body['error'] == "InsufficientStock"
    assert body['shortfalls'][0]['available'] == 6

    listed = client.get(f"/api/sales?good_id={api_catalog['chair']}").get_json()
    assert [s['quantity'] for s in listed] == [4]


def test_invalid_units_is_bad_request(client, api_catalog):
    response = client.post(f"/api/produced-goods/{api_catalog['chair']}/produce", json={"units": 0})

    assert response.status_code == 400
    assert response.get_json()['error'] == "InvalidQuantity"


def test_transfer_flow(client, api_catalog):
    created = client.post('/api/transfers', json={
        "from_dept": "PROCUREMENT",
        "to_dept": "MANUFACTURING",
        "items": [{"item_type": "RAW", "sku": "LEG-001", "requested_qty": 20}],
    })
    assert created.status_code == 201
    request_id = created.get_json()['id']
    assert created.get_json()['status'] == "PENDING"

    forbidden = client.post(f"/api/transfers/{request_id}/adjust",
                            json={"actor_dept": "MANUFACTURING", "new_approved_qty": 15})
    assert forbidden.status_code == 403
    assert forbidden.get_json()['error'] == "Forbidden"

    adjusted = client.post(f"/api/transfers/{request_id}/adjust",
                           json={"actor_dept": "PROCUREMENT", "new_approved_qty": 15})
    assert adjusted.get_json()['status'] == "ADJUSTED"

    approved = client.post(f"/api/transfers/{request_id}/approve", json={"actor_dept": "PROCUREMENT"})
    assert approved.status_code == 200
    assert approved.get_json()['moved'] is True

    again = client.post(f"/api/transfers/{request_id}/approve", json={"actor_dept": "PROCUREMENT"})
    assert again.get_json()['moved'] is False

    late_adjust = client.post(f"/api/transfers/{request_id}/adjust",
                              json={"actor_dept": "PROCUREMENT", "new_approved_qty": 1})
    assert late_adjust.status_code == 409
    assert late_adjust.get_json()['error'] == "AlreadyApproved"

    holdings = client.get(f"/api/stock/raw/{api_catalog['leg']}").get_json()
    assert {h['department']: h['quantity'] for h in holdings} == {"PROCUREMENT": 385, "MANUFACTURING": 15}

    fulfilling = client.get('/api/transfers?department=PROCUREMENT&role=fulfilling').get_json()
    assert [t['id'] for t in fulfilling] == [request_id]
    assert client.get(f"/api/transfers/{request_id}").get_json()['items'][0]['approved_qty'] == 15


def test_same_department_transfer_is_bad_request(client, api_catalog):
    response = client.post('/api/transfers', json={
        "from_dept": "RETAIL", "to_dept": "RETAIL",
        "items": [{"item_type": "RAW", "sku": "LEG-001", "requested_qty": 1}],
    })

    assert response.status_code == 400
    assert response.get_json()['error'] == "SameDept"


def test_missing_resources_are_not_found(client, api_catalog):
    assert client.get('/api/transfers/999').status_code == 404
    assert client.get('/api/stock/produced/999').status_code == 404
    assert client.get('/api/stock/raw/999/movements').status_code == 404


def test_transfers_listing_requires_department(client):
    assert client.get('/api/transfers').status_code == 400


def test_bulk_import_route(client, api_catalog):
    response = client.post('/api/raw-materials/import', json={"rows": [
        {"SKU": "LEG-001", "Name": "Chair Leg", "Quantity": 10},
        {"SKU": "BAD", "Name": "Bad", "Quantity": -3},
    ]})

    body = response.get_json()
    assert response.status_code == 200
    assert (body['updated'], body['inserted']) == (1, 0)
    assert body['errors'][0]['row'] == 3

    movements = client.get(f"/api/stock/raw/{api_catalog['leg']}/movements").get_json()
    assert movements[-1]['quantity_after'] == 10


def test_out_of_range_quantity_is_bad_request(client, api_catalog):
    response = client.post('/api/raw-materials', json={"name": "Bolt", "sku": "BOLT-001", "quantity": 2**70})
    assert response.status_code == 400
    assert response.get_json()['error'] == "InvalidInput"

    produce = client.post(f"/api/produced-goods/{api_catalog['chair']}/produce", json={"units": 10**19})
    assert produce.status_code == 400
    assert produce.get_json()['error'] == "InvalidQuantity"
