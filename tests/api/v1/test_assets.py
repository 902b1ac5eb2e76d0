from uuid import uuid4

import pytest
from httpx import AsyncClient
from fastapi import status

from tests.conftest import API

pytestmark = pytest.mark.asyncio

ASSETS = f"{API}/assets"


def laptop(**overrides):
    payload = {
        "name": "Dev laptop 01",
        "type": "laptop",
        "asset_tag": "LT-0001",
        "manufacturer": "Lenovo",
        "serial_number": "PF3ABC12",
        "hardware_info": {"cpu": "i7-1365U", "ram_gb": 32},
        "purchase_price": "1499.90",
    }
    payload.update(overrides)
    return payload


async def test_register_asset(client: AsyncClient, admin_headers, acme):
    response = await client.post(f"{ASSETS}/", json=laptop(client_id=str(acme.id)), headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    body = response.json()
    assert body["status"] == "active"
    assert body["hardware_info"] == {"cpu": "i7-1365U", "ram_gb": 32}
    assert body["client"]["name"] == "Acme Corp"


async def test_duplicate_asset_tag(client: AsyncClient, admin_headers):
    await client.post(f"{ASSETS}/", json=laptop(), headers=admin_headers)
    response = await client.post(f"{ASSETS}/", json=laptop(name="Another laptop"), headers=admin_headers)
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"] == "Asset tag 'LT-0001' is already in use."


async def test_invalid_asset_type(client: AsyncClient, admin_headers):
    response = await client.post(f"{ASSETS}/", json=laptop(type="toaster"), headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["errors"][0]["field"] == "type"


async def test_assigned_user_must_share_client(client: AsyncClient, admin_headers, acme, globex, make_user):
    outsider = make_user("client-user", globex)
    response = await client.post(
        f"{ASSETS}/", json=laptop(client_id=str(acme.id), user_id=str(outsider.id)), headers=admin_headers
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"] == "The assigned user belongs to another client."


async def test_agent_can_read_but_not_register(client: AsyncClient, login_as):
    _, headers = await login_as("agent")
    assert (await client.get(f"{ASSETS}/", headers=headers)).status_code == status.HTTP_200_OK
    response = await client.post(f"{ASSETS}/", json=laptop(), headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_technician_manages_assets(client: AsyncClient, login_as):
    _, headers = await login_as("technician")
    created = await client.post(f"{ASSETS}/", json=laptop(), headers=headers)
    assert created.status_code == status.HTTP_201_CREATED
    asset_id = created.json()["id"]

    updated = await client.put(f"{ASSETS}/{asset_id}", json={"status": "maintenance"}, headers=headers)
    assert updated.status_code == status.HTTP_200_OK
    assert updated.json()["status"] == "maintenance"

    deleted = await client.delete(f"{ASSETS}/{asset_id}", headers=headers)
    assert deleted.status_code == status.HTTP_200_OK
    assert (await client.get(f"{ASSETS}/{asset_id}", headers=headers)).status_code == status.HTTP_404_NOT_FOUND


async def test_filters(client: AsyncClient, admin_headers):
    await client.post(f"{ASSETS}/", json=laptop(), headers=admin_headers)
    await client.post(
        f"{ASSETS}/", json=laptop(name="Core switch", type="network_device", asset_tag="NW-0001", serial_number="SW99"),
        headers=admin_headers,
    )

    by_type = await client.get(f"{ASSETS}/", params={"type": "network_device"}, headers=admin_headers)
    assert [a["name"] for a in by_type.json()] == ["Core switch"]

    by_search = await client.get(f"{ASSETS}/", params={"search": "PF3"}, headers=admin_headers)
    assert [a["asset_tag"] for a in by_search.json()] == ["LT-0001"]


async def test_client_user_sees_only_own_assets(client: AsyncClient, admin_headers, login_as, acme, globex):
    await client.post(f"{ASSETS}/", json=laptop(client_id=str(acme.id)), headers=admin_headers)
    foreign = await client.post(
        f"{ASSETS}/", json=laptop(client_id=str(globex.id), asset_tag="LT-0002"), headers=admin_headers
    )
    _, headers = await login_as("client-user", acme)

    listed = await client.get(f"{ASSETS}/", headers=headers)
    assert [a["asset_tag"] for a in listed.json()] == ["LT-0001"]
    hidden = await client.get(f"{ASSETS}/{foreign.json()['id']}", headers=headers)
    assert hidden.status_code == status.HTTP_403_FORBIDDEN


async def test_unknown_asset(client: AsyncClient, admin_headers):
    response = await client.get(f"{ASSETS}/{uuid4()}", headers=admin_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
