import pytest
from httpx import AsyncClient
from fastapi import status

from tests.conftest import API

pytestmark = pytest.mark.asyncio

LICENSES = f"{API}/licenses"


async def test_create_license_defaults(client: AsyncClient, admin_headers, acme):
    payload = {"name": "Office 365 E3", "vendor": "Microsoft", "client_id": str(acme.id)}
    response = await client.post(f"{LICENSES}/", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    body = response.json()
    assert body["total_seats"] == 1
    assert body["used_seats"] == 0
    assert body["available_seats"] == 1
    assert body["license_type"] == "subscription"
    assert body["currency"] == "EUR"


async def test_used_seats_cannot_exceed_total(client: AsyncClient, admin_headers):
    payload = {"name": "Adobe CC", "total_seats": 5, "used_seats": 6}
    response = await client.post(f"{LICENSES}/", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"] == "Used seats (6) cannot exceed total seats (5)."


async def test_update_checks_stored_seats(client: AsyncClient, admin_headers):
    created = await client.post(
        f"{LICENSES}/", json={"name": "JetBrains", "total_seats": 10, "used_seats": 8}, headers=admin_headers
    )
    license_id = created.json()["id"]

    shrink = await client.put(f"{LICENSES}/{license_id}", json={"total_seats": 5}, headers=admin_headers)
    assert shrink.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    grow = await client.put(f"{LICENSES}/{license_id}", json={"used_seats": 10}, headers=admin_headers)
    assert grow.status_code == status.HTTP_200_OK
    assert grow.json()["available_seats"] == 0


async def test_expiry_before_purchase(client: AsyncClient, admin_headers):
    payload = {"name": "Backup suite", "purchase_date": "2026-05-01", "expiry_date": "2026-04-01"}
    response = await client.post(f"{LICENSES}/", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"] == "Invalid input data."


async def test_expiring_filter(client: AsyncClient, admin_headers):
    await client.post(f"{LICENSES}/", json={"name": "Antivirus", "expiry_date": "2026-11-01"}, headers=admin_headers)
    await client.post(f"{LICENSES}/", json={"name": "CAD", "expiry_date": "2027-06-01"}, headers=admin_headers)
    await client.post(f"{LICENSES}/", json={"name": "Perpetual tool", "license_type": "perpetual"}, headers=admin_headers)

    response = await client.get(f"{LICENSES}/", params={"expiring_before": "2026-12-31"}, headers=admin_headers)
    assert [lic["name"] for lic in response.json()] == ["Antivirus"]


async def test_agent_reads_licenses_through_asset_permissions(client: AsyncClient, login_as):
    _, headers = await login_as("agent")
    assert (await client.get(f"{LICENSES}/", headers=headers)).status_code == status.HTTP_200_OK
    response = await client.post(f"{LICENSES}/", json={"name": "Nope"}, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_delete_license_through_asset_permissions(client: AsyncClient, admin_headers, login_as):
    created = await client.post(f"{LICENSES}/", json={"name": "Visio"}, headers=admin_headers)
    license_id = created.json()["id"]

    _, agent_headers = await login_as("agent")
    denied = await client.delete(f"{LICENSES}/{license_id}", headers=agent_headers)
    assert denied.status_code == status.HTTP_403_FORBIDDEN

    _, technician_headers = await login_as("technician")
    deleted = await client.delete(f"{LICENSES}/{license_id}", headers=technician_headers)
    assert deleted.status_code == status.HTTP_200_OK
    assert deleted.json() == {"msg": "License 'Visio' deleted."}


async def test_client_admin_scoped_licenses(client: AsyncClient, admin_headers, login_as, acme, globex):
    foreign = await client.post(
        f"{LICENSES}/", json={"name": "Globex ERP", "client_id": str(globex.id)}, headers=admin_headers
    )
    _, headers = await login_as("client-admin", acme)

    created = await client.post(
        f"{LICENSES}/", json={"name": "Acme CRM", "client_id": str(globex.id)}, headers=headers
    )
    assert created.json()["client_id"] == str(acme.id)

    moved = await client.put(
        f"{LICENSES}/{created.json()['id']}", json={"client_id": str(globex.id)}, headers=headers
    )
    assert moved.status_code == status.HTTP_403_FORBIDDEN

    hidden = await client.delete(f"{LICENSES}/{foreign.json()['id']}", headers=headers)
    assert hidden.status_code == status.HTTP_403_FORBIDDEN
