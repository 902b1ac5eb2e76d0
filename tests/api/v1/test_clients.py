import pytest
from httpx import AsyncClient
from fastapi import status

from tests.conftest import API

pytestmark = pytest.mark.asyncio

CLIENTS = f"{API}/clients"


async def test_create_client(client: AsyncClient, admin_headers):
    payload = {"name": "Initech", "email": "it@initech.com", "contact_phone": "+1 555 0100"}
    response = await client.post(f"{CLIENTS}/", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    body = response.json()
    assert body["name"] == "Initech"
    assert body["is_active"] is True


async def test_create_duplicate_client(client: AsyncClient, admin_headers, acme):
    response = await client.post(f"{CLIENTS}/", json={"name": "Acme Corp"}, headers=admin_headers)
    assert response.status_code == status.HTTP_409_CONFLICT
    assert "Acme Corp" in response.json()["detail"]


async def test_create_client_invalid_email(client: AsyncClient, admin_headers):
    response = await client.post(f"{CLIENTS}/", json={"name": "Umbrella", "email": "not-an-email"}, headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["errors"][0]["field"] == "email"


async def test_client_admin_cannot_create_clients(client: AsyncClient, login_as, acme):
    _, headers = await login_as("client-admin", acme)
    response = await client.post(f"{CLIENTS}/", json={"name": "Shadow Corp"}, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "This action is reserved to the organization staff."


async def test_list_and_search_clients(client: AsyncClient, admin_headers, acme, globex):
    listed = await client.get(f"{CLIENTS}/", headers=admin_headers)
    assert [c["name"] for c in listed.json()] == ["Acme Corp", "Globex Inc"]

    searched = await client.get(f"{CLIENTS}/", params={"search": "glob"}, headers=admin_headers)
    assert [c["name"] for c in searched.json()] == ["Globex Inc"]


async def test_scoped_caller_sees_only_own_client(client: AsyncClient, login_as, acme, globex):
    _, headers = await login_as("client-admin", acme)
    listed = await client.get(f"{CLIENTS}/", headers=headers)
    assert [c["id"] for c in listed.json()] == [str(acme.id)]

    foreign = await client.get(f"{CLIENTS}/{globex.id}", headers=headers)
    assert foreign.status_code == status.HTTP_403_FORBIDDEN


async def test_update_client(client: AsyncClient, admin_headers, acme, globex):
    response = await client.put(f"{CLIENTS}/{acme.id}", json={"contact_phone": "555-1234"}, headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["contact_phone"] == "555-1234"

    clash = await client.put(f"{CLIENTS}/{acme.id}", json={"name": "Globex Inc"}, headers=admin_headers)
    assert clash.status_code == status.HTTP_409_CONFLICT


async def test_delete_client(client: AsyncClient, admin_headers, make_client):
    initech = make_client("Initech")
    response = await client.delete(f"{CLIENTS}/{initech.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["msg"] == "Client 'Initech' deleted."

    missing = await client.get(f"{CLIENTS}/{initech.id}", headers=admin_headers)
    assert missing.status_code == status.HTTP_404_NOT_FOUND


async def test_delete_client_with_banks(client: AsyncClient, admin_headers, acme, make_bank):
    make_bank(acme, "10")
    response = await client.delete(f"{CLIENTS}/{acme.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_409_CONFLICT


async def test_delete_client_with_users(client: AsyncClient, admin_headers, globex, make_user):
    make_user("client-user", globex)
    response = await client.delete(f"{CLIENTS}/{globex.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_409_CONFLICT
