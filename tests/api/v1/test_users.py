import pytest
from httpx import AsyncClient
from fastapi import status

from tests.conftest import API, TEST_PASSWORD, get_auth_token

pytestmark = pytest.mark.asyncio

USERS = f"{API}/client/users"


async def test_staff_creates_user(client: AsyncClient, admin_headers, acme):
    payload = {
        "username": "jane.roe", "email": "jane.roe@acme.com", "full_name": "Jane Roe",
        "role": "client-user", "client_id": str(acme.id), "password": TEST_PASSWORD,
    }
    response = await client.post(f"{USERS}/", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    body = response.json()
    assert body["role"] == "client-user"
    assert body["client"]["name"] == "Acme Corp"
    assert "password" not in body and "hashed_password" not in body

    assert await get_auth_token(client, "jane.roe") is not None


async def test_client_role_requires_client(client: AsyncClient, admin_headers):
    payload = {"username": "no.client", "role": "client-user", "password": TEST_PASSWORD}
    response = await client.post(f"{USERS}/", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert "must belong to a client" in response.json()["detail"]


async def test_duplicate_username(client: AsyncClient, admin_headers, make_user):
    make_user("agent", username="taken.name")
    payload = {"username": "taken.name", "role": "agent", "password": TEST_PASSWORD}
    response = await client.post(f"{USERS}/", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_409_CONFLICT


async def test_short_password(client: AsyncClient, admin_headers):
    payload = {"username": "weak.pass", "role": "agent", "password": "short"}
    response = await client.post(f"{USERS}/", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["errors"][0]["field"] == "password"


async def test_scoped_creation_is_forced_to_own_client(client: AsyncClient, login_as, acme, globex):
    _, headers = await login_as("client-manager", acme)
    payload = {"username": "acme.staff", "role": "client-user", "client_id": str(globex.id), "password": TEST_PASSWORD}
    response = await client.post(f"{USERS}/", json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    assert response.json()["client_id"] == str(acme.id)


@pytest.mark.parametrize("role", ["client-admin", "agent", "org-admin"])
async def test_client_manager_cannot_assign_role(client: AsyncClient, login_as, acme, role):
    _, headers = await login_as("client-manager", acme)
    payload = {"username": f"promoted.{role}", "role": role, "password": TEST_PASSWORD}
    response = await client.post(f"{USERS}/", json=payload, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == f"You cannot assign the role '{role}'."


async def test_client_admin_can_create_client_admin(client: AsyncClient, login_as, acme):
    _, headers = await login_as("client-admin", acme)
    payload = {"username": "second.admin", "role": "client-admin", "password": TEST_PASSWORD}
    response = await client.post(f"{USERS}/", json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["client_id"] == str(acme.id)


async def test_scoped_listing(client: AsyncClient, login_as, acme, globex, make_user):
    make_user("client-user", globex)
    own = make_user("client-user", acme)
    me, headers = await login_as("client-manager", acme)

    response = await client.get(f"{USERS}/", headers=headers)
    assert {u["id"] for u in response.json()} == {str(own.id), str(me.id)}


async def test_client_admin_cannot_touch_other_clients(client: AsyncClient, login_as, acme, globex, make_user):
    foreign = make_user("client-user", globex)
    _, headers = await login_as("client-admin", acme)

    assert (await client.get(f"{USERS}/{foreign.id}", headers=headers)).status_code == status.HTTP_403_FORBIDDEN
    response = await client.put(f"{USERS}/{foreign.id}", json={"full_name": "Hijacked"}, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_client_admin_cannot_move_user(client: AsyncClient, login_as, acme, globex, make_user):
    own = make_user("client-user", acme)
    _, headers = await login_as("client-admin", acme)
    response = await client.put(f"{USERS}/{own.id}", json={"client_id": str(globex.id)}, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_update_user(client: AsyncClient, admin_headers, make_user):
    user = make_user("agent")
    response = await client.put(
        f"{USERS}/{user.id}", json={"full_name": "Alex Doe", "role": "supervisor"}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["full_name"] == "Alex Doe"
    assert body["role"] == "supervisor"


async def test_deactivate_user(client: AsyncClient, admin_headers, make_user):
    user = make_user("agent")
    response = await client.delete(f"{USERS}/{user.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["is_active"] is False
    assert await get_auth_token(client, user.username) is None

    still_there = await client.get(f"{USERS}/{user.id}", headers=admin_headers)
    assert still_there.status_code == status.HTTP_200_OK


async def test_cannot_deactivate_self(client: AsyncClient, login_as):
    me, headers = await login_as("org-admin")
    response = await client.delete(f"{USERS}/{me.id}", headers=headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_agent_cannot_create_users(client: AsyncClient, login_as):
    _, headers = await login_as("agent")
    payload = {"username": "sneaky", "role": "agent", "password": TEST_PASSWORD}
    response = await client.post(f"{USERS}/", json=payload, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
