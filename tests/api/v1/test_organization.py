from uuid import uuid4

import pytest
from httpx import AsyncClient
from fastapi import status

from tests.conftest import API

pytestmark = pytest.mark.asyncio

DIRECTIONS = f"{API}/client/directions"
DEPARTMENTS = f"{API}/client/departments"
SECTIONS = f"{API}/client/sections"


async def create_tree(client: AsyncClient, headers, client_id=None):
    direction = await client.post(
        f"{DIRECTIONS}/", json={"name": "Operations", "code": "OPS", "client_id": client_id}, headers=headers
    )
    assert direction.status_code == status.HTTP_201_CREATED, direction.text
    direction = direction.json()
    department = await client.post(
        f"{DEPARTMENTS}/",
        json={"name": "Infrastructure", "direction_id": direction["id"], "client_id": client_id},
        headers=headers,
    )
    assert department.status_code == status.HTTP_201_CREATED, department.text
    department = department.json()
    section = await client.post(
        f"{SECTIONS}/", json={"name": "Networks", "department_id": department["id"], "client_id": client_id}, headers=headers
    )
    assert section.status_code == status.HTTP_201_CREATED, section.text
    return direction, department, section.json()


async def test_create_hierarchy(client: AsyncClient, admin_headers, acme):
    direction, department, section = await create_tree(client, admin_headers, str(acme.id))
    assert department["direction"]["name"] == "Operations"
    assert section["department"]["id"] == department["id"]
    assert section["direction_id"] == direction["id"]


async def test_department_without_direction(client: AsyncClient, admin_headers):
    response = await client.post(f"{DEPARTMENTS}/", json={"name": "Shared Services"}, headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["direction_id"] is None


async def test_department_with_unknown_direction(client: AsyncClient, admin_headers):
    response = await client.post(
        f"{DEPARTMENTS}/", json={"name": "Ghost", "direction_id": str(uuid4())}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert "does not exist" in response.json()["detail"]


async def test_section_requires_department(client: AsyncClient, admin_headers):
    missing = await client.post(f"{SECTIONS}/", json={"name": "Orphan"}, headers=admin_headers)
    assert missing.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert missing.json()["errors"][0]["field"] == "department_id"

    unknown = await client.post(
        f"{SECTIONS}/", json={"name": "Orphan", "department_id": str(uuid4())}, headers=admin_headers
    )
    assert unknown.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


async def test_list_filtered_by_parent(client: AsyncClient, admin_headers):
    direction, department, section = await create_tree(client, admin_headers)
    await client.post(f"{DEPARTMENTS}/", json={"name": "Facilities"}, headers=admin_headers)

    listed = await client.get(f"{DEPARTMENTS}/", params={"parent_id": direction["id"]}, headers=admin_headers)
    assert [d["name"] for d in listed.json()] == ["Infrastructure"]

    sections = await client.get(f"{SECTIONS}/", params={"parent_id": department["id"]}, headers=admin_headers)
    assert [s["id"] for s in sections.json()] == [section["id"]]


async def test_delete_refused_while_children_exist(client: AsyncClient, admin_headers):
    direction, department, section = await create_tree(client, admin_headers)

    response = await client.delete(f"{DIRECTIONS}/{direction['id']}", headers=admin_headers)
    assert response.status_code == status.HTTP_409_CONFLICT
    assert "1 departments" in response.json()["detail"]

    assert (await client.delete(f"{SECTIONS}/{section['id']}", headers=admin_headers)).status_code == status.HTTP_200_OK
    assert (await client.delete(f"{DEPARTMENTS}/{department['id']}", headers=admin_headers)).status_code == status.HTTP_200_OK
    assert (await client.delete(f"{DIRECTIONS}/{direction['id']}", headers=admin_headers)).status_code == status.HTTP_200_OK


async def test_delete_refused_while_users_assigned(client: AsyncClient, admin_headers, make_user):
    _, _, section = await create_tree(client, admin_headers)
    make_user("agent", section_id=section["id"])
    response = await client.delete(f"{SECTIONS}/{section['id']}", headers=admin_headers)
    assert response.status_code == status.HTTP_409_CONFLICT


async def test_update_unit(client: AsyncClient, admin_headers):
    direction, _, _ = await create_tree(client, admin_headers)
    response = await client.put(
        f"{DIRECTIONS}/{direction['id']}", json={"description": "Runs the data centers"}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["description"] == "Runs the data centers"


async def test_client_admin_confined_to_own_units(client: AsyncClient, login_as, admin_headers, acme, globex):
    direction, _, _ = await create_tree(client, admin_headers, str(globex.id))
    _, headers = await login_as("client-admin", acme)

    created = await client.post(
        f"{DIRECTIONS}/", json={"name": "Sales", "client_id": str(globex.id)}, headers=headers
    )
    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["client_id"] == str(acme.id)

    listed = await client.get(f"{DIRECTIONS}/", headers=headers)
    assert [d["name"] for d in listed.json()] == ["Sales"]

    foreign = await client.get(f"{DIRECTIONS}/{direction['id']}", headers=headers)
    assert foreign.status_code == status.HTTP_403_FORBIDDEN


async def test_client_manager_reads_but_cannot_create(client: AsyncClient, login_as, acme):
    _, headers = await login_as("client-manager", acme)
    assert (await client.get(f"{DIRECTIONS}/", headers=headers)).status_code == status.HTTP_200_OK
    response = await client.post(f"{DIRECTIONS}/", json={"name": "Legal"}, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
