from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from fastapi import status
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from app.models.hours_bank_transaction import HoursBankTransaction

from tests.conftest import API

pytestmark = pytest.mark.asyncio

BANKS = f"{API}/hours-banks"


async def test_create_bank(client: AsyncClient, admin_headers, acme):
    payload = {"client_id": str(acme.id), "total_hours": "40", "package_type": "Gold"}
    response = await client.post(f"{BANKS}/", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    body = response.json()
    assert Decimal(body["total_hours"]) == Decimal("40")
    assert Decimal(body["available_hours"]) == Decimal("40")
    assert body["client"]["name"] == "Acme Corp"

    transactions = await client.get(f"{BANKS}/{body['id']}/transactions", headers=admin_headers)
    assert [t["description"] for t in transactions.json()] == ["Opening balance"]


async def test_create_bank_rejects_min_balance_without_flag(client: AsyncClient, admin_headers, acme):
    payload = {"client_id": str(acme.id), "total_hours": "10", "min_balance": "-5"}
    response = await client.post(f"{BANKS}/", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert "min_balance" in response.json()["detail"]


async def test_agent_cannot_manage_banks(client: AsyncClient, login_as, acme):
    _, headers = await login_as("agent")
    response = await client.post(f"{BANKS}/", json={"client_id": str(acme.id), "total_hours": "5"}, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "You do not have permission to perform this action."


async def test_consume_until_insufficient(client: AsyncClient, db: Session, login_as, acme, make_bank, mock_low_balance_task):
    bank = make_bank(acme, "10")
    _, headers = await login_as("agent")

    first = await client.post(
        f"{BANKS}/{bank.id}/consume", json={"hours": "8", "ticket_id": str(uuid4())}, headers=headers
    )
    assert first.status_code == status.HTTP_200_OK, first.text
    body = first.json()
    assert Decimal(body["bank"]["available_hours"]) == Decimal("2")
    assert body["transaction"]["type"] == "consumption"
    mock_low_balance_task.delay.assert_called_once_with(str(bank.id))

    rejected = await client.post(
        f"{BANKS}/{bank.id}/consume", json={"hours": "5", "ticket_id": str(uuid4())}, headers=headers
    )
    assert rejected.status_code == status.HTTP_409_CONFLICT
    error = rejected.json()
    assert Decimal(error["available"]) == Decimal("2")
    assert Decimal(error["requested"]) == Decimal("5")
    assert Decimal(error["floor"]) == Decimal("0")
    count = db.execute(
        select(func.count(HoursBankTransaction.id)).where(HoursBankTransaction.bank_id == bank.id)
    ).scalar_one()
    assert count == 2

    last = await client.post(
        f"{BANKS}/{bank.id}/consume", json={"hours": "2", "ticket_id": str(uuid4())}, headers=headers
    )
    assert last.status_code == status.HTTP_200_OK
    assert Decimal(last.json()["bank"]["used_hours"]) == Decimal("10")


async def test_consume_without_ticket(client: AsyncClient, admin_headers, acme, make_bank):
    bank = make_bank(acme, "10")
    response = await client.post(f"{BANKS}/{bank.id}/consume", json={"hours": "1"}, headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert "ticket_id" in response.json()["detail"]


async def test_consume_rejects_non_positive_hours(client: AsyncClient, admin_headers, acme, make_bank):
    bank = make_bank(acme, "10")
    response = await client.post(
        f"{BANKS}/{bank.id}/consume", json={"hours": "0", "ticket_id": str(uuid4())}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"] == "Invalid input data."


async def test_high_balance_does_not_queue_alert(client: AsyncClient, admin_headers, acme, make_bank, mock_low_balance_task):
    bank = make_bank(acme, "100")
    response = await client.post(
        f"{BANKS}/{bank.id}/consume", json={"hours": "1", "ticket_id": str(uuid4())}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_200_OK
    mock_low_balance_task.delay.assert_not_called()


async def test_add_and_adjust(client: AsyncClient, admin_headers, acme, make_bank):
    bank = make_bank(acme, "10")
    added = await client.post(f"{BANKS}/{bank.id}/add", json={"hours": "5", "description": "Renewal"}, headers=admin_headers)
    assert added.status_code == status.HTTP_200_OK
    assert Decimal(added.json()["bank"]["total_hours"]) == Decimal("15")

    adjusted = await client.post(
        f"{BANKS}/{bank.id}/adjust", json={"hours": "-2.5", "description": "Billing correction"}, headers=admin_headers
    )
    assert adjusted.status_code == status.HTTP_200_OK
    body = adjusted.json()
    assert body["transaction"]["ticket_id"] is None
    assert Decimal(body["bank"]["available_hours"]) == Decimal("12.5")

    zero = await client.post(f"{BANKS}/{bank.id}/adjust", json={"hours": "0", "description": "x"}, headers=admin_headers)
    assert zero.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    reconcile = await client.get(f"{BANKS}/{bank.id}/reconcile", headers=admin_headers)
    assert reconcile.json()["is_consistent"] is True


async def test_update_only_descriptive_fields(client: AsyncClient, admin_headers, acme, make_bank):
    bank = make_bank(acme, "10")
    response = await client.put(f"{BANKS}/{bank.id}", json={"notes": "Renewed yearly"}, headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["notes"] == "Renewed yearly"

    response = await client.put(f"{BANKS}/{bank.id}", json={"total_hours": "999"}, headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


async def test_inactive_bank_rejects_consumption(client: AsyncClient, admin_headers, acme, make_bank):
    bank = make_bank(acme, "10")
    await client.put(f"{BANKS}/{bank.id}", json={"is_active": False}, headers=admin_headers)
    response = await client.post(
        f"{BANKS}/{bank.id}/consume", json={"hours": "1", "ticket_id": str(uuid4())}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


async def test_unknown_bank(client: AsyncClient, admin_headers):
    response = await client.get(f"{BANKS}/{uuid4()}", headers=admin_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_list_statistics_and_transactions(client: AsyncClient, admin_headers, acme, globex, make_bank):
    acme_bank = make_bank(acme, "10")
    make_bank(globex, "20")
    await client.post(
        f"{BANKS}/{acme_bank.id}/consume", json={"hours": "3", "ticket_id": str(uuid4())}, headers=admin_headers
    )

    listed = await client.get(f"{BANKS}/", params={"client_id": str(acme.id)}, headers=admin_headers)
    assert [bank["id"] for bank in listed.json()] == [str(acme_bank.id)]

    stats = await client.get(f"{BANKS}/statistics", headers=admin_headers)
    assert stats.status_code == status.HTTP_200_OK
    assert stats.json()["bank_count"] == 2
    assert Decimal(stats.json()["used_hours"]) == Decimal("3")

    transactions = await client.get(
        f"{API}/hours-transactions/", params={"type": "consumption"}, headers=admin_headers
    )
    assert len(transactions.json()) == 1

    bad_range = await client.get(
        f"{BANKS}/statistics", params={"start_date": "2026-02-01", "end_date": "2026-01-01"}, headers=admin_headers
    )
    assert bad_range.status_code == status.HTTP_400_BAD_REQUEST


# ===============================================================
# Client scoping
# ===============================================================
async def test_client_admin_confined_to_own_banks(client: AsyncClient, login_as, acme, globex, make_bank):
    own = make_bank(acme, "10")
    foreign = make_bank(globex, "10")
    _, headers = await login_as("client-admin", acme)

    listed = await client.get(f"{BANKS}/", params={"client_id": str(globex.id)}, headers=headers)
    assert [bank["id"] for bank in listed.json()] == [str(own.id)]

    assert (await client.get(f"{BANKS}/{foreign.id}", headers=headers)).status_code == status.HTTP_403_FORBIDDEN
    consume = await client.post(
        f"{BANKS}/{foreign.id}/consume", json={"hours": "1", "ticket_id": str(uuid4())}, headers=headers
    )
    assert consume.status_code == status.HTTP_403_FORBIDDEN
    add = await client.post(f"{BANKS}/{foreign.id}/add", json={"hours": "100"}, headers=headers)
    assert add.status_code == status.HTTP_403_FORBIDDEN


async def test_client_admin_opens_bank_for_own_client(client: AsyncClient, login_as, acme, globex):
    _, headers = await login_as("client-admin", acme)
    response = await client.post(
        f"{BANKS}/", json={"client_id": str(globex.id), "total_hours": "5"}, headers=headers
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["client_id"] == str(acme.id)


# ===============================================================
# Self-service
# ===============================================================
async def test_client_self_service(client: AsyncClient, login_as, acme, globex, make_bank):
    own = make_bank(acme, "10")
    make_bank(acme, "5")
    foreign = make_bank(globex, "10")
    _, headers = await login_as("client-user", acme)

    summary = await client.get(f"{API}/client/hours-banks/summary", headers=headers)
    assert summary.status_code == status.HTTP_200_OK
    assert summary.json()["bank_count"] == 2
    assert Decimal(summary.json()["available_hours"]) == Decimal("15")

    banks = await client.get(f"{API}/client/hours-banks/", headers=headers)
    assert len(banks.json()) == 2

    assert (await client.get(f"{API}/client/hours-banks/{own.id}", headers=headers)).status_code == status.HTTP_200_OK
    transactions = await client.get(f"{API}/client/hours-banks/{own.id}/transactions", headers=headers)
    assert len(transactions.json()) == 1

    hidden = await client.get(f"{API}/client/hours-banks/{foreign.id}", headers=headers)
    assert hidden.status_code == status.HTTP_404_NOT_FOUND


async def test_client_user_cannot_consume(client: AsyncClient, login_as, acme, make_bank):
    bank = make_bank(acme, "10")
    _, headers = await login_as("client-user", acme)
    response = await client.post(
        f"{BANKS}/{bank.id}/consume", json={"hours": "1", "ticket_id": str(uuid4())}, headers=headers
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_self_service_is_for_client_accounts(client: AsyncClient, admin_headers):
    response = await client.get(f"{API}/client/hours-banks/summary", headers=admin_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
