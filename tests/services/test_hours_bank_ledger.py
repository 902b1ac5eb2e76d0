from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select, func
from sqlalchemy.orm import Session, sessionmaker

from app.core.errors import InsufficientBalanceError, NotFoundError, ValidationError
from app.models.hours_bank import HoursBank
from app.models.hours_bank_transaction import HoursBankTransaction
from app.models.notification import Notification
from app.schemas.hours_bank import HoursBankCreate, HoursBankUpdate
from app.services.hours_bank import hours_bank_service
from app.tasks.hours_bank_tasks import expire_hours_banks
from app.tasks.notification_tasks import notify_low_balance


def transaction_count(db: Session, bank_id) -> int:
    return db.execute(
        select(func.count(HoursBankTransaction.id)).where(HoursBankTransaction.bank_id == bank_id)
    ).scalar_one()


# ===============================================================
# Creation
# ===============================================================
def test_create_bank_records_opening_balance(db: Session, acme, make_bank):
    bank = make_bank(acme, "40")
    assert bank.available_hours == Decimal("40")
    transactions = hours_bank_service.list_transactions(db, bank_id=bank.id)
    assert len(transactions) == 1
    assert transactions[0].type == "addition"
    assert transactions[0].hours == Decimal("40")


def test_create_empty_bank_has_no_transactions(db: Session, acme, make_bank):
    bank = make_bank(acme, "0")
    assert transaction_count(db, bank.id) == 0


def test_min_balance_requires_negative_flag(db: Session, acme):
    with pytest.raises(ValidationError):
        hours_bank_service.create_bank(
            db, obj_in=HoursBankCreate(client_id=acme.id, total_hours=Decimal("5"), min_balance=Decimal("-5"))
        )


def test_positive_min_balance_is_rejected(db: Session, acme):
    with pytest.raises(ValidationError):
        hours_bank_service.create_bank(
            db,
            obj_in=HoursBankCreate(
                client_id=acme.id, total_hours=Decimal("5"), allow_negative_balance=True, min_balance=Decimal("2")
            ),
        )


def test_end_date_before_start_date(db: Session, acme):
    with pytest.raises(ValidationError):
        hours_bank_service.create_bank(
            db,
            obj_in=HoursBankCreate(
                client_id=acme.id, start_date=date(2026, 6, 1), end_date=date(2026, 5, 1)
            ),
        )


def test_unknown_client(db: Session):
    with pytest.raises(NotFoundError):
        hours_bank_service.create_bank(db, obj_in=HoursBankCreate(client_id=uuid4(), total_hours=Decimal("1")))


# ===============================================================
# Consumption and floor
# ===============================================================
def test_consumption_cannot_exceed_balance(db: Session, acme, make_bank):
    bank = make_bank(acme, "10")
    hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("8"), ticket_id=uuid4())
    db.commit()

    with pytest.raises(InsufficientBalanceError) as exc_info:
        hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("5"), ticket_id=uuid4())
    db.rollback()
    assert exc_info.value.available == Decimal("2")
    assert exc_info.value.requested == Decimal("5")
    assert exc_info.value.floor == Decimal("0")

    db.refresh(bank)
    assert bank.used_hours == Decimal("8")
    assert transaction_count(db, bank.id) == 2

    entry = hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("2"), ticket_id=uuid4())
    db.commit()
    assert entry.bank.used_hours == Decimal("10")
    assert entry.bank.available_hours == Decimal("0")
    assert entry.transaction.type == "consumption"


def test_negative_balance_stops_at_floor(db: Session, acme, make_bank):
    bank = make_bank(acme, "0", allow_negative_balance=True, min_balance=Decimal("-10"))
    entry = hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("10"), ticket_id=uuid4())
    db.commit()
    assert entry.bank.available_hours == Decimal("-10")

    with pytest.raises(InsufficientBalanceError):
        hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("0.000001"), ticket_id=uuid4())
    db.rollback()


def test_negative_balance_without_min_balance_is_unbounded(db: Session, acme, make_bank):
    bank = make_bank(acme, "1", allow_negative_balance=True)
    assert hours_bank_service.get_floor(bank) is None

    entry = hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("1.5"), ticket_id=uuid4())
    db.commit()
    assert entry.bank.available_hours == Decimal("-0.5")

    entry = hours_bank_service.adjust_hours(db, bank_id=bank.id, hours=Decimal("-100"), description="Backlog")
    db.commit()
    assert entry.bank.available_hours == Decimal("-100.5")
    assert hours_bank_service.reconcile(db, bank=bank).is_consistent


def test_consumption_rereads_the_locked_row(db: Session, engine, acme, make_bank):
    bank = make_bank(acme, "10")
    assert bank.used_hours == Decimal("0")

    # Another request consumes through its own session
    other = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        concurrent = other.get(HoursBank, bank.id)
        concurrent.used_hours = Decimal("8")
        other.commit()
    finally:
        other.close()

    assert bank.used_hours == Decimal("0")
    with pytest.raises(InsufficientBalanceError) as exc_info:
        hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("5"), ticket_id=uuid4())
    db.rollback()
    assert exc_info.value.available == Decimal("2")

    db.refresh(bank)
    assert bank.used_hours == Decimal("8")


def test_consumption_requires_ticket(db: Session, acme, make_bank):
    bank = make_bank(acme, "10")
    with pytest.raises(ValidationError):
        hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("1"), ticket_id=None)


@pytest.mark.parametrize("hours", ["0", "-1", "NaN", "0.0000001", "abc"])
def test_invalid_hours(db: Session, acme, make_bank, hours):
    bank = make_bank(acme, "10")
    with pytest.raises(ValidationError):
        hours_bank_service.add_hours(db, bank_id=bank.id, hours=hours)


def test_fractional_hours(db: Session, acme, make_bank):
    bank = make_bank(acme, "1")
    entry = hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("0.25"), ticket_id=uuid4())
    db.commit()
    assert entry.bank.available_hours == Decimal("0.75")


def test_inactive_bank_rejects_operations(db: Session, acme, make_bank):
    bank = make_bank(acme, "10")
    hours_bank_service.update_bank(db, db_obj=bank, obj_in=HoursBankUpdate(is_active=False))
    db.commit()
    with pytest.raises(ValidationError):
        hours_bank_service.add_hours(db, bank_id=bank.id, hours=Decimal("1"))
    with pytest.raises(ValidationError):
        hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("1"), ticket_id=uuid4())


def test_unknown_bank(db: Session):
    with pytest.raises(NotFoundError):
        hours_bank_service.add_hours(db, bank_id=uuid4(), hours=Decimal("1"))


# ===============================================================
# Additions and adjustments
# ===============================================================
def test_add_hours(db: Session, acme, make_bank):
    bank = make_bank(acme, "10")
    entry = hours_bank_service.add_hours(db, bank_id=bank.id, hours=Decimal("5"), description="Top-up")
    db.commit()
    assert entry.bank.total_hours == Decimal("15")
    assert entry.transaction.description == "Top-up"


def test_negative_adjustment_is_a_ticketless_consumption(db: Session, acme, make_bank):
    bank = make_bank(acme, "10")
    entry = hours_bank_service.adjust_hours(db, bank_id=bank.id, hours=Decimal("-3"), description="Correction")
    db.commit()
    assert entry.transaction.type == "consumption"
    assert entry.transaction.ticket_id is None
    assert entry.transaction.hours == Decimal("3")
    assert entry.bank.used_hours == Decimal("3")

    with pytest.raises(InsufficientBalanceError):
        hours_bank_service.adjust_hours(db, bank_id=bank.id, hours=Decimal("-8"), description="Too much")
    db.rollback()


def test_positive_adjustment(db: Session, acme, make_bank):
    bank = make_bank(acme, "10")
    entry = hours_bank_service.adjust_hours(db, bank_id=bank.id, hours=Decimal("2.5"), description="Bonus")
    assert entry.transaction.type == "addition"
    assert entry.bank.total_hours == Decimal("12.5")


@pytest.mark.parametrize("hours, description", [("0", "Nothing"), ("1", ""), ("1", "   ")])
def test_invalid_adjustment(db: Session, acme, make_bank, hours, description):
    bank = make_bank(acme, "10")
    with pytest.raises(ValidationError):
        hours_bank_service.adjust_hours(db, bank_id=bank.id, hours=Decimal(hours), description=description)



# ===============================================================
# Reports
# ===============================================================
def test_reconcile_matches_ledger(db: Session, acme, make_bank):
    bank = make_bank(acme, "10")
    hours_bank_service.add_hours(db, bank_id=bank.id, hours=Decimal("5"))
    hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("7.5"), ticket_id=uuid4())
    db.commit()

    report = hours_bank_service.reconcile(db, bank=bank)
    assert report.total_additions == Decimal("15")
    assert report.total_consumptions == Decimal("7.5")
    assert report.ledger_balance == Decimal("7.5")
    assert report.is_consistent


def test_reconcile_after_mixed_operations(db: Session, acme, make_bank):
    bank = make_bank(acme, "8", allow_negative_balance=True, min_balance=Decimal("-4"))
    steps = [
        lambda: hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("6.5"), ticket_id=uuid4()),
        lambda: hours_bank_service.add_hours(db, bank_id=bank.id, hours=Decimal("2.25")),
        lambda: hours_bank_service.adjust_hours(db, bank_id=bank.id, hours=Decimal("-1.75"), description="Travel"),
        lambda: hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("5"), ticket_id=uuid4()),
        lambda: hours_bank_service.adjust_hours(db, bank_id=bank.id, hours=Decimal("0.5"), description="Refund"),
    ]
    for step in steps:
        step()
        db.commit()
        report = hours_bank_service.reconcile(db, bank=bank)
        assert report.is_consistent
        assert report.ledger_balance == hours_bank_service.get_available(bank)

    with pytest.raises(InsufficientBalanceError):
        hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("2"), ticket_id=uuid4())
    db.rollback()
    db.refresh(bank)
    assert hours_bank_service.get_available(bank) == Decimal("-2.5")
    assert hours_bank_service.reconcile(db, bank=bank).is_consistent


def test_reconcile_detects_drift(db: Session, acme, make_bank):
    bank = make_bank(acme, "10")
    bank.used_hours = Decimal("1")
    db.add(bank)
    db.commit()
    report = hours_bank_service.reconcile(db, bank=bank)
    assert not report.is_consistent
    assert report.difference == Decimal("-1")


def test_statistics_and_client_summary(db: Session, acme, globex, make_bank):
    first = make_bank(acme, "10")
    make_bank(acme, "5")
    make_bank(globex, "100")
    hours_bank_service.consume_hours(db, bank_id=first.id, hours=Decimal("4"), ticket_id=uuid4())
    db.commit()

    stats = hours_bank_service.get_statistics(db, client_id=acme.id)
    assert stats.bank_count == 2
    assert stats.total_hours == Decimal("15")
    assert stats.used_hours == Decimal("4")
    per_type = {summary.type.value: summary for summary in stats.transactions}
    assert per_type["addition"].count == 2
    assert per_type["consumption"].count == 1

    summary = hours_bank_service.get_client_summary(db, client_id=acme.id)
    assert summary.bank_count == 2
    assert summary.available_hours == Decimal("11")


def test_transactions_newest_first(db: Session, acme, make_bank):
    bank = make_bank(acme, "10")
    for hours in ("1", "2", "3"):
        hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal(hours), ticket_id=uuid4())
    db.commit()
    transactions = hours_bank_service.list_transactions(db, bank_id=bank.id)
    assert [t.hours for t in transactions] == [Decimal("3"), Decimal("2"), Decimal("1"), Decimal("10")]
    assert [t.hours for t in hours_bank_service.list_transactions(db, bank_id=bank.id, skip=1, limit=2)] == [
        Decimal("2"), Decimal("1"),
    ]
    consumptions = hours_bank_service.list_transactions(db, bank_id=bank.id, type="consumption")
    assert len(consumptions) == 3


# ===============================================================
# Background work
# ===============================================================
def test_low_balance_notifies_admins(db: Session, acme, make_bank, make_user):
    admin = make_user("org-admin")
    make_user("agent")
    bank = make_bank(acme, "10")
    hours_bank_service.consume_hours(db, bank_id=bank.id, hours=Decimal("8"), ticket_id=uuid4())
    db.commit()

    assert hours_bank_service.is_low_balance(bank)
    assert notify_low_balance(db, bank.id) == 1
    db.commit()
    notifications = db.execute(select(Notification)).scalars().all()
    assert [n.user_id for n in notifications] == [admin.id]
    assert notifications[0].type == "hours_bank_low"
    assert notifications[0].reference_id == bank.id


def test_low_balance_skipped_after_top_up(db: Session, acme, make_bank, make_user):
    make_user("org-admin")
    bank = make_bank(acme, "50")
    assert notify_low_balance(db, bank.id) == 0
    assert notify_low_balance(db, uuid4()) == 0


def test_expire_hours_banks(db: Session, acme, make_bank, make_user):
    make_user("admin")
    today = date(2026, 10, 19)
    expired = make_bank(acme, "10", start_date=today - timedelta(days=60), end_date=today - timedelta(days=1))
    current = make_bank(acme, "10", end_date=today)

    result = expire_hours_banks(db, today=today)
    db.commit()
    assert [bank.id for bank in result] == [expired.id]
    db.refresh(expired)
    db.refresh(current)
    assert expired.is_active is False
    assert current.is_active is True
    assert db.execute(select(func.count(Notification.id))).scalar_one() == 1
