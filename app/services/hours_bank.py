import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy import select, func, case

from app.core.config import settings
from app.core.errors import InsufficientBalanceError, NotFoundError, ValidationError
from app.models.client import Client
from app.models.hours_bank import HoursBank
from app.models.hours_bank_transaction import HoursBankTransaction
from app.schemas.enums import HoursTransactionTypeEnum
from app.schemas.hours_bank import (
    HoursBankCreate, HoursBankUpdate, HoursBankReconciliation,
    HoursBankStatistics, TransactionTypeSummary, ClientHoursSummary,
    HoursBank as HoursBankSchema,
)

from .base_service import BaseService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
MAX_DECIMAL_PLACES = 6

ADDITION = HoursTransactionTypeEnum.ADDITION.value
CONSUMPTION = HoursTransactionTypeEnum.CONSUMPTION.value

UPDATABLE_FIELDS = {"package_type", "end_date", "notes", "is_active"}


@dataclass
class LedgerEntry:
    bank: HoursBank
    transaction: HoursBankTransaction


def _to_hours(value: Any, field: str = "hours") -> Decimal:
    """Coerces to Decimal and rejects NaN, infinities and more than 6 decimal places."""
    try:
        hours = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"'{field}' must be a number.")
    if not hours.is_finite():
        raise ValidationError(f"'{field}' must be a finite number.")
    if hours.as_tuple().exponent < -MAX_DECIMAL_PLACES:
        raise ValidationError(f"'{field}' accepts at most {MAX_DECIMAL_PLACES} decimal places.")
    return hours


def _positive_hours(value: Any) -> Decimal:
    hours = _to_hours(value)
    if hours <= ZERO:
        raise ValidationError("'hours' must be greater than zero.")
    return hours


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class HoursBankService(BaseService[HoursBank, HoursBankCreate, HoursBankUpdate]):
    """
    Hours-bank ledger.

    Balances live on the bank row; every change appends an immutable
    transaction. Mutations lock the bank row and re-read it before checking
    the floor. Like every service here, nothing is committed: the route
    commits on success and rolls back on any error, so a rejected operation
    leaves neither the balance nor the ledger changed.
    """

    # ------------------------------------------------------------------
    # Balance helpers
    # ------------------------------------------------------------------
    @staticmethod
    def get_available(bank: HoursBank) -> Decimal:
        return (bank.total_hours or ZERO) - (bank.used_hours or ZERO)

    @staticmethod
    def get_floor(bank: HoursBank) -> Optional[Decimal]:
        """
        Lowest available balance the bank may reach. None when the bank
        allows a negative balance without a minimum: the overdraft is unbounded.
        """
        if bank.allow_negative_balance:
            return bank.min_balance
        return ZERO

    def is_low_balance(self, bank: HoursBank, threshold: Optional[Decimal] = None) -> bool:
        threshold = settings.HOURS_BANK_LOW_BALANCE_THRESHOLD if threshold is None else threshold
        return self.get_available(bank) < threshold

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_or_404(self, db: Session, id: Any) -> HoursBank:
        bank = self.get(db, id=id)
        if bank is None:
            logger.warning(f"Hours bank not found with ID: {id}")
            raise NotFoundError(f"Hours bank {id} not found.")
        return bank

    def _lock(self, db: Session, bank_id: UUID) -> HoursBank:
        statement = (
            select(HoursBank)
            .where(HoursBank.id == bank_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        bank = db.execute(statement).scalar_one_or_none()
        if bank is None:
            logger.warning(f"Hours bank not found with ID: {bank_id}")
            raise NotFoundError(f"Hours bank {bank_id} not found.")
        return bank

    def get_multi_filtered(
        self, db: Session, *, client_id: Optional[UUID] = None, is_active: Optional[bool] = None,
        skip: int = 0, limit: int = 100
    ) -> List[HoursBank]:
        statement = select(HoursBank)
        if client_id is not None:
            statement = statement.where(HoursBank.client_id == client_id)
        if is_active is not None:
            statement = statement.where(HoursBank.is_active == is_active)
        statement = statement.order_by(HoursBank.created_at.desc(), HoursBank.id).offset(skip).limit(limit)
        return list(db.execute(statement).scalars().all())

    def list_transactions(
        self,
        db: Session,
        *,
        bank_id: Optional[UUID] = None,
        client_id: Optional[UUID] = None,
        type: Optional[HoursTransactionTypeEnum] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[HoursBankTransaction]:
        """
        Transactions newest first. Paging with skip/limit over the same
        filters always yields the same sequence.
        """
        statement = select(HoursBankTransaction)
        if client_id is not None:
            statement = statement.join(HoursBank, HoursBank.id == HoursBankTransaction.bank_id).where(
                HoursBank.client_id == client_id
            )
        if bank_id is not None:
            statement = statement.where(HoursBankTransaction.bank_id == bank_id)
        if type is not None:
            statement = statement.where(HoursBankTransaction.type == HoursTransactionTypeEnum(type).value)
        if start_date is not None:
            statement = statement.where(HoursBankTransaction.created_at >= _day_start(start_date))
        if end_date is not None:
            statement = statement.where(HoursBankTransaction.created_at < _day_start(end_date + timedelta(days=1)))
        statement = (
            statement.order_by(HoursBankTransaction.created_at.desc(), HoursBankTransaction.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(db.execute(statement).scalars().all())

    # ------------------------------------------------------------------
    # Ledger operations
    # ------------------------------------------------------------------
    def _append(
        self,
        db: Session,
        bank: HoursBank,
        type: str,
        hours: Decimal,
        description: Optional[str],
        ticket_id: Optional[UUID] = None,
        performed_by_id: Optional[UUID] = None,
    ) -> HoursBankTransaction:
        transaction = HoursBankTransaction(
            bank_id=bank.id,
            type=type,
            hours=hours,
            description=description,
            ticket_id=ticket_id,
            performed_by_id=performed_by_id,
        )
        db.add(transaction)
        return transaction

    def _ensure_active(self, bank: HoursBank) -> None:
        if not bank.is_active:
            raise ValidationError(f"Hours bank {bank.id} is inactive.")

    def create_bank(
        self, db: Session, *, obj_in: HoursBankCreate, performed_by_id: Optional[UUID] = None
    ) -> HoursBank:
        """
        Opens a bank for a client. A positive `total_hours` is written as the
        opening addition so the ledger always explains the balance.
        Does NOT call db.commit().
        """
        total_hours = _to_hours(obj_in.total_hours, "total_hours")
        if total_hours < ZERO:
            raise ValidationError("'total_hours' cannot be negative.")

        min_balance = None
        if obj_in.min_balance is not None:
            if not obj_in.allow_negative_balance:
                raise ValidationError("'min_balance' can only be set when a negative balance is allowed.")
            min_balance = _to_hours(obj_in.min_balance, "min_balance")
            if min_balance > ZERO:
                raise ValidationError("'min_balance' must be zero or negative.")

        if obj_in.start_date and obj_in.end_date and obj_in.end_date < obj_in.start_date:
            raise ValidationError("'end_date' cannot precede 'start_date'.")

        if db.get(Client, obj_in.client_id) is None:
            raise NotFoundError(f"Client {obj_in.client_id} not found.")

        bank = HoursBank(
            client_id=obj_in.client_id,
            total_hours=total_hours,
            used_hours=ZERO,
            allow_negative_balance=obj_in.allow_negative_balance,
            min_balance=min_balance,
            start_date=obj_in.start_date,
            end_date=obj_in.end_date,
            package_type=obj_in.package_type,
            notes=obj_in.notes,
            is_active=True,
        )
        db.add(bank)
        db.flush()
        if total_hours > ZERO:
            self._append(db, bank, ADDITION, total_hours, "Opening balance", performed_by_id=performed_by_id)
        logger.info(f"Hours bank {bank.id} prepared for client {bank.client_id} with {total_hours} hours.")
        return bank

    def add_hours(
        self,
        db: Session,
        *,
        bank_id: UUID,
        hours: Any,
        description: Optional[str] = None,
        performed_by_id: Optional[UUID] = None,
    ) -> LedgerEntry:
        """`total_hours += hours` plus an addition transaction. Does NOT call db.commit()."""
        hours = _positive_hours(hours)
        bank = self._lock(db, bank_id)
        self._ensure_active(bank)

        bank.total_hours = (bank.total_hours or ZERO) + hours
        transaction = self._append(db, bank, ADDITION, hours, description, performed_by_id=performed_by_id)
        db.add(bank)
        db.flush()
        logger.info(f"Added {hours} hours to bank {bank.id}; available {self.get_available(bank)}.")
        return LedgerEntry(bank, transaction)

    def _consume(
        self,
        db: Session,
        bank: HoursBank,
        hours: Decimal,
        description: Optional[str],
        ticket_id: Optional[UUID],
        performed_by_id: Optional[UUID],
    ) -> HoursBankTransaction:
        available = self.get_available(bank)
        floor = self.get_floor(bank)
        if floor is not None and available - hours < floor:
            logger.warning(
                f"Consumption of {hours} hours rejected on bank {bank.id}: "
                f"available {available}, floor {floor}."
            )
            raise InsufficientBalanceError(available=available, requested=hours, floor=floor)

        bank.used_hours = (bank.used_hours or ZERO) + hours
        transaction = self._append(db, bank, CONSUMPTION, hours, description, ticket_id, performed_by_id)
        db.add(bank)
        db.flush()
        return transaction

    def consume_hours(
        self,
        db: Session,
        *,
        bank_id: UUID,
        hours: Any,
        ticket_id: Optional[UUID],
        description: Optional[str] = None,
        performed_by_id: Optional[UUID] = None,
    ) -> LedgerEntry:
        """
        Charges hours to a ticket. Rejected with InsufficientBalanceError when
        the available balance would drop below the floor.
        Does NOT call db.commit().
        """
        hours = _positive_hours(hours)
        if ticket_id is None:
            raise ValidationError("'ticket_id' is required to consume hours.")
        bank = self._lock(db, bank_id)
        self._ensure_active(bank)

        transaction = self._consume(db, bank, hours, description, ticket_id, performed_by_id)
        logger.info(
            f"Consumed {hours} hours from bank {bank.id} for ticket {ticket_id}; "
            f"available {self.get_available(bank)}."
        )
        return LedgerEntry(bank, transaction)

    def adjust_hours(
        self,
        db: Session,
        *,
        bank_id: UUID,
        hours: Any,
        description: str,
        performed_by_id: Optional[UUID] = None,
    ) -> LedgerEntry:
        """
        Signed manual correction. A positive value is an addition; a negative
        one is a consumption without ticket and respects the same floor.
        Does NOT call db.commit().
        """
        delta = _to_hours(hours)
        if delta == ZERO:
            raise ValidationError("An adjustment of zero hours has no effect.")
        if not description or not description.strip():
            raise ValidationError("An adjustment requires a description.")
        bank = self._lock(db, bank_id)
        self._ensure_active(bank)

        if delta > ZERO:
            bank.total_hours = (bank.total_hours or ZERO) + delta
            transaction = self._append(db, bank, ADDITION, delta, description, performed_by_id=performed_by_id)
            db.add(bank)
            db.flush()
        else:
            transaction = self._consume(db, bank, -delta, description, None, performed_by_id)
        logger.info(f"Adjusted bank {bank.id} by {delta} hours; available {self.get_available(bank)}.")
        return LedgerEntry(bank, transaction)

    def update_bank(self, db: Session, *, db_obj: HoursBank, obj_in: HoursBankUpdate) -> HoursBank:
        """
        Updates the descriptive fields. Balances only move through the ledger.
        Does NOT call db.commit().
        """
        update_data = obj_in.model_dump(exclude_unset=True)
        rejected = set(update_data) - UPDATABLE_FIELDS
        if rejected:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(rejected))}.")
        end_date = update_data.get("end_date")
        if end_date and db_obj.start_date and end_date < db_obj.start_date:
            raise ValidationError("'end_date' cannot precede 'start_date'.")
        return super().update(db, db_obj=db_obj, obj_in=update_data)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    def _sums(self, db: Session, *criteria) -> Tuple[Decimal, Decimal]:
        statement = select(
            func.coalesce(func.sum(case((HoursBankTransaction.type == ADDITION, HoursBankTransaction.hours), else_=0)), 0),
            func.coalesce(func.sum(case((HoursBankTransaction.type == CONSUMPTION, HoursBankTransaction.hours), else_=0)), 0),
        ).where(*criteria)
        additions, consumptions = db.execute(statement).one()
        return _to_decimal(additions), _to_decimal(consumptions)

    def reconcile(self, db: Session, *, bank: HoursBank) -> HoursBankReconciliation:
        """Compares the ledger (additions minus consumptions) with the stored balance."""
        additions, consumptions = self._sums(db, HoursBankTransaction.bank_id == bank.id)
        ledger_balance = additions - consumptions
        recorded_balance = self.get_available(bank)
        difference = recorded_balance - ledger_balance
        if difference != ZERO:
            logger.error(
                f"Hours bank {bank.id} is out of balance: ledger {ledger_balance}, recorded {recorded_balance}."
            )
        return HoursBankReconciliation(
            bank_id=bank.id,
            total_additions=additions,
            total_consumptions=consumptions,
            ledger_balance=ledger_balance,
            recorded_balance=recorded_balance,
            difference=difference,
            is_consistent=difference == ZERO,
        )

    def get_statistics(
        self,
        db: Session,
        *,
        client_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> HoursBankStatistics:
        bank_filter = [] if client_id is None else [HoursBank.client_id == client_id]
        bank_row = db.execute(
            select(
                func.count(HoursBank.id),
                func.coalesce(func.sum(case((HoursBank.is_active.is_(True), 1), else_=0)), 0),
                func.coalesce(func.sum(HoursBank.total_hours), 0),
                func.coalesce(func.sum(HoursBank.used_hours), 0),
            ).where(*bank_filter)
        ).one()

        tx_statement = (
            select(
                HoursBankTransaction.type,
                func.count(HoursBankTransaction.id),
                func.coalesce(func.sum(HoursBankTransaction.hours), 0),
            )
            .join(HoursBank, HoursBank.id == HoursBankTransaction.bank_id)
            .where(*bank_filter)
            .group_by(HoursBankTransaction.type)
        )
        if start_date is not None:
            tx_statement = tx_statement.where(HoursBankTransaction.created_at >= _day_start(start_date))
        if end_date is not None:
            tx_statement = tx_statement.where(HoursBankTransaction.created_at < _day_start(end_date + timedelta(days=1)))
        per_type = {row[0]: row for row in db.execute(tx_statement).all()}

        total_hours = _to_decimal(bank_row[2])
        used_hours = _to_decimal(bank_row[3])
        return HoursBankStatistics(
            client_id=client_id,
            start_date=start_date,
            end_date=end_date,
            bank_count=bank_row[0],
            active_bank_count=int(bank_row[1]),
            total_hours=total_hours,
            used_hours=used_hours,
            available_hours=total_hours - used_hours,
            transactions=[
                TransactionTypeSummary(
                    type=tx_type,
                    count=per_type[tx_type.value][1] if tx_type.value in per_type else 0,
                    hours=_to_decimal(per_type[tx_type.value][2]) if tx_type.value in per_type else ZERO,
                )
                for tx_type in HoursTransactionTypeEnum
            ],
        )

    # ------------------------------------------------------------------
    # Client self-service
    # ------------------------------------------------------------------
    def get_client_banks(self, db: Session, *, client_id: UUID, active_only: bool = True) -> List[HoursBank]:
        return self.get_multi_filtered(db, client_id=client_id, is_active=True if active_only else None, limit=1000)

    def get_client_summary(self, db: Session, *, client_id: UUID) -> ClientHoursSummary:
        banks = self.get_client_banks(db, client_id=client_id)
        total_hours = sum((bank.total_hours or ZERO for bank in banks), ZERO)
        used_hours = sum((bank.used_hours or ZERO for bank in banks), ZERO)
        return ClientHoursSummary(
            client_id=client_id,
            bank_count=len(banks),
            total_hours=total_hours,
            used_hours=used_hours,
            available_hours=total_hours - used_hours,
            banks=[HoursBankSchema.model_validate(bank) for bank in banks],
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------
    def deactivate_expired(self, db: Session, *, today: Optional[date] = None) -> List[HoursBank]:
        """Deactivates active banks whose end_date has passed. Does NOT call db.commit()."""
        today = today or datetime.now(timezone.utc).date()
        statement = select(HoursBank).where(
            HoursBank.is_active.is_(True),
            HoursBank.end_date.is_not(None),
            HoursBank.end_date < today,
        )
        expired = list(db.execute(statement).scalars().all())
        for bank in expired:
            bank.is_active = False
            db.add(bank)
            logger.info(f"Hours bank {bank.id} expired on {bank.end_date}; deactivated.")
        return expired


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


hours_bank_service = HoursBankService(HoursBank)
