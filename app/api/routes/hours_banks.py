import logging
from datetime import date
from typing import Any, List, Optional
from uuid import UUID as PyUUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.api import deps
from app.core.config import settings
from app.core.permissions import PERM_HOURS_BANK_VIEW, PERM_HOURS_BANK_MANAGE, PERM_HOURS_BANK_CONSUME
from app.models.hours_bank import HoursBank as HoursBankModel
from app.models.user import User as UserModel
from app.schemas.enums import HoursTransactionTypeEnum
from app.schemas.hours_bank import (
    HoursBank, HoursBankCreate, HoursBankUpdate,
    HoursAdd, HoursConsume, HoursAdjust,
    HoursBankTransaction, HoursBankOperationResult,
    HoursBankReconciliation, HoursBankStatistics,
)
from app.services.hours_bank import hours_bank_service, LedgerEntry
from app.tasks.notification_tasks import notify_low_hours_balance

logger = logging.getLogger(__name__)
router = APIRouter()
transactions_router = APIRouter()


def _get_scoped_bank(db: Session, bank_id: PyUUID, scope: Optional[PyUUID]) -> HoursBankModel:
    bank = hours_bank_service.get_or_404(db, id=bank_id)
    deps.ensure_in_scope(scope, bank.client_id)
    return bank


def _commit_entry(db: Session, entry: LedgerEntry) -> HoursBankOperationResult:
    db.commit()
    db.refresh(entry.bank)
    db.refresh(entry.transaction)
    return HoursBankOperationResult.model_validate(entry)


def _dispatch_low_balance_alert(bank: HoursBank) -> None:
    """Queues the low-balance notification; the consumption is already committed at this point."""
    if bank.available_hours >= settings.HOURS_BANK_LOW_BALANCE_THRESHOLD:
        return
    try:
        notify_low_hours_balance.delay(str(bank.id))
        logger.info(f"Low-balance alert queued for hours bank {bank.id}.")
    except Exception as e:
        logger.error(f"Could not queue the low-balance alert for hours bank {bank.id}: {e}", exc_info=True)


# ===============================================================
# Banks
# ===============================================================
@router.post("/",
             response_model=HoursBank,
             status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_MANAGE]))],
             summary="Open an hours bank for a client")
def create_hours_bank(
    *,
    db: Session = Depends(deps.get_db),
    bank_in: HoursBankCreate,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    """
    Opens a bank. A positive `total_hours` is recorded as the opening
    addition. Requires the permission: `hours_bank.manage`.
    """
    if scope is not None:
        bank_in = bank_in.model_copy(update={"client_id": scope})
    logger.info(f"Hours bank creation for client {bank_in.client_id} requested by {current_user.username}")
    try:
        bank = hours_bank_service.create_bank(db=db, obj_in=bank_in, performed_by_id=current_user.id)
        db.commit()
        db.refresh(bank)
        logger.info(f"Hours bank {bank.id} created for client {bank.client_id} by {current_user.username}.")
        return bank
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error creating hours bank for client {bank_in.client_id}: {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The hours bank violates a database constraint.")
    except Exception:
        db.rollback()
        raise


@router.get("/",
            response_model=List[HoursBank],
            dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_VIEW]))],
            summary="List hours banks")
def read_hours_banks(
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    client_id: Optional[PyUUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> Any:
    return hours_bank_service.get_multi_filtered(
        db, client_id=scope if scope is not None else client_id, is_active=is_active, skip=skip, limit=limit
    )


@router.get("/statistics",
            response_model=HoursBankStatistics,
            dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_VIEW]))],
            summary="Hours bank statistics")
def read_hours_bank_statistics(
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    client_id: Optional[PyUUID] = Query(None),
    start_date: Optional[date] = Query(None, description="Transactions from this day (inclusive)"),
    end_date: Optional[date] = Query(None, description="Transactions up to this day (inclusive)"),
) -> Any:
    """Bank totals plus per-type transaction counts and sums, optionally for one client."""
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date cannot precede start_date.")
    return hours_bank_service.get_statistics(
        db, client_id=scope if scope is not None else client_id, start_date=start_date, end_date=end_date
    )


@router.get("/{bank_id}",
            response_model=HoursBank,
            dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_VIEW]))],
            summary="Get an hours bank by ID")
def read_hours_bank(
    bank_id: PyUUID,
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    return _get_scoped_bank(db, bank_id, scope)


@router.put("/{bank_id}",
            response_model=HoursBank,
            dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_MANAGE]))],
            summary="Update an hours bank")
def update_hours_bank(
    *,
    db: Session = Depends(deps.get_db),
    bank_id: PyUUID,
    bank_in: HoursBankUpdate,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    """
    Only the descriptive fields (`package_type`, `end_date`, `notes`,
    `is_active`) can change; balances move through add / consume / adjust.
    """
    bank = _get_scoped_bank(db, bank_id, scope)
    try:
        bank = hours_bank_service.update_bank(db=db, db_obj=bank, obj_in=bank_in)
        db.commit()
        db.refresh(bank)
        logger.info(f"Hours bank {bank_id} updated by {current_user.username}.")
        return bank
    except Exception:
        db.rollback()
        raise


# ===============================================================
# Ledger operations
# ===============================================================
@router.post("/{bank_id}/add",
             response_model=HoursBankOperationResult,
             dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_MANAGE]))],
             summary="Add hours to a bank")
def add_hours(
    *,
    db: Session = Depends(deps.get_db),
    bank_id: PyUUID,
    hours_in: HoursAdd,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    _get_scoped_bank(db, bank_id, scope)
    try:
        entry = hours_bank_service.add_hours(
            db=db, bank_id=bank_id, hours=hours_in.hours,
            description=hours_in.description, performed_by_id=current_user.id,
        )
        entry = _commit_entry(db, entry)
        logger.info(f"{hours_in.hours} hours added to bank {bank_id} by {current_user.username}.")
        return entry
    except Exception:
        db.rollback()
        raise


@router.post("/{bank_id}/consume",
             response_model=HoursBankOperationResult,
             dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_CONSUME, PERM_HOURS_BANK_MANAGE]))],
             summary="Consume hours for a ticket")
def consume_hours(
    *,
    db: Session = Depends(deps.get_db),
    bank_id: PyUUID,
    hours_in: HoursConsume,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    """
    Charges hours to a ticket. Answers 409 with the available balance when the
    bank would drop below its floor; nothing is written in that case.
    """
    _get_scoped_bank(db, bank_id, scope)
    try:
        entry = hours_bank_service.consume_hours(
            db=db, bank_id=bank_id, hours=hours_in.hours, ticket_id=hours_in.ticket_id,
            description=hours_in.description, performed_by_id=current_user.id,
        )
        entry = _commit_entry(db, entry)
    except Exception:
        db.rollback()
        raise

    logger.info(f"{hours_in.hours} hours consumed from bank {bank_id} by {current_user.username} (ticket {hours_in.ticket_id}).")
    _dispatch_low_balance_alert(entry.bank)
    return entry


@router.post("/{bank_id}/adjust",
             response_model=HoursBankOperationResult,
             dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_MANAGE]))],
             summary="Manual signed adjustment")
def adjust_hours(
    *,
    db: Session = Depends(deps.get_db),
    bank_id: PyUUID,
    adjust_in: HoursAdjust,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    _get_scoped_bank(db, bank_id, scope)
    try:
        entry = hours_bank_service.adjust_hours(
            db=db, bank_id=bank_id, hours=adjust_in.hours,
            description=adjust_in.description, performed_by_id=current_user.id,
        )
        entry = _commit_entry(db, entry)
    except Exception:
        db.rollback()
        raise

    logger.warning(f"Hours bank {bank_id} adjusted by {adjust_in.hours} hours by {current_user.username}: {adjust_in.description}")
    if adjust_in.hours < 0:
        _dispatch_low_balance_alert(entry.bank)
    return entry


@router.get("/{bank_id}/transactions",
            response_model=List[HoursBankTransaction],
            dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_VIEW]))],
            summary="Transactions of a bank")
def read_bank_transactions(
    bank_id: PyUUID,
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    type: Optional[HoursTransactionTypeEnum] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> Any:
    """Newest first."""
    _get_scoped_bank(db, bank_id, scope)
    return hours_bank_service.list_transactions(
        db, bank_id=bank_id, type=type, start_date=start_date, end_date=end_date, skip=skip, limit=limit
    )


@router.get("/{bank_id}/reconcile",
            response_model=HoursBankReconciliation,
            dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_MANAGE]))],
            summary="Reconcile a bank with its ledger")
def reconcile_hours_bank(
    bank_id: PyUUID,
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    bank = _get_scoped_bank(db, bank_id, scope)
    return hours_bank_service.reconcile(db, bank=bank)


# ===============================================================
# Transactions across banks
# ===============================================================
@transactions_router.get("/",
                         response_model=List[HoursBankTransaction],
                         dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_VIEW]))],
                         summary="List hours transactions")
def read_hours_transactions(
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    bank_id: Optional[PyUUID] = Query(None),
    client_id: Optional[PyUUID] = Query(None),
    type: Optional[HoursTransactionTypeEnum] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> Any:
    return hours_bank_service.list_transactions(
        db,
        bank_id=bank_id,
        client_id=scope if scope is not None else client_id,
        type=type,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )
