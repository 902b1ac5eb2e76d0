"""
Self-service view of the hours banks for client accounts.
"""
import logging
from datetime import date
from typing import Any, List, Optional
from uuid import UUID as PyUUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api import deps
from app.core.errors import AuthorizationError, NotFoundError
from app.core.permissions import PERM_HOURS_BANK_VIEW
from app.models.hours_bank import HoursBank as HoursBankModel
from app.schemas.enums import HoursTransactionTypeEnum
from app.schemas.hours_bank import HoursBank, HoursBankTransaction, ClientHoursSummary
from app.services.hours_bank import hours_bank_service

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(deps.PermissionChecker([PERM_HOURS_BANK_VIEW]))])


def get_own_client_id(scope: Optional[PyUUID] = Depends(deps.get_client_scope)) -> PyUUID:
    if scope is None:
        raise AuthorizationError("These endpoints are reserved to client accounts; use /hours-banks instead.")
    return scope


def _get_own_bank(db: Session, bank_id: PyUUID, client_id: PyUUID) -> HoursBankModel:
    bank = hours_bank_service.get_or_404(db, id=bank_id)
    if bank.client_id != client_id:
        # Another client's bank does not exist for this caller
        logger.warning(f"Client {client_id} tried to read hours bank {bank_id} of client {bank.client_id}.")
        raise NotFoundError(f"Hours bank {bank_id} not found.")
    return bank


@router.get("/summary", response_model=ClientHoursSummary, summary="Hours summary of my company")
def read_my_hours_summary(
    db: Session = Depends(deps.get_db),
    client_id: PyUUID = Depends(get_own_client_id),
) -> Any:
    """Totals over the active banks of the caller's client."""
    return hours_bank_service.get_client_summary(db, client_id=client_id)


@router.get("/", response_model=List[HoursBank], summary="Hours banks of my company")
def read_my_hours_banks(
    db: Session = Depends(deps.get_db),
    client_id: PyUUID = Depends(get_own_client_id),
    include_inactive: bool = Query(False),
) -> Any:
    return hours_bank_service.get_client_banks(db, client_id=client_id, active_only=not include_inactive)


@router.get("/{bank_id}", response_model=HoursBank, summary="One hours bank of my company")
def read_my_hours_bank(
    bank_id: PyUUID,
    db: Session = Depends(deps.get_db),
    client_id: PyUUID = Depends(get_own_client_id),
) -> Any:
    return _get_own_bank(db, bank_id, client_id)


@router.get("/{bank_id}/transactions", response_model=List[HoursBankTransaction], summary="Transactions of one of my hours banks")
def read_my_hours_transactions(
    bank_id: PyUUID,
    db: Session = Depends(deps.get_db),
    client_id: PyUUID = Depends(get_own_client_id),
    type: Optional[HoursTransactionTypeEnum] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> Any:
    _get_own_bank(db, bank_id, client_id)
    return hours_bank_service.list_transactions(
        db, bank_id=bank_id, type=type, start_date=start_date, end_date=end_date, skip=skip, limit=limit
    )
