import uuid
from decimal import Decimal
from typing import Optional, List
from datetime import date, datetime

from pydantic import BaseModel, Field, ConfigDict, field_validator

from .enums import HoursTransactionTypeEnum
from .client import ClientSimple

# Hours travel as Decimal with at most 6 decimal places (Numeric(18, 6) columns).
HOURS_MAX_DIGITS = 18
HOURS_DECIMAL_PLACES = 6


# --- Schema Base ---
class HoursBankBase(BaseModel):
    client_id: uuid.UUID = Field(..., description="Client owning the bank")
    total_hours: Decimal = Field(
        Decimal("0"), max_digits=HOURS_MAX_DIGITS, decimal_places=HOURS_DECIMAL_PLACES,
        description="Contracted hours; a positive value is recorded as the opening addition",
    )
    allow_negative_balance: bool = False
    min_balance: Optional[Decimal] = Field(
        None, max_digits=HOURS_MAX_DIGITS, decimal_places=HOURS_DECIMAL_PLACES,
        description="Lowest allowed balance (<= 0), only with allow_negative_balance",
    )
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    package_type: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

# --- Schema for creation ---
class HoursBankCreate(HoursBankBase):
    pass

# --- Schema for update ---
class HoursBankUpdate(BaseModel):
    """Only descriptive fields; balances move through the ledger operations."""
    package_type: Optional[str] = Field(None, max_length=100)
    end_date: Optional[date] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

# --- Schema for API responses ---
class HoursBank(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    total_hours: Decimal
    used_hours: Decimal
    available_hours: Decimal
    allow_negative_balance: bool
    min_balance: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    package_type: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    client: Optional[ClientSimple] = None

    model_config = ConfigDict(from_attributes=True)


# ===============================================================
# Ledger operations
# ===============================================================
class HoursAdd(BaseModel):
    hours: Decimal = Field(..., gt=0, max_digits=HOURS_MAX_DIGITS, decimal_places=HOURS_DECIMAL_PLACES)
    description: Optional[str] = Field(None, max_length=1000)

class HoursConsume(BaseModel):
    hours: Decimal = Field(..., gt=0, max_digits=HOURS_MAX_DIGITS, decimal_places=HOURS_DECIMAL_PLACES)
    description: Optional[str] = Field(None, max_length=1000)
    ticket_id: Optional[uuid.UUID] = Field(None, description="Ticket the hours are charged to (required)")

class HoursAdjust(BaseModel):
    """Signed correction: positive adds hours, negative consumes them."""
    hours: Decimal = Field(..., max_digits=HOURS_MAX_DIGITS, decimal_places=HOURS_DECIMAL_PLACES)
    description: str = Field(..., min_length=1, max_length=1000)

    @field_validator("hours")
    @classmethod
    def hours_not_zero(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("An adjustment of zero hours has no effect")
        return v


# ===============================================================
# Transactions
# ===============================================================
class HoursBankTransaction(BaseModel):
    id: int
    bank_id: uuid.UUID
    type: HoursTransactionTypeEnum
    hours: Decimal
    description: Optional[str] = None
    ticket_id: Optional[uuid.UUID] = None
    performed_by_id: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ===============================================================
# Reports
# ===============================================================
class HoursBankReconciliation(BaseModel):
    bank_id: uuid.UUID
    total_additions: Decimal
    total_consumptions: Decimal
    ledger_balance: Decimal
    recorded_balance: Decimal
    difference: Decimal
    is_consistent: bool

class TransactionTypeSummary(BaseModel):
    type: HoursTransactionTypeEnum
    count: int
    hours: Decimal

class HoursBankStatistics(BaseModel):
    client_id: Optional[uuid.UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    bank_count: int
    active_bank_count: int
    total_hours: Decimal
    used_hours: Decimal
    available_hours: Decimal
    transactions: List[TransactionTypeSummary]

class ClientHoursSummary(BaseModel):
    """Self-service view of the active banks of the caller's client."""
    client_id: uuid.UUID
    bank_count: int
    total_hours: Decimal
    used_hours: Decimal
    available_hours: Decimal
    banks: List[HoursBank]

class HoursBankOperationResult(BaseModel):
    """Bank after a ledger operation plus the transaction it appended."""
    model_config = ConfigDict(from_attributes=True)

    bank: HoursBank
    transaction: HoursBankTransaction
