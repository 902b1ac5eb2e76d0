import uuid
from decimal import Decimal
from typing import Any, Dict, Optional
from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator, ConfigDict

from .enums import LicenseTypeEnum, LicenseStatusEnum, BillingCycleEnum
from .client import ClientSimple


# --- Schema Base ---
class LicenseBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    client_id: Optional[uuid.UUID] = None
    vendor: Optional[str] = Field(None, max_length=255)
    product: Optional[str] = Field(None, max_length=255)
    version: Optional[str] = Field(None, max_length=50)
    license_key: Optional[str] = None
    license_type: LicenseTypeEnum = LicenseTypeEnum.SUBSCRIPTION
    total_seats: int = Field(1, ge=0)
    used_seats: int = Field(0, ge=0)
    purchase_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: LicenseStatusEnum = LicenseStatusEnum.ACTIVE
    auto_renew: bool = False
    purchase_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    renewal_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    currency: str = Field("EUR", min_length=3, max_length=3)
    billing_cycle: Optional[BillingCycleEnum] = None
    supplier: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    extra_data: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode='after')
    def check_dates(self) -> 'LicenseBase':
        if self.purchase_date and self.expiry_date and self.expiry_date < self.purchase_date:
            raise ValueError("The expiry date cannot precede the purchase date")
        return self

# --- Schema for creation ---
class LicenseCreate(LicenseBase):
    pass

# --- Schema for update ---
class LicenseUpdate(BaseModel):
    """Seat counts are checked against the stored values by the service."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    client_id: Optional[uuid.UUID] = None
    vendor: Optional[str] = Field(None, max_length=255)
    product: Optional[str] = Field(None, max_length=255)
    version: Optional[str] = Field(None, max_length=50)
    license_key: Optional[str] = None
    license_type: Optional[LicenseTypeEnum] = None
    total_seats: Optional[int] = Field(None, ge=0)
    used_seats: Optional[int] = Field(None, ge=0)
    purchase_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: Optional[LicenseStatusEnum] = None
    auto_renew: Optional[bool] = None
    purchase_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    renewal_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    billing_cycle: Optional[BillingCycleEnum] = None
    supplier: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    extra_data: Optional[Dict[str, Any]] = None

# --- Schema for API responses ---
class License(LicenseBase):
    id: uuid.UUID
    available_seats: int
    created_at: datetime
    updated_at: datetime
    client: Optional[ClientSimple] = None

    model_config = ConfigDict(from_attributes=True)
