import uuid
from decimal import Decimal
from typing import Any, Dict, Optional
from datetime import date, datetime

from pydantic import BaseModel, Field, ConfigDict

from .enums import AssetTypeEnum, AssetStatusEnum
from .client import ClientSimple
from .user import UserSimple


# --- Schema Base ---
class AssetBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: AssetTypeEnum
    status: AssetStatusEnum = AssetStatusEnum.ACTIVE
    asset_tag: Optional[str] = Field(None, max_length=100, description="Unique inventory tag")
    client_id: Optional[uuid.UUID] = None
    user_id: Optional[uuid.UUID] = Field(None, description="User the asset is assigned to")
    manufacturer: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    hostname: Optional[str] = Field(None, max_length=255)
    ip_address: Optional[str] = Field(None, max_length=45)
    location: Optional[str] = Field(None, max_length=255)
    hardware_info: Dict[str, Any] = Field(default_factory=dict)
    software_info: Dict[str, Any] = Field(default_factory=dict)
    purchase_date: Optional[date] = None
    purchase_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    warranty_expires: Optional[date] = None
    supplier: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None

    model_config = ConfigDict(protected_namespaces=())

class AssetCreate(AssetBase):
    pass

class AssetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[AssetTypeEnum] = None
    status: Optional[AssetStatusEnum] = None
    asset_tag: Optional[str] = Field(None, max_length=100)
    client_id: Optional[uuid.UUID] = None
    user_id: Optional[uuid.UUID] = None
    manufacturer: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    hostname: Optional[str] = Field(None, max_length=255)
    ip_address: Optional[str] = Field(None, max_length=45)
    location: Optional[str] = Field(None, max_length=255)
    hardware_info: Optional[Dict[str, Any]] = None
    software_info: Optional[Dict[str, Any]] = None
    purchase_date: Optional[date] = None
    purchase_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    warranty_expires: Optional[date] = None
    supplier: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None

    model_config = ConfigDict(protected_namespaces=())

# --- Schema for API responses ---
class Asset(AssetBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    client: Optional[ClientSimple] = None
    user: Optional[UserSimple] = None

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())
