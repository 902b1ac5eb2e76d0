import uuid
from decimal import Decimal
from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict

from .enums import CatalogItemTypeEnum, PriorityEnum


# ===============================================================
# Catalog categories
# ===============================================================
class CatalogCategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=20)
    parent_id: Optional[uuid.UUID] = Field(None, description="Parent category; empty for a root")
    default_direction_id: Optional[uuid.UUID] = None
    default_department_id: Optional[uuid.UUID] = None
    default_section_id: Optional[uuid.UUID] = None
    order: int = 0
    is_active: bool = True

class CatalogCategoryCreate(CatalogCategoryBase):
    pass

class CatalogCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=20)
    parent_id: Optional[uuid.UUID] = None
    default_direction_id: Optional[uuid.UUID] = None
    default_department_id: Optional[uuid.UUID] = None
    default_section_id: Optional[uuid.UUID] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None

class CatalogCategory(CatalogCategoryBase):
    id: uuid.UUID
    level: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class CatalogCategoryTree(BaseModel):
    id: uuid.UUID
    name: str
    level: int
    parent_id: Optional[uuid.UUID] = None
    order: int
    is_active: bool
    children: List["CatalogCategoryTree"] = []


# ===============================================================
# Catalog items
# ===============================================================
class CatalogItemBase(BaseModel):
    category_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255)
    short_description: Optional[str] = Field(None, max_length=500)
    full_description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=50)
    item_type: CatalogItemTypeEnum = CatalogItemTypeEnum.SERVICE
    default_priority: PriorityEnum = PriorityEnum.MEDIUM
    requires_approval: bool = False
    skip_approval_for_incidents: bool = True
    default_direction_id: Optional[uuid.UUID] = None
    default_department_id: Optional[uuid.UUID] = None
    default_section_id: Optional[uuid.UUID] = None
    estimated_cost: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    estimated_delivery_time: Optional[int] = Field(None, ge=0, description="Hours")
    keywords: List[str] = Field(default_factory=list)
    order: int = 0
    is_active: bool = True
    is_public: bool = True

class CatalogItemCreate(CatalogItemBase):
    pass

class CatalogItemUpdate(BaseModel):
    category_id: Optional[uuid.UUID] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    short_description: Optional[str] = Field(None, max_length=500)
    full_description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=50)
    item_type: Optional[CatalogItemTypeEnum] = None
    default_priority: Optional[PriorityEnum] = None
    requires_approval: Optional[bool] = None
    skip_approval_for_incidents: Optional[bool] = None
    default_direction_id: Optional[uuid.UUID] = None
    default_department_id: Optional[uuid.UUID] = None
    default_section_id: Optional[uuid.UUID] = None
    estimated_cost: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    estimated_delivery_time: Optional[int] = Field(None, ge=0)
    keywords: Optional[List[str]] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None
    is_public: Optional[bool] = None

class CatalogItem(CatalogItemBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class CatalogItemRouting(BaseModel):
    """Where a ticket opened from the item lands and whether it needs approval."""
    item_id: uuid.UUID
    item_type: CatalogItemTypeEnum
    default_priority: PriorityEnum
    direction_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    section_id: Optional[uuid.UUID] = None
    routing_source: Optional[str] = Field(None, description="item, category or parent_category")
    requires_approval: bool
