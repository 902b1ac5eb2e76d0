import uuid
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional


# ===============================================================
# Direction
# ===============================================================
class DirectionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    is_active: bool = True

class DirectionCreate(DirectionBase):
    pass

class DirectionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    is_active: Optional[bool] = None

class Direction(DirectionBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class DirectionSimple(BaseModel):
    id: uuid.UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


# ===============================================================
# Department
# ===============================================================
class DepartmentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    direction_id: Optional[uuid.UUID] = Field(None, description="Optional parent direction")
    is_active: bool = True

class DepartmentCreate(DepartmentBase):
    pass

class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    direction_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None

class Department(DepartmentBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    direction: Optional[DirectionSimple] = None

    model_config = ConfigDict(from_attributes=True)

class DepartmentSimple(BaseModel):
    id: uuid.UUID
    name: str
    direction_id: Optional[uuid.UUID] = None

    model_config = ConfigDict(from_attributes=True)


# ===============================================================
# Section
# ===============================================================
class SectionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    department_id: uuid.UUID = Field(..., description="Parent department (mandatory)")
    is_active: bool = True

class SectionCreate(SectionBase):
    pass

class SectionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None

class Section(SectionBase):
    id: uuid.UUID
    # Read through the department
    direction_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    department: Optional[DepartmentSimple] = None

    model_config = ConfigDict(from_attributes=True)
