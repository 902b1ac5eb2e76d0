import uuid
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from datetime import datetime
from typing import Optional, List

from .enums import UserRoleEnum
from .client import ClientSimple


# ===============================================================
# Schemas for User
# ===============================================================
class UserBase(BaseModel):
    """Fields shared by every user schema."""
    username: str = Field(..., min_length=3, max_length=100, description="Unique user name")
    email: Optional[EmailStr] = Field(None, description="User e-mail")
    full_name: Optional[str] = Field(None, max_length=200)
    role: UserRoleEnum = Field(..., description="System role of the user")
    client_id: Optional[uuid.UUID] = None
    direction_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    section_id: Optional[uuid.UUID] = None

class UserCreate(UserBase):
    """Creation payload. Requires a password."""
    password: str = Field(..., min_length=8, description="Password of the new user")
    permissions: Optional[List[str]] = Field(None, description="Explicit permission tokens overriding the role defaults")

class UserUpdate(BaseModel):
    """
    Partial update. Every field is optional.
    """
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, max_length=200)
    password: Optional[str] = Field(None, min_length=8, description="Only when the password must change")
    role: Optional[UserRoleEnum] = None
    permissions: Optional[List[str]] = None
    client_id: Optional[uuid.UUID] = None
    direction_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    section_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None

class User(BaseModel):
    """
    Schema returned to API callers. Never exposes the password hash.
    """
    id: uuid.UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str
    permissions: Optional[List[str]] = None
    client_id: Optional[uuid.UUID] = None
    direction_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    section_id: Optional[uuid.UUID] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    client: Optional[ClientSimple] = None

    model_config = ConfigDict(from_attributes=True)

class UserSimple(BaseModel):
    id: uuid.UUID
    username: str
    full_name: Optional[str] = None
    role: str

    model_config = ConfigDict(from_attributes=True)
