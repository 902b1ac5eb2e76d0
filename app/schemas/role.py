import uuid
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional, List


# ===============================================================
# Schemas for Permission
# ===============================================================
class Permission(BaseModel):
    id: uuid.UUID
    name: str
    resource: str
    action: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ===============================================================
# Schemas for Role
# ===============================================================
class RoleBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, description="Same value as the users.role it grants to")
    description: Optional[str] = None

class RoleCreate(RoleBase):
    permission_ids: List[uuid.UUID] = Field(default_factory=list)

class RolePermissionsUpdate(BaseModel):
    """Replaces the whole permission set of a role."""
    permission_ids: List[uuid.UUID]

class Role(RoleBase):
    id: uuid.UUID
    is_system: bool
    created_at: datetime
    updated_at: datetime
    permissions: List[Permission] = []

    model_config = ConfigDict(from_attributes=True)
