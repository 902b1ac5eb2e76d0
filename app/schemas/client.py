import uuid
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from datetime import datetime
from typing import Optional


# ===============================================================
# Schemas for Client
# ===============================================================
class ClientBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=200, description="Unique client company name")
    email: Optional[EmailStr] = Field(None, description="Contact e-mail")
    contact_phone: Optional[str] = Field(None, max_length=50)
    is_active: bool = True

class ClientCreate(ClientBase):
    pass

class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None

class Client(ClientBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class ClientSimple(BaseModel):
    id: uuid.UUID
    name: str

    model_config = ConfigDict(from_attributes=True)
