import uuid
from typing import Optional

from pydantic import BaseModel


# Response of the login and refresh endpoints
class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


# Claims carried inside the JWT
class TokenPayload(BaseModel):
    sub: uuid.UUID | str
    type: Optional[str] = None


# Body of /refresh-token
class RefreshToken(BaseModel):
    refresh_token: str
