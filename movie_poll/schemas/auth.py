from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AdminLogin(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class AdminResponse(BaseModel):
    id: int
    username: str
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    admin: AdminResponse


class MessageResponse(BaseModel):
    message: str
