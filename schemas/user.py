from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.lender import CamelModel


class User(CamelModel):
    id: str
    username: str
    is_admin: bool = False
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class UserCreate(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)
    is_admin: bool = False


class LoginRequest(CamelModel):
    username: str
    password: str
