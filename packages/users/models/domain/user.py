from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    full_name: Optional[str] = None
    is_active: bool = True
    is_admin: bool = False
    generations_count: int = 0
    last_reset_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class UserCreateModel(BaseModel):
    """Model for creating a new user."""

    email: EmailStr
    full_name: Optional[str] = None
    is_active: bool = True
    is_admin: bool = False
