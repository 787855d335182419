"""User and address schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    GUEST = "guest"
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


class Address(BaseModel):
    """A postal address attached to a user."""

    id: str
    street: str
    city: str
    state: Optional[str] = None
    zip: str
    country: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class User(BaseModel):
    """A registered user."""

    id: str
    username: str
    email: str
    role: UserRole = UserRole.USER
    created_at: datetime
    updated_at: Optional[datetime] = None
    addresses: List[Address] = []
    metadata: dict = {}
