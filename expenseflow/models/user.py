import uuid
from datetime import datetime, date
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    email: str = Field(index=True, unique=True)
    name: str
    role: Role = Field(default=Role.EMPLOYEE)
    department: str = Field(default="")
    country: str = Field(default="")
    # Copied from country when the user is created or explicitly updated
    currency: str = Field(default="USD", max_length=3)

    manager_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )
    hire_date: date = Field(default_factory=date.today)
    hashed_password: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
