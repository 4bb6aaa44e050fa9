import uuid
from datetime import datetime
from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class Company(SQLModel, table=True):
    __tablename__ = "companies"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    name: str
    country: str
    currency: str = Field(max_length=3)

    created_at: datetime = Field(default_factory=utcnow)
