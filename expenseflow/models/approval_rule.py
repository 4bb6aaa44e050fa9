import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class ApprovalRule(SQLModel, table=True):
    """Multi-step approval configuration.

    Stored for the approval-rules screens only; the expense lifecycle still
    resolves every expense with a single approve/reject decision.
    """

    __tablename__ = "approval_rules"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    employee_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    manager_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")

    # Ordered user ids, serialized as strings
    approvers: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    is_sequential: bool = Field(default=False)
    is_manager_approver: bool = Field(default=True)
    min_approval_percentage: int = Field(default=100, ge=0, le=100)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utcnow)
