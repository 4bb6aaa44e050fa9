import uuid
from datetime import datetime, date as dt_date
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship

from ..core.clock import utcnow


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Expense(SQLModel, table=True):
    __tablename__ = "expenses"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True
    )

    submitted_at: datetime = Field(default_factory=utcnow, index=True)
    # Sum of the item amounts at submission time
    total_amount: Decimal = Field(max_digits=14, decimal_places=2)
    # Currency of the first item; items are not converted
    currency: str = Field(max_length=3)
    description: str = Field(default="")
    status: ExpenseStatus = Field(default=ExpenseStatus.PENDING, index=True)

    created_at: datetime = Field(default_factory=utcnow)

    items: List["ExpenseItem"] = Relationship(
        back_populates="expense",
        sa_relationship_kwargs={"order_by": "ExpenseItem.position"},
    )
    receipts: List["Receipt"] = Relationship(
        back_populates="expense",
        sa_relationship_kwargs={"order_by": "Receipt.upload_date"},
    )
    approval_actions: List["ApprovalAction"] = Relationship(
        back_populates="expense",
        sa_relationship_kwargs={"order_by": "ApprovalAction.action_date"},
    )


class ExpenseItem(SQLModel, table=True):
    __tablename__ = "expense_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    expense_id: uuid.UUID = Field(foreign_key="expenses.id", index=True)
    position: int = Field(default=0)

    amount: Decimal = Field(max_digits=14, decimal_places=2)
    date: dt_date
    description: str
    category: str = Field(default="Other", max_length=50)
    currency: str = Field(max_length=3)

    expense: Optional[Expense] = Relationship(back_populates="items")


class Receipt(SQLModel, table=True):
    __tablename__ = "receipts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    expense_id: uuid.UUID = Field(foreign_key="expenses.id", index=True)

    file_path: str
    upload_date: datetime = Field(default_factory=utcnow)

    expense: Optional[Expense] = Relationship(back_populates="receipts")


class ApprovalAction(SQLModel, table=True):
    """One audit record per status transition. Never updated or deleted."""

    __tablename__ = "approval_actions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    expense_id: uuid.UUID = Field(foreign_key="expenses.id", index=True)

    # Actor identity as it was when the action was taken
    user_id: uuid.UUID = Field(foreign_key="users.id")
    user_name: str

    action_type: ExpenseStatus
    action_date: datetime = Field(default_factory=utcnow)
    comments: Optional[str] = Field(default=None)

    expense: Optional[Expense] = Relationship(back_populates="approval_actions")
