"""Expense submission, approval lifecycle and listing.

An expense is created ``pending`` and moves exactly once to ``approved`` or
``rejected``. The move and its audit record are one unit of work: the
status update is conditional on the row still being pending, so when two
approvers race only the first commit wins and the second gets a conflict.
"""

import uuid
from datetime import date as dt_date
from decimal import Decimal
from typing import List, Optional, Sequence, Union

from pydantic import Field, field_validator
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..core.clock import utcnow
from ..core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ..core.permissions import can_resolve
from ..core.schema import ApiModel
from ..logging_config import get_logger
from ..models.expense import ApprovalAction, Expense, ExpenseItem, ExpenseStatus, Receipt
from ..models.user import Role, User

logger = get_logger(__name__)

DECISIONS = {ExpenseStatus.APPROVED, ExpenseStatus.REJECTED}

# Matches the Numeric(14, 2) amount columns
CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("999999999999.99")


class NewExpenseItem(ApiModel):
    amount: Decimal
    date: dt_date
    description: str = Field(min_length=1, max_length=255)
    category: str = Field(default="Other", min_length=1, max_length=50)
    currency: str = Field(min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return v.strip().upper()


class NewReceipt(ApiModel):
    file_path: str = Field(min_length=1)


def _newest_first(statement):
    return statement.order_by(Expense.submitted_at.desc(), Expense.id.desc())


def _commit(session: Session, event: str, **context) -> None:
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(event, error=str(e), **context)
        raise PersistenceError("Failed to save changes") from e


def submit_expense(
    session: Session,
    user_id: uuid.UUID,
    description: str,
    items: Sequence[NewExpenseItem],
    receipts: Sequence[NewReceipt] = (),
) -> Expense:
    """Create a pending expense with its items and receipts in one commit."""
    if not items:
        raise ValidationError("An expense needs at least one item")
    for item in items:
        if item.amount <= 0:
            raise ValidationError("Item amounts must be positive")
        if item.amount > MAX_AMOUNT:
            raise ValidationError("Item amount is too large")
        if item.amount != item.amount.quantize(CENT):
            raise ValidationError("Item amounts must have at most two decimal places")
    total = sum((item.amount for item in items), Decimal(0))
    if total > MAX_AMOUNT:
        raise ValidationError("Expense total is too large")

    if session.get(User, user_id) is None:
        raise ValidationError(f"Unknown user {user_id}")

    currencies = {item.currency for item in items}
    if len(currencies) > 1:
        # Nominal currency is the first item's; amounts are summed as-is
        logger.warning(
            "expense_mixed_currencies",
            user_id=str(user_id),
            currencies=sorted(currencies),
        )

    now = utcnow()
    expense = Expense(
        id=uuid.uuid4(),
        user_id=user_id,
        submitted_at=now,
        total_amount=total,
        currency=items[0].currency,
        description=description,
        status=ExpenseStatus.PENDING,
        created_at=now,
    )
    session.add(expense)
    for position, item in enumerate(items):
        session.add(
            ExpenseItem(
                expense_id=expense.id,
                position=position,
                amount=item.amount,
                date=item.date,
                description=item.description,
                category=item.category,
                currency=item.currency,
            )
        )
    for receipt in receipts:
        session.add(Receipt(expense_id=expense.id, file_path=receipt.file_path, upload_date=now))

    _commit(session, "expense_submit_failed", user_id=str(user_id))
    session.refresh(expense)

    logger.info(
        "expense_submitted",
        expense_id=str(expense.id),
        user_id=str(user_id),
        total=str(expense.total_amount),
        currency=expense.currency,
    )
    return expense


def resolve_expense(
    session: Session,
    expense_id: uuid.UUID,
    decision: Union[ExpenseStatus, str],
    actor: User,
    comments: Optional[str] = None,
) -> ExpenseStatus:
    """Move a pending expense to ``decision`` and append its audit record."""
    try:
        decision = ExpenseStatus(decision)
    except ValueError:
        raise ValidationError(f"Invalid decision: {decision}")
    if decision not in DECISIONS:
        raise ValidationError("Decision must be 'approved' or 'rejected'")

    expense = session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Expense not found")

    owner = session.get(User, expense.user_id)
    if owner is None or not can_resolve(actor, owner):
        raise ForbiddenError("Not allowed to resolve this expense")

    # Pending check and update happen in the same statement
    result = session.exec(
        update(Expense)
        .where(Expense.id == expense_id)
        .where(Expense.status == ExpenseStatus.PENDING)
        .values(status=decision)
    )
    if result.rowcount != 1:
        session.rollback()
        logger.info(
            "expense_resolve_conflict",
            expense_id=str(expense_id),
            actor_id=str(actor.id),
        )
        raise ConflictError("Expense has already been resolved")

    session.add(
        ApprovalAction(
            expense_id=expense_id,
            user_id=actor.id,
            user_name=actor.name,
            action_type=decision,
            action_date=utcnow(),
            comments=comments,
        )
    )
    _commit(session, "expense_resolve_failed", expense_id=str(expense_id))
    session.expire(expense)

    logger.info(
        "expense_resolved",
        expense_id=str(expense_id),
        actor_id=str(actor.id),
        status=decision.value,
    )
    return decision


def get_expense(session: Session, expense_id: uuid.UUID) -> Expense:
    expense = session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Expense not found")
    return expense


def list_pending_for_approver(session: Session, actor: User) -> List[Expense]:
    statement = select(Expense).where(Expense.status == ExpenseStatus.PENDING)
    if actor.role == Role.ADMIN:
        pass
    elif actor.role == Role.MANAGER:
        statement = statement.join(User, User.id == Expense.user_id).where(
            User.manager_id == actor.id
        )
    else:
        return []
    return list(session.exec(_newest_first(statement)).all())


def list_for_owner(session: Session, user_id: uuid.UUID) -> List[Expense]:
    statement = select(Expense).where(Expense.user_id == user_id)
    return list(session.exec(_newest_first(statement)).all())


def list_visible_to(session: Session, actor: User) -> List[Expense]:
    """Expense history: everything for admins, own plus reports' for managers."""
    statement = select(Expense)
    if actor.role == Role.ADMIN:
        pass
    elif actor.role == Role.MANAGER:
        statement = statement.join(User, User.id == Expense.user_id).where(
            (Expense.user_id == actor.id) | (User.manager_id == actor.id)
        )
    else:
        statement = statement.where(Expense.user_id == actor.id)
    return list(session.exec(_newest_first(statement)).all())
