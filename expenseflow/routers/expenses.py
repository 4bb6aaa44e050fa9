import uuid
from datetime import date as dt_date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlmodel import Session

from ..core.errors import ForbiddenError, NotFoundError, ValidationError
from ..core.permissions import Capability, can_view_expenses_of, has_capability, require_capability
from ..core.schema import ApiModel
from ..core.security import get_current_user
from ..database import get_session
from ..models.expense import Expense, ExpenseStatus
from ..models.user import User
from ..services import expenses as lifecycle
from ..services.expenses import NewExpenseItem, NewReceipt

router = APIRouter(
    prefix="/expenses",
    tags=["expenses"],
)

# ─────────────────────────────
#   SCHEMAS
# ─────────────────────────────

class ExpenseCreate(ApiModel):
    # Defaults to the authenticated user
    user_id: Optional[uuid.UUID] = None
    description: str = Field(default="", max_length=1000)
    items: List[NewExpenseItem]
    receipts: List[NewReceipt] = []


class StatusUpdate(ApiModel):
    status: ExpenseStatus
    approver_id: uuid.UUID
    approver_name: Optional[str] = None
    comments: Optional[str] = Field(default=None, max_length=1000)


class StatusUpdateOut(ApiModel):
    success: bool
    status: ExpenseStatus


class ExpenseItemRead(ApiModel):
    id: uuid.UUID
    amount: float
    date: dt_date
    description: str
    category: str
    currency: str


class ReceiptRead(ApiModel):
    id: uuid.UUID
    file_path: str
    upload_date: dt_date


class ApprovalActionRead(ApiModel):
    id: uuid.UUID
    user_id: uuid.UUID
    user_name: str
    action_type: ExpenseStatus
    action_date: dt_date
    comments: str = ""


class ExpenseRead(ApiModel):
    id: uuid.UUID
    user_id: uuid.UUID
    submit_date: dt_date
    total_amount: float
    currency: str
    description: str
    status: ExpenseStatus
    items: List[ExpenseItemRead]
    receipts: List[ReceiptRead]
    approval_actions: List[ApprovalActionRead]


def expense_to_read(expense: Expense) -> ExpenseRead:
    return ExpenseRead(
        id=expense.id,
        user_id=expense.user_id,
        submit_date=expense.submitted_at.date(),
        total_amount=float(expense.total_amount),
        currency=expense.currency,
        description=expense.description,
        status=expense.status,
        items=[
            ExpenseItemRead(
                id=item.id,
                amount=float(item.amount),
                date=item.date,
                description=item.description,
                category=item.category,
                currency=item.currency,
            )
            for item in expense.items
        ],
        receipts=[
            ReceiptRead(id=r.id, file_path=r.file_path, upload_date=r.upload_date.date())
            for r in expense.receipts
        ],
        approval_actions=[
            ApprovalActionRead(
                id=a.id,
                user_id=a.user_id,
                user_name=a.user_name,
                action_type=a.action_type,
                action_date=a.action_date.date(),
                comments=a.comments or "",
            )
            for a in expense.approval_actions
        ],
    )


def _owner_visible(session: Session, current_user: User, owner_id: uuid.UUID) -> User:
    owner = session.get(User, owner_id)
    if owner is None:
        raise NotFoundError("User not found")
    if not can_view_expenses_of(current_user, owner):
        raise ForbiddenError("Not allowed to view these expenses")
    return owner


# ─────────────────────────────
#   ENDPOINTS
# ─────────────────────────────

@router.get(
    "",
    response_model=List[ExpenseRead],
)
def list_expenses(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Expense history visible to the caller, most recent first."""
    return [expense_to_read(e) for e in lifecycle.list_visible_to(session, current_user)]


@router.get(
    "/pending",
    response_model=List[ExpenseRead],
)
def list_pending(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Approval queue: every pending expense for admins, direct reports' for managers."""
    return [expense_to_read(e) for e in lifecycle.list_pending_for_approver(session, current_user)]


@router.get(
    "/user/{user_id}",
    response_model=List[ExpenseRead],
)
def list_user_expenses(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    _owner_visible(session, current_user, user_id)
    return [expense_to_read(e) for e in lifecycle.list_for_owner(session, user_id)]


@router.post(
    "",
    response_model=ExpenseRead,
    status_code=status.HTTP_201_CREATED,
)
def create_expense(
    payload: ExpenseCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.SUBMIT_EXPENSES)),
):
    """Submit an expense report. Only admins may submit on someone else's behalf."""
    user_id = payload.user_id or current_user.id
    if user_id != current_user.id and not has_capability(current_user.role, Capability.MANAGE_USERS):
        raise ForbiddenError("Cannot submit expenses for another user")

    expense = lifecycle.submit_expense(
        session,
        user_id=user_id,
        description=payload.description,
        items=payload.items,
        receipts=payload.receipts,
    )
    return expense_to_read(expense)


@router.get(
    "/{expense_id}",
    response_model=ExpenseRead,
)
def get_expense(
    expense_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    expense = lifecycle.get_expense(session, expense_id)
    _owner_visible(session, current_user, expense.user_id)
    return expense_to_read(expense)


@router.patch(
    "/{expense_id}/status",
    response_model=StatusUpdateOut,
)
def update_expense_status(
    expense_id: uuid.UUID,
    payload: StatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Approve or reject a pending expense.

    The approver is always the authenticated user; ``approverId`` must name
    them, and the audit record stores their name as currently on file.
    """
    needed = {
        ExpenseStatus.APPROVED: Capability.APPROVE_EXPENSES,
        ExpenseStatus.REJECTED: Capability.REJECT_EXPENSES,
    }
    if not any(has_capability(current_user.role, cap) for cap in needed.values()):
        raise ForbiddenError("Not allowed to resolve expenses")
    cap = needed.get(payload.status)
    if cap is None:
        raise ValidationError("Status must be 'approved' or 'rejected'")
    if not has_capability(current_user.role, cap):
        raise ForbiddenError(f"Missing capability: {cap.value}")
    if payload.approver_id != current_user.id:
        raise ForbiddenError("approverId must be the authenticated user")

    new_status = lifecycle.resolve_expense(
        session,
        expense_id=expense_id,
        decision=payload.status,
        actor=current_user,
        comments=payload.comments,
    )
    return StatusUpdateOut(success=True, status=new_status)
