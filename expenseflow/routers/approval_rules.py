import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError

from ..core.clock import utcnow
from ..core.errors import PersistenceError, ValidationError
from ..core.permissions import Capability, require_capability
from ..core.schema import ApiModel
from ..database import get_session
from ..models.approval_rule import ApprovalRule
from ..models.user import User

router = APIRouter(
    prefix="/approval-rules",
    tags=["approval-rules"],
)


class ApprovalRuleCreate(ApiModel):
    employee_id: uuid.UUID
    manager_id: Optional[uuid.UUID] = None
    approvers: List[uuid.UUID] = []
    is_sequential: bool = False
    is_manager_approver: bool = True
    min_approval_percentage: int = Field(default=100, ge=0, le=100)
    is_active: bool = True


class ApprovalRuleRead(ApiModel):
    id: uuid.UUID
    employee_id: uuid.UUID
    manager_id: Optional[uuid.UUID] = None
    approvers: List[uuid.UUID]
    is_sequential: bool
    is_manager_approver: bool
    min_approval_percentage: int
    is_active: bool
    created_at: datetime


def _to_read(rule: ApprovalRule) -> ApprovalRuleRead:
    return ApprovalRuleRead(
        id=rule.id,
        employee_id=rule.employee_id,
        manager_id=rule.manager_id,
        approvers=[uuid.UUID(a) for a in rule.approvers],
        is_sequential=rule.is_sequential,
        is_manager_approver=rule.is_manager_approver,
        min_approval_percentage=rule.min_approval_percentage,
        is_active=rule.is_active,
        created_at=rule.created_at,
    )


@router.get(
    "",
    response_model=List[ApprovalRuleRead],
)
def list_approval_rules(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.CONFIGURE_APPROVAL_RULES)),
):
    rules = session.exec(select(ApprovalRule).order_by(ApprovalRule.created_at.desc())).all()
    return [_to_read(r) for r in rules]


@router.post(
    "",
    response_model=ApprovalRuleRead,
    status_code=status.HTTP_201_CREATED,
)
def create_approval_rule(
    payload: ApprovalRuleCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.CONFIGURE_APPROVAL_RULES)),
):
    referenced = {payload.employee_id, *payload.approvers}
    if payload.manager_id is not None:
        referenced.add(payload.manager_id)
    found = set(session.exec(select(User.id).where(User.id.in_(referenced))).all())
    missing = referenced - found
    if missing:
        raise ValidationError(f"Unknown users: {', '.join(sorted(str(m) for m in missing))}")

    rule = ApprovalRule(
        id=uuid.uuid4(),
        employee_id=payload.employee_id,
        manager_id=payload.manager_id,
        approvers=[str(a) for a in payload.approvers],
        is_sequential=payload.is_sequential,
        is_manager_approver=payload.is_manager_approver,
        min_approval_percentage=payload.min_approval_percentage,
        is_active=payload.is_active,
        created_at=utcnow(),
    )
    session.add(rule)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError("Failed to save approval rule") from e
    session.refresh(rule)
    return _to_read(rule)
