import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import EmailStr, Field
from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError

from ..core.clock import utcnow
from ..core.errors import ConflictError, ForbiddenError, NotFoundError, PersistenceError, ValidationError
from ..core.permissions import Capability, has_capability, require_capability
from ..core.schema import ApiModel
from ..core.security import get_current_user, hash_password
from ..database import get_session
from ..logging_config import get_logger
from ..models.user import Role, User
from ..services.reference_data import currency_for_country

logger = get_logger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"],
)

# ─────────────────────────────
#   SCHEMAS
# ─────────────────────────────

class UserCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    role: Role = Role.EMPLOYEE
    department: str = ""
    country: str = ""
    manager_id: Optional[uuid.UUID] = None
    hire_date: Optional[date] = None
    password: Optional[str] = Field(default=None, min_length=6)


class UserUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    department: Optional[str] = None
    country: Optional[str] = None
    manager_id: Optional[uuid.UUID] = None
    password: Optional[str] = Field(default=None, min_length=6)


class UserRead(ApiModel):
    id: uuid.UUID
    email: str
    name: str
    role: Role
    department: str
    country: str
    currency: str
    manager_id: Optional[uuid.UUID] = None
    hire_date: date


def user_to_read(user: User) -> UserRead:
    return UserRead(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        department=user.department,
        country=user.country,
        currency=user.currency,
        manager_id=user.manager_id,
        hire_date=user.hire_date,
    )


def _email_taken(session: Session, email: str, exclude: Optional[uuid.UUID] = None) -> bool:
    stmt = select(User).where(User.email == email)
    if exclude is not None:
        stmt = stmt.where(User.id != exclude)
    return session.exec(stmt).first() is not None


def _check_manager(session: Session, manager_id: Optional[uuid.UUID], user_id: Optional[uuid.UUID] = None):
    if manager_id is None:
        return
    if manager_id == user_id:
        raise ValidationError("A user cannot be their own manager")
    if session.get(User, manager_id) is None:
        raise ValidationError(f"Unknown manager {manager_id}")


def _save(session: Session, user: User) -> User:
    session.add(user)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("user_save_failed", error=str(e))
        raise PersistenceError("Failed to save user") from e
    session.refresh(user)
    return user


# ─────────────────────────────
#   ENDPOINTS
# ─────────────────────────────

@router.get(
    "",
    response_model=List[UserRead],
)
def list_users(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    users = session.exec(select(User).order_by(User.created_at.desc())).all()
    return [user_to_read(u) for u in users]


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
)
def create_user(
    payload: UserCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    """Onboard a user; currency is taken from the country at this point."""
    email_norm = payload.email.strip().lower()
    if _email_taken(session, email_norm):
        raise ConflictError("Email already registered")
    _check_manager(session, payload.manager_id)

    now = utcnow()
    user = User(
        id=uuid.uuid4(),
        email=email_norm,
        name=payload.name,
        role=payload.role,
        department=payload.department,
        country=payload.country,
        currency=currency_for_country(payload.country),
        manager_id=payload.manager_id,
        hire_date=payload.hire_date or date.today(),
        hashed_password=hash_password(payload.password) if payload.password else None,
        created_at=now,
        updated_at=now,
    )
    user = _save(session, user)
    logger.info("user_created", user_id=str(user.id), role=user.role.value, by=str(current_user.id))
    return user_to_read(user)


@router.get(
    "/{user_id}",
    response_model=UserRead,
)
def get_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    allowed = (
        user.id == current_user.id
        or user.manager_id == current_user.id
        or has_capability(current_user.role, Capability.MANAGE_USERS)
    )
    if not allowed:
        raise ForbiddenError("Not allowed to view this user")
    return user_to_read(user)


@router.patch(
    "/{user_id}",
    response_model=UserRead,
)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
):
    """Partial update. Naming a country recomputes the user's currency."""
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")

    if "role" in changes and not has_capability(current_user.role, Capability.SET_ROLES):
        raise ForbiddenError("Missing capability: set-roles")
    if payload.email is not None:
        email_norm = payload.email.strip().lower()
        if _email_taken(session, email_norm, exclude=user.id):
            raise ConflictError("Email already registered")
        user.email = email_norm
    if "manager_id" in changes:
        _check_manager(session, payload.manager_id, user.id)
        user.manager_id = payload.manager_id
    if payload.name is not None:
        user.name = payload.name
    if payload.role is not None:
        user.role = payload.role
    if payload.department is not None:
        user.department = payload.department
    if payload.country is not None:
        user.country = payload.country
        user.currency = currency_for_country(payload.country)
    if payload.password is not None:
        user.hashed_password = hash_password(payload.password)

    user.updated_at = utcnow()
    return user_to_read(_save(session, user))
