import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import EmailStr, Field
from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..core.clock import utcnow
from ..core.errors import ConflictError, PersistenceError, UnauthorizedError, ValidationError
from ..core.jwt import create_access_token
from ..core.permissions import ROLE_CAPABILITIES, accessible_sections, role_display_name
from ..core.schema import ApiModel
from ..core.security import ACCESS_TOKEN_COOKIE, get_current_user, hash_password, verify_password
from ..database import get_session
from ..logging_config import get_logger
from ..models.user import Role, User
from ..services.reference_data import currency_for_country
from .company import CompanyRead, create_company_record
from .users import UserRead, user_to_read

logger = get_logger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


class SignupIn(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)
    country: str = Field(min_length=1)
    company_name: Optional[str] = None


class SignupOut(ApiModel):
    user: UserRead
    company: CompanyRead


class LoginIn(ApiModel):
    email: EmailStr
    password: str


class SessionOut(ApiModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class MeOut(ApiModel):
    user: UserRead
    role_name: str
    capabilities: List[str]
    sections: List[str]


class TokenOut(ApiModel):
    access_token: str
    token_type: str


def _reject_whitespace(password: str) -> None:
    if any(c.isspace() for c in password):
        raise ValidationError("Password must not contain whitespace")


def _authenticate(session: Session, email: str, password: str) -> User:
    _reject_whitespace(password)
    email_norm = email.strip().lower()
    user = session.exec(select(User).where(User.email == email_norm)).first()
    if user is None or not verify_password(password, user.hashed_password):
        raise UnauthorizedError("Invalid email or password")
    return user


def _issue_token(user: User) -> str:
    return create_access_token(user.id, {"email": user.email, "role": user.role.value})


@router.post(
    "/signup",
    response_model=SignupOut,
    status_code=status.HTTP_201_CREATED,
)
def signup(
    payload: SignupIn,
    session: Session = Depends(get_session),
):
    """First-run setup: creates the company and its first admin."""
    _reject_whitespace(payload.password)
    email_norm = payload.email.strip().lower()
    if session.exec(select(User).where(User.email == email_norm)).first() is not None:
        raise ConflictError("Email already registered")
    company = create_company_record(
        session,
        payload.company_name or f"{payload.name}'s Company",
        payload.country,
    )
    now = utcnow()
    admin = User(
        id=uuid.uuid4(),
        email=email_norm,
        name=payload.name,
        role=Role.ADMIN,
        department="Administration",
        country=payload.country,
        currency=currency_for_country(payload.country),
        hire_date=date.today(),
        hashed_password=hash_password(payload.password),
        created_at=now,
        updated_at=now,
    )
    session.add(admin)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("signup_failed", error=str(e))
        raise PersistenceError("Failed to complete signup") from e
    session.refresh(admin)
    session.refresh(company)
    logger.info("company_created", company_id=str(company.id), admin_id=str(admin.id))
    return SignupOut(
        user=user_to_read(admin),
        company=CompanyRead(id=company.id, name=company.name, country=company.country, currency=company.currency),
    )


@router.post(
    "/login",
    response_model=SessionOut,
    status_code=status.HTTP_200_OK,
)
def login(payload: LoginIn, response: Response, session: Session = Depends(get_session)):
    user = _authenticate(session, payload.email, payload.password)
    token = _issue_token(user)

    # HttpOnly cookie so browsers never keep the token in JS storage
    is_prod = settings.environment.lower() == "production"
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=token,
        httponly=True,
        secure=is_prod,
        samesite="none" if is_prod else "lax",
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )
    return SessionOut(access_token=token, user=user_to_read(user))


@router.get(
    "/me",
    response_model=MeOut,
    status_code=status.HTTP_200_OK,
)
def me(current_user: User = Depends(get_current_user)):
    return MeOut(
        user=user_to_read(current_user),
        role_name=role_display_name(current_user.role),
        capabilities=sorted(c.value for c in ROLE_CAPABILITIES[current_user.role]),
        sections=accessible_sections(current_user.role),
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
)
def logout(response: Response):
    response.delete_cookie(key=ACCESS_TOKEN_COOKIE, path="/")
    return None


@router.post(
    "/token",
    response_model=TokenOut,
    status_code=status.HTTP_200_OK,
)
def token(form_data: OAuth2PasswordRequestForm = Depends(), session: Session = Depends(get_session)):
    # OAuth2PasswordRequestForm carries the email in 'username'
    user = _authenticate(session, form_data.username, form_data.password)
    return TokenOut(access_token=_issue_token(user), token_type="bearer")
