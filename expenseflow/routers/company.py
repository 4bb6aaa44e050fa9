import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field, field_validator
from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError

from ..core.clock import utcnow
from ..core.errors import ConflictError, NotFoundError, PersistenceError
from ..core.permissions import Capability, require_capability
from ..core.schema import ApiModel
from ..core.security import get_current_user
from ..database import get_session
from ..models.company import Company
from ..models.user import User
from ..services.reference_data import currency_for_country

router = APIRouter(
    prefix="/company",
    tags=["company"],
)


class CompanyCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    country: str = Field(min_length=1)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class CompanyRead(ApiModel):
    id: uuid.UUID
    name: str
    country: str
    currency: str


def get_company_or_none(session: Session) -> Optional[Company]:
    return session.exec(select(Company).order_by(Company.created_at)).first()


def create_company_record(session: Session, name: str, country: str, currency: Optional[str] = None) -> Company:
    """Add the single tenant company to the session without committing."""
    if get_company_or_none(session) is not None:
        raise ConflictError("Company already exists")
    company = Company(
        id=uuid.uuid4(),
        name=name,
        country=country,
        currency=currency or currency_for_country(country),
        created_at=utcnow(),
    )
    session.add(company)
    return company


@router.get(
    "",
    response_model=CompanyRead,
)
def get_company(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    company = get_company_or_none(session)
    if company is None:
        raise NotFoundError("Company not found")
    return CompanyRead(id=company.id, name=company.name, country=company.country, currency=company.currency)


@router.post(
    "",
    response_model=CompanyRead,
    status_code=status.HTTP_201_CREATED,
)
def create_company(
    payload: CompanyCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.CREATE_COMPANY)),
):
    company = create_company_record(session, payload.name, payload.country, payload.currency)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError("Failed to save company") from e
    session.refresh(company)
    return CompanyRead(id=company.id, name=company.name, country=company.country, currency=company.currency)
