from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from ..core.permissions import Capability, require_capability
from ..core.schema import ApiModel
from ..models.user import User
from ..services.receipt_parser import parse_receipt_text

router = APIRouter(
    prefix="/receipts",
    tags=["receipts"],
)

MAX_TEXT_CHARS = 20_000


class ReceiptTextIn(ApiModel):
    text: str = Field(min_length=1, max_length=MAX_TEXT_CHARS)
    default_currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class ParsedLineRead(ApiModel):
    description: str
    amount: float


class ParsedReceiptRead(ApiModel):
    amount: float
    currency: str
    date: str
    description: str
    vendor: str
    category: str
    items: List[ParsedLineRead]


@router.post(
    "/parse",
    response_model=ParsedReceiptRead,
    status_code=status.HTTP_200_OK,
)
def parse_receipt(
    payload: ReceiptTextIn,
    current_user: User = Depends(require_capability(Capability.SUBMIT_EXPENSES)),
):
    """Suggest expense fields from OCR text; the submitter reviews them."""
    parsed = parse_receipt_text(
        payload.text,
        default_currency=(payload.default_currency or current_user.currency).upper(),
    )
    return ParsedReceiptRead(**asdict(parsed))
