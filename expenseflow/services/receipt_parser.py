"""Best-effort extraction of expense fields from OCR'd receipt text.

Nothing here is guaranteed: the result pre-fills the expense form and the
submitter is expected to correct it.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

CURRENCY_BY_SYMBOL = {
    "C$": "CAD",
    "A$": "AUD",
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "₹": "INR",
    "¥": "JPY",
}

_SYMBOL = r"(C\$|A\$|\$|€|£|₹|¥)"
_NUMBER = r"(\d+(?:[.,]\d{1,2})?)"

_AMOUNT_PATTERNS = [
    re.compile(_SYMBOL + r"\s*" + _NUMBER),
    re.compile(_NUMBER + r"\s*" + _SYMBOL),
    re.compile(r"(?:total|amount)[:\s]*" + _SYMBOL + r"?\s*" + _NUMBER, re.IGNORECASE),
    re.compile(_NUMBER + r"\s*(?:total|amount)", re.IGNORECASE),
]

_DATE_PATTERNS = [
    re.compile(r"\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}"),
    re.compile(r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}"),
    re.compile(
        r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\s+\d{1,2},?\s+\d{2,4}",
        re.IGNORECASE,
    ),
]

_VENDOR_KEYWORDS = (
    "restaurant", "hotel", "store", "shop", "cafe", "bar", "market",
    "center", "mall", "office", "company", "inc", "ltd", "corp",
)

# First match wins, so order matters
CATEGORY_KEYWORDS = [
    ("Meals", ("restaurant", "cafe", "food", "lunch", "dinner", "breakfast", "meal", "dining")),
    ("Transportation", ("taxi", "uber", "lyft", "bus", "train", "metro", "parking", "fuel", "ride")),
    ("Accommodation", ("hotel", "motel", "inn", "lodging", "accommodation", "room", "stay")),
    ("Office Supplies", ("office", "supplies", "stationery", "paper", "pen", "stapler", "printer")),
    ("Travel", ("flight", "airline", "airport", "booking", "travel")),
    ("Entertainment", ("movie", "theater", "concert", "show", "entertainment")),
    ("Communication", ("phone", "internet", "wifi", "mobile")),
    ("Utilities", ("electric", "water", "utility", "bill")),
]

_LINE_AMOUNT = re.compile(r"(\d+[.,]\d{2})\s*$")


@dataclass
class ParsedLine:
    description: str
    amount: float


@dataclass
class ParsedReceipt:
    amount: float
    currency: str
    date: str
    description: str
    vendor: str
    category: str
    items: List[ParsedLine] = field(default_factory=list)


def _to_number(raw: str) -> float:
    return float(raw.replace(",", "."))


def _find_amount(text: str):
    best, currency = 0.0, None
    for pattern in _AMOUNT_PATTERNS:
        for match in pattern.finditer(text):
            groups = [g for g in match.groups() if g]
            numbers = [g for g in groups if g[0].isdigit()]
            symbols = [g for g in groups if g in CURRENCY_BY_SYMBOL]
            if not numbers:
                continue
            value = _to_number(numbers[0])
            if value > best:
                best = value
                if symbols:
                    currency = CURRENCY_BY_SYMBOL[symbols[0]]
    return best, currency


def _find_date(text: str) -> Optional[str]:
    for pattern in _DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def _find_vendor(lines: List[str]) -> str:
    for line in lines[:5]:
        lowered = line.lower()
        if any(k in lowered for k in _VENDOR_KEYWORDS) or 5 < len(line) < 50:
            return line
    return ""


def _find_category(text: str) -> str:
    lowered = text.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(re.search(r"\b" + re.escape(k) + r"\b", lowered) for k in keywords):
            return category
    return "Other"


def _find_items(lines: List[str]) -> List[ParsedLine]:
    items = []
    for line in lines:
        match = _LINE_AMOUNT.search(line)
        if not match:
            continue
        label = line[: match.start()].strip(" .:$€£₹¥")
        if not re.search(r"[A-Za-z]", label) or re.search(r"\b(total|subtotal|amount)\b", label, re.IGNORECASE):
            continue
        amount = _to_number(match.group(1))
        if amount > 0:
            items.append(ParsedLine(description=" ".join(label.split()), amount=amount))
    return items


def parse_receipt_text(text: str, default_currency: str = "USD") -> ParsedReceipt:
    lines = [ln.strip() for ln in text.replace("\u00a0", " ").splitlines() if ln.strip()]

    amount, currency = _find_amount(text)
    vendor = _find_vendor(lines)
    items = _find_items(lines)

    if items:
        description = items[0].description
    else:
        description = f"Receipt from {vendor or 'Unknown vendor'}"

    return ParsedReceipt(
        amount=amount,
        currency=currency or default_currency,
        date=_find_date(text) or date.today().isoformat(),
        description=description,
        vendor=vendor,
        category=_find_category(text),
        items=items,
    )
