# value_formatter.py - Answer Normalization
# Turns a raw answer into the value written into the document

import logging
import re
from decimal import Decimal, InvalidOperation

from config import CURRENCY_PREFIX, LOG_LEVEL
from docfill.models import PlaceholderDescriptor

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
    "|Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec"
)

AMOUNT_PATTERN = re.compile(
    r"(\d[\d,]*(?:\.\d+)?)\s*(thousand|million|k|m)?\b",
    re.IGNORECASE,
)

DATE_PATTERNS = [
    re.compile(r"\b(?:" + MONTHS + r")\.?\s+\d{1,2},?\s+\d{4}\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{4}\b"),
]

SCALES = {
    "k": Decimal(1000),
    "thousand": Decimal(1000),
    "m": Decimal(1000000),
    "million": Decimal(1000000),
}


class ValueFormatter:
    """Canonicalizes answers by placeholder kind (currency, date, text)."""

    @staticmethod
    def format(raw: str, descriptor: PlaceholderDescriptor) -> str:
        value = (raw or "").strip()
        kind = descriptor.value_kind
        if kind == "currency":
            return ValueFormatter.format_currency(value, descriptor.prefix or CURRENCY_PREFIX)
        if kind == "date":
            if not ValueFormatter.is_recognized_date(value):
                logger.warning(f"Unrecognized date for {descriptor.key!r}: {value!r}")
            return value
        return value

    @staticmethod
    def format_currency(value: str, prefix: str = CURRENCY_PREFIX) -> str:
        """
        "100k" -> "$100,000", "5 million" -> "$5,000,000", "$1,250" -> "$1,250".
        Input without digits is only prefixed.
        """
        match = AMOUNT_PATTERN.search(value)
        if not match:
            return value if value.startswith(prefix) else prefix + value

        try:
            amount = Decimal(match.group(1).replace(",", ""))
        except InvalidOperation:
            return value if value.startswith(prefix) else prefix + value

        suffix = (match.group(2) or "").lower()
        amount *= SCALES.get(suffix, Decimal(1))
        return prefix + _group_thousands(amount)

    @staticmethod
    def is_recognized_date(value: str) -> bool:
        return any(pattern.search(value) for pattern in DATE_PATTERNS)


def _group_thousands(amount: Decimal) -> str:
    if amount == amount.to_integral_value():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


def format_value(raw: str, descriptor: PlaceholderDescriptor) -> str:
    """Convenience wrapper around ValueFormatter.format"""
    return ValueFormatter.format(raw, descriptor)
