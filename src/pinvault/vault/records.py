# Vault - Plaintext Records
#
# Field rules for the two collections and the categories seeded on first
# registration. Records stay plain dicts: that is the contract the UI and
# the export file share.

import re
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List

from .errors import ValidationError

TRANSACTION_TYPES = ("income", "expense")

MAX_TRANSACTION_AMOUNT = 100_000_000_000  # Rp100.000.000.000

PIN_LENGTH = 4

DEFAULT_CATEGORIES: List[Dict[str, str]] = [
    {"id": "cat-gaji", "name": "Gaji", "type": "income"},
    {"id": "cat-bonus", "name": "Bonus", "type": "income"},
    {"id": "cat-usaha", "name": "Usaha", "type": "income"},
    {"id": "cat-makan", "name": "Makan", "type": "expense"},
    {"id": "cat-transport", "name": "Transportasi", "type": "expense"},
    {"id": "cat-tagihan", "name": "Tagihan", "type": "expense"},
]

_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_PIN = re.compile(r"[0-9]{4}")


def default_categories() -> List[Dict[str, str]]:
    """Fresh copy of the seed categories."""
    return [dict(c) for c in DEFAULT_CATEGORIES]


def new_transaction_id() -> str:
    return str(uuid.uuid4())


def new_category_id() -> str:
    return f"cat-{uuid.uuid4().hex[-8:]}"


def validate_pin(pin: Any) -> str:
    """A PIN is exactly four ASCII digits."""
    if not isinstance(pin, str) or not _PIN.fullmatch(pin):
        raise ValidationError("pin", f"PIN must be exactly {PIN_LENGTH} digits")
    return pin


def _validate_type(record: Dict[str, Any]):
    if record.get("type") not in TRANSACTION_TYPES:
        raise ValidationError("type", "type must be 'income' or 'expense'")


def validate_transaction(record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a transaction record in place and return it.

    Raises:
        ValidationError: missing/invalid date, type or amount, or a note
            that is not text
    """
    if not isinstance(record, dict):
        raise ValidationError(None, "transaction must be an object")

    raw_date = record.get("date")
    if not isinstance(raw_date, str) or not _ISO_DATE.fullmatch(raw_date):
        raise ValidationError("date", "date must be an ISO date (YYYY-MM-DD)")
    try:
        date.fromisoformat(raw_date)
    except ValueError:
        raise ValidationError("date", f"{raw_date} is not a calendar date") from None

    _validate_type(record)

    amount = record.get("amount")
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("amount", "amount must be a whole number")
    if amount <= 0:
        raise ValidationError("amount", "amount must be greater than zero")
    if amount > MAX_TRANSACTION_AMOUNT:
        raise ValidationError("amount", f"amount may not exceed {MAX_TRANSACTION_AMOUNT}")

    note = record.get("note")
    if note is not None and not isinstance(note, str):
        raise ValidationError("note", "note must be text")

    category_id = record.get("categoryId")
    if category_id is not None and not isinstance(category_id, str):
        raise ValidationError("categoryId", "categoryId must be a string or null")

    return record


def validate_category(record: Dict[str, Any]) -> Dict[str, Any]:
    """Check a category record in place and return it."""
    if not isinstance(record, dict):
        raise ValidationError(None, "category must be an object")

    name = record.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name", "category name must not be empty")

    _validate_type(record)
    return record


def utc_timestamp() -> str:
    """Current UTC time as an ISO string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
