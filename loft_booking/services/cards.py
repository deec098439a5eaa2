"""Local cache of payment-card display data.

Only what a "saved cards" list needs is kept: last four digits, name,
expiry, brand and billing address. Full card numbers and security codes
never reach the store.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Dict, List, Optional, Protocol

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CARD_KEY_PREFIX = "saved_card:"


class SecureStore(Protocol):
    def put(self, key: str, record: str) -> None: ...

    def get_all(self) -> Dict[str, str]: ...

    def delete(self, key: str) -> None: ...


class InMemorySecureStore:
    """Process-local store used for tests and local runs."""

    def __init__(self) -> None:
        self._records: Dict[str, str] = {}

    def put(self, key: str, record: str) -> None:
        self._records[key] = record

    def get_all(self) -> Dict[str, str]:
        return dict(self._records)

    def delete(self, key: str) -> None:
        self._records.pop(key, None)


class CardForm(BaseModel):
    name_on_card: str = ""
    number: str = ""
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None
    cvv: str = ""
    billing_address: str = ""
    billing_city: str = ""
    billing_state: str = ""
    billing_zip: str = ""

    @property
    def digits(self) -> str:
        return digits_only(self.number)


class SavedCardDisplay(BaseModel):
    last4: str = Field(..., min_length=4, max_length=4)
    name_on_card: str
    exp_month: int = Field(..., ge=1, le=12)
    exp_year: int
    card_type: str
    billing_address: str = ""
    billing_city: str = ""
    billing_state: str = ""
    billing_zip: str = ""

    def is_expired(self, today: date) -> bool:
        return (self.exp_year, self.exp_month) < (today.year, today.month)


def digits_only(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


def luhn_check(digits: str) -> bool:
    if not digits or not digits.isdigit():
        return False
    total = 0
    for index, char in enumerate(reversed(digits)):
        value = int(char)
        if index % 2 == 1:
            value *= 2
            if value > 9:
                value -= 9
        total += value
    return total % 10 == 0


def detect_card_type(number: str) -> str:
    digits = digits_only(number)
    if digits.startswith("4"):
        return "Visa"
    if digits[:2] in {"34", "37"}:
        return "Amex"
    if digits[:2] in {"51", "52", "53", "54", "55"} or "2221" <= digits[:4] <= "2720":
        return "Mastercard"
    if digits.startswith("6011") or digits.startswith("65"):
        return "Discover"
    return "Card"


def is_card_expired(month: int, year: int, today: date) -> bool:
    return (year, month) < (today.year, today.month)


def validate_card_form(form: CardForm, today: date) -> Optional[str]:
    """Return the first problem with ``form``, or ``None`` when it is valid."""

    if not form.name_on_card.strip():
        return "Name on card is required."
    if not 13 <= len(form.digits) <= 19:
        return "Card number must be 13–19 digits."
    if not luhn_check(form.digits):
        return "Card number failed verification (check digits)."
    if form.exp_month is None or not 1 <= form.exp_month <= 12:
        return "Select an expiration month."
    if form.exp_year is None:
        return "Select an expiration year."
    if is_card_expired(form.exp_month, form.exp_year, today):
        return "Card is expired."
    if not 3 <= len(form.cvv) <= 4:
        return "Security code should be 3–4 digits."
    if not form.billing_address.strip():
        return "Billing address is required."
    if not form.billing_city.strip():
        return "Billing city is required."
    if len(form.billing_state) != 2:
        return "Use 2-letter state code (e.g., AZ)."
    if not 5 <= len(form.billing_zip) <= 10:
        return "Enter a valid ZIP code."
    return None


class CardDisplayStore:
    def __init__(self, store: SecureStore) -> None:
        self._store = store

    def save_from_form(self, form: CardForm) -> SavedCardDisplay:
        digits = form.digits
        if len(digits) < 4:
            raise ValueError("Card number is too short to save")
        card = SavedCardDisplay(
            last4=digits[-4:],
            name_on_card=form.name_on_card.strip(),
            exp_month=form.exp_month or 0,
            exp_year=form.exp_year or 0,
            card_type=detect_card_type(digits),
            billing_address=form.billing_address,
            billing_city=form.billing_city,
            billing_state=form.billing_state,
            billing_zip=form.billing_zip,
        )
        self._store.put(self._key(card.last4), card.model_dump_json())
        return card

    def load_all(self) -> List[SavedCardDisplay]:
        cards: List[SavedCardDisplay] = []
        for key, record in sorted(self._store.get_all().items()):
            if not key.startswith(CARD_KEY_PREFIX):
                continue
            try:
                cards.append(SavedCardDisplay.model_validate(json.loads(record)))
            except (ValueError, ValidationError):
                logger.warning("Dropping unreadable saved card record %s", key)
                self._store.delete(key)
        return cards

    def delete(self, last4: str) -> None:
        self._store.delete(self._key(last4))

    @staticmethod
    def _key(last4: str) -> str:
        return f"{CARD_KEY_PREFIX}{last4}"
