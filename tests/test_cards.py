from datetime import date

import pytest

from loft_booking.services.cards import (
    CardDisplayStore,
    CardForm,
    InMemorySecureStore,
    detect_card_type,
    luhn_check,
    validate_card_form,
)


TODAY = date(2025, 10, 20)


def _form(**overrides) -> CardForm:
    values = dict(
        name_on_card="Pat Golfer",
        number="4242 4242 4242 4242",
        exp_month=12,
        exp_year=2027,
        cvv="123",
        billing_address="1 Fairway Dr",
        billing_city="Scottsdale",
        billing_state="AZ",
        billing_zip="85251",
    )
    values.update(overrides)
    return CardForm(**values)


def test_luhn_check() -> None:
    assert luhn_check("4242424242424242") is True
    assert luhn_check("4242424242424241") is False
    assert luhn_check("") is False


@pytest.mark.parametrize(
    ("number", "expected"),
    [
        ("4111111111111111", "Visa"),
        ("378282246310005", "Amex"),
        ("5555555555554444", "Mastercard"),
        ("2223003122003222", "Mastercard"),
        ("6011111111111117", "Discover"),
        ("9999999999999995", "Card"),
    ],
)
def test_detect_card_type(number, expected) -> None:
    assert detect_card_type(number) == expected


def test_valid_form_has_no_problem() -> None:
    assert validate_card_form(_form(), TODAY) is None


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"name_on_card": "  "}, "Name on card is required."),
        ({"number": "4242"}, "Card number must be 13–19 digits."),
        ({"number": "4242424242424241"}, "Card number failed verification (check digits)."),
        ({"exp_month": None}, "Select an expiration month."),
        ({"exp_month": 9, "exp_year": 2025}, "Card is expired."),
        ({"cvv": "12"}, "Security code should be 3–4 digits."),
        ({"billing_state": "Arizona"}, "Use 2-letter state code (e.g., AZ)."),
        ({"billing_zip": "852"}, "Enter a valid ZIP code."),
    ],
)
def test_invalid_form_reports_first_problem(overrides, message) -> None:
    assert validate_card_form(_form(**overrides), TODAY) == message


def test_saved_cards_keep_display_fields_only() -> None:
    store = InMemorySecureStore()
    cards = CardDisplayStore(store)

    saved = cards.save_from_form(_form())

    assert saved.last4 == "4242"
    assert saved.card_type == "Visa"
    record = store.get_all()["saved_card:4242"]
    assert "4242424242424242" not in record
    assert "cvv" not in record
    assert "number" not in record


def test_saving_same_last_four_replaces_card() -> None:
    cards = CardDisplayStore(InMemorySecureStore())

    cards.save_from_form(_form())
    cards.save_from_form(_form(name_on_card="Sam Golfer"))

    loaded = cards.load_all()
    assert [card.name_on_card for card in loaded] == ["Sam Golfer"]


def test_unreadable_records_are_dropped() -> None:
    store = InMemorySecureStore()
    store.put("saved_card:0000", "{not json")
    store.put("unrelated", "value")
    cards = CardDisplayStore(store)
    cards.save_from_form(_form())

    loaded = cards.load_all()

    assert [card.last4 for card in loaded] == ["4242"]
    assert "saved_card:0000" not in store.get_all()
    assert "unrelated" in store.get_all()


def test_delete_and_expiry() -> None:
    cards = CardDisplayStore(InMemorySecureStore())
    saved = cards.save_from_form(_form(exp_month=9, exp_year=2025))

    assert saved.is_expired(TODAY) is True

    cards.delete("4242")
    assert cards.load_all() == []
