"""Field validation for each checkout step"""

import re
from datetime import date
from typing import Optional

from ..core.errors import InvariantViolation
from ..models.checkout import (
    Address,
    BillingInfo,
    CardPayment,
    CustomerInfo,
    PayPalPayment,
    PaymentInfo,
    ShippingInfo,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
STATE_PATTERN = re.compile(r"^[A-Za-z]{2}$")
CARD_NUMBER_PATTERN = re.compile(r"^\d{13,19}$")
EXPIRY_MONTH_PATTERN = re.compile(r"^(0[1-9]|1[0-2])$")
EXPIRY_YEAR_PATTERN = re.compile(r"^\d{4}$")
CVV_PATTERN = re.compile(r"^\d{3,4}$")

NAME_MAX_LENGTH = 50


def dedupe(messages: list[str]) -> list[str]:
    """Drop repeated messages, keeping first occurrence order"""
    return list(dict.fromkeys(messages))


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _check_name(value: Optional[str], label: str, errors: list[str]) -> None:
    if _blank(value):
        errors.append(f"{label} is required")
    elif len(value.strip()) < 2:
        errors.append(f"{label} must be at least 2 characters")
    elif len(value.strip()) > NAME_MAX_LENGTH:
        errors.append(f"{label} must be no more than {NAME_MAX_LENGTH} characters")


def _check_email(value: Optional[str], errors: list[str]) -> None:
    if _blank(value):
        errors.append("Email is required")
    elif not EMAIL_PATTERN.match(value.strip()):
        errors.append("Please enter a valid email address")


def validate_customer(info: CustomerInfo) -> list[str]:
    errors: list[str] = []
    _check_email(info.email, errors)
    _check_name(info.first_name, "First name", errors)
    _check_name(info.last_name, "Last name", errors)

    if _blank(info.phone):
        errors.append("Phone number is required")
    elif len(re.sub(r"\D", "", info.phone)) < 10:
        errors.append("Please enter a valid phone number")

    return dedupe(errors)


def _labelled(prefix: str, message: str) -> str:
    if not prefix:
        return message
    if message.startswith("ZIP"):
        return f"{prefix} {message}"
    return f"{prefix} {message[0].lower()}{message[1:]}"


def validate_address(address: Address, prefix: str = "") -> list[str]:
    """Validate a postal address; ``prefix`` labels billing messages"""
    errors: list[str] = []
    _check_name(address.first_name, _labelled(prefix, "First name"), errors)
    _check_name(address.last_name, _labelled(prefix, "Last name"), errors)

    if _blank(address.address1):
        errors.append(_labelled(prefix, "Street address is required"))
    elif len(address.address1.strip()) < 5:
        errors.append(_labelled(prefix, "Street address must be at least 5 characters"))

    if _blank(address.city):
        errors.append(_labelled(prefix, "City is required"))
    elif len(address.city.strip()) < 2:
        errors.append(_labelled(prefix, "City must be at least 2 characters"))

    if _blank(address.state):
        errors.append(_labelled(prefix, "State is required"))
    elif not STATE_PATTERN.match(address.state.strip()):
        errors.append("Please enter a valid state abbreviation")

    if _blank(address.postal_code):
        errors.append(_labelled(prefix, "ZIP code is required"))
    elif not ZIP_PATTERN.match(address.postal_code.strip()):
        errors.append("Please enter a valid ZIP code")

    if _blank(address.country):
        errors.append(_labelled(prefix, "Country is required"))

    return dedupe(errors)


def validate_shipping(info: ShippingInfo) -> list[str]:
    return validate_address(info)


def validate_card(payment: CardPayment, today: Optional[date] = None) -> list[str]:
    today = today or date.today()
    errors: list[str] = []
    _check_name(payment.cardholder_name, "Cardholder name", errors)

    digits = re.sub(r"[\s-]", "", payment.card_number or "")
    if not digits:
        errors.append("Card number is required")
    elif not CARD_NUMBER_PATTERN.match(digits):
        errors.append("Please enter a valid card number")

    month_ok = False
    if _blank(payment.expiry_month):
        errors.append("Expiry month is required")
    elif not EXPIRY_MONTH_PATTERN.match(payment.expiry_month):
        errors.append("Please enter a valid expiry month")
    else:
        month_ok = True

    if _blank(payment.expiry_year):
        errors.append("Expiry year is required")
    elif not EXPIRY_YEAR_PATTERN.match(payment.expiry_year):
        errors.append("Please enter a valid expiry year")
    elif month_ok and (int(payment.expiry_year), int(payment.expiry_month)) < (today.year, today.month):
        errors.append("Card has expired")

    if _blank(payment.cvv):
        errors.append("CVV is required")
    elif not CVV_PATTERN.match(payment.cvv):
        errors.append("Please enter a valid CVV")

    return errors


def validate_payment(
    payment: Optional[PaymentInfo],
    billing: BillingInfo,
    today: Optional[date] = None,
) -> list[str]:
    """Validate the payment step: payment method plus billing address"""
    errors: list[str] = []

    if payment is None:
        errors.append("Please select a payment method")
    elif isinstance(payment, CardPayment):
        errors.extend(validate_card(payment, today))
    elif isinstance(payment, PayPalPayment):
        if _blank(payment.paypal_email):
            errors.append("PayPal email is required")
        elif not EMAIL_PATTERN.match(payment.paypal_email.strip()):
            errors.append("Please enter a valid PayPal email address")
    else:
        raise InvariantViolation(f"Unknown payment method: {getattr(payment, 'method', payment)!r}")

    if not billing.same_as_shipping:
        errors.extend(validate_address(billing, prefix="Billing"))

    return dedupe(errors)
