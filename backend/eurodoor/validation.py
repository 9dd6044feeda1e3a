from __future__ import annotations

import re
from typing import Any

from .errors import InvalidInputError, InvalidPaymentCodeError


# Maximum price: KES 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

PAYMENT_CODE_LENGTH = 10
_PAYMENT_CODE_CHARS = re.compile(r"^[A-Z0-9]+$")

# =============================================================================
# PAYMENT CODES
# =============================================================================

def is_valid_supply_payment_code(code: Any) -> bool:
    """
    Supplier payment codes are strict: exactly 10 characters made of
    exactly 2 digits and 8 uppercase letters (e.g. A2B3CDEFGH).
    """
    if not isinstance(code, str) or len(code) != PAYMENT_CODE_LENGTH:
        return False
    if not _PAYMENT_CODE_CHARS.match(code):
        return False
    digits = sum(1 for ch in code if ch.isdigit())
    letters = sum(1 for ch in code if "A" <= ch <= "Z")
    return digits == 2 and letters == 8

def is_valid_customer_payment_code(code: Any) -> bool:
    """Customer (M-PESA style) codes: 10 chars of [A-Z0-9] with at least 2 digits."""
    if not isinstance(code, str) or len(code) != PAYMENT_CODE_LENGTH:
        return False
    if not _PAYMENT_CODE_CHARS.match(code):
        return False
    return sum(1 for ch in code if ch.isdigit()) >= 2

def require_supply_payment_code(code: Any) -> str:
    if not code:
        raise InvalidPaymentCodeError("payment_code is required")
    if not is_valid_supply_payment_code(code):
        raise InvalidPaymentCodeError(
            "Invalid payment_code format. Must be 10 characters: "
            "2 digits and 8 uppercase letters (e.g., A2B3CDEFGH)"
        )
    return code

def require_customer_payment_code(code: Any) -> str:
    if not code:
        raise InvalidPaymentCodeError("payment_code is required")
    if not is_valid_customer_payment_code(code):
        raise InvalidPaymentCodeError(
            "Payment code must be 10 characters long, uppercase letters and "
            "digits only, with at least 2 digits (e.g., MPE1JF2CTD)"
        )
    return code

# =============================================================================
# SCALAR COERCION
# =============================================================================

def coerce_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion: rejects bools, floats, decimals and
    scientific notation. Digit strings are accepted.
    """
    if value is None:
        raise InvalidInputError(f"{field} is required")

    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        # Reject floats explicitly, even integral ones like 5.0
        raise InvalidInputError(f"{field} must be an integer, not a decimal")
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise InvalidInputError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise InvalidInputError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise InvalidInputError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise InvalidInputError(f"{field} must be an integer")
    else:
        raise InvalidInputError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise InvalidInputError(f"{field} must be >= {minimum}")
    return result

def require_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    if value is None or str(value).strip() == "":
        raise InvalidInputError(f"{field} is required")
    text = str(value).strip()
    if max_length is not None and len(text) > max_length:
        raise InvalidInputError(f"{field} exceeds max length {max_length}")
    return text

def require_price_cents(value: Any, field: str = "price_cents") -> int:
    price = coerce_int(value, field, minimum=0)
    if price > MAX_PRICE_CENTS:
        raise InvalidInputError(f"{field} cannot exceed {MAX_PRICE_CENTS}")
    return price

def require_decision(value: Any, allowed: tuple[str, ...], field: str = "decision") -> str:
    if value not in allowed:
        quoted = " or ".join(f"'{a}'" for a in allowed)
        raise InvalidInputError(f"Invalid {field}. Use {quoted}.")
    return value

