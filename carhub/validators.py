"""
Input validation and formatting for customer, vehicle, and money fields.

``validate_*`` functions return an ``(is_valid, error_message)`` tuple so
callers can collect several problems at once.  ``parse_*`` and
``require_*`` helpers raise ``ValidationError`` carrying the offending
field name, which routes turn into a 400 response.

Brazilian tax IDs:
  - **CPF** (individuals): 11 digits, two mod-11 check digits.
  - **CNPJ** (companies):  14 digits, two weighted mod-11 check digits.
"""

import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
# Old format ABC1234 and Mercosul ABC1D23.
PLATE_PATTERN = re.compile(r"^[A-Z]{3}[0-9][A-Z0-9][0-9]{2}$")

_CNPJ_WEIGHTS_1 = [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
_CNPJ_WEIGHTS_2 = [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]

CENTS = Decimal("0.01")


class ValidationError(Exception):
    """Raised when a request payload field is missing or malformed."""

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


def only_digits(value: str | None) -> str:
    """Strip everything except 0-9."""
    return re.sub(r"\D", "", value or "")


# =========================================================================
# Tax IDs
# =========================================================================


def validate_cpf(value: str | None) -> tuple[bool, str | None]:
    """
    Validate a CPF number, formatted or not.

    Returns:
        Tuple of (is_valid, error_message).
    """
    cpf = only_digits(value)
    if len(cpf) != 11:
        return False, "CPF must have 11 digits"
    if cpf == cpf[0] * 11:
        return False, "Invalid CPF"

    for length in (9, 10):
        # Weights run from length+1 down to 2.
        total = sum(
            int(digit) * weight
            for digit, weight in zip(cpf[:length], range(length + 1, 1, -1))
        )
        check = (total * 10) % 11
        if check == 10:
            check = 0
        if check != int(cpf[length]):
            return False, "Invalid CPF"

    return True, None


def validate_cnpj(value: str | None) -> tuple[bool, str | None]:
    """
    Validate a CNPJ number, formatted or not.

    Returns:
        Tuple of (is_valid, error_message).
    """
    cnpj = only_digits(value)
    if len(cnpj) != 14:
        return False, "CNPJ must have 14 digits"
    if cnpj == cnpj[0] * 14:
        return False, "Invalid CNPJ"

    for weights in (_CNPJ_WEIGHTS_1, _CNPJ_WEIGHTS_2):
        length = len(weights)
        total = sum(int(d) * w for d, w in zip(cnpj[:length], weights))
        remainder = total % 11
        check = 0 if remainder < 2 else 11 - remainder
        if check != int(cnpj[length]):
            return False, "Invalid CNPJ"

    return True, None


def detect_document_type(value: str | None) -> str | None:
    """Guess ``cpf`` / ``cnpj`` from the digit count."""
    digits = only_digits(value)
    if len(digits) == 11:
        return "cpf"
    if len(digits) == 14:
        return "cnpj"
    return None


def validate_document(
    value: str | None,
    document_type: str | None = None,
) -> tuple[bool, str | None]:
    """Validate a CPF or CNPJ, detecting the type when not given."""
    document_type = document_type or detect_document_type(value)
    if document_type == "cpf":
        return validate_cpf(value)
    if document_type == "cnpj":
        return validate_cnpj(value)
    return False, "Document must be a CPF (11 digits) or CNPJ (14 digits)"


def format_cpf(value: str | None) -> str:
    """Format as 999.999.999-99; returns input unchanged if not 11 digits."""
    cpf = only_digits(value)
    if len(cpf) != 11:
        return value or ""
    return f"{cpf[:3]}.{cpf[3:6]}.{cpf[6:9]}-{cpf[9:]}"


def format_cnpj(value: str | None) -> str:
    """Format as 99.999.999/9999-99; returns input unchanged if not 14 digits."""
    cnpj = only_digits(value)
    if len(cnpj) != 14:
        return value or ""
    return f"{cnpj[:2]}.{cnpj[2:5]}.{cnpj[5:8]}/{cnpj[8:12]}-{cnpj[12:]}"


def format_document(value: str | None, document_type: str | None = None) -> str:
    document_type = document_type or detect_document_type(value)
    if document_type == "cnpj":
        return format_cnpj(value)
    return format_cpf(value)


# =========================================================================
# Contact fields
# =========================================================================


def validate_email(email: str | None) -> tuple[bool, str | None]:
    """
    Validate email format.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"
    if len(email) > 254:
        return False, "Email address too long"
    if not EMAIL_PATTERN.match(email):
        return False, "Invalid email format"
    return True, None


def format_phone(value: str | None) -> str:
    """(99) 9999-9999 for landlines, (99) 99999-9999 for mobiles."""
    digits = only_digits(value)
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    return value or ""


def validate_phone(value: str | None) -> tuple[bool, str | None]:
    digits = only_digits(value)
    if len(digits) not in (10, 11):
        return False, "Phone must have 10 or 11 digits including area code"
    return True, None


def format_zip_code(value: str | None) -> str:
    """Brazilian CEP: 99999-999."""
    digits = only_digits(value)
    if len(digits) != 8:
        return value or ""
    return f"{digits[:5]}-{digits[5:]}"


# =========================================================================
# Vehicles
# =========================================================================


def normalize_plate(value: str | None) -> str:
    """Upper-case and drop separators: 'abc-1d23' -> 'ABC1D23'."""
    return re.sub(r"[^A-Za-z0-9]", "", value or "").upper()


def validate_plate(value: str | None) -> tuple[bool, str | None]:
    plate = normalize_plate(value)
    if not plate:
        return False, "License plate is required"
    if not PLATE_PATTERN.match(plate):
        return False, "License plate must look like ABC1234 or ABC1D23"
    return True, None


def validate_year(year: Any, max_year: int) -> tuple[bool, str | None]:
    try:
        year = int(year)
    except (TypeError, ValueError):
        return False, "Year must be a number"
    if year < 1900 or year > max_year:
        return False, f"Year must be between 1900 and {max_year}"
    return True, None


# =========================================================================
# Generic payload helpers
# =========================================================================


def validate_required_fields(
    data: dict[str, Any],
    required_fields: list[str],
) -> tuple[bool, str | None]:
    """
    Validate that all required fields are present and non-empty.

    Returns:
        Tuple of (is_valid, error_message).
    """
    missing = [
        name
        for name in required_fields
        if name not in data or data[name] is None or data[name] == ""
    ]
    if missing:
        return False, f"Missing required fields: {', '.join(missing)}"
    return True, None


def require_fields(data: dict[str, Any], required_fields: list[str]) -> None:
    """Raise ``ValidationError`` naming the first missing field."""
    is_valid, error = validate_required_fields(data, required_fields)
    if not is_valid:
        first = next(
            name
            for name in required_fields
            if name not in data or data[name] is None or data[name] == ""
        )
        raise ValidationError(error, field=first)


def clean_str(value: Any, max_length: int | None = None) -> str | None:
    """Strip a string field; empty strings become None."""
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if max_length is not None:
        value = value[:max_length]
    return value


def parse_decimal(
    value: Any,
    field: str,
    default: Decimal | None = None,
    allow_negative: bool = False,
) -> Decimal | None:
    """
    Parse a money value into a 2-place Decimal.

    Accepts numbers and strings; a comma decimal separator is accepted
    as typed in Brazilian forms ("150,50").
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        text = str(value).strip().replace(",", ".")
        amount = Decimal(text).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a number", field=field) from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number", field=field)
    if amount < 0 and not allow_negative:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return amount


def parse_int(value: Any, field: str, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer", field=field) from exc


def parse_date(value: Any, field: str) -> date | None:
    """Parse ISO ``YYYY-MM-DD`` (a trailing time part is ignored)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)", field=field) from exc


def parse_time(value: Any, field: str) -> time | None:
    """Parse ``HH:MM`` or ``HH:MM:SS``."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError as exc:
        raise ValidationError(f"{field} must be a time (HH:MM)", field=field) from exc


def parse_choice(value: Any, field: str, choices: tuple[str, ...], default: str | None = None) -> str | None:
    if value is None or value == "":
        return default
    if value not in choices:
        raise ValidationError(
            f"{field} must be one of: {', '.join(choices)}", field=field
        )
    return value


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def format_money(value: Decimal | None) -> str | None:
    """Serialize a money value as a 2-place string ("150.50")."""
    if value is None:
        return None
    return f"{Decimal(value):.2f}"
