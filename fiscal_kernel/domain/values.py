"""
Value helpers shared by the pure domain layer.

Responsibility:
    Monetary rounding, decimal coercion and the Brazilian federative-unit
    (UF) registry with IBGE region codes.

Architecture position:
    Kernel > Domain -- pure functions and constants, zero I/O.

Invariants enforced:
    - round_money() is the only sanctioned rounding function for monetary
      values (two places, ROUND_HALF_UP).
    - No floats: to_decimal() refuses float input so that binary rounding
      never leaks into totals, and NaN or infinite amounts are rejected.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from fiscal_kernel.exceptions import InvalidAmountError

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the only rounding function used for totals and line values.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """
    Coerce an int, str or Decimal into a finite Decimal.

    Raises:
        TypeError: For floats, booleans and other non-numeric types.
        InvalidAmountError: For strings that are not numbers, and for NaN
            or infinite values.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"{field_name} must be Decimal, int or str, not {type(value).__name__}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise InvalidAmountError(field_name, value) from exc
    else:
        raise TypeError(f"{field_name} must be Decimal, int or str, not {type(value).__name__}")
    if not result.is_finite():
        raise InvalidAmountError(field_name, value)
    return result


def digits_only(value: str | None) -> str:
    """Strip punctuation from a CPF/CNPJ/CEP string."""
    if not value:
        return ""
    return "".join(ch for ch in value if ch.isdigit())


# IBGE numeric codes of the 27 federative units.  The first two digits of an
# NF-e access key are the issuer's code from this table.
UF_IBGE_CODES: dict[str, str] = {
    "RO": "11", "AC": "12", "AM": "13", "RR": "14", "PA": "15", "AP": "16", "TO": "17",
    "MA": "21", "PI": "22", "CE": "23", "RN": "24", "PB": "25", "PE": "26", "AL": "27",
    "SE": "28", "BA": "29",
    "MG": "31", "ES": "32", "RJ": "33", "SP": "35",
    "PR": "41", "SC": "42", "RS": "43",
    "MS": "50", "MT": "51", "GO": "52", "DF": "53",
}


def is_valid_uf(uf: str | None) -> bool:
    return bool(uf) and uf.strip().upper() in UF_IBGE_CODES


def region_code_for(uf: str) -> str:
    """
    IBGE code of a UF.

    Raises:
        ValueError: If ``uf`` is not one of the 27 federative units.
    """
    normalized = (uf or "").strip().upper()
    try:
        return UF_IBGE_CODES[normalized]
    except KeyError:
        raise ValueError(f"Unknown federative unit: {uf!r}") from None
