"""
Access-key generator (``fiscal_kernel.domain.access_key``).

Responsibility
--------------
Builds the 45-digit identifier of an official document and the temporary
key assigned to drafts.

Layout of an access key (fixed width, zero padded)::

    pos  0-1   region code       IBGE code of the issuer's UF
    pos  2-5   YYMM              year and month of the issue date
    pos  6-19  issuer tax id     CPF/CNPJ digits, left-padded to 14
    pos 20-21  model             55 = NF-e
    pos 22-24  series
    pos 25-33  number            sequential per issuer and series
    pos 34     emission type     1 = normal
    pos 35-43  nonce             random digits
    pos 44     check digit       modulus 11 over positions 0-43

Invariants enforced
-------------------
* ``compute_check_digit(key[:44]) == key[44]`` for every generated key.
* The final key never reuses a draft's temporary key (different alphabet
  and prefix).

Uniqueness is weak: it relies on the sequential number plus YYMM plus the
random nonce, with no lookup against earlier keys.  The unique constraint on
``official_documents.access_key`` is the backstop.  Not a cryptographic
identifier.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import date

from fiscal_kernel.domain.values import digits_only
from fiscal_kernel.exceptions import InvalidAccessKeyError

CHECK_WEIGHTS: tuple[int, ...] = (4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2, 1)

DATA_LENGTH = 44
KEY_LENGTH = DATA_LENGTH + 1
NONCE_LENGTH = 9
MAX_DOCUMENT_NUMBER = 999_999_999

DEFAULT_MODEL = "55"
DEFAULT_EMISSION_TYPE = "1"

_TEMP_ALPHABET = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class IssuanceSettings:
    """Issuer-side constants used when a document is issued."""

    model: str = DEFAULT_MODEL
    series: str = "1"
    emission_type: str = DEFAULT_EMISSION_TYPE
    # Fallback UF when the producer's state has no IBGE code
    default_state: str = "PR"


DEFAULT_ISSUANCE = IssuanceSettings()


@dataclass(frozen=True)
class AccessKeyContext:
    """Everything the key encodes except the nonce."""

    region_code: str
    issue_date: date
    issuer_tax_id: str
    series: str
    number: int
    model: str = DEFAULT_MODEL
    emission_type: str = DEFAULT_EMISSION_TYPE

    def __post_init__(self) -> None:
        if not (self.region_code.isdigit() and len(self.region_code) == 2):
            raise ValueError(f"region_code must be 2 digits, got {self.region_code!r}")
        if not 1 <= self.number <= MAX_DOCUMENT_NUMBER:
            raise ValueError(f"number must be 1-{MAX_DOCUMENT_NUMBER}, got {self.number}")
        if len(digits_only(self.issuer_tax_id)) > 14:
            raise ValueError("issuer_tax_id has more than 14 digits")
        if not (self.series.isdigit() and len(self.series) <= 3):
            raise ValueError(f"series must be up to 3 digits, got {self.series!r}")
        if not (self.model.isdigit() and len(self.model) == 2):
            raise ValueError(f"model must be 2 digits, got {self.model!r}")
        if not (self.emission_type.isdigit() and len(self.emission_type) == 1):
            raise ValueError(f"emission_type must be 1 digit, got {self.emission_type!r}")


@dataclass(frozen=True)
class AccessKeyParts:
    region_code: str
    year_month: str
    issuer_tax_id: str
    model: str
    series: str
    number: int
    emission_type: str
    nonce: str
    check_digit: str


def compute_check_digit(digits: str) -> str:
    """
    Modulus-11 check digit.

    Each digit is multiplied by ``CHECK_WEIGHTS[i % 12]`` left to right;
    ``r = sum % 11``; the digit is ``0`` when ``r < 2``, else ``11 - r``.
    """
    if not digits.isdigit():
        raise ValueError("check digit input must be numeric")
    total = sum(
        int(ch) * CHECK_WEIGHTS[i % len(CHECK_WEIGHTS)]
        for i, ch in enumerate(digits)
    )
    remainder = total % 11
    return "0" if remainder < 2 else str(11 - remainder)


def random_nonce(length: int = NONCE_LENGTH) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(length))


def key_data(context: AccessKeyContext, nonce: str) -> str:
    """The 44 data digits of a key."""
    if not (nonce.isdigit() and len(nonce) == NONCE_LENGTH):
        raise ValueError(f"nonce must be {NONCE_LENGTH} digits")
    data = (
        context.region_code
        + context.issue_date.strftime("%y%m")
        + digits_only(context.issuer_tax_id).zfill(14)
        + context.model
        + context.series.zfill(3)
        + str(context.number).zfill(9)
        + context.emission_type
        + nonce
    )
    if len(data) != DATA_LENGTH:
        raise ValueError(f"key data must be {DATA_LENGTH} digits, got {len(data)}")
    return data


def generate_access_key(context: AccessKeyContext, nonce: str | None = None) -> str:
    """Build a 45-digit access key: 44 data digits plus the check digit."""
    data = key_data(context, nonce if nonce is not None else random_nonce())
    return data + compute_check_digit(data)


def is_valid_access_key(key: str | None) -> bool:
    if not key or len(key) != KEY_LENGTH or not key.isdigit():
        return False
    return compute_check_digit(key[:DATA_LENGTH]) == key[DATA_LENGTH]


def parse_access_key(key: str) -> AccessKeyParts:
    """
    Split a key into its fields.

    Raises:
        InvalidAccessKeyError: Wrong length, non-digits, or bad check digit.
    """
    if not key or len(key) != KEY_LENGTH or not key.isdigit():
        raise InvalidAccessKeyError(str(key), f"expected {KEY_LENGTH} digits")
    if not is_valid_access_key(key):
        raise InvalidAccessKeyError(key, "check digit mismatch")
    return AccessKeyParts(
        region_code=key[0:2],
        year_month=key[2:6],
        issuer_tax_id=key[6:20],
        model=key[20:22],
        series=key[22:25],
        number=int(key[25:34]),
        emission_type=key[34],
        nonce=key[35:44],
        check_digit=key[44],
    )


def generate_temporary_key(epoch_ms: int) -> str:
    """Draft placeholder key, ``TEMP-<epoch ms>-<9 random base36 chars>``."""
    suffix = "".join(secrets.choice(_TEMP_ALPHABET) for _ in range(9))
    return f"TEMP-{epoch_ms}-{suffix}"
