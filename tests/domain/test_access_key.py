"""
Access-key generator tests.

Covers the fixed-width layout, the modulus-11 check digit, parsing and the
temporary draft key format.  Property-based coverage over many random keys
lives in tests/fuzzing/test_access_key_properties.py.
"""

import re
from datetime import date

import pytest

from fiscal_kernel.domain.access_key import (
    CHECK_WEIGHTS,
    KEY_LENGTH,
    AccessKeyContext,
    compute_check_digit,
    generate_access_key,
    generate_temporary_key,
    is_valid_access_key,
    key_data,
    parse_access_key,
)
from fiscal_kernel.exceptions import InvalidAccessKeyError

TEMP_KEY_PATTERN = re.compile(r"^TEMP-\d+-[0-9a-z]{9}$")


@pytest.fixture
def context():
    return AccessKeyContext(
        region_code="41",
        issue_date=date(2025, 1, 15),
        issuer_tax_id="12.345.678/0001-95",
        series="1",
        number=42,
    )


class TestLayout:

    def test_data_digits_in_field_order(self, context):
        data = key_data(context, "123456789")

        assert data == (
            "41"
            "2501"
            "12345678000195"
            "55"
            "001"
            "000000042"
            "1"
            "123456789"
        )

    def test_key_is_data_plus_check_digit(self, context):
        key = generate_access_key(context, nonce="123456789")

        assert len(key) == KEY_LENGTH == 45
        assert key.isdigit()
        assert key[:44] == key_data(context, "123456789")
        assert key[44] == compute_check_digit(key[:44])

    def test_random_nonce_still_valid(self, context):
        key = generate_access_key(context)

        assert is_valid_access_key(key)

    def test_short_cpf_is_left_padded(self):
        context = AccessKeyContext(
            region_code="35",
            issue_date=date(2025, 12, 1),
            issuer_tax_id="123.456.789-09",
            series="7",
            number=1,
        )

        parts = parse_access_key(generate_access_key(context, nonce="000000000"))

        assert parts.issuer_tax_id == "00012345678909"
        assert parts.year_month == "2512"
        assert parts.series == "007"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"region_code": "4"},
            {"number": 0},
            {"number": 1_000_000_000},
            {"series": "1000"},
            {"model": "5"},
            {"emission_type": "12"},
            {"issuer_tax_id": "123456789012345"},
        ],
    )
    def test_context_rejects_out_of_range_fields(self, overrides):
        values = {
            "region_code": "41",
            "issue_date": date(2025, 1, 15),
            "issuer_tax_id": "12345678000195",
            "series": "1",
            "number": 1,
        }
        values.update(overrides)

        with pytest.raises(ValueError):
            AccessKeyContext(**values)

    def test_nonce_must_be_nine_digits(self, context):
        with pytest.raises(ValueError):
            key_data(context, "12345")

    def test_key_data_length_checked_after_construction(self, context):
        object.__setattr__(context, "series", "1234")

        with pytest.raises(ValueError, match="44 digits"):
            key_data(context, "123456789")


class TestCheckDigit:

    @pytest.mark.parametrize(
        "digits, expected",
        [
            ("1", "7"),   # 1*4 = 4, 11 - 4
            ("01", "8"),  # 1*3 = 3, 11 - 3
            ("00", "0"),  # remainder 0
            ("000000000001", "0"),  # weight 1, remainder 1
            ("0000000000001", "7"),  # weights repeat: 13th digit weighs 4
        ],
    )
    def test_known_values(self, digits, expected):
        assert compute_check_digit(digits) == expected

    def test_weights_cycle_length(self):
        assert len(CHECK_WEIGHTS) == 12

    def test_non_numeric_rejected(self):
        with pytest.raises(ValueError):
            compute_check_digit("12a4")


class TestParsing:

    def test_round_trip_fields(self, context):
        key = generate_access_key(context, nonce="987654321")

        parts = parse_access_key(key)

        assert parts.region_code == "41"
        assert parts.year_month == "2501"
        assert parts.issuer_tax_id == "12345678000195"
        assert parts.model == "55"
        assert parts.series == "001"
        assert parts.number == 42
        assert parts.emission_type == "1"
        assert parts.nonce == "987654321"

    def test_tampered_digit_fails_check(self, context):
        key = generate_access_key(context, nonce="987654321")
        wrong_check = str((int(key[44]) + 1) % 10)
        tampered = key[:44] + wrong_check

        assert not is_valid_access_key(tampered)
        with pytest.raises(InvalidAccessKeyError) as exc_info:
            parse_access_key(tampered)
        assert exc_info.value.reason == "check digit mismatch"

    @pytest.mark.parametrize("bad", ["", "123", "4" * 44, "4" * 46, "41" + "x" * 43])
    def test_malformed_keys(self, bad):
        assert not is_valid_access_key(bad)
        with pytest.raises(InvalidAccessKeyError):
            parse_access_key(bad)

    def test_none_is_not_valid(self):
        assert is_valid_access_key(None) is False


class TestTemporaryKey:

    def test_format(self):
        key = generate_temporary_key(1736942400000)

        assert TEMP_KEY_PATTERN.match(key)
        assert key.startswith("TEMP-1736942400000-")

    def test_never_a_valid_access_key(self):
        assert not is_valid_access_key(generate_temporary_key(1736942400000))

    def test_suffix_is_random(self):
        keys = {generate_temporary_key(1) for _ in range(50)}

        assert len(keys) == 50
