"""
Property-based tests for access keys and obligation recurrence.

Boundaries fuzzed here:
- Access keys: every field at its full range, random nonces, single-digit
  corruption of any position
- Recurrence: any due day, any window up to a few years, every kind
"""

import string
from datetime import UTC, date, datetime, time, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from fiscal_kernel.domain.access_key import (
    DATA_LENGTH,
    KEY_LENGTH,
    MAX_DOCUMENT_NUMBER,
    AccessKeyContext,
    generate_access_key,
    is_valid_access_key,
    parse_access_key,
)
from fiscal_kernel.domain.obligations import ObligationTemplate
from fiscal_kernel.domain.recurrence import BRASILIA_TZ, days_until, due_dates

digits = st.text(alphabet=string.digits, min_size=1, max_size=1)


@st.composite
def key_contexts(draw):
    return AccessKeyContext(
        region_code=str(draw(st.integers(min_value=11, max_value=53))),
        issue_date=draw(st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31))),
        issuer_tax_id=draw(st.text(alphabet=string.digits, min_size=11, max_size=14)),
        series=str(draw(st.integers(min_value=0, max_value=999))),
        number=draw(st.integers(min_value=1, max_value=MAX_DOCUMENT_NUMBER)),
        model=draw(st.sampled_from(["55", "65"])),
        emission_type=draw(digits),
    )


nonces = st.text(alphabet=string.digits, min_size=9, max_size=9)


class TestAccessKeyProperties:

    @settings(max_examples=1000, deadline=None)
    @given(context=key_contexts(), nonce=nonces)
    def test_generated_keys_are_valid(self, context, nonce):
        key = generate_access_key(context, nonce)

        assert len(key) == KEY_LENGTH
        assert key.isdigit()
        assert is_valid_access_key(key)

    @settings(max_examples=1000, deadline=None)
    @given(context=key_contexts(), nonce=nonces)
    def test_parse_recovers_fields(self, context, nonce):
        parts = parse_access_key(generate_access_key(context, nonce))

        assert parts.region_code == context.region_code
        assert parts.year_month == context.issue_date.strftime("%y%m")
        assert parts.issuer_tax_id == context.issuer_tax_id.zfill(14)
        assert parts.series == context.series.zfill(3)
        assert parts.number == context.number
        assert parts.emission_type == context.emission_type
        assert parts.nonce == nonce

    @settings(max_examples=1000, deadline=None)
    @given(
        context=key_contexts(),
        nonce=nonces,
        position=st.integers(min_value=0, max_value=DATA_LENGTH - 1),
        shift=st.integers(min_value=1, max_value=9),
    )
    def test_single_digit_corruption(self, context, nonce, position, shift):
        key = generate_access_key(context, nonce)
        corrupted_digit = str((int(key[position]) + shift) % 10)
        corrupted = key[:position] + corrupted_digit + key[position + 1:]

        # Remainders 0 and 1 share check digit 0; every other change is caught.
        if is_valid_access_key(corrupted):
            assert key[DATA_LENGTH] == "0"

    @settings(max_examples=300, deadline=None)
    @given(context=key_contexts(), nonce=nonces, replacement=digits)
    def test_wrong_check_digit(self, context, nonce, replacement):
        key = generate_access_key(context, nonce)
        tampered = key[:DATA_LENGTH] + replacement

        assert is_valid_access_key(tampered) == (replacement == key[DATA_LENGTH])


window_starts = st.dates(min_value=date(2000, 1, 1), max_value=date(2060, 12, 31))
window_lengths = st.integers(min_value=0, max_value=1500)


def _template(kind, due_day, due_month=None):
    return ObligationTemplate(
        name="Obrigação",
        description="",
        recurrence_kind=kind,
        due_day=due_day,
        due_month=due_month,
        applicable_regimes=frozenset({"Simples Nacional"}),
    )


class TestRecurrenceProperties:

    @settings(max_examples=500, deadline=None)
    @given(
        kind=st.sampled_from(["monthly", "quarterly", "annual"]),
        due_day=st.integers(min_value=1, max_value=31),
        due_month=st.integers(min_value=1, max_value=12),
        start=window_starts,
        length=window_lengths,
    )
    def test_dates_are_sorted_distinct_and_inside(self, kind, due_day, due_month, start, length):
        end = start + timedelta(days=length)

        dates = due_dates(_template(kind, due_day, due_month), start, end)

        assert all(start <= d <= end for d in dates)
        assert dates == sorted(set(dates))

    @settings(max_examples=500, deadline=None)
    @given(
        due_day=st.integers(min_value=1, max_value=31),
        start=window_starts,
        length=window_lengths,
    )
    def test_monthly_is_one_per_month(self, due_day, start, length):
        end = start + timedelta(days=length)

        dates = due_dates(_template("monthly", due_day), start, end)

        months = [(d.year, d.month) for d in dates]
        assert len(months) == len(set(months))
        # Each date is the due day, or the month's last day when shorter.
        assert all(d.day == due_day or (d + timedelta(days=1)).day == 1 for d in dates)

    @settings(max_examples=300, deadline=None)
    @given(
        due_day=st.integers(min_value=1, max_value=31),
        start=window_starts,
    )
    def test_monthly_year_has_twelve(self, due_day, start):
        first_of_month = start.replace(day=1)
        end = date(first_of_month.year + 1, first_of_month.month, 1) - timedelta(days=1)

        assert len(due_dates(_template("monthly", due_day), first_of_month, end)) == 12

    @settings(max_examples=500, deadline=None)
    @given(
        due=st.dates(min_value=date(2000, 1, 1), max_value=date(2060, 12, 31)),
        offset_minutes=st.integers(min_value=-400 * 24 * 60, max_value=400 * 24 * 60),
    )
    def test_days_until_sign(self, due, offset_minutes):
        due_instant = datetime.combine(due, time.min, tzinfo=BRASILIA_TZ)
        reference = (due_instant + timedelta(minutes=offset_minutes)).astimezone(UTC)

        remaining = days_until(due, reference)

        if offset_minutes < 0:
            assert remaining > 0
        else:
            assert remaining <= 0
        assert remaining - 1 < -offset_minutes / (24 * 60) <= remaining
