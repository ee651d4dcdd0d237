"""
Tagged correction map tests.
"""

import json
from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from fiscal_kernel.domain.corrections import (
    CorrectionMap,
    ScalarType,
    TaggedScalar,
    coerce_correction_map,
    split_header_corrections,
)
from fiscal_kernel.exceptions import InvalidCorrectionError


class TestTaggedScalar:

    @pytest.mark.parametrize(
        "value, expected_type",
        [
            (None, ScalarType.NULL),
            (True, ScalarType.BOOLEAN),
            (3, ScalarType.INTEGER),
            (Decimal("1.50"), ScalarType.DECIMAL),
            (date(2025, 1, 15), ScalarType.DATE),
            (datetime(2025, 1, 20, 10, 30), ScalarType.DATETIME),
            ("Cooperativa", ScalarType.TEXT),
        ],
    )
    def test_tags_plain_values(self, value, expected_type):
        scalar = TaggedScalar.of(value)

        assert scalar.type == expected_type
        assert scalar.value == value

    def test_bool_is_not_an_integer(self):
        assert TaggedScalar.of(False).type == ScalarType.BOOLEAN

    def test_float_is_refused(self):
        with pytest.raises(InvalidCorrectionError) as exc_info:
            TaggedScalar.of(1.5, "weight")

        assert exc_info.value.field_name == "weight"

    def test_decimal_survives_json(self):
        encoded = TaggedScalar.of(Decimal("10.10")).to_json()

        assert encoded == {"type": "decimal", "value": "10.10"}
        assert TaggedScalar.from_json(encoded).value == Decimal("10.10")

    def test_type_tag_must_match_value(self):
        with pytest.raises(InvalidCorrectionError):
            TaggedScalar.from_json({"type": "integer", "value": "7"}, "count")

    def test_unknown_tag(self):
        with pytest.raises(InvalidCorrectionError):
            TaggedScalar.from_json({"type": "blob", "value": "x"})

    @pytest.mark.parametrize(
        "moment",
        [datetime(2025, 1, 20, 10, 30), datetime(2025, 1, 20, 13, 30, tzinfo=UTC)],
    )
    def test_datetime_is_not_a_date(self, moment):
        encoded = TaggedScalar.of(moment).to_json()

        assert encoded == {"type": "datetime", "value": moment.isoformat()}
        assert TaggedScalar.from_json(encoded).value == moment

    def test_bad_date(self):
        with pytest.raises(InvalidCorrectionError):
            TaggedScalar.from_json({"type": "date", "value": "15/01/2025"})


class TestCorrectionMap:

    def test_is_read_only_mapping(self):
        corrections = CorrectionMap({"counterparty_name": "Coop"})

        assert corrections["counterparty_name"].value == "Coop"
        assert len(corrections) == 1
        with pytest.raises(TypeError):
            corrections["x"] = TaggedScalar.of("y")

    def test_json_is_canonical(self):
        a = CorrectionMap({"b": 1, "a": date(2025, 1, 2)})
        b = CorrectionMap({"a": date(2025, 1, 2), "b": 1})

        assert a.to_json() == b.to_json()
        assert json.loads(a.to_json()) == {
            "a": {"type": "date", "value": "2025-01-02"},
            "b": {"type": "integer", "value": 1},
        }

    def test_from_json_restores_equal_map(self):
        original = CorrectionMap({"issue_date": date(2025, 2, 1), "lote": "A-17", "peso": Decimal("3.5")})

        assert CorrectionMap.from_json(original.to_json()) == original

    def test_from_empty_json(self):
        assert len(CorrectionMap.from_json(None)) == 0
        assert len(CorrectionMap.from_json("")) == 0

    @pytest.mark.parametrize("text", ["not json", "[1, 2]"])
    def test_from_invalid_json(self, text):
        with pytest.raises(InvalidCorrectionError):
            CorrectionMap.from_json(text)

    def test_merged_layers_other_over_self(self):
        base = CorrectionMap({"lote": "A", "safra": "2024/25"})

        merged = base.merged({"lote": "B"})

        assert merged.plain() == {"lote": "B", "safra": "2024/25"}
        assert base.plain() == {"lote": "A", "safra": "2024/25"}

    def test_without(self):
        corrections = CorrectionMap({"a": 1, "b": 2})

        assert corrections.without({"a"}).plain() == {"b": 2}

    def test_empty_key_rejected(self):
        with pytest.raises(InvalidCorrectionError):
            CorrectionMap({"": "x"})

    def test_equal_maps_hash_equal(self):
        assert hash(CorrectionMap({"a": 1})) == hash(CorrectionMap({"a": 1}))

    def test_coerce(self):
        assert coerce_correction_map(None) is None
        existing = CorrectionMap({"a": 1})
        assert coerce_correction_map(existing) is existing
        assert coerce_correction_map({"a": 1}) == existing


class TestSplitHeaderCorrections:

    def test_header_fields_and_extras_are_separated(self):
        corrections = CorrectionMap({
            "counterparty_name": "Cooperativa Sul",
            "issue_date": date(2025, 1, 20),
            "notes": None,
            "lote": "A-17",
        })

        header, extras = split_header_corrections(corrections)

        assert header == {
            "counterparty_name": "Cooperativa Sul",
            "issue_date": date(2025, 1, 20),
            "notes": None,
        }
        assert extras.plain() == {"lote": "A-17"}

    def test_wrong_type_for_header_field(self):
        corrections = CorrectionMap({"issue_date": "2025-01-20"})

        with pytest.raises(InvalidCorrectionError) as exc_info:
            split_header_corrections(corrections)

        assert exc_info.value.field_name == "issue_date"

    def test_datetime_rejected_for_issue_date(self):
        corrections = CorrectionMap({"issue_date": datetime(2025, 1, 20, 10, 30)})

        with pytest.raises(InvalidCorrectionError) as exc_info:
            split_header_corrections(corrections)

        assert exc_info.value.field_name == "issue_date"

    def test_required_text_field_cannot_be_nulled(self):
        with pytest.raises(InvalidCorrectionError):
            split_header_corrections(CorrectionMap({"counterparty_name": None}))
