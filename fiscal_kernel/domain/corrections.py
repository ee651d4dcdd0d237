"""
Tagged scalar maps (``fiscal_kernel.domain.corrections``).

Review corrections and OCR "extra fields" arrive as arbitrary key/value
payloads.  Instead of carrying an open-ended dict, they are held as a
``CorrectionMap``: a read-only mapping from field name to a ``TaggedScalar``
whose type tag travels with the value (also through JSON persistence).

Merging into the known draft header fields is type checked against
``HEADER_FIELD_TYPES``; keys that are not header fields are kept in the
draft's ``extra_fields`` map untouched.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from fiscal_kernel.exceptions import InvalidCorrectionError


class ScalarType(str, Enum):
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    NULL = "null"


@dataclass(frozen=True)
class TaggedScalar:
    type: ScalarType
    value: Any

    @classmethod
    def of(cls, value: Any, field_name: str = "value") -> "TaggedScalar":
        """Tag a plain Python value.  Floats are refused (use Decimal or str)."""
        if value is None:
            return cls(ScalarType.NULL, None)
        if isinstance(value, TaggedScalar):
            return value
        if isinstance(value, bool):
            return cls(ScalarType.BOOLEAN, value)
        if isinstance(value, int):
            return cls(ScalarType.INTEGER, value)
        if isinstance(value, Decimal):
            return cls(ScalarType.DECIMAL, value)
        if isinstance(value, datetime):
            return cls(ScalarType.DATETIME, value)
        if isinstance(value, date):
            return cls(ScalarType.DATE, value)
        if isinstance(value, str):
            return cls(ScalarType.TEXT, value)
        raise InvalidCorrectionError(
            field_name, f"unsupported value type {type(value).__name__}"
        )

    def to_json(self) -> dict[str, Any]:
        if self.type == ScalarType.DECIMAL:
            encoded: Any = str(self.value)
        elif self.type in (ScalarType.DATE, ScalarType.DATETIME):
            encoded = self.value.isoformat()
        else:
            encoded = self.value
        return {"type": self.type.value, "value": encoded}

    @classmethod
    def from_json(cls, data: Mapping[str, Any], field_name: str = "value") -> "TaggedScalar":
        try:
            scalar_type = ScalarType(data["type"])
            raw = data.get("value")
        except (KeyError, ValueError, TypeError) as exc:
            raise InvalidCorrectionError(field_name, f"malformed tagged value: {data!r}") from exc
        try:
            if scalar_type == ScalarType.NULL:
                return cls(scalar_type, None)
            if scalar_type == ScalarType.DECIMAL:
                return cls(scalar_type, Decimal(str(raw)))
            if scalar_type == ScalarType.DATE:
                return cls(scalar_type, date.fromisoformat(raw))
            if scalar_type == ScalarType.DATETIME:
                return cls(scalar_type, datetime.fromisoformat(raw))
            if scalar_type == ScalarType.INTEGER and isinstance(raw, int) and not isinstance(raw, bool):
                return cls(scalar_type, raw)
            if scalar_type == ScalarType.BOOLEAN and isinstance(raw, bool):
                return cls(scalar_type, raw)
            if scalar_type == ScalarType.TEXT and isinstance(raw, str):
                return cls(scalar_type, raw)
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise InvalidCorrectionError(field_name, f"bad {scalar_type.value} value {raw!r}") from exc
        raise InvalidCorrectionError(field_name, f"bad {scalar_type.value} value {raw!r}")


class CorrectionMap(Mapping[str, TaggedScalar]):
    """Immutable mapping of field name to TaggedScalar."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Any] | None = None):
        normalized: dict[str, TaggedScalar] = {}
        for key, value in (entries or {}).items():
            if not isinstance(key, str) or not key:
                raise InvalidCorrectionError(str(key), "field names must be non-empty strings")
            normalized[key] = TaggedScalar.of(value, key)
        self._entries = normalized

    def __getitem__(self, key: str) -> TaggedScalar:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CorrectionMap):
            return self._entries == other._entries
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted((k, v.type, str(v.value)) for k, v in self._entries.items())))

    def __repr__(self) -> str:
        return f"CorrectionMap({self.plain()!r})"

    def plain(self) -> dict[str, Any]:
        """Field name to untagged Python value."""
        return {key: scalar.value for key, scalar in self._entries.items()}

    def merged(self, other: Mapping[str, Any]) -> "CorrectionMap":
        """New map with ``other`` layered over this one."""
        combined: dict[str, Any] = dict(self._entries)
        combined.update(other.items() if isinstance(other, CorrectionMap) else CorrectionMap(other).items())
        return CorrectionMap(combined)

    def without(self, keys: set[str] | frozenset[str]) -> "CorrectionMap":
        return CorrectionMap({k: v for k, v in self._entries.items() if k not in keys})

    def to_json(self) -> str:
        return json.dumps(
            {key: scalar.to_json() for key, scalar in sorted(self._entries.items())},
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, text: str | None) -> "CorrectionMap":
        if not text:
            return cls()
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidCorrectionError("<payload>", "not valid JSON") from exc
        if not isinstance(raw, dict):
            raise InvalidCorrectionError("<payload>", "expected a JSON object")
        return cls({key: TaggedScalar.from_json(value, key) for key, value in raw.items()})


def coerce_correction_map(value: "CorrectionMap | Mapping[str, Any] | None") -> CorrectionMap | None:
    if value is None:
        return None
    if isinstance(value, CorrectionMap):
        return value
    return CorrectionMap(value)


# Known header fields a correction may overwrite, with the tags each accepts.
HEADER_FIELD_TYPES: dict[str, frozenset[ScalarType]] = {
    "kind": frozenset({ScalarType.TEXT}),
    "operation_code": frozenset({ScalarType.TEXT}),
    "nature": frozenset({ScalarType.TEXT, ScalarType.NULL}),
    "counterparty_name": frozenset({ScalarType.TEXT}),
    "counterparty_tax_id": frozenset({ScalarType.TEXT, ScalarType.NULL}),
    "destination_region": frozenset({ScalarType.TEXT}),
    "issue_date": frozenset({ScalarType.DATE}),
    "notes": frozenset({ScalarType.TEXT, ScalarType.NULL}),
}


def split_header_corrections(
    corrections: CorrectionMap,
) -> tuple[dict[str, Any], CorrectionMap]:
    """
    Partition corrections into typed header updates and extra fields.

    Raises:
        InvalidCorrectionError: A header field carries a disallowed type tag.
    """
    header_updates: dict[str, Any] = {}
    extras: dict[str, TaggedScalar] = {}
    for key, scalar in corrections.items():
        allowed = HEADER_FIELD_TYPES.get(key)
        if allowed is None:
            extras[key] = scalar
            continue
        if scalar.type not in allowed:
            raise InvalidCorrectionError(
                key,
                f"expected {'/'.join(sorted(t.value for t in allowed))}, got {scalar.type.value}",
            )
        header_updates[key] = scalar.value
    return header_updates, CorrectionMap(extras)
