"""Label validation, normalization and order-independent identity."""
import hashlib
import json
import re
from collections.abc import Mapping
from typing import Any, Dict, Iterator, Optional, Union

from promvec.exceptions import InvalidLabelError, ValidationError

Scalar = Union[str, int, float, bool]

# Same rule as the Prometheus data model for metric and label names
NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')

BUCKET_LABEL = "le"


def validate_name(name: Any) -> None:
    """Check a collector name against the Prometheus name pattern."""
    if not isinstance(name, str) or not NAME_PATTERN.match(name):
        raise ValidationError(f'name "{name}" must match regex "{NAME_PATTERN.pattern}"')


def validate_help(help_text: Any) -> None:
    if not isinstance(help_text, str):
        raise ValidationError(f'help "{help_text}" must be a string')


def validate_labels(labels: Optional[Mapping]) -> None:
    """
    Validate label names are Prometheus-safe and values are scalars.

    Label names must match [a-zA-Z_][a-zA-Z0-9_]*, values must be one of
    str, int, float or bool.
    """
    if not labels:
        return

    for name, value in labels.items():
        if not isinstance(name, str):
            raise InvalidLabelError(f"label key must be a string: {name!r}")
        if not NAME_PATTERN.match(name):
            raise InvalidLabelError(
                f'label key "{name}" must match regex "{NAME_PATTERN.pattern}"'
            )
        if not isinstance(value, (str, int, float, bool)):
            raise InvalidLabelError(
                f'label value "{value}" must be one of [string, number, bool], '
                f'got {type(value).__name__}'
            )


def trim(labels: Optional[Mapping]) -> Dict[Any, Any]:
    """Strip leading/trailing whitespace from string keys and string values."""
    if not labels:
        return {}

    trimmed = {}
    for key, value in labels.items():
        if isinstance(key, str):
            key = key.strip()
        if isinstance(value, str):
            value = value.strip()
        trimmed[key] = value
    return trimmed


def merge(parent: Optional[Mapping], child: Optional[Mapping]) -> Dict[str, Scalar]:
    """Merge two label mappings; child entries win on key collision."""
    merged: Dict[str, Scalar] = dict(parent or {})
    if child:
        merged.update(child)
    return merged


def canonical_hash(labels: Optional[Mapping]) -> str:
    """
    Generate a stable key from sorted labels.

    The pairs are serialized as JSON with sorted keys so "200" and 200 stay
    distinct, then hashed with md5. Integral floats count as ints (200.0 is
    200) since both render the same; bools stay distinct from 1 and 0.
    """
    items = {k: _canonical_value(v) for k, v in sorted((labels or {}).items())}
    return hashlib.md5(json.dumps(items, sort_keys=True).encode()).hexdigest()


def _canonical_value(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class LabelSet(Mapping):
    """
    Immutable label mapping whose identity ignores insertion order.

    Insertion order is kept so that rendered series list labels the way
    they were supplied.
    """

    __slots__ = ("_pairs", "_key")

    def __init__(self, pairs: Optional[Mapping] = None):
        self._pairs: Dict[str, Scalar] = dict(pairs or {})
        self._key = canonical_hash(self._pairs)

    @property
    def key(self) -> str:
        return self._key

    def __getitem__(self, name: str) -> Scalar:
        return self._pairs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, LabelSet):
            return self._key == other._key
        if isinstance(other, Mapping):
            return self._key == canonical_hash(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return f"LabelSet({self._pairs!r})"

    def merge(self, child: Optional[Mapping]) -> "LabelSet":
        return LabelSet(merge(self._pairs, child))

    def without(self, *names: str) -> "LabelSet":
        return LabelSet({k: v for k, v in self._pairs.items() if k not in names})

    def to_dict(self) -> Dict[str, Scalar]:
        return dict(self._pairs)


def normalize(labels: Optional[Mapping]) -> LabelSet:
    """Trim, validate and freeze a label mapping."""
    if isinstance(labels, LabelSet):
        return labels
    trimmed = trim(labels)
    validate_labels(trimmed)
    return LabelSet(trimmed)
