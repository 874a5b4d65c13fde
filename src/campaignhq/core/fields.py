"""
Field catalog: the registry of segmentable customer attributes.

Each field declares a value type and the ordered operators legal for it.
The catalog is static for the lifetime of the process; rule construction
reads defaults from it and the evaluator resolves field types through it.
"""

from collections.abc import Iterable, Iterator, Sequence
from datetime import date, datetime
from enum import Enum
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from campaignhq.core.errors import FieldNotFoundError

# Scalar rule values, or a (start, end) pair of ISO dates for ``between``.
RuleValue = bool | int | float | str | tuple[str, str]


class FieldType(Enum):
    """Value types a field can declare."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"

    @property
    def default_value(self) -> RuleValue:
        """Value a fresh or re-targeted rule starts with."""
        return True if self is FieldType.BOOLEAN else ""


class Operator(Enum):
    """The global operator vocabulary."""

    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    EQ = "="
    NE = "!="
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    BEFORE = "before"
    AFTER = "after"
    BETWEEN = "between"


OPERATOR_VOCABULARY: frozenset[str] = frozenset(op.value for op in Operator)

TYPE_OPERATORS: dict[FieldType, tuple[str, ...]] = {
    FieldType.NUMBER: (">", "<", ">=", "<=", "=", "!="),
    FieldType.STRING: ("=", "!=", "contains", "startsWith", "endsWith"),
    FieldType.DATE: ("before", "after", "between"),
    FieldType.BOOLEAN: ("=",),
}

OPERATOR_LABELS: dict[str, str] = {
    ">": "Greater than",
    "<": "Less than",
    ">=": "Greater than or equal",
    "<=": "Less than or equal",
    "=": "Equal to",
    "!=": "Not equal to",
    "contains": "Contains",
    "startsWith": "Starts with",
    "endsWith": "Ends with",
    "before": "Before",
    "after": "After",
    "between": "Between",
}


def operator_label(token: str) -> str:
    """Display label for an operator token, falling back to the token."""
    return OPERATOR_LABELS.get(token, token)


class FieldOption(BaseModel):
    """One segmentable attribute."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    label: str
    type: FieldType
    operators: tuple[str, ...]

    @model_validator(mode="after")
    def _check_operators(self) -> "FieldOption":
        if not self.operators:
            raise ValueError(f"Field '{self.id}' must declare at least one operator")
        unknown = [op for op in self.operators if op not in OPERATOR_VOCABULARY]
        if unknown:
            raise ValueError(f"Field '{self.id}' uses unknown operators: {unknown}")
        illegal = [op for op in self.operators if op not in TYPE_OPERATORS[self.type]]
        if illegal:
            raise ValueError(
                f"Operators {illegal} are not valid for {self.type.value} field '{self.id}'"
            )
        if len(set(self.operators)) != len(self.operators):
            raise ValueError(f"Field '{self.id}' lists an operator twice")
        return self

    @property
    def default_operator(self) -> str:
        return self.operators[0]

    @property
    def default_value(self) -> RuleValue:
        return self.type.default_value


class FieldCatalog:
    """
    Ordered, read-only registry of field options.

    The first registered field is the default for new rules.
    """

    def __init__(self, fields: Iterable[FieldOption]) -> None:
        self._fields: dict[str, FieldOption] = {}
        for option in fields:
            if option.id in self._fields:
                raise ValueError(f"Field '{option.id}' registered twice")
            self._fields[option.id] = option
        if not self._fields:
            raise ValueError("Field catalog must contain at least one field")

    @property
    def first(self) -> FieldOption:
        return next(iter(self._fields.values()))

    def list_fields(self) -> tuple[FieldOption, ...]:
        """All fields in registration order."""
        return tuple(self._fields.values())

    def get(self, field_id: str) -> FieldOption | None:
        """Get a field by id, or None if it is not registered."""
        return self._fields.get(field_id)

    def require(self, field_id: str) -> FieldOption:
        """Get a field by id, raising FieldNotFoundError if unknown."""
        option = self._fields.get(field_id)
        if option is None:
            raise FieldNotFoundError(field_id)
        return option

    def operators_for(self, field_id: str) -> tuple[str, ...]:
        """Ordered operator tokens legal for a field."""
        return self.require(field_id).operators

    def coerce_value(self, field_id: str, raw: Any) -> RuleValue:
        """
        Convert raw form input into the typed value representation.

        Numbers are parsed, "true"/"false" become booleans, dates become
        ISO-8601 calendar dates. Input that cannot be converted is returned
        as text so the author can keep editing it.
        """
        option = self.require(field_id)
        return coerce_for_type(option.type, raw)

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[FieldOption]:
        return iter(self._fields.values())


def coerce_for_type(field_type: FieldType, raw: Any) -> RuleValue:
    """Best-effort conversion of ``raw`` to the representation of ``field_type``."""
    if field_type is FieldType.BOOLEAN:
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in ("true", "false"):
            return text == "true"
        return str(raw)

    if field_type is FieldType.NUMBER:
        if isinstance(raw, bool):
            return str(raw).lower()
        if isinstance(raw, (int, float)):
            return raw
        text = str(raw).strip()
        if not text:
            return ""
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return text

    if field_type is FieldType.DATE:
        if isinstance(raw, (list, tuple)) and len(raw) == 2:
            start, end = raw
            return (_date_text(start), _date_text(end))
        return _date_text(raw)

    return raw if isinstance(raw, str) else str(raw)


def _date_text(raw: Any) -> str:
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    return str(raw).strip()


DEFAULT_FIELDS: Sequence[FieldOption] = (
    FieldOption(
        id="spend",
        label="Total Spend",
        type=FieldType.NUMBER,
        operators=TYPE_OPERATORS[FieldType.NUMBER],
    ),
    FieldOption(
        id="inactive",
        label="Inactive Days",
        type=FieldType.NUMBER,
        operators=TYPE_OPERATORS[FieldType.NUMBER],
    ),
    FieldOption(
        id="lastPurchase",
        label="Last Purchase Date",
        type=FieldType.DATE,
        operators=TYPE_OPERATORS[FieldType.DATE],
    ),
    FieldOption(
        id="purchaseCount",
        label="Purchase Count",
        type=FieldType.NUMBER,
        operators=TYPE_OPERATORS[FieldType.NUMBER],
    ),
    FieldOption(
        id="location",
        label="Location",
        type=FieldType.STRING,
        operators=("=", "!=", "contains", "startsWith"),
    ),
    FieldOption(
        id="email",
        label="Email",
        type=FieldType.STRING,
        operators=("=", "!=", "contains", "endsWith"),
    ),
    FieldOption(
        id="subscribed",
        label="Is Subscribed",
        type=FieldType.BOOLEAN,
        operators=("=",),
    ),
)


@lru_cache(maxsize=1)
def default_catalog() -> FieldCatalog:
    """The stock customer-attribute catalog."""
    return FieldCatalog(DEFAULT_FIELDS)
