"""
Predicate evaluation against customer records.

A record is a mapping of field id to value. Rules compare with semantics
chosen by the field's declared type; groups fold their children with
AND (empty group matches everything) or OR (empty group matches nothing).

Evaluation fails closed: a rule on an unknown field, an operator the field
does not declare, a missing value or a value that cannot be read as the
field's type simply does not match. Nothing raises, so one malformed record
cannot abort a bulk count.
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from typing import Any

import structlog

from campaignhq.core.fields import FieldCatalog, FieldType, Operator, default_catalog
from campaignhq.core.tree import Combinator, Rule, RuleGroup

logger = structlog.get_logger()

Record = Mapping[str, Any]


class _Unreadable(Exception):
    """A record or rule value cannot be read as the field's type."""


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        raise _Unreadable(value)
    if isinstance(value, (int, float)) or (isinstance(value, str) and value.strip()):
        try:
            return float(value)
        except (OverflowError, ValueError) as e:
            raise _Unreadable(value) from e
    raise _Unreadable(value)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value.casefold()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return str(value).casefold()
        except ValueError as e:
            # ints past the interpreter's digit limit
            raise _Unreadable(value) from e
    raise _Unreadable(value)


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError as e:
            raise _Unreadable(value) from e
    raise _Unreadable(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise _Unreadable(value)


def _compare_numbers(op: Operator, actual: Any, expected: Any) -> bool:
    left, right = _as_number(actual), _as_number(expected)
    if op is Operator.GT:
        return left > right
    if op is Operator.LT:
        return left < right
    if op is Operator.GTE:
        return left >= right
    if op is Operator.LTE:
        return left <= right
    if op is Operator.EQ:
        return left == right
    if op is Operator.NE:
        return left != right
    raise _Unreadable(op)


def _compare_text(op: Operator, actual: Any, expected: Any) -> bool:
    left, right = _as_text(actual), _as_text(expected)
    if op is Operator.EQ:
        return left == right
    if op is Operator.NE:
        return left != right
    if op is Operator.CONTAINS:
        return right in left
    if op is Operator.STARTS_WITH:
        return left.startswith(right)
    if op is Operator.ENDS_WITH:
        return left.endswith(right)
    raise _Unreadable(op)


def _compare_dates(op: Operator, actual: Any, expected: Any) -> bool:
    day = _as_date(actual)
    if op is Operator.BETWEEN:
        if isinstance(expected, str) or not isinstance(expected, Sequence) or len(expected) != 2:
            raise _Unreadable(expected)
        start, end = sorted((_as_date(expected[0]), _as_date(expected[1])))
        return start <= day <= end
    bound = _as_date(expected)
    if op is Operator.BEFORE:
        return day < bound
    if op is Operator.AFTER:
        return day > bound
    raise _Unreadable(op)


def _compare_booleans(op: Operator, actual: Any, expected: Any) -> bool:
    if op is Operator.EQ:
        return _as_bool(actual) == _as_bool(expected)
    if op is Operator.NE:
        return _as_bool(actual) != _as_bool(expected)
    raise _Unreadable(op)


_COMPARATORS = {
    FieldType.NUMBER: _compare_numbers,
    FieldType.STRING: _compare_text,
    FieldType.DATE: _compare_dates,
    FieldType.BOOLEAN: _compare_booleans,
}


class PredicateEvaluator:
    """Evaluates predicate trees against records using a field catalog."""

    def __init__(self, catalog: FieldCatalog | None = None) -> None:
        self._catalog = catalog or default_catalog()
        self._log = logger.bind(component="predicate_evaluator")

    @property
    def catalog(self) -> FieldCatalog:
        return self._catalog

    def matches(self, tree: Rule | RuleGroup, record: Record) -> bool:
        """Whether ``record`` satisfies ``tree``."""
        if isinstance(tree, Rule):
            return self.matches_rule(tree, record)
        if tree.combinator is Combinator.AND:
            return all(self.matches(child, record) for child in tree.rules)
        return any(self.matches(child, record) for child in tree.rules)

    def matches_rule(self, rule: Rule, record: Record) -> bool:
        """Whether ``record`` satisfies a single rule. Fails closed."""
        option = self._catalog.get(rule.field)
        if option is None:
            self._log.debug("unknown_field", rule_id=rule.id, field=rule.field)
            return False
        if rule.operator not in option.operators:
            self._log.debug(
                "operator_not_allowed",
                rule_id=rule.id,
                field=rule.field,
                operator=rule.operator,
            )
            return False

        if not isinstance(record, Mapping):
            return False
        actual = record.get(rule.field)
        if actual is None:
            return False

        try:
            return _COMPARATORS[option.type](Operator(rule.operator), actual, rule.value)
        except _Unreadable:
            return False

    def count(self, tree: RuleGroup, population: Iterable[Record]) -> int:
        """Number of records in ``population`` that satisfy ``tree``."""
        return sum(1 for record in population if self.matches(tree, record))

    def filter(self, tree: RuleGroup, population: Iterable[Record]) -> list[Record]:
        """Records in ``population`` that satisfy ``tree``, in order."""
        return [record for record in population if self.matches(tree, record)]


def matches(
    tree: Rule | RuleGroup,
    record: Record,
    catalog: FieldCatalog | None = None,
) -> bool:
    """Evaluate ``tree`` against one record."""
    return PredicateEvaluator(catalog).matches(tree, record)
