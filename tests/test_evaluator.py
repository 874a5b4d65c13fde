"""Tests for predicate evaluation."""

from datetime import date, datetime

import pytest

from campaignhq.core.tree import Combinator, Rule, RuleGroup, from_document, new_group
from campaignhq.evaluation.evaluator import PredicateEvaluator, matches


def single(field: str, operator: str, value) -> RuleGroup:
    return RuleGroup(rules=(Rule(field=field, operator=operator, value=value),))


class TestScenarios:
    def test_flat_and(self) -> None:
        tree = from_document({
            "combinator": "AND",
            "rules": [
                {"field": "spend", "operator": ">", "value": 10000},
                {"field": "inactive", "operator": ">", "value": 90},
            ],
        })
        assert matches(tree, {"spend": 15000, "inactive": 120})
        assert not matches(tree, {"spend": 15000, "inactive": 30})

    def test_nested_or(self) -> None:
        tree = from_document({
            "combinator": "AND",
            "rules": [
                {"field": "lastPurchase", "operator": "before", "value": "2025-03-01"},
                {
                    "combinator": "OR",
                    "rules": [
                        {"field": "spend", "operator": ">", "value": 5000},
                        {"field": "purchaseCount", "operator": ">", "value": 3},
                    ],
                },
            ],
        })
        assert matches(tree, {"lastPurchase": "2025-02-01", "spend": 1000, "purchaseCount": 5})
        assert not matches(tree, {"lastPurchase": "2025-02-01", "spend": 1000, "purchaseCount": 2})


class TestCombinators:
    def test_empty_and_matches_everything(self) -> None:
        assert matches(new_group(Combinator.AND), {})
        assert matches(new_group(Combinator.AND), {"spend": 1})

    def test_empty_or_matches_nothing(self) -> None:
        assert not matches(new_group(Combinator.OR), {})
        assert not matches(new_group(Combinator.OR), {"spend": 1})


class TestNumbers:
    @pytest.mark.parametrize(
        "operator,value,expected",
        [
            (">", 100, True),
            ("<", 100, False),
            (">=", 150, True),
            ("<=", 149, False),
            ("=", 150, True),
            ("!=", 150, False),
            (">", "100", True),
        ],
    )
    def test_comparisons(self, operator: str, value, expected: bool) -> None:
        assert matches(single("spend", operator, value), {"spend": 150}) is expected

    def test_string_record_values_are_parsed(self) -> None:
        assert matches(single("spend", ">", 100), {"spend": "150.5"})

    def test_booleans_are_not_numbers(self) -> None:
        assert not matches(single("spend", "=", 1), {"spend": True})


class TestStrings:
    def test_case_insensitive(self) -> None:
        assert matches(single("location", "=", "new york"), {"location": "New York"})
        assert matches(single("location", "contains", "YORK"), {"location": "New York"})
        assert matches(single("location", "startsWith", "new"), {"location": "New York"})
        assert matches(single("email", "endsWith", "@Example.com"), {"email": "a@example.com"})
        assert matches(single("location", "!=", "Boston"), {"location": "New York"})


class TestDates:
    def test_before_and_after_are_strict(self) -> None:
        assert not matches(single("lastPurchase", "before", "2025-03-01"), {"lastPurchase": "2025-03-01"})
        assert not matches(single("lastPurchase", "after", "2025-03-01"), {"lastPurchase": "2025-03-01"})
        assert matches(single("lastPurchase", "after", "2025-03-01"), {"lastPurchase": "2025-03-02"})

    def test_between_is_inclusive_in_either_order(self) -> None:
        forward = single("lastPurchase", "between", ("2025-01-01", "2025-01-31"))
        backward = single("lastPurchase", "between", ("2025-01-31", "2025-01-01"))
        for tree in (forward, backward):
            assert matches(tree, {"lastPurchase": "2025-01-01"})
            assert matches(tree, {"lastPurchase": "2025-01-31"})
            assert not matches(tree, {"lastPurchase": "2025-02-01"})

    def test_record_value_types(self) -> None:
        tree = single("lastPurchase", "before", "2025-03-01")
        assert matches(tree, {"lastPurchase": date(2025, 2, 28)})
        assert matches(tree, {"lastPurchase": datetime(2025, 2, 28, 23, 59)})
        assert matches(tree, {"lastPurchase": "2025-02-28T10:00:00"})

    def test_malformed_between_fails_closed(self) -> None:
        tree = single("lastPurchase", "between", "2025-01-01")
        assert not matches(tree, {"lastPurchase": "2025-01-01"})


class TestBooleans:
    def test_equality(self) -> None:
        assert matches(single("subscribed", "=", True), {"subscribed": True})
        assert matches(single("subscribed", "=", True), {"subscribed": "true"})
        assert not matches(single("subscribed", "=", False), {"subscribed": True})


class TestFailClosed:
    def test_unknown_field(self) -> None:
        assert not matches(single("age", ">", 1), {"age": 30})

    def test_missing_or_none_value(self) -> None:
        assert not matches(single("spend", ">", 1), {})
        assert not matches(single("spend", ">", 1), {"spend": None})

    def test_operator_not_declared_by_field(self) -> None:
        assert not matches(single("location", "endsWith", "York"), {"location": "New York"})

    def test_uncoercible_values(self) -> None:
        assert not matches(single("spend", ">", ""), {"spend": 10})
        assert not matches(single("spend", ">", 1), {"spend": "lots"})
        assert not matches(single("lastPurchase", "before", "soon"), {"lastPurchase": "2025-01-01"})

    def test_non_mapping_record(self) -> None:
        assert not matches(single("spend", ">", 1), ["spend", 10])


class TestBulk:
    def test_count_and_filter(self) -> None:
        evaluator = PredicateEvaluator()
        tree = single("spend", ">", 100)
        population = [{"spend": 50}, {"spend": 150}, {"spend": 500}, {}]
        assert evaluator.count(tree, population) == 2
        assert evaluator.filter(tree, population) == [{"spend": 150}, {"spend": 500}]

    def test_oversized_numbers_fail_closed(self) -> None:
        evaluator = PredicateEvaluator()
        population = [{"spend": 10**400}, {"spend": 5}, {"spend": 50}]
        assert evaluator.count(single("spend", ">", 1), population) == 2

    def test_oversized_ints_as_text_fail_closed(self) -> None:
        evaluator = PredicateEvaluator()
        population = [{"location": 10**5000}, {"location": "Area 51"}]
        assert evaluator.count(single("location", "contains", "1"), population) == 1
