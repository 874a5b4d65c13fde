"""Tests for predicate trees and their document form."""

from campaignhq.core.fields import FieldCatalog, default_catalog
from campaignhq.core.summary import audience_text, describe
from campaignhq.core.tree import (
    Combinator,
    Rule,
    RuleGroup,
    count_rules,
    depth,
    duplicate_ids,
    find_node,
    from_document,
    iter_nodes,
    new_group,
    new_rule,
    to_document,
)


def deep_tree() -> RuleGroup:
    """Mixed rules and groups, nested four levels deep."""
    return RuleGroup(
        combinator=Combinator.AND,
        rules=(
            Rule(field="spend", operator=">", value=5000),
            RuleGroup(
                combinator=Combinator.OR,
                rules=(
                    Rule(field="subscribed", operator="=", value=True),
                    RuleGroup(
                        rules=(
                            Rule(field="lastPurchase", operator="between", value=("2025-01-01", "2025-03-31")),
                            RuleGroup(
                                combinator=Combinator.OR,
                                rules=(Rule(field="location", operator="contains", value="York"),),
                            ),
                        ),
                    ),
                ),
            ),
            Rule(field="inactive", operator="<=", value=30.5),
        ),
    )


class TestConstruction:
    def test_new_group_is_empty_and_identified(self) -> None:
        group = new_group()
        assert group.kind == "group"
        assert group.combinator == Combinator.AND
        assert group.rules == ()
        assert group.is_empty
        assert group.id != new_group().id

    def test_new_rule_uses_catalog_defaults(self) -> None:
        rule = new_rule()
        assert rule.kind == "rule"
        assert rule.field == "spend"
        assert rule.operator == ">"
        assert rule.value == ""

    def test_new_rule_boolean_default(self) -> None:
        catalog = FieldCatalog([default_catalog().require("subscribed")])
        rule = new_rule(catalog)
        assert rule.field == "subscribed"
        assert rule.operator == "="
        assert rule.value is True


class TestTraversal:
    def test_iter_nodes_is_preorder(self) -> None:
        tree = deep_tree()
        kinds = [node.kind for node in iter_nodes(tree)]
        assert kinds == ["group", "rule", "group", "rule", "group", "rule", "group", "rule", "rule"]

    def test_counts_and_depth(self) -> None:
        tree = deep_tree()
        assert count_rules(tree) == 5
        assert depth(tree) == 5
        assert depth(new_group()) == 1

    def test_find_node(self) -> None:
        tree = deep_tree()
        nested = tree.rules[1].rules[1]
        assert find_node(tree, nested.id) is nested
        assert find_node(tree, "missing") is None

    def test_duplicate_ids(self) -> None:
        rule = Rule(id="same", field="spend", operator=">", value=1)
        tree = RuleGroup(rules=(rule, RuleGroup(rules=(rule,))))
        assert duplicate_ids(tree) == {"same"}
        assert duplicate_ids(deep_tree()) == set()


class TestDocuments:
    def test_round_trip_nested_tree(self) -> None:
        tree = deep_tree()
        assert from_document(to_document(tree)) == tree

    def test_document_keeps_value_types(self) -> None:
        doc = to_document(deep_tree())
        assert doc["rules"][0]["value"] == 5000
        assert doc["rules"][1]["rules"][0]["value"] is True
        assert doc["rules"][1]["rules"][1]["rules"][0]["value"] == ["2025-01-01", "2025-03-31"]
        assert doc["rules"][2]["value"] == 30.5
        assert doc["combinator"] == "AND"
        assert doc["kind"] == "group"

    def test_accepts_documents_without_kind(self) -> None:
        legacy = {
            "id": "root",
            "combinator": "OR",
            "rules": [
                {"id": "r1", "field": "spend", "operator": ">", "value": 100},
                {"id": "g1", "combinator": "AND", "rules": []},
            ],
        }
        tree = from_document(legacy)
        assert tree.combinator == Combinator.OR
        assert isinstance(tree.rules[0], Rule)
        assert isinstance(tree.rules[1], RuleGroup)
        assert tree.rules[1].is_empty


class TestSummary:
    def test_describe_nested(self) -> None:
        tree = RuleGroup(
            rules=(
                Rule(field="spend", operator=">", value=5000),
                RuleGroup(
                    combinator=Combinator.OR,
                    rules=(
                        Rule(field="location", operator="contains", value="York"),
                        Rule(field="subscribed", operator="=", value=True),
                    ),
                ),
            ),
        )
        assert describe(tree, default_catalog()) == (
            "Total Spend greater than 5000 AND "
            "(Location contains York OR Is Subscribed equal to true)"
        )

    def test_describe_between(self) -> None:
        tree = RuleGroup(
            rules=(Rule(field="lastPurchase", operator="between", value=("2025-01-01", "2025-02-01")),)
        )
        assert describe(tree, default_catalog()) == "Last Purchase Date between 2025-01-01 and 2025-02-01"

    def test_audience_text(self) -> None:
        assert audience_text(new_group()) == "General audience"
        tree = RuleGroup(rules=(Rule(field="spend", operator=">", value=10),))
        assert audience_text(tree, default_catalog()) == (
            "Audience defined by rules: Total Spend greater than 10"
        )
        assert audience_text(tree).startswith('Audience defined by rules: {"kind": "group"')
