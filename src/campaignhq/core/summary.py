"""Readable renderings of a predicate tree, used for prompts and the CLI."""

import json

from campaignhq.core.fields import FieldCatalog, operator_label
from campaignhq.core.tree import Rule, RuleGroup, to_document


def describe_rule(rule: Rule, catalog: FieldCatalog) -> str:
    option = catalog.get(rule.field)
    label = option.label if option else rule.field
    operator = operator_label(rule.operator).lower()
    if isinstance(rule.value, tuple):
        start, end = rule.value
        return f"{label} {operator} {start} and {end}"
    value = str(rule.value).lower() if isinstance(rule.value, bool) else rule.value
    return f"{label} {operator} {value}"


def describe(tree: Rule | RuleGroup, catalog: FieldCatalog, *, top_level: bool = True) -> str:
    """
    Render a tree as nested text, e.g.
    ``Total Spend greater than 5000 AND (Location contains York OR Is Subscribed equal to true)``.
    """
    if isinstance(tree, Rule):
        return describe_rule(tree, catalog)
    if not tree.rules:
        return "everyone" if tree.combinator.value == "AND" else "no one"
    parts = [describe(child, catalog, top_level=False) for child in tree.rules]
    text = f" {tree.combinator.value} ".join(parts)
    if top_level or len(parts) == 1:
        return text
    return f"({text})"


def audience_text(tree: RuleGroup, catalog: FieldCatalog | None = None) -> str:
    """
    Describe the audience for the message-generation prompt.

    Uses the readable form when a catalog is available and falls back to the
    JSON document of the tree otherwise.
    """
    if tree.is_empty:
        return "General audience"
    if catalog is not None:
        return f"Audience defined by rules: {describe(tree, catalog)}"
    return f"Audience defined by rules: {json.dumps(to_document(tree))}"
