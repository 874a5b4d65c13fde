"""
Rule/group predicate trees.

An audience predicate is a tree rooted at a RuleGroup. Groups combine their
children with AND/OR; leaves are Rules comparing one customer field against
a value. Nodes are immutable and carry an explicit ``kind`` tag so that
traversal dispatches on the tag instead of probing attributes.
"""

from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from ulid import ULID

from campaignhq.core.fields import FieldCatalog, RuleValue, default_catalog


def new_node_id() -> str:
    """Issue a node id. ULIDs carry 80 random bits, so independently authored
    subtrees can be merged without id collisions."""
    return str(ULID())


class Combinator(Enum):
    """How a group combines its children."""

    AND = "AND"
    OR = "OR"


class Rule(BaseModel):
    """A single condition: ``record[field] <operator> value``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["rule"] = "rule"
    id: str = Field(default_factory=new_node_id)
    field: str
    operator: str
    value: RuleValue = ""


Node = Annotated[Union[Rule, "RuleGroup"], Field(discriminator="kind")]


class RuleGroup(BaseModel):
    """A boolean combination of rules and nested groups."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["group"] = "group"
    id: str = Field(default_factory=new_node_id)
    combinator: Combinator = Combinator.AND
    rules: tuple[Node, ...] = Field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.rules


RuleGroup.model_rebuild()

_NODE_ADAPTER: TypeAdapter[Rule | RuleGroup] = TypeAdapter(Node)


def new_group(combinator: Combinator = Combinator.AND) -> RuleGroup:
    """Create an empty group with a fresh id."""
    return RuleGroup(combinator=combinator)


def new_rule(catalog: FieldCatalog | None = None) -> Rule:
    """Create a rule on the catalog's first field with that field's defaults."""
    option = (catalog or default_catalog()).first
    return Rule(
        field=option.id,
        operator=option.default_operator,
        value=option.default_value,
    )


def iter_nodes(tree: Rule | RuleGroup) -> Iterator[Rule | RuleGroup]:
    """Yield every node depth-first, parents before children."""
    yield tree
    if isinstance(tree, RuleGroup):
        for child in tree.rules:
            yield from iter_nodes(child)


def iter_rules(tree: Rule | RuleGroup) -> Iterator[Rule]:
    """Yield every leaf rule depth-first."""
    for node in iter_nodes(tree):
        if isinstance(node, Rule):
            yield node


def find_node(tree: RuleGroup, node_id: str) -> Rule | RuleGroup | None:
    """First node carrying ``node_id`` in depth-first order, if any."""
    for node in iter_nodes(tree):
        if node.id == node_id:
            return node
    return None


def count_rules(tree: RuleGroup) -> int:
    """Number of leaf rules anywhere in the tree."""
    return sum(1 for _ in iter_rules(tree))


def depth(tree: Rule | RuleGroup) -> int:
    """Nesting depth; a lone group or rule has depth 1."""
    if isinstance(tree, Rule) or not tree.rules:
        return 1
    return 1 + max(depth(child) for child in tree.rules)


def duplicate_ids(tree: RuleGroup) -> set[str]:
    """Ids that appear on more than one node."""
    seen: set[str] = set()
    duplicates: set[str] = set()
    for node in iter_nodes(tree):
        if node.id in seen:
            duplicates.add(node.id)
        seen.add(node.id)
    return duplicates


# --- Document form ---


def to_document(tree: RuleGroup) -> dict[str, Any]:
    """
    Serialize a tree to JSON-compatible nested dicts.

    Booleans stay booleans, numbers stay numbers, dates are ISO strings and
    ``between`` ranges become two-element lists.
    """
    return tree.model_dump(mode="json")


def from_document(data: Mapping[str, Any]) -> RuleGroup:
    """
    Rebuild a tree from its document form.

    Documents written before nodes carried ``kind`` are accepted too; there a
    node is a group exactly when it has a ``combinator``.
    """
    return RuleGroup.model_validate(_tag_kinds(data))


def node_from_document(data: Mapping[str, Any]) -> Rule | RuleGroup:
    """Rebuild a single rule or group, tagged or legacy."""
    return _NODE_ADAPTER.validate_python(_tag_kinds(data))


def _tag_kinds(data: Mapping[str, Any]) -> dict[str, Any]:
    node = dict(data)
    if "kind" not in node:
        node["kind"] = "group" if "combinator" in node else "rule"
    if node["kind"] == "group":
        node["rules"] = [_tag_kinds(child) for child in node.get("rules", [])]
    return node
