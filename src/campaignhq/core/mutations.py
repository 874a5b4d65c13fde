"""
Pure, id-addressed edits on predicate trees.

Every function takes a tree and returns a tree; the input is never changed.
Only the path from the root to the edited node is rebuilt, every other
subtree is carried over by reference.

Targets are searched depth-first, parents before children, and the first
node carrying the id is edited. An id that is not in the tree (for example a
stale id from a concurrent edit), or that names a node of the wrong kind,
leaves the tree untouched and the very same object is returned.

Each edit rebuilds one root-to-target path, so cost grows with tree size.
Trees authored interactively stay small; an id-indexed node arena with
parent pointers would make edits O(depth) if that ever changes.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any

import structlog

from campaignhq.core.errors import RootDeletionError
from campaignhq.core.fields import FieldCatalog, default_catalog
from campaignhq.core.tree import (
    Combinator,
    Node,
    Rule,
    RuleGroup,
    new_group,
    new_rule,
    node_from_document,
)

logger = structlog.get_logger()

RULE_PATCH_KEYS = frozenset({"field", "operator", "value"})
GROUP_PATCH_KEYS = frozenset({"combinator", "rules"})

# Returns the replacement node, the node itself to leave it alone, or None to drop it.
Edit = Callable[[Rule | RuleGroup], Rule | RuleGroup | None]


def _rebuild(group: RuleGroup, index: int, replacement: Rule | RuleGroup | None) -> RuleGroup:
    children = list(group.rules)
    if replacement is None:
        del children[index]
    else:
        children[index] = replacement
    return group.model_copy(update={"rules": tuple(children)})


def _edit_below(group: RuleGroup, target_id: str, edit: Edit) -> tuple[bool, RuleGroup]:
    """
    Apply ``edit`` to the first descendant of ``group`` carrying ``target_id``.

    Returns (found, group). ``group`` is the original object when nothing
    matched or the edit left the target unchanged.
    """
    for index, child in enumerate(group.rules):
        if child.id == target_id:
            replacement = edit(child)
            if replacement is child:
                return True, group
            return True, _rebuild(group, index, replacement)
        if isinstance(child, RuleGroup):
            found, rebuilt = _edit_below(child, target_id, edit)
            if found:
                if rebuilt is child:
                    return True, group
                return True, _rebuild(group, index, rebuilt)
    return False, group


def _edit(tree: RuleGroup, target_id: str, edit: Edit, action: str) -> RuleGroup:
    if tree.id == target_id:
        replacement = edit(tree)
        if not isinstance(replacement, RuleGroup):
            raise RootDeletionError("The root group of a predicate cannot be removed")
        return replacement

    found, result = _edit_below(tree, target_id, edit)
    if not found:
        logger.debug("mutation_target_missing", action=action, target_id=target_id)
    return result


def _check_patch(patch: Mapping[str, Any], allowed: frozenset[str], kind: str) -> None:
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"Unsupported {kind} patch keys: {sorted(unknown)}")


# --- Group edits ---


def set_combinator(tree: RuleGroup, group_id: str, combinator: Combinator) -> RuleGroup:
    """Replace the combinator of the identified group."""

    def edit(node: Rule | RuleGroup) -> Rule | RuleGroup:
        if not isinstance(node, RuleGroup) or node.combinator == combinator:
            return node
        return node.model_copy(update={"combinator": combinator})

    return _edit(tree, group_id, edit, "set_combinator")


def append_child(tree: RuleGroup, group_id: str, child: Rule | RuleGroup) -> RuleGroup:
    """Append an existing node to the identified group's children."""

    def edit(node: Rule | RuleGroup) -> Rule | RuleGroup:
        if not isinstance(node, RuleGroup):
            return node
        return node.model_copy(update={"rules": (*node.rules, child)})

    return _edit(tree, group_id, edit, "append_child")


def add_rule(
    tree: RuleGroup,
    group_id: str,
    catalog: FieldCatalog | None = None,
) -> RuleGroup:
    """Append a default rule (catalog's first field) to the identified group."""
    return append_child(tree, group_id, new_rule(catalog or default_catalog()))


def add_group(
    tree: RuleGroup,
    group_id: str,
    combinator: Combinator = Combinator.AND,
) -> RuleGroup:
    """Append an empty subgroup to the identified group."""
    return append_child(tree, group_id, new_group(combinator))


def _child_node(child: Any) -> Rule | RuleGroup:
    if isinstance(child, (Rule, RuleGroup)):
        return child
    if isinstance(child, Mapping):
        return node_from_document(child)
    raise TypeError(f"Expected a rule or group, got {type(child).__name__}")


def update_group(tree: RuleGroup, group_id: str, patch: Mapping[str, Any]) -> RuleGroup:
    """
    Apply a partial update (``combinator`` and/or ``rules``) to a group.

    Nodes passed in ``rules`` are kept as given; mappings are read as node
    documents. Anything else raises TypeError.
    """
    _check_patch(patch, GROUP_PATCH_KEYS, "group")
    updates: dict[str, Any] = {}
    if "combinator" in patch:
        updates["combinator"] = Combinator(patch["combinator"])
    if "rules" in patch:
        children: Sequence[Node | Mapping[str, Any]] = patch["rules"]
        updates["rules"] = tuple(_child_node(child) for child in children)

    def edit(node: Rule | RuleGroup) -> Rule | RuleGroup:
        if not isinstance(node, RuleGroup) or not updates:
            return node
        return node.model_copy(update=updates)

    return _edit(tree, group_id, edit, "update_group")


# --- Rule edits ---


def update_rule(
    tree: RuleGroup,
    rule_id: str,
    patch: Mapping[str, Any],
    catalog: FieldCatalog | None = None,
) -> RuleGroup:
    """
    Apply a partial update (``field``, ``operator``, ``value``) to one rule.

    Moving a rule to another known field first resets its operator and value
    to that field's defaults; operator or value given in the same patch are
    applied on top.
    """
    _check_patch(patch, RULE_PATCH_KEYS, "rule")
    catalog = catalog or default_catalog()

    def edit(node: Rule | RuleGroup) -> Rule | RuleGroup:
        if not isinstance(node, Rule):
            return node
        data = node.model_dump()
        new_field = patch.get("field", node.field)
        if new_field != node.field:
            data["field"] = new_field
            option = catalog.get(new_field)
            if option is not None:
                data["operator"] = option.default_operator
                data["value"] = option.default_value
        if "operator" in patch:
            data["operator"] = patch["operator"]
        if "value" in patch:
            data["value"] = patch["value"]
        updated = Rule.model_validate(data)
        return node if updated == node else updated

    return _edit(tree, rule_id, edit, "update_rule")


# --- Removal ---


def delete_node(tree: RuleGroup, node_id: str) -> RuleGroup:
    """
    Remove the identified rule or group from its parent.

    Raises RootDeletionError when asked to remove the root itself.
    """
    return _edit(tree, node_id, lambda node: None, "delete_node")
