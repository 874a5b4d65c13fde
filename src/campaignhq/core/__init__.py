"""Field catalog, predicate trees and their pure mutations."""

from campaignhq.core.errors import CampaignHQError
from campaignhq.core.fields import (
    FieldCatalog,
    FieldOption,
    FieldType,
    Operator,
    RuleValue,
    default_catalog,
    operator_label,
)
from campaignhq.core.mutations import (
    add_group,
    add_rule,
    delete_node,
    set_combinator,
    update_group,
    update_rule,
)
from campaignhq.core.summary import audience_text, describe
from campaignhq.core.tree import (
    Combinator,
    Rule,
    RuleGroup,
    find_node,
    from_document,
    iter_nodes,
    new_group,
    new_rule,
    node_from_document,
    to_document,
)

__all__ = [
    "CampaignHQError",
    "Combinator",
    "FieldCatalog",
    "FieldOption",
    "FieldType",
    "Operator",
    "Rule",
    "RuleGroup",
    "RuleValue",
    "add_group",
    "add_rule",
    "audience_text",
    "default_catalog",
    "delete_node",
    "describe",
    "find_node",
    "from_document",
    "iter_nodes",
    "new_group",
    "new_rule",
    "node_from_document",
    "operator_label",
    "set_combinator",
    "to_document",
    "update_group",
    "update_rule",
]
