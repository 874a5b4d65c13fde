"""
campaignhq

Audience rule building for marketing campaigns.

A campaign targets the customers matched by a predicate tree: groups
combine rules with AND/OR, rules compare one catalog field against a value.
Trees are immutable and edited through pure id-addressed mutations, and the
same tree drives exact evaluation, audience size estimates and the prompt
for generated campaign copy.
"""

__version__ = "0.1.0"

from campaignhq.core.fields import FieldCatalog, FieldOption, FieldType, default_catalog
from campaignhq.core.tree import Combinator, Rule, RuleGroup, new_group, new_rule

__all__ = [
    "__version__",
    "Combinator",
    "FieldCatalog",
    "FieldOption",
    "FieldType",
    "Rule",
    "RuleGroup",
    "default_catalog",
    "new_group",
    "new_rule",
]
