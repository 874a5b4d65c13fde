"""
Campaign form validation.

Errors block saving and are shown next to the offending input; warnings
flag rules that will never match (unknown fields, operators the field does
not offer, values that cannot be read as the field's type) without
blocking the author.
"""

from collections.abc import Sequence
from datetime import datetime

import structlog
from pydantic import BaseModel, ConfigDict

from campaignhq.core.fields import FieldCatalog, FieldType, coerce_for_type, default_catalog
from campaignhq.core.tree import Rule, RuleGroup, duplicate_ids, iter_rules

logger = structlog.get_logger()


class ValidationIssue(BaseModel):
    """A validation finding for one form location."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: str
    message: str
    location: str | None = None
    severity: str = "error"  # "error", "warning"


class CampaignValidator:
    """Validates campaign drafts before they are saved."""

    def __init__(self, catalog: FieldCatalog | None = None) -> None:
        self._catalog = catalog or default_catalog()
        self._log = logger.bind(component="campaign_validator")

    def validate(
        self,
        name: str,
        message: str,
        rules: RuleGroup,
    ) -> tuple[list[ValidationIssue], list[ValidationIssue]]:
        """
        Validate the editable parts of a campaign.

        Returns: (errors, warnings)
        """
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        if not name.strip():
            errors.append(ValidationIssue(
                code="EMPTY_NAME",
                message="Campaign name is required",
                location="name",
            ))

        if not message.strip():
            errors.append(ValidationIssue(
                code="EMPTY_MESSAGE",
                message="Campaign message is required",
                location="message",
            ))

        if rules.is_empty:
            errors.append(ValidationIssue(
                code="EMPTY_RULES",
                message="At least one rule is required",
                location="rules",
            ))

        warnings.extend(self.check_rules(rules))

        self._log.debug(
            "validation_complete",
            tree_id=rules.id,
            errors=len(errors),
            warnings=len(warnings),
        )
        return errors, warnings

    def check_rules(self, rules: RuleGroup) -> list[ValidationIssue]:
        """Warnings for rules that cannot match as written."""
        warnings: list[ValidationIssue] = []

        for node_id in sorted(duplicate_ids(rules)):
            warnings.append(ValidationIssue(
                code="DUPLICATE_ID",
                message=f"More than one condition uses id {node_id}",
                location=f"rules.{node_id}",
                severity="warning",
            ))

        for rule in iter_rules(rules):
            warnings.extend(self._check_rule(rule))

        return warnings

    def _check_rule(self, rule: Rule) -> list[ValidationIssue]:
        loc = f"rules.{rule.id}"
        option = self._catalog.get(rule.field)
        if option is None:
            return [ValidationIssue(
                code="UNKNOWN_FIELD",
                message=f"Unknown field: {rule.field}",
                location=f"{loc}.field",
                severity="warning",
            )]

        if rule.operator not in option.operators:
            return [ValidationIssue(
                code="INVALID_OPERATOR",
                message=f"'{rule.operator}' is not available for {option.label}",
                location=f"{loc}.operator",
                severity="warning",
            )]

        if not _value_fits(option.type, rule.operator, rule.value):
            return [ValidationIssue(
                code="TYPE_MISMATCH",
                message=f"{option.label} needs a {_expected(option.type, rule.operator)}",
                location=f"{loc}.value",
                severity="warning",
            )]

        return []


def _expected(field_type: FieldType, operator: str) -> str:
    if field_type is FieldType.DATE and operator == "between":
        return "start and end date"
    return {
        FieldType.NUMBER: "number",
        FieldType.STRING: "text value",
        FieldType.DATE: "date",
        FieldType.BOOLEAN: "true or false value",
    }[field_type]


def _value_fits(field_type: FieldType, operator: str, value: object) -> bool:
    if field_type is FieldType.DATE and operator == "between":
        if not isinstance(value, Sequence) or isinstance(value, str) or len(value) != 2:
            return False
        return all(_value_fits(FieldType.DATE, "before", bound) for bound in value)

    coerced = coerce_for_type(field_type, value)
    if field_type is FieldType.NUMBER:
        return isinstance(coerced, (int, float)) and not isinstance(coerced, bool)
    if field_type is FieldType.BOOLEAN:
        return isinstance(coerced, bool)
    if field_type is FieldType.DATE:
        return isinstance(coerced, str) and _is_iso_date(coerced)
    return isinstance(coerced, str) and bool(coerced.strip())


def _is_iso_date(text: str) -> bool:
    try:
        datetime.fromisoformat(text)
    except ValueError:
        return False
    return True


def validate_campaign(
    name: str,
    message: str,
    rules: RuleGroup,
    catalog: FieldCatalog | None = None,
) -> tuple[list[ValidationIssue], list[ValidationIssue]]:
    """Validate campaign form fields. Returns (errors, warnings)."""
    return CampaignValidator(catalog).validate(name, message, rules)
