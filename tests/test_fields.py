"""Tests for the field catalog."""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from campaignhq.core.errors import FieldNotFoundError, NotFoundError
from campaignhq.core.fields import (
    FieldCatalog,
    FieldOption,
    FieldType,
    coerce_for_type,
    default_catalog,
    operator_label,
)


class TestFieldOption:
    def test_defaults_come_from_type_and_first_operator(self) -> None:
        option = FieldOption(id="spend", label="Total Spend", type=FieldType.NUMBER, operators=(">", "<"))
        assert option.default_operator == ">"
        assert option.default_value == ""

        flag = FieldOption(id="vip", label="VIP", type=FieldType.BOOLEAN, operators=("=",))
        assert flag.default_value is True

    def test_rejects_empty_operator_list(self) -> None:
        with pytest.raises(ValidationError):
            FieldOption(id="spend", label="Total Spend", type=FieldType.NUMBER, operators=())

    def test_rejects_operator_outside_vocabulary(self) -> None:
        with pytest.raises(ValidationError):
            FieldOption(id="spend", label="Total Spend", type=FieldType.NUMBER, operators=("~",))

    def test_rejects_operator_illegal_for_type(self) -> None:
        with pytest.raises(ValidationError):
            FieldOption(id="spend", label="Total Spend", type=FieldType.NUMBER, operators=("contains",))

    def test_rejects_duplicate_operators(self) -> None:
        with pytest.raises(ValidationError):
            FieldOption(id="spend", label="Total Spend", type=FieldType.NUMBER, operators=(">", ">"))


class TestFieldCatalog:
    def test_default_catalog_order_and_types(self) -> None:
        catalog = default_catalog()
        ids = [option.id for option in catalog.list_fields()]
        assert ids == [
            "spend",
            "inactive",
            "lastPurchase",
            "purchaseCount",
            "location",
            "email",
            "subscribed",
        ]
        assert catalog.first.id == "spend"
        assert catalog.require("lastPurchase").type == FieldType.DATE
        assert catalog.require("subscribed").type == FieldType.BOOLEAN

    def test_operators_for(self) -> None:
        catalog = default_catalog()
        assert catalog.operators_for("spend") == (">", "<", ">=", "<=", "=", "!=")
        assert catalog.operators_for("location") == ("=", "!=", "contains", "startsWith")
        assert catalog.operators_for("email") == ("=", "!=", "contains", "endsWith")
        assert catalog.operators_for("lastPurchase") == ("before", "after", "between")
        assert catalog.operators_for("subscribed") == ("=",)

    def test_unknown_field_raises_not_found(self) -> None:
        catalog = default_catalog()
        with pytest.raises(FieldNotFoundError) as excinfo:
            catalog.operators_for("age")
        assert excinfo.value.field_id == "age"
        assert isinstance(excinfo.value, NotFoundError)
        assert catalog.get("age") is None
        assert "age" not in catalog

    def test_rejects_duplicate_ids(self) -> None:
        option = FieldOption(id="spend", label="Total Spend", type=FieldType.NUMBER, operators=(">",))
        with pytest.raises(ValueError):
            FieldCatalog([option, option])

    def test_rejects_empty_catalog(self) -> None:
        with pytest.raises(ValueError):
            FieldCatalog([])

    def test_container_protocol(self) -> None:
        catalog = default_catalog()
        assert len(catalog) == 7
        assert "email" in catalog
        assert [option.id for option in catalog][0] == "spend"


class TestCoercion:
    def test_numbers(self) -> None:
        catalog = default_catalog()
        assert catalog.coerce_value("spend", "5000") == 5000
        assert catalog.coerce_value("spend", "12.5") == 12.5
        assert catalog.coerce_value("spend", "") == ""
        assert catalog.coerce_value("spend", "lots") == "lots"
        assert catalog.coerce_value("spend", 7) == 7

    def test_booleans(self) -> None:
        catalog = default_catalog()
        assert catalog.coerce_value("subscribed", "true") is True
        assert catalog.coerce_value("subscribed", "FALSE") is False
        assert catalog.coerce_value("subscribed", False) is False

    def test_dates(self) -> None:
        assert coerce_for_type(FieldType.DATE, date(2025, 3, 1)) == "2025-03-01"
        assert coerce_for_type(FieldType.DATE, datetime(2025, 3, 1, 14, 30)) == "2025-03-01"
        assert coerce_for_type(FieldType.DATE, [date(2025, 1, 1), "2025-02-01"]) == (
            "2025-01-01",
            "2025-02-01",
        )

    def test_strings(self) -> None:
        assert coerce_for_type(FieldType.STRING, 42) == "42"
        assert coerce_for_type(FieldType.STRING, "York") == "York"

    def test_operator_labels(self) -> None:
        assert operator_label(">") == "Greater than"
        assert operator_label("startsWith") == "Starts with"
        assert operator_label("~") == "~"
