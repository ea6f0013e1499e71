"""Unit tests for schema invariants, tagged field values and summary arithmetic"""

import pytest
from dataclasses import replace
from decimal import Decimal

from registration_flow.domain.exceptions import SchemaError
from registration_flow.domain.models import (
    FieldDescriptor,
    FieldType,
    Flag,
    Numeric,
    RegistrationFormSchema,
    Text,
    coerce_value,
    default_value,
)


def test_duplicate_field_names_are_a_schema_error():
    field = FieldDescriptor(id="1", field_name="email", field_type=FieldType.EMAIL, label="Email")
    with pytest.raises(SchemaError, match="Duplicate field name 'email'"):
        RegistrationFormSchema(id="s", name="Broken", fields=(field, replace(field, id="2")))


@pytest.mark.parametrize("field_type", [FieldType.SELECT, FieldType.RADIO])
def test_choice_fields_require_options(field_type):
    with pytest.raises(SchemaError, match="at least one option"):
        FieldDescriptor(id="1", field_name="size", field_type=field_type, label="Size")


def test_ordered_fields_breaks_ties_by_declaration_order():
    fields = (
        FieldDescriptor(id="1", field_name="late", field_type=FieldType.TEXT, label="Late", sort_order=5),
        FieldDescriptor(id="2", field_name="tie_first", field_type=FieldType.TEXT, label="A", sort_order=1),
        FieldDescriptor(id="3", field_name="tie_second", field_type=FieldType.TEXT, label="B", sort_order=1),
    )
    schema = RegistrationFormSchema(id="s", name="Order", fields=fields)

    assert [d.field_name for d in schema.ordered_fields()] == ["tie_first", "tie_second", "late"]
    assert schema.get("late").id == "1"
    assert schema.get("missing") is None


def test_default_values_by_type():
    assert default_value(FieldType.CHECKBOX) == Flag(False)
    assert default_value(FieldType.NUMBER) == Numeric("")
    assert default_value(FieldType.TEXTAREA) == Text("")


def test_coerce_value_dispatches_on_field_type():
    assert coerce_value(FieldType.CHECKBOX, "on") == Flag(True)
    assert coerce_value(FieldType.CHECKBOX, "false") == Flag(False)
    assert coerce_value(FieldType.NUMBER, 12) == Numeric("12")
    assert coerce_value(FieldType.EMAIL, None) == Text("")
    assert coerce_value(FieldType.TEXT, Numeric("3")) == Text("3")


def test_numeric_wire_form():
    assert Numeric("12").to_wire() == 12
    assert Numeric("2.5").to_wire() == 2.5
    assert Numeric("abc").to_wire() == "abc"
    assert Numeric("abc").number is None


def test_summary_reconciles(financial_summary):
    assert financial_summary.reconciles()


def test_summary_with_bad_total_does_not_reconcile(financial_summary):
    broken = replace(financial_summary, total_amount_due=Decimal("200.00"))
    assert not broken.reconciles()


def test_overpaid_summary_clamps_balance(financial_summary):
    paid = replace(financial_summary, amount_paid=Decimal("200.00"), balance_due=Decimal("0"))
    assert paid.reconciles()


@pytest.mark.parametrize("text", ["1_000", "0x1f", "inf", "nan", "1e", "12abc", "--1"])
def test_numeric_rejects_non_decimal_literals(text):
    assert Numeric(text).number is None


@pytest.mark.parametrize("text, expected", [("-3", -3.0), ("+.5", 0.5), ("1e3", 1000.0), (" 7. ", 7.0)])
def test_numeric_accepts_plain_decimal_notation(text, expected):
    assert Numeric(text).number == expected
