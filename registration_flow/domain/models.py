"""Domain models - pure Python dataclasses representing registration entities"""

import math
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from registration_flow.domain.exceptions import SchemaError


class FieldType(str, Enum):
    """Input types a form field descriptor may declare"""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    EMAIL = "email"
    TEL = "tel"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    TEXTAREA = "textarea"


CHOICE_FIELD_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO})


@dataclass(frozen=True)
class FieldOption:
    """Single choice for select and radio fields"""

    value: str
    label: str


@dataclass(frozen=True)
class FieldDescriptor:
    """Backend-supplied description of one form input"""

    id: str
    field_name: str
    field_type: FieldType
    label: str
    is_required: bool = False
    placeholder: Optional[str] = None
    validation_regex: Optional[str] = None
    error_message: Optional[str] = None
    options: Tuple[FieldOption, ...] = ()
    sort_order: int = 0

    def __post_init__(self):
        if self.field_type in CHOICE_FIELD_TYPES and not self.options:
            raise SchemaError(
                f"Field '{self.field_name}' of type {self.field_type.value} must have at least one option"
            )


@dataclass(frozen=True)
class RegistrationFormSchema:
    """Ordered set of field descriptors attached to a program"""

    id: str
    name: str
    fields: Tuple[FieldDescriptor, ...] = ()
    description: Optional[str] = None

    def __post_init__(self):
        seen = set()
        for descriptor in self.fields:
            if descriptor.field_name in seen:
                raise SchemaError(f"Duplicate field name '{descriptor.field_name}' in form '{self.name}'")
            seen.add(descriptor.field_name)

    def ordered_fields(self) -> List[FieldDescriptor]:
        """Descriptors by ascending sort_order, declaration order on ties"""
        return sorted(self.fields, key=lambda d: d.sort_order)

    def get(self, field_name: str) -> Optional[FieldDescriptor]:
        for descriptor in self.fields:
            if descriptor.field_name == field_name:
                return descriptor
        return None


# Field values are a tagged variant keyed by the descriptor's field_type.

# Plain decimal or exponent notation; no underscores, hex or "inf"
NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


@dataclass(frozen=True)
class Text:
    """Free-form or choice value entered as a string"""

    text: str = ""

    def is_empty(self) -> bool:
        return not self.text.strip()

    def as_string(self) -> str:
        return self.text

    def to_wire(self) -> str:
        return self.text


@dataclass(frozen=True)
class Flag:
    """Checkbox value"""

    checked: bool = False

    def is_empty(self) -> bool:
        return not self.checked

    def as_string(self) -> str:
        return "true" if self.checked else "false"

    def to_wire(self) -> bool:
        return self.checked


@dataclass(frozen=True)
class Numeric:
    """Number field value; keeps the raw entry until it parses"""

    text: str = ""

    @property
    def number(self) -> Optional[float]:
        if not NUMBER_RE.match(self.text.strip()):
            return None
        try:
            parsed = float(self.text.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None

    def is_empty(self) -> bool:
        return not self.text.strip()

    def as_string(self) -> str:
        return self.text

    def to_wire(self) -> Union[int, float, str]:
        parsed = self.number
        if parsed is None:
            return self.text
        return int(parsed) if parsed.is_integer() else parsed


FieldValue = Union[Text, Flag, Numeric]
FieldValueMap = Dict[str, FieldValue]
ValidationErrorMap = Dict[str, str]

GENERAL_ERROR_KEY = "_general"


def default_value(field_type: FieldType) -> FieldValue:
    """Type-appropriate empty value used when a schema loads"""
    if field_type == FieldType.CHECKBOX:
        return Flag(False)
    if field_type == FieldType.NUMBER:
        return Numeric("")
    return Text("")


def coerce_value(field_type: FieldType, raw: Any) -> FieldValue:
    """Wrap a raw UI or wire value in the variant matching field_type"""
    if isinstance(raw, (Text, Flag, Numeric)):
        raw = raw.to_wire()

    if field_type == FieldType.CHECKBOX:
        if isinstance(raw, str):
            return Flag(raw.strip().lower() in ("true", "1", "yes", "on"))
        return Flag(bool(raw))

    text = "" if raw is None else str(raw)
    if isinstance(raw, bool):
        text = "true" if raw else "false"

    if field_type == FieldType.NUMBER:
        return Numeric(text)
    return Text(text)


@dataclass(frozen=True)
class FeeLineItem:
    """Named fee or discount line in a financial summary"""

    name: str
    amount: Decimal
    description: Optional[str] = None


@dataclass(frozen=True)
class FinancialSummary:
    """Server-computed fee breakdown for a registration"""

    base_fee: Decimal
    total_before_tax: Decimal
    tax_amount: Decimal
    total_amount_due: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    additional_fees: Tuple[FeeLineItem, ...] = ()
    discounts: Tuple[FeeLineItem, ...] = ()

    def reconciles(self, tolerance: Decimal = Decimal("0.01")) -> bool:
        """Check the summary's own arithmetic for display sanity"""
        fees = sum((f.amount for f in self.additional_fees), Decimal("0"))
        discounts = sum((d.amount for d in self.discounts), Decimal("0"))
        expected_balance = max(self.total_amount_due - self.amount_paid, Decimal("0"))

        return (
            abs(self.base_fee + fees - discounts - self.total_before_tax) < tolerance
            and abs(self.total_before_tax + self.tax_amount - self.total_amount_due) < tolerance
            and abs(expected_balance - max(self.balance_due, Decimal("0"))) < tolerance
        )


@dataclass(frozen=True)
class Program:
    """Program or event a registrant can sign up for"""

    id: str
    name: str
    base_fee: Decimal = Decimal("0")
    is_active: bool = True
    description: Optional[str] = None
    season: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    registration_open_date: Optional[date] = None
    registration_close_date: Optional[date] = None
    max_capacity: Optional[int] = None


@dataclass(frozen=True)
class FormDataEntry:
    """Normalized form answer as stored server-side"""

    field_name: str
    field_label: str
    field_value: str


@dataclass
class RegistrationRecord:
    """Registration status as reported by the backend"""

    id: str
    status: str
    total_amount_due: Decimal
    balance_due: Decimal
    amount_paid: Decimal
    notes: Optional[str] = None
    created_at: Optional[str] = None
    program: Optional[Program] = None
    form_data: List[FormDataEntry] = field(default_factory=list)
    financial_summary: Optional[FinancialSummary] = None

    def value_for(self, field_name: str) -> Optional[str]:
        for entry in self.form_data:
            if entry.field_name == field_name:
                return entry.field_value
        return None


@dataclass
class FinalizationResult:
    """Backend acknowledgment that a draft registration is ready for payment"""

    raw: Dict[str, Any]

    @property
    def status(self) -> Optional[str]:
        return self.raw.get("status")
