"""
Core Data Models for Finance Tracker

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Round-trip through the JSON documents used for storage
4. Accept every historical item shape exactly once, at the boundary

DESIGN DECISION: Wire names are camelCase (isIncome, recurringFrequency, ...)
to stay compatible with the stored JSON documents. Python code uses the
snake_case attribute names; both spellings are accepted on input.
"""

import datetime as dt
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)


CENT = Decimal("0.01")

# Largest storable amount. Whole cents up to this bound survive the float
# round trip through the JSON documents exactly.
MAX_AMOUNT = Decimal("999999999999.99")

ITEM_NAME_MAX_LENGTH = 200


def to_cents(value: Decimal) -> Decimal:
    """Round a money value to whole cents, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def is_storable_amount(value: Optional[Decimal]) -> bool:
    return value is not None and 0 <= value <= MAX_AMOUNT


# Non-negative money value in whole cents. Serialized as a JSON number so
# stored documents keep the numeric shape they always had.
Money = Annotated[
    Decimal,
    Field(ge=0, le=MAX_AMOUNT),
    AfterValidator(to_cents),
    PlainSerializer(float, return_type=float, when_used="json"),
]

# Characters kept when reading an amount out of free text ("€ 12,50").
_NUMERIC_CHARS = set("0123456789.,-")


def utc_now() -> dt.datetime:
    """Current time as an aware UTC datetime."""
    return dt.datetime.now(dt.timezone.utc)


def new_transaction_id() -> str:
    """Generate an opaque unique transaction identifier."""
    return uuid4().hex


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Frequency(str, Enum):
    """How often a recurring transaction repeats."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Theme(str, Enum):
    """UI theme preference stored with the user settings."""
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class TransactionKind(str, Enum):
    """Direction filter used by the transaction list."""
    EXPENSE = "expense"
    INCOME = "income"


# =============================================================================
# VALUE PARSING - shared by the models and the receipt normalizer
# =============================================================================

def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Read a decimal amount from a number or a loosely formatted string.

    Currency symbols and spaces are ignored. A lone comma is read as the
    decimal separator. When both comma and dot appear, the last one is the
    decimal separator and the other groups thousands ("1.234,56" and
    "1,234.56" both read as 1234.56).

    Returns None when no finite number can be read.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = "".join(ch for ch in value if ch in _NUMERIC_CHARS)
        if not cleaned:
            return None
        if "," in cleaned and "." in cleaned:
            if cleaned.rfind(",") > cleaned.rfind("."):
                cleaned = cleaned.replace(".", "").replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif "," in cleaned:
            cleaned = cleaned.replace(",", ".")
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            return None
    else:
        return None

    if not result.is_finite():
        return None
    return result


def coerce_items(value: Any) -> list["TransactionItem"]:
    """
    Convert any supported item representation into TransactionItem records.

    Accepted shapes:
    - None / missing -> []
    - "milk, bread" (comma-separated string)
    - ["milk", "bread"] (plain strings, price 0)
    - [{"name": "milk", "price": 1.99}] (objects, price defaults to 0)
    - a mix of the above, or TransactionItem instances

    Entries without a usable name are dropped and over-long names are cut
    to ITEM_NAME_MAX_LENGTH. Invalid, negative or out-of-range prices
    become 0.
    """
    if value is None:
        return []

    if isinstance(value, str):
        raw_entries: list[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        raw_entries = list(value)
    else:
        return []

    items = []
    for entry in raw_entries:
        if isinstance(entry, TransactionItem):
            items.append(entry)
            continue

        if isinstance(entry, str):
            name, price = entry, None
        elif isinstance(entry, Mapping):
            name, price = entry.get("name"), entry.get("price")
        else:
            continue

        if not isinstance(name, str) or not name.strip():
            continue

        parsed_price = parse_amount(price)
        if not is_storable_amount(parsed_price):
            parsed_price = Decimal("0")

        items.append(TransactionItem(
            name=name.strip()[:ITEM_NAME_MAX_LENGTH],
            price=parsed_price,
        ))

    return items


def blank_to_none(value: Any) -> Any:
    """Treat empty strings from form posts as missing values."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class TransactionItem(BaseModel):
    """A single purchased item on a transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=ITEM_NAME_MAX_LENGTH,
        description="Item name as entered or scanned"
    )
    price: Money = Field(
        default=Decimal("0"),
        description="Price paid for this item"
    )

    @property
    def key(self) -> str:
        """Name used to match the same item across transactions."""
        return self.name.strip().lower()


class TransactionFields(BaseModel):
    """
    Fields shared by the create payload and the persisted transaction.

    Invariants:
    - amount is a non-negative magnitude; direction lives in is_income
    - a recurring transaction always names its frequency
    """
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    place: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Merchant or income source"
    )
    category: str = Field(
        default="",
        max_length=100,
        description="Category name (not checked against the category list)"
    )
    amount: Money = Field(
        ...,
        description="Amount as a non-negative magnitude"
    )
    is_income: bool = Field(
        default=False,
        alias="isIncome",
        description="True for inflows, False for expenses"
    )
    date: dt.date = Field(
        ...,
        description="Effective day of the transaction"
    )
    items: list[TransactionItem] = Field(default_factory=list)
    notes: Optional[str] = Field(
        default=None,
        max_length=2000,
    )
    is_recurring: bool = Field(
        default=False,
        alias="isRecurring",
    )
    recurring_frequency: Optional[Frequency] = Field(
        default=None,
        alias="recurringFrequency",
    )

    @field_validator("items", mode="before")
    @classmethod
    def normalize_items(cls, v: Any) -> list[TransactionItem]:
        return coerce_items(v)

    @field_validator("recurring_frequency", mode="before")
    @classmethod
    def empty_frequency(cls, v: Any) -> Any:
        return blank_to_none(v)

    @field_validator("category", mode="before")
    @classmethod
    def missing_category(cls, v: Any) -> Any:
        return "" if v is None else v

    @model_validator(mode="after")
    def validate_recurrence(self) -> "TransactionFields":
        if self.is_recurring and self.recurring_frequency is None:
            raise ValueError(
                "Recurring transactions require a recurring frequency "
                "(daily, weekly, monthly or yearly)"
            )
        return self


class TransactionInput(TransactionFields):
    """
    Create payload for a transaction.

    recurring_end_date only drives recurrence expansion; it is never
    stored on the generated transactions.
    """

    recurring_end_date: Optional[dt.date] = Field(
        default=None,
        alias="recurringEndDate",
        description="Last day a recurring series may produce an instance"
    )

    @field_validator("recurring_end_date", mode="before")
    @classmethod
    def empty_end_date(cls, v: Any) -> Any:
        return blank_to_none(v)


class Transaction(TransactionFields):
    """A persisted income or expense record."""

    id: str = Field(
        default_factory=new_transaction_id,
        min_length=1,
        description="Opaque identifier, stable for the transaction's lifetime"
    )
    created_at: dt.datetime = Field(
        default_factory=utc_now,
        alias="createdAt",
        description="Creation timestamp (immutable)"
    )

    @classmethod
    def from_input(
        cls,
        payload: TransactionInput,
        *,
        on: Optional[dt.date] = None,
        transaction_id: Optional[str] = None,
        created_at: Optional[dt.datetime] = None,
    ) -> "Transaction":
        """
        Build a transaction from a create payload.

        Args:
            payload: Validated create payload
            on: Override the date (used by recurrence expansion)
            transaction_id: Explicit id; generated when omitted
            created_at: Explicit creation time; now when omitted
        """
        data = payload.model_dump(exclude={"recurring_end_date"})
        if on is not None:
            data["date"] = on
        data["id"] = transaction_id or new_transaction_id()
        data["created_at"] = created_at or utc_now()
        return cls.model_validate(data)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the stored JSON shape."""
        return self.model_dump(mode="json", by_alias=True)

    def merged(self, changes: Mapping[str, Any]) -> "Transaction":
        """
        Shallow-merge supplied fields over this transaction.

        id and created_at are immutable and silently kept. The merged
        record is validated as a whole.

        Raises:
            pydantic.ValidationError: If the merged record is invalid
        """
        record = self.to_record()
        record.update(to_wire_keys(type(self), changes))
        record["id"] = self.id
        record["createdAt"] = self.created_at
        record.pop("recurringEndDate", None)
        return type(self).model_validate(record)

    def matches_month(self, year: int, month: int) -> bool:
        return self.date.year == year and self.date.month == month


class RecurrenceExpansion(BaseModel):
    """Result of expanding a recurring template into dated instances."""

    created: int = Field(ge=0)
    transactions: list[Transaction] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "expenses": [txn.to_record() for txn in self.transactions],
        }


# =============================================================================
# USER SETTINGS
# =============================================================================

class UserSettings(BaseModel):
    """
    Process-wide user preferences, replaced as a whole on write.

    start_date is the day of month on which the reporting "month" begins.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    currency: str = Field(
        default="€",
        min_length=1,
        max_length=10,
    )
    theme: Theme = Field(default=Theme.SYSTEM)
    start_date: int = Field(
        default=1,
        ge=1,
        le=31,
        alias="startDate",
        description="Day of month on which the reporting month starts"
    )
    gemini_api_key: str = Field(
        default="",
        alias="geminiApiKey",
        description="API key for receipt scanning (never logged)"
    )

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def merged(self, changes: Mapping[str, Any]) -> "UserSettings":
        record = self.to_record()
        record.update(to_wire_keys(type(self), changes))
        return type(self).model_validate(record)

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key)


def to_wire_keys(model: type[BaseModel], data: Mapping[str, Any]) -> dict[str, Any]:
    """Rename snake_case attribute names in `data` to their wire aliases."""
    renames = {
        name: field.alias
        for name, field in model.model_fields.items()
        if field.alias
    }
    return {renames.get(key, key): value for key, value in data.items()}


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested action for the user"
    )


class ValidationResult(BaseModel):
    """Outcome of validating a create or update payload."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def error_count(self) -> int:
        return len(self.errors)
