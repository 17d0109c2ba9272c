"""
Receipt Normalizer

Converts whatever the image-understanding model returned into a
ReceiptData record. The model output is untrusted: fields may be missing,
null, mistyped or in the wrong format.

Rules:
- place: trimmed non-empty string, otherwise "unrecognized"
- date: kept when it is a real ISO calendar date, otherwise re-parsed from
  a list of common formats, otherwise today
- amount: a non-negative number rounded to whole cents (numeric strings
  and currency symbols are tolerated), otherwise "unrecognized"
- items: any supported item shape, blank names dropped, long names cut,
  bad prices -> 0

Normalization never raises: every payload yields a ReceiptData.

Normalizing the payload of an already normalized receipt gives an equal
receipt.
"""

import datetime as dt
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional, Union

from finance_tracker.ledger.dates import parse_date
from finance_tracker.models.receipt import UNRECOGNIZED, ReceiptData
from finance_tracker.models.transaction import (
    coerce_items,
    is_storable_amount,
    parse_amount,
    to_cents,
)


def normalize_place(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return UNRECOGNIZED


def normalize_date(value: Any, today: dt.date) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        parsed = parse_date(value)
        if parsed is not None:
            return parsed
    return today


def normalize_amount(value: Any) -> Union[Decimal, str]:
    if value == UNRECOGNIZED:
        return UNRECOGNIZED
    amount = parse_amount(value)
    if not is_storable_amount(amount):
        return UNRECOGNIZED
    return to_cents(amount)


def _model_name(payload: Mapping[str, Any]) -> Optional[str]:
    model = payload.get("model") or payload.get("_model")
    return model if isinstance(model, str) and model else None


def normalize_receipt(payload: Mapping[str, Any], today: dt.date) -> ReceiptData:
    """
    Build a ReceiptData from a raw analysis result.

    Args:
        payload: Parsed JSON object returned by the analysis service
        today: Fallback date when the receipt date cannot be read

    Returns:
        Normalized, frozen ReceiptData
    """
    if not isinstance(payload, Mapping):
        payload = {}

    return ReceiptData(
        place=normalize_place(payload.get("place")),
        date=normalize_date(payload.get("date"), today),
        amount=normalize_amount(payload.get("amount")),
        items=coerce_items(payload.get("items")),
        model=_model_name(payload),
    )
