"""
Receipt Models

ReceiptData is the canonical shape of a scanned receipt after
normalization. It is PROPOSED data: nothing is stored until the user
submits it as a regular transaction.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.models.transaction import Money, TransactionInput, TransactionItem


UNRECOGNIZED = "unrecognized"

ReceiptAmount = Union[Money, Literal["unrecognized"]]


class ReceiptData(BaseModel):
    """
    Normalized receipt fields.

    place and amount hold the "unrecognized" sentinel when the scan could
    not read them; date always holds a real calendar date.
    """
    model_config = ConfigDict(frozen=True)

    place: str = Field(
        ...,
        min_length=1,
        description="Merchant name or 'unrecognized'"
    )
    date: dt.date
    amount: ReceiptAmount = Field(
        ...,
        description="Receipt total or 'unrecognized'"
    )
    items: list[TransactionItem] = Field(default_factory=list)
    model: Optional[str] = Field(
        default=None,
        description="Backend model that produced the scan"
    )

    @property
    def place_recognized(self) -> bool:
        return self.place != UNRECOGNIZED

    @property
    def amount_recognized(self) -> bool:
        return self.amount != UNRECOGNIZED

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON shape returned to clients."""
        return self.model_dump(mode="json")

    def to_transaction_input(self, category: str = "") -> TransactionInput:
        """
        Prefill a create payload from the scan.

        Unrecognized place becomes empty and unrecognized amount becomes 0,
        leaving the user to complete them.
        """
        return TransactionInput(
            place=self.place if self.place_recognized else None,
            category=category,
            amount=self.amount if self.amount_recognized else Decimal("0"),
            date=self.date,
            items=list(self.items),
        )
