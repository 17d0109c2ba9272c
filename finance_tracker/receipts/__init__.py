"""Receipt normalization."""

from finance_tracker.receipts.normalizer import normalize_receipt

__all__ = ["normalize_receipt"]
