"""Receipt analysis services."""

from finance_tracker.services.receipt.gemini_service import (
    RECEIPT_PROMPT,
    AllModelsFailedError,
    GeminiReceiptService,
    InvalidUploadError,
    ReceiptConfigurationError,
    ReceiptParseError,
    ReceiptScanError,
    parse_response_text,
)

__all__ = [
    "RECEIPT_PROMPT",
    "AllModelsFailedError",
    "GeminiReceiptService",
    "InvalidUploadError",
    "ReceiptConfigurationError",
    "ReceiptParseError",
    "ReceiptScanError",
    "parse_response_text",
]
