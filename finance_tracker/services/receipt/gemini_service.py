"""
Receipt Analysis using Google Gemini

DESIGN DECISION: We use a multimodal LLM instead of a dedicated OCR
product because receipts vary wildly in layout and a single prompt can
return place, date, total and line items in one structured answer.

This service handles:
1. Sending the receipt image plus the extraction prompt to Gemini
2. Falling back through an ordered list of models (first success wins)
3. Pulling the JSON object out of the model's text answer

BOUNDARIES:
- Returns the RAW parsed object; normalization happens downstream
- NEVER persists anything
- No retries beyond trying each model once
"""

import json
import re
from collections.abc import Awaitable, Callable
from typing import Any, Optional

import google.generativeai as genai
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from finance_tracker.config import get_settings


logger = structlog.get_logger(__name__)


RECEIPT_PROMPT = """Analyze this receipt image and extract the following information in JSON format:
{
  "place": "store name or merchant name",
  "date": "date in YYYY-MM-DD format",
  "amount": "total amount as a number (without currency symbol)",
  "items": [
    {"name": "item name", "price": 1.99},
    {"name": "another item", "price": 2.50}
  ]
}

Rules:
- Extract the store/merchant name as "place"
- Extract the date and convert to YYYY-MM-DD format
- Extract the total amount as a number (remove currency symbols)
- List all purchased items as an array of objects with "name" and "price" (price as number)
- If item price cannot be determined, set price to 0
- If any field cannot be determined, use null
- Return ONLY valid JSON, no additional text"""

_FENCE_PATTERN = re.compile(r"```(?:json)?\n?")
_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


class ReceiptScanError(Exception):
    """Base exception for receipt scanning errors."""
    pass


class ReceiptConfigurationError(ReceiptScanError):
    """No API key is available for the analysis service."""
    pass


class InvalidUploadError(ReceiptScanError):
    """The uploaded file is missing, too large or not an image."""
    pass


class AllModelsFailedError(ReceiptScanError):
    """Every model in the fallback list failed."""

    def __init__(self, models: list[str], last_error: BaseException):
        self.models = models
        self.last_error = last_error
        super().__init__(str(last_error) or "All models failed")


class ReceiptParseError(ReceiptScanError):
    """The model answered, but no JSON object could be read from it."""
    pass


ModelFailureCallback = Callable[[str, Exception], Awaitable[None]]


def parse_response_text(text: str) -> dict[str, Any]:
    """
    Extract the JSON object from a model answer.

    Markdown code fences are stripped first. If the remainder is not valid
    JSON, the first {...} block in the raw text is tried.

    Raises:
        ReceiptParseError: If no JSON object can be read
    """
    cleaned = _FENCE_PATTERN.sub("", text or "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _OBJECT_PATTERN.search(text or "")
        if not match:
            raise ReceiptParseError("Could not parse response from Gemini")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise ReceiptParseError(f"Could not parse response from Gemini: {e}")

    if not isinstance(data, dict):
        raise ReceiptParseError("Gemini response is not a JSON object")
    return data


class GeminiReceiptService:
    """
    Receipt analysis through the Gemini API.

    The model factory is injectable so tests can substitute a fake client;
    by default it builds a genai.GenerativeModel.
    """

    def __init__(
        self,
        model_names: Optional[list[str]] = None,
        model_factory: Optional[Callable[[str, str], Any]] = None,
    ):
        self._settings = get_settings().gemini
        self._model_names = model_names or self._settings.model_list
        self._model_factory = model_factory or self._create_model

    @property
    def model_names(self) -> list[str]:
        return list(self._model_names)

    def _create_model(self, model_name: str, api_key: str) -> Any:
        """Configure Google Generative AI and build one model client."""
        genai.configure(api_key=api_key)
        return genai.GenerativeModel(
            model_name=model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    async def _generate(
        self,
        model_name: str,
        api_key: str,
        image_bytes: bytes,
        mime_type: str,
    ) -> str:
        model = self._model_factory(model_name, api_key)
        response = await model.generate_content_async([
            RECEIPT_PROMPT,
            {"mime_type": mime_type, "data": image_bytes},
        ])
        return response.text

    async def analyze(
        self,
        image_bytes: bytes,
        mime_type: str,
        api_key: str,
        on_model_failure: Optional[ModelFailureCallback] = None,
    ) -> dict[str, Any]:
        """
        Extract receipt fields from an image.

        Args:
            image_bytes: Raw image content
            mime_type: Image MIME type (e.g. image/jpeg)
            api_key: Gemini API key
            on_model_failure: Awaited with (model_name, error) for every
                model that fails

        Returns:
            The parsed JSON object, with "_model" naming the model used

        Raises:
            ReceiptConfigurationError: If api_key is empty
            AllModelsFailedError: If every model fails
            ReceiptParseError: If the answer holds no JSON object
        """
        if not api_key:
            raise ReceiptConfigurationError("Gemini API key not configured")

        models = self.model_names
        used_model = None
        text = ""

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(len(models)),
                retry=retry_if_exception_type(Exception),
                reraise=True,
            ):
                model_name = models[attempt.retry_state.attempt_number - 1]
                with attempt:
                    logger.info("receipt_model_attempt", model=model_name)
                    try:
                        text = await self._generate(model_name, api_key, image_bytes, mime_type)
                    except Exception as e:
                        logger.warning("receipt_model_failed", model=model_name, error=str(e))
                        if on_model_failure is not None:
                            await on_model_failure(model_name, e)
                        raise
                    used_model = model_name
        except Exception as e:
            raise AllModelsFailedError(models, e) from e

        logger.info("receipt_model_succeeded", model=used_model)

        data = parse_response_text(text)
        data["_model"] = used_model
        return data
