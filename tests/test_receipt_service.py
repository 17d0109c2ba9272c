"""
Tests for the Gemini receipt service.

The Gemini client is replaced by a fake model factory; no network calls.
"""

import pytest

from finance_tracker.services.receipt import (
    RECEIPT_PROMPT,
    AllModelsFailedError,
    GeminiReceiptService,
    ReceiptConfigurationError,
    ReceiptParseError,
    parse_response_text,
)


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    def __init__(self, name, outcome, calls):
        self._name = name
        self._outcome = outcome
        self._calls = calls

    async def generate_content_async(self, contents):
        self._calls.append((self._name, contents))
        if isinstance(self._outcome, Exception):
            raise self._outcome
        return FakeResponse(self._outcome)


def fake_factory(outcomes, calls):
    """Build a model factory answering per model name."""
    def factory(model_name, api_key):
        assert api_key == "test-key"
        return FakeModel(model_name, outcomes[model_name], calls)
    return factory


MODELS = ["primary-model", "fallback-model"]
RECEIPT_JSON = '{"place": "Store", "date": "2024-06-01", "amount": 9.5, "items": []}'


class TestParseResponseText:
    """Tests for reading JSON out of a model answer."""

    def test_plain_json(self):
        """Test a bare JSON answer."""
        assert parse_response_text(RECEIPT_JSON)["place"] == "Store"

    def test_markdown_fence(self):
        """Test an answer wrapped in a json code fence."""
        text = "```json\n" + RECEIPT_JSON + "\n```"
        assert parse_response_text(text)["amount"] == 9.5

    def test_surrounding_prose(self):
        """Test an answer with text around the object."""
        text = "Here is the data:\n" + RECEIPT_JSON + "\nHope this helps!"
        assert parse_response_text(text)["date"] == "2024-06-01"

    def test_no_json(self):
        """Test an answer without any object."""
        with pytest.raises(ReceiptParseError):
            parse_response_text("I cannot read this receipt.")

    def test_broken_json(self):
        """Test an object that is not valid JSON."""
        with pytest.raises(ReceiptParseError):
            parse_response_text("{place: Store,}")

    def test_non_object_json(self):
        """Test a JSON value that is not an object."""
        with pytest.raises(ReceiptParseError):
            parse_response_text("[1, 2, 3]")


class TestGeminiReceiptService:
    """Tests for model fallback and result shape."""

    @pytest.mark.asyncio
    async def test_first_model_succeeds(self):
        """Test that the primary model is used when it works."""
        calls = []
        service = GeminiReceiptService(
            model_names=MODELS,
            model_factory=fake_factory(
                {"primary-model": RECEIPT_JSON, "fallback-model": RECEIPT_JSON},
                calls,
            ),
        )
        result = await service.analyze(b"img", "image/png", "test-key")
        assert result["_model"] == "primary-model"
        assert result["place"] == "Store"
        assert [name for name, _ in calls] == ["primary-model"]

    @pytest.mark.asyncio
    async def test_sends_prompt_and_image(self):
        """Test the request contents."""
        calls = []
        service = GeminiReceiptService(
            model_names=MODELS,
            model_factory=fake_factory({"primary-model": RECEIPT_JSON}, calls),
        )
        await service.analyze(b"img", "image/png", "test-key")
        _, contents = calls[0]
        assert contents[0] == RECEIPT_PROMPT
        assert contents[1] == {"mime_type": "image/png", "data": b"img"}

    @pytest.mark.asyncio
    async def test_fallback_model(self):
        """Test that a failing primary falls back to the next model."""
        calls = []
        failures = []

        async def on_failure(model_name, error):
            failures.append((model_name, str(error)))

        service = GeminiReceiptService(
            model_names=MODELS,
            model_factory=fake_factory(
                {"primary-model": RuntimeError("quota exceeded"), "fallback-model": RECEIPT_JSON},
                calls,
            ),
        )
        result = await service.analyze(b"img", "image/jpeg", "test-key", on_model_failure=on_failure)
        assert result["_model"] == "fallback-model"
        assert [name for name, _ in calls] == ["primary-model", "fallback-model"]
        assert failures == [("primary-model", "quota exceeded")]

    @pytest.mark.asyncio
    async def test_all_models_fail(self):
        """Test that the last error is surfaced after every model fails."""
        calls = []
        service = GeminiReceiptService(
            model_names=MODELS,
            model_factory=fake_factory(
                {
                    "primary-model": RuntimeError("first"),
                    "fallback-model": RuntimeError("second"),
                },
                calls,
            ),
        )
        with pytest.raises(AllModelsFailedError) as exc_info:
            await service.analyze(b"img", "image/jpeg", "test-key")
        assert str(exc_info.value.last_error) == "second"
        assert exc_info.value.models == MODELS
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_each_model_tried_once(self):
        """Test that there are no retries beyond the model list."""
        calls = []
        service = GeminiReceiptService(
            model_names=["only-model"],
            model_factory=fake_factory({"only-model": RuntimeError("down")}, calls),
        )
        with pytest.raises(AllModelsFailedError):
            await service.analyze(b"img", "image/jpeg", "test-key")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unparseable_answer(self):
        """Test that a parse failure is not retried on the next model."""
        calls = []
        service = GeminiReceiptService(
            model_names=MODELS,
            model_factory=fake_factory({"primary-model": "no json here"}, calls),
        )
        with pytest.raises(ReceiptParseError):
            await service.analyze(b"img", "image/jpeg", "test-key")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        """Test that no model is called without a key."""
        calls = []
        service = GeminiReceiptService(
            model_names=MODELS,
            model_factory=fake_factory({}, calls),
        )
        with pytest.raises(ReceiptConfigurationError):
            await service.analyze(b"img", "image/jpeg", "")
        assert calls == []

    def test_default_model_list(self):
        """Test the configured fallback order."""
        service = GeminiReceiptService()
        assert service.model_names == ["gemini-2.0-flash-exp", "gemini-1.5-flash"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
