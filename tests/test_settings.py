"""
Tests for environment configuration.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from finance_tracker.config import (
    AppSettings,
    GeminiSettings,
    StorageSettings,
    validate_all_settings,
)


class TestGeminiSettings:
    """Tests for the receipt analysis settings."""

    def test_default_model_order(self, monkeypatch):
        """Test the default fallback list."""
        monkeypatch.delenv("GEMINI_MODEL_NAMES", raising=False)
        assert GeminiSettings().model_list == ["gemini-2.0-flash-exp", "gemini-1.5-flash"]

    def test_model_names_from_env(self, monkeypatch):
        """Test a custom comma-separated list."""
        monkeypatch.setenv("GEMINI_MODEL_NAMES", " model-a , model-b,")
        assert GeminiSettings().model_list == ["model-a", "model-b"]

    def test_empty_model_names_rejected(self, monkeypatch):
        """Test that at least one model is required."""
        monkeypatch.setenv("GEMINI_MODEL_NAMES", " , ")
        with pytest.raises(ValidationError):
            GeminiSettings()


class TestStorageAndAppSettings:
    """Tests for storage paths and upload limits."""

    def test_storage_from_env(self, monkeypatch, tmp_path):
        """Test the STORAGE_ prefix."""
        monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path))
        assert StorageSettings().data_dir == Path(tmp_path)

    def test_upload_limit(self, monkeypatch):
        """Test the byte conversion of the upload limit."""
        monkeypatch.delenv("MAX_UPLOAD_SIZE_MB", raising=False)
        assert AppSettings().max_upload_size_bytes == 10 * 1024 * 1024

    def test_supported_formats(self, monkeypatch):
        """Test that formats are normalized to lower case."""
        monkeypatch.setenv("SUPPORTED_IMAGE_FORMATS", "JPG, PNG")
        assert AppSettings().supported_formats_list == ["jpg", "png"]

    def test_validate_all_settings(self, monkeypatch):
        """Test the startup check report."""
        monkeypatch.setenv("MAX_RECURRENCES", "0")
        results = validate_all_settings()
        assert results["gemini"] is True
        assert results["storage"] is True
        assert results["app"] is False
        assert "app_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
