"""
Tests for the JSON file storage backend.

Each test gets its own data directory under pytest's tmp_path.
"""

import json
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from finance_tracker.models import AuditEventBuilder, Transaction, UserSettings
from finance_tracker.services.storage import (
    DEFAULT_CATEGORIES,
    JsonAuditStorage,
    JsonCategoryStorage,
    JsonFileClient,
    JsonSettingsStorage,
    JsonTransactionStorage,
    StorageError,
)


@pytest.fixture
def client(tmp_path):
    return JsonFileClient(tmp_path / "data")


class TestJsonFileClient:
    """Tests for the low-level document access."""

    def test_missing_document_created_with_default(self, client):
        """Test that first access writes the default document."""
        assert client.read_document("things.json", [1, 2]) == [1, 2]
        assert json.loads(client.path("things.json").read_text(encoding="utf-8")) == [1, 2]

    def test_write_replaces_document(self, client):
        """Test that a write replaces the whole document."""
        client.write_document("doc.json", {"a": 1})
        client.write_document("doc.json", {"b": 2})
        assert client.read_document("doc.json", {}) == {"b": 2}

    def test_write_leaves_no_temp_files(self, client):
        """Test that the temporary file is renamed into place."""
        client.write_document("doc.json", ["x"])
        assert sorted(p.name for p in client.data_dir.iterdir()) == ["doc.json"]

    def test_unserializable_data_keeps_old_document(self, client):
        """Test that a failed write leaves the previous document intact."""
        client.write_document("doc.json", ["old"])
        with pytest.raises(StorageError):
            client.write_document("doc.json", [object()])
        assert client.read_document("doc.json", []) == ["old"]
        assert sorted(p.name for p in client.data_dir.iterdir()) == ["doc.json"]

    def test_corrupt_document(self, client):
        """Test that invalid JSON raises StorageError."""
        client.ensure_data_dir()
        client.path("doc.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError, match="Corrupt"):
            client.read_document("doc.json", [])

    def test_non_ascii_kept_readable(self, client):
        """Test that the euro sign is written as-is."""
        client.write_document("doc.json", {"currency": "€"})
        assert "€" in client.path("doc.json").read_text(encoding="utf-8")


class TestJsonTransactionStorage:
    """Tests for expenses.json."""

    @pytest.mark.asyncio
    async def test_empty_on_first_start(self, client):
        """Test the initial empty collection."""
        storage = JsonTransactionStorage(client)
        assert await storage.load_transactions() == []
        assert client.path("expenses.json").exists()

    @pytest.mark.asyncio
    async def test_save_and_load(self, client):
        """Test a round trip through the file."""
        storage = JsonTransactionStorage(client)
        txn = Transaction(
            place="Shop",
            amount=Decimal("9.99"),
            date=date(2024, 3, 1),
            items=[{"name": "pen", "price": 1.5}],
        )
        await storage.save_transactions([txn])
        assert await storage.load_transactions() == [txn]

    @pytest.mark.asyncio
    async def test_reads_legacy_records(self, client):
        """Test records written by earlier versions of the app."""
        client.write_document("expenses.json", [{
            "id": "1700000000000",
            "place": "Market",
            "category": "Groceries",
            "amount": 12.5,
            "date": "2024-03-01",
            "items": "apples, pears",
            "isIncome": False,
            "isRecurring": False,
            "recurringFrequency": "",
            "createdAt": "2024-03-01T10:00:00.000Z",
        }])
        [txn] = await JsonTransactionStorage(client).load_transactions()
        assert txn.id == "1700000000000"
        assert [i.name for i in txn.items] == ["apples", "pears"]
        assert txn.recurring_frequency is None

    @pytest.mark.asyncio
    async def test_invalid_record(self, client):
        """Test that a broken record raises StorageError."""
        client.write_document("expenses.json", [{"id": "x", "amount": "lots"}])
        with pytest.raises(StorageError, match="position 0"):
            await JsonTransactionStorage(client).load_transactions()

    @pytest.mark.asyncio
    async def test_wrong_document_shape(self, client):
        """Test that a non-list document raises StorageError."""
        client.write_document("expenses.json", {"oops": True})
        with pytest.raises(StorageError):
            await JsonTransactionStorage(client).load_transactions()


class TestJsonCategoryStorage:
    """Tests for categories.json."""

    @pytest.mark.asyncio
    async def test_defaults(self, client):
        """Test the default category list."""
        categories = await JsonCategoryStorage(client).load_categories()
        assert categories == [
            "Food", "Groceries", "Transport", "Utilities",
            "Shopping", "Entertainment", "Other",
        ]
        assert categories == DEFAULT_CATEGORIES

    @pytest.mark.asyncio
    async def test_defaults_not_shared(self, client):
        """Test that callers cannot mutate the module default."""
        categories = await JsonCategoryStorage(client).load_categories()
        categories.append("Pets")
        assert "Pets" not in DEFAULT_CATEGORIES

    @pytest.mark.asyncio
    async def test_save_and_load(self, client):
        """Test a round trip."""
        storage = JsonCategoryStorage(client)
        await storage.save_categories(["A", "B"])
        assert await storage.load_categories() == ["A", "B"]


class TestJsonSettingsStorage:
    """Tests for settings.json."""

    @pytest.mark.asyncio
    async def test_defaults(self, client):
        """Test the first-start settings."""
        settings = await JsonSettingsStorage(client).load_settings()
        assert settings == UserSettings()

    @pytest.mark.asyncio
    async def test_save_and_load(self, client):
        """Test a round trip."""
        storage = JsonSettingsStorage(client)
        await storage.save_settings(UserSettings(currency="$", start_date=25))
        loaded = await storage.load_settings()
        assert loaded.currency == "$"
        assert loaded.start_date == 25

    @pytest.mark.asyncio
    async def test_invalid_document(self, client):
        """Test an out-of-range stored value."""
        client.write_document("settings.json", {"startDate": 99})
        with pytest.raises(StorageError):
            await JsonSettingsStorage(client).load_settings()


class TestJsonAuditStorage:
    """Tests for the append-only audit trail."""

    @pytest.mark.asyncio
    async def test_append_and_query(self, client):
        """Test correlation queries and recent events."""
        storage = JsonAuditStorage(client, file_name="audit.jsonl")
        correlation_id = uuid4()
        first = AuditEventBuilder.receipt_scan_started("r.jpg", 10, correlation_id)
        second = AuditEventBuilder.category_added("Pets", uuid4())
        third = AuditEventBuilder.receipt_scan_failed("ReceiptParseError", "bad", correlation_id)

        for event in (first, second, third):
            assert await storage.append_event(event) is True

        related = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_id for e in related] == [first.event_id, third.event_id]

        recent = await storage.get_recent_events(limit=2)
        assert [e.event_id for e in recent] == [third.event_id, second.event_id]

        lines = client.path("audit.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3

    @pytest.mark.asyncio
    async def test_empty_log(self, client):
        """Test queries before anything was logged."""
        storage = JsonAuditStorage(client, file_name="audit.jsonl")
        assert await storage.get_recent_events() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
