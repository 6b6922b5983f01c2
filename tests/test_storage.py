"""
Unit tests for storage layer.

Tests schema creation, tip insertion and retrieval, and model validation.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from tip_tracker.storage.db import get_connection
from tip_tracker.storage.models import Bucket, TipEvent
from tip_tracker.storage.repository import TipRepository


class TestTipEventValidation:
    """Test TipEvent validation at construction."""

    def _tip(self, **overrides):
        values = dict(
            id="tip-1",
            user_id="driver-1",
            amount=Decimal("5.00"),
            timestamp=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        )
        values.update(overrides)
        return TipEvent(**values)

    def test_valid_tip(self):
        """Verify a valid tip is created."""
        tip = self._tip()
        assert tip.amount == Decimal("5.00")

    def test_zero_amount_rejected(self):
        """Verify zero amounts are rejected."""
        with pytest.raises(ValueError, match="amount must be > 0"):
            self._tip(amount=Decimal("0"))

    def test_negative_amount_rejected(self):
        """Verify negative amounts are rejected."""
        with pytest.raises(ValueError, match="amount must be > 0"):
            self._tip(amount=Decimal("-1.00"))

    def test_non_finite_amount_rejected(self):
        """Verify NaN and infinity are rejected."""
        with pytest.raises(ValueError, match="amount must be > 0"):
            self._tip(amount=Decimal("Infinity"))

    def test_float_amount_rejected(self):
        """Verify floats are rejected."""
        with pytest.raises(ValueError, match="amount must be a Decimal"):
            self._tip(amount=5.0)

    def test_naive_timestamp_rejected(self):
        """Verify naive timestamps are rejected."""
        with pytest.raises(ValueError, match="timezone-aware"):
            self._tip(timestamp=datetime(2024, 1, 1, 12, 0))

    def test_tip_is_immutable(self):
        """Verify tips cannot be mutated."""
        tip = self._tip()
        with pytest.raises(AttributeError):
            tip.amount = Decimal("6.00")

    def test_bucket_add_returns_new_bucket(self):
        """Verify Bucket.add leaves the original untouched."""
        bucket = Bucket()
        updated = bucket.add(Decimal("2.50"))
        assert bucket == Bucket()
        assert updated == Bucket(total=Decimal("2.50"), count=1)


class TestStorageSchema:
    """Test database schema creation and structure."""

    def test_schema_creation(self):
        """Verify table is created correctly."""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "test.db")
            TipRepository(db_path).initialize_schema()

            conn = get_connection(db_path)
            try:
                cursor = conn.execute("PRAGMA table_info(tip)")
                column_names = [col[1] for col in cursor.fetchall()]
                assert column_names == ['seq', 'id', 'user_id', 'amount', 'created_at']
            finally:
                conn.close()

    def test_schema_creation_is_idempotent(self):
        """Verify schema creation can run twice."""
        with tempfile.TemporaryDirectory() as temp_dir:
            repository = TipRepository(os.path.join(temp_dir, "test.db"))
            repository.initialize_schema()
            repository.initialize_schema()
            assert repository.fetch_tips("driver-1") == []


class TestTipPersistence:
    """Test tip insertion and retrieval."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        self.now = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
        self.repository = TipRepository(self.db_path, clock=lambda: self.now)
        self.repository.initialize_schema()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_insert_assigns_id_and_timestamp(self):
        """Verify the repository assigns id and timestamp."""
        event = self.repository.insert_tip("driver-1", Decimal("5.50"))

        assert event.id
        assert event.user_id == "driver-1"
        assert event.amount == Decimal("5.50")
        assert event.timestamp == self.now

    def test_round_trip_preserves_exact_amount(self):
        """Verify amounts survive storage exactly."""
        self.repository.insert_tip("driver-1", Decimal("0.10"))

        events = self.repository.fetch_tips("driver-1")

        assert len(events) == 1
        assert events[0].amount == Decimal("0.10")
        assert str(events[0].amount) == "0.10"
        assert events[0].timestamp == self.now

    def test_fetch_newest_first(self):
        """Verify tips are fetched newest first."""
        first = self.repository.insert_tip("driver-1", Decimal("1.00"))
        self.now = self.now + timedelta(hours=1)
        second = self.repository.insert_tip("driver-1", Decimal("2.00"))

        events = self.repository.fetch_tips("driver-1")

        assert [e.id for e in events] == [second.id, first.id]

    def test_fetch_only_returns_own_tips(self):
        """Verify fetches are scoped to one user."""
        self.repository.insert_tip("driver-1", Decimal("1.00"))
        self.repository.insert_tip("driver-2", Decimal("2.00"))

        events = self.repository.fetch_tips("driver-1")

        assert [e.user_id for e in events] == ["driver-1"]

    def test_naive_clock_treated_as_utc(self):
        """Verify a naive clock is read as UTC."""
        repository = TipRepository(self.db_path, clock=lambda: datetime(2024, 1, 15, 9, 0))
        event = repository.insert_tip("driver-1", Decimal("1.00"))
        assert event.timestamp == datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

    def test_insert_rejects_invalid_amount(self):
        """Verify invalid amounts are not stored."""
        with pytest.raises(ValueError):
            self.repository.insert_tip("driver-1", Decimal("0"))
        assert self.repository.fetch_tips("driver-1") == []

    def test_change_token_moves_on_insert(self):
        """Verify the change token moves on insert."""
        before = self.repository.change_token("driver-1")
        self.repository.insert_tip("driver-1", Decimal("1.00"))
        after = self.repository.change_token("driver-1")

        assert before == (0, 0)
        assert after != before
        assert self.repository.change_token("driver-2") == (0, 0)

    def test_persistence_across_repositories(self):
        """Verify tips persist across repository instances."""
        self.repository.insert_tip("driver-1", Decimal("3.00"))

        other = TipRepository(self.db_path)

        assert [e.amount for e in other.fetch_tips("driver-1")] == [Decimal("3.00")]
