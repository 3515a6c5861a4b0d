"""Unit tests for PrimaryKeyAllocator."""

from __future__ import annotations

import pytest

from dataorbit.domain.services import PrimaryKeyAllocator


@pytest.mark.unit
class TestPrimaryKeyAllocator:
    """Tests for PrimaryKeyAllocator."""

    def test_starts_at_one(self) -> None:
        """A fresh table hands out 1, 2, 3."""
        keys = PrimaryKeyAllocator()
        assert [keys.next_key("t") for _ in range(3)] == [1, 2, 3]
        assert keys.next_key("u") == 1

    def test_peek_does_not_advance(self) -> None:
        """peek shows the next key without consuming it."""
        keys = PrimaryKeyAllocator()
        assert keys.peek("t") == 1
        assert keys.peek("t") == 1
        assert keys.next_key("t") == 1

    def test_observe_supplied_keys(self) -> None:
        """Supplied integer keys push the counter past them."""
        keys = PrimaryKeyAllocator()
        keys.observe("t", 10)
        keys.observe("t", 3)
        keys.observe("t", "abc")
        keys.observe("t", True)

        assert keys.next_key("t") == 11

    def test_rebuild_from_documents(self) -> None:
        """The counter is max integer key plus one."""
        keys = PrimaryKeyAllocator()
        keys.rebuild_table("t", "id", [{"id": 4}, {"id": "x"}, {"id": 2.0}, {}])
        assert keys.peek("t") == 5

    def test_rebuild_keeping_progress(self) -> None:
        """keep_progress never moves the counter backwards."""
        keys = PrimaryKeyAllocator()
        for _ in range(7):
            keys.next_key("t")

        keys.rebuild_table("t", "id", [{"id": 1}], keep_progress=True)
        assert keys.peek("t") == 8

        keys.rebuild_table("t", "id", [{"id": 1}])
        assert keys.peek("t") == 2

    def test_drop_and_clear(self) -> None:
        """Dropped tables start over."""
        keys = PrimaryKeyAllocator()
        keys.next_key("t")
        keys.next_key("u")

        keys.drop_table("t")
        assert keys.snapshot() == {"u": 2}

        keys.clear()
        assert keys.snapshot() == {}

    def test_merge_snapshot(self) -> None:
        """Merging never moves a counter backwards and restores dropped ones."""
        keys = PrimaryKeyAllocator()
        keys.observe("t", 3)
        keys.next_key("u")
        saved = keys.snapshot()

        keys.drop_table("t")
        keys.next_key("u")
        keys.next_key("u")
        keys.merge_snapshot(saved)

        assert keys.snapshot() == {"t": 4, "u": 4}
