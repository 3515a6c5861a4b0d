"""Unit tests for plain JSON import and export files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dataorbit.adapters.outbound import read_tables, write_tables
from dataorbit.ports.inbound.errors import LoadError, NotFoundError


@pytest.mark.unit
class TestJsonTransfer:
    """Tests for read_tables and write_tables."""

    def test_write_then_read(self, temp_dir: Path) -> None:
        """Written tables are indented UTF-8 JSON and read back unchanged."""
        tables = {"productos": [{"id": 1, "nombre": "Café"}]}
        target = temp_dir / "out" / "export.json"

        written = write_tables(target, tables)

        text = target.read_text(encoding="utf-8")
        assert written == len(text.encode("utf-8"))
        assert "Café" in text
        assert '\n    "productos"' in text
        assert read_tables(target) == tables

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(NotFoundError):
            read_tables(temp_dir / "none.json")

    def test_malformed_json(self, temp_dir: Path) -> None:
        source = temp_dir / "bad.json"
        source.write_text("{not json")
        with pytest.raises(LoadError):
            read_tables(source)

    def test_wrong_shape(self, temp_dir: Path) -> None:
        source = temp_dir / "shape.json"
        source.write_text(json.dumps({"t": {"id": 1}}))
        with pytest.raises(LoadError):
            read_tables(source)
