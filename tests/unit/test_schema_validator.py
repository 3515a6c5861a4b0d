"""Unit tests for schema validation."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from dataorbit.domain.services import normalize_document, validate_document
from dataorbit.infrastructure.config import FieldSchema
from dataorbit.ports.inbound.errors import ValidationError


@pytest.fixture
def schema() -> dict[str, FieldSchema]:
    return {
        "nombre": FieldSchema(type="Text", required=True),
        "edad": FieldSchema(type="Number"),
        "activo": FieldSchema(type="Boolean"),
        "alta": FieldSchema(type="Date"),
        "perfil": FieldSchema(type="Object"),
        "tags": FieldSchema(type="Array"),
    }


@pytest.mark.unit
class TestValidateDocument:
    """Tests for validate_document."""

    def test_valid_document(self, schema: dict[str, FieldSchema]) -> None:
        """A conforming document passes."""
        validate_document(
            "usuarios",
            {
                "nombre": "Juan",
                "edad": 30,
                "activo": False,
                "alta": "2024-01-15T10:00:00Z",
                "perfil": {"bio": ""},
                "tags": [],
                "extra": object(),
            },
            schema,
        )

    def test_required_field_missing(self, schema: dict[str, FieldSchema]) -> None:
        """A missing required field is reported with table and field."""
        with pytest.raises(ValidationError) as excinfo:
            validate_document("usuarios", {"edad": 3}, schema)

        assert excinfo.value.table == "usuarios"
        assert excinfo.value.field == "nombre"

    def test_required_field_null(self, schema: dict[str, FieldSchema]) -> None:
        """A null required field counts as missing."""
        with pytest.raises(ValidationError):
            validate_document("usuarios", {"nombre": None}, schema)

    def test_optional_null_is_accepted(self, schema: dict[str, FieldSchema]) -> None:
        """Optional fields may be null."""
        validate_document("usuarios", {"nombre": "Ana", "edad": None}, schema)

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("nombre", 5),
            ("edad", "30"),
            ("edad", True),
            ("activo", 1),
            ("alta", "yesterday"),
            ("perfil", []),
            ("tags", {}),
        ],
    )
    def test_type_mismatch(self, schema: dict[str, FieldSchema], field: str, value: object) -> None:
        """Values of the wrong kind are rejected."""
        document = {"nombre": "Ana", field: value}
        with pytest.raises(ValidationError) as excinfo:
            validate_document("usuarios", document, schema)
        assert excinfo.value.field == field

    def test_path_must_exist(self, temp_dir: Path) -> None:
        """Path fields reference existing files."""
        schema = {"avatar": FieldSchema(type="Path")}
        existing = temp_dir / "avatar.png"
        existing.write_bytes(b"\x89PNG")

        validate_document("t", {"avatar": str(existing)}, schema)
        with pytest.raises(ValidationError):
            validate_document("t", {"avatar": str(temp_dir / "missing.png")}, schema)


@pytest.mark.unit
class TestNormalizeDocument:
    """Tests for normalize_document."""

    def test_json_forms(self, temp_dir: Path) -> None:
        """Dates, paths and tuples become JSON values."""
        moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        document = normalize_document(
            {
                "when": moment,
                "day": date(2024, 5, 1),
                "file": temp_dir / "a.txt",
                "pair": (1, 2),
                "nested": {"items": [date(2024, 1, 1)]},
            }
        )

        assert document == {
            "when": "2024-05-01T12:00:00+00:00",
            "day": "2024-05-01",
            "file": str(temp_dir / "a.txt"),
            "pair": [1, 2],
            "nested": {"items": ["2024-01-01"]},
        }
