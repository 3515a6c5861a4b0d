"""Unit tests for UniquenessRegistry."""

from __future__ import annotations

import pytest

from dataorbit.domain.services import UniquenessRegistry
from dataorbit.ports.inbound.errors import UniquenessError


@pytest.mark.unit
class TestUniquenessRegistry:
    """Tests for UniquenessRegistry."""

    @pytest.fixture
    def registry(self) -> UniquenessRegistry:
        """Create a registry with one user."""
        registry = UniquenessRegistry()
        registry.rebuild_table(
            "usuarios", ["email"], [{"id": 1, "email": "juan@example.com"}]
        )
        return registry

    def test_check_insert_rejects_taken_value(self, registry: UniquenessRegistry) -> None:
        """A taken value raises UniquenessError naming table and field."""
        with pytest.raises(UniquenessError) as excinfo:
            registry.check_insert("usuarios", {"email": "juan@example.com"})

        assert excinfo.value.table == "usuarios"
        assert excinfo.value.field == "email"
        assert excinfo.value.value == "juan@example.com"

    def test_check_insert_accepts_free_value(self, registry: UniquenessRegistry) -> None:
        """A free value passes and is not registered by the check."""
        registry.check_insert("usuarios", {"email": "ana@example.com"})
        assert not registry.contains("usuarios", "email", "ana@example.com")

    def test_null_and_missing_are_exempt(self, registry: UniquenessRegistry) -> None:
        """Any number of documents may lack a unique value."""
        for document in ({"email": None}, {}, {"email": None}):
            registry.check_insert("usuarios", document)
            registry.add("usuarios", document)

    def test_check_update_ignores_unchanged_value(self, registry: UniquenessRegistry) -> None:
        """An update keeping its own value is not a collision."""
        old = {"id": 1, "email": "juan@example.com"}
        registry.check_update("usuarios", old, {**old, "nombre": "Juan"})

    def test_check_update_rejects_taken_value(self, registry: UniquenessRegistry) -> None:
        """Changing to another document's value is a collision."""
        registry.add("usuarios", {"id": 2, "email": "ana@example.com"})

        with pytest.raises(UniquenessError):
            registry.check_update(
                "usuarios",
                {"id": 2, "email": "ana@example.com"},
                {"id": 2, "email": "juan@example.com"},
            )

    def test_replace_moves_values(self, registry: UniquenessRegistry) -> None:
        """replace frees the old value and occupies the new one."""
        registry.replace(
            "usuarios",
            {"id": 1, "email": "juan@example.com"},
            {"id": 1, "email": "juan@new.com"},
        )

        assert not registry.contains("usuarios", "email", "juan@example.com")
        assert registry.contains("usuarios", "email", "juan@new.com")

    def test_remove_frees_value(self, registry: UniquenessRegistry) -> None:
        """A deleted document's value can be reused."""
        registry.remove("usuarios", {"id": 1, "email": "juan@example.com"})
        registry.check_insert("usuarios", {"email": "juan@example.com"})

    def test_tables_without_constraints(self, registry: UniquenessRegistry) -> None:
        """Unknown tables accept anything."""
        registry.check_insert("otros", {"email": "juan@example.com"})
        assert registry.unique_fields("otros") == []

    def test_find_violation(self) -> None:
        """find_violation reports the first duplicate without a registry."""
        documents = [{"id": 1, "code": "a"}, {"id": 2, "code": "b"}, {"id": 3, "code": "a"}]

        violation = UniquenessRegistry.find_violation("t", ["id", "code"], documents)

        assert isinstance(violation, UniquenessError)
        assert violation.field == "code"
        assert UniquenessRegistry.find_violation("t", ["id"], documents) is None

    def test_nested_numbers_compare_by_value(self) -> None:
        """An object holding 1.0 collides with one holding 1."""
        registry = UniquenessRegistry()
        registry.rebuild_table("t", ["meta"], [{"id": 1, "meta": {"a": 1}}])

        with pytest.raises(UniquenessError):
            registry.check_insert("t", {"meta": {"a": 1.0}})
        registry.check_insert("t", {"meta": {"a": True}})
