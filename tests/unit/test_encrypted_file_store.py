"""Unit tests for EncryptedFileStore and the file codec."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dataorbit.adapters.outbound.encrypted_file_store import (
    EncryptedFileStore,
    decrypt_text,
    encrypt_text,
    is_current_format,
    xor_cipher,
)
from dataorbit.ports.inbound.errors import LoadError

SAMPLE = {
    "usuarios": [
        {"id": 1, "nombre": "Juan", "email": "juan@example.com", "activo": True},
        {"id": 2, "nombre": "María", "tags": ["a", "b"], "perfil": {"edad": 31}},
    ],
    "vacia": [],
}


@pytest.mark.unit
class TestCipher:
    """Tests for the text-level encryption helpers."""

    def test_current_format_shape(self) -> None:
        """Encrypted text is '<32 hex iv>:<hex ciphertext>'."""
        payload = encrypt_text("hola", "secret")

        iv_hex, _, ciphertext_hex = payload.partition(":")
        assert len(iv_hex) == 32
        assert len(ciphertext_hex) % 32 == 0
        assert is_current_format(payload)

    def test_fresh_iv_per_encryption(self) -> None:
        """Two encryptions of the same text differ."""
        assert encrypt_text("hola", "secret") != encrypt_text("hola", "secret")

    def test_decrypt_reverses_encrypt(self) -> None:
        """Decrypting with the same passphrase returns the plaintext."""
        text = json.dumps(SAMPLE, ensure_ascii=False)
        assert decrypt_text(encrypt_text(text, "secret"), "secret") == text

    def test_xor_is_an_involution(self) -> None:
        """Applying the legacy cipher twice returns the input."""
        text = '{"t": [{"id": 1}]}'
        assert xor_cipher(xor_cipher(text, "k3y"), "k3y") == text

    def test_legacy_payload_is_detected(self) -> None:
        """Text that is not ivHex:ciphertextHex goes through the legacy path."""
        text = '{"t": []}'
        legacy = xor_cipher(text, "k3y")

        assert not is_current_format(legacy)
        assert decrypt_text(legacy, "k3y") == text


@pytest.mark.unit
class TestEncryptedFileStore:
    """Tests for EncryptedFileStore."""

    @pytest.fixture
    def file_store(self, temp_dir: Path) -> EncryptedFileStore:
        """Create a file store for testing."""
        return EncryptedFileStore(temp_dir / "nested" / "store.db", "secret")

    def test_missing_file_loads_empty(self, file_store: EncryptedFileStore) -> None:
        """A missing data file is an empty database."""
        assert file_store.load() == {}
        assert not file_store.exists()

    def test_blank_file_loads_empty(self, file_store: EncryptedFileStore) -> None:
        """A blank data file is an empty database."""
        file_store.path.parent.mkdir(parents=True)
        file_store.path.write_text("  \n")
        assert file_store.load() == {}

    def test_save_and_load(self, file_store: EncryptedFileStore) -> None:
        """Saved content loads back unchanged."""
        written = file_store.save(SAMPLE)

        assert written == file_store.size()
        assert file_store.load() == SAMPLE

    def test_file_is_not_plaintext(self, file_store: EncryptedFileStore) -> None:
        """Document values never appear in the file."""
        file_store.save(SAMPLE)
        raw = file_store.path.read_text()

        assert "juan@example.com" not in raw
        assert is_current_format(raw)
        assert not file_store.is_legacy_file()

    def test_wrong_key_raises_load_error(
        self, file_store: EncryptedFileStore, temp_dir: Path
    ) -> None:
        """A file encrypted with another passphrase cannot be loaded."""
        file_store.save(SAMPLE)
        other = EncryptedFileStore(file_store.path, "another-secret")

        with pytest.raises(LoadError):
            other.load()

    def test_corrupt_file_raises_load_error(self, file_store: EncryptedFileStore) -> None:
        """Garbage in the file is a LoadError."""
        file_store.path.parent.mkdir(parents=True)
        file_store.path.write_text("0123456789abcdef0123456789abcdef:00ff")

        with pytest.raises(LoadError):
            file_store.load()

    def test_wrong_shape_raises_load_error(self, file_store: EncryptedFileStore) -> None:
        """Decrypted JSON must map table names to arrays of objects."""
        file_store.path.parent.mkdir(parents=True)
        file_store.path.write_text(encrypt_text('{"t": [1, 2]}', "secret"))

        with pytest.raises(LoadError):
            file_store.load()

    def test_legacy_file_loads(self, file_store: EncryptedFileStore) -> None:
        """Files written with the XOR scheme are still readable."""
        file_store.path.parent.mkdir(parents=True)
        text = json.dumps(SAMPLE, indent=4, ensure_ascii=False)
        file_store.path.write_text(xor_cipher(text, "secret"), encoding="utf-8")

        assert file_store.is_legacy_file()
        assert file_store.load() == SAMPLE

        file_store.save(file_store.load())
        assert not file_store.is_legacy_file()

    def test_write_raw_replaces_file(self, file_store: EncryptedFileStore) -> None:
        """write_raw installs already-encoded bytes verbatim."""
        payload = file_store.encode({"t": [{"id": 9}]})
        file_store.write_raw(payload)

        assert file_store.path.read_bytes() == payload
        assert file_store.load() == {"t": [{"id": 9}]}

    def test_empty_passphrase_is_rejected(self, temp_dir: Path) -> None:
        """A store needs a passphrase."""
        with pytest.raises(ValueError):
            EncryptedFileStore(temp_dir / "x.db", "")
