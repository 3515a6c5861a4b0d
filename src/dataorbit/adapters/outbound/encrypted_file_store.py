"""Encrypted single-file persistence of the whole Database.

This adapter implements the SnapshotStore protocol. The Database is
serialized to JSON and encrypted as one blob; every save rewrites the
entire file.

File Format:
    Current scheme (ASCII text):
        <iv as 32 hex digits>:<ciphertext as hex>
    where the ciphertext is AES-256-CBC with PKCS#7 padding, the key is
    SHA-256 of the passphrase, and a fresh random IV is drawn per write.

    Legacy scheme (UTF-8 text):
        the JSON text with every character XOR-ed against the passphrase,
        cycling over the passphrase's length. Detected when the file is not
        in the current scheme; upgraded on the next save.

Thread Safety:
    Saves run under ``lock``. Anything that copies the live file (backups,
    restore) must hold the same lock so it never sees a half-written file.
"""

from __future__ import annotations

import hashlib
import json
import os
import re
import threading
from pathlib import Path
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from dataorbit.domain.entities import Database
from dataorbit.infrastructure.logging import get_logger
from dataorbit.infrastructure.tracing import trace_span
from dataorbit.ports.inbound.errors import LoadError, SaveError

IV_SIZE = 16
SEPARATOR = ":"
_CURRENT_FORMAT = re.compile(r"^([0-9a-fA-F]{32}):([0-9a-fA-F]+)$")

logger = get_logger(__name__)


def derive_key(passphrase: str) -> bytes:
    """32-byte AES key from a passphrase (SHA-256 digest)."""
    return hashlib.sha256(passphrase.encode("utf-8")).digest()


def encrypt_text(plaintext: str, passphrase: str) -> str:
    """Encrypt text into the ``ivHex:ciphertextHex`` format."""
    iv = os.urandom(IV_SIZE)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(derive_key(passphrase)), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return f"{iv.hex()}{SEPARATOR}{ciphertext.hex()}"


def decrypt_text(payload: str, passphrase: str) -> str:
    """Decrypt a payload in either the current or the legacy format.

    Raises:
        ValueError: If the payload cannot be decrypted with this passphrase.
    """
    match = _CURRENT_FORMAT.match(payload.strip())
    if match is None:
        return xor_cipher(payload, passphrase)

    iv = bytes.fromhex(match.group(1))
    ciphertext = bytes.fromhex(match.group(2))
    decryptor = Cipher(algorithms.AES(derive_key(passphrase)), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    plaintext = unpadder.update(padded) + unpadder.finalize()
    return plaintext.decode("utf-8")


def is_current_format(payload: str) -> bool:
    return _CURRENT_FORMAT.match(payload.strip()) is not None


def xor_cipher(text: str, passphrase: str) -> str:
    """Legacy reversible obfuscation; applying it twice returns the input."""
    if not passphrase:
        raise ValueError("passphrase must not be empty")
    key_length = len(passphrase)
    return "".join(
        chr(ord(char) ^ ord(passphrase[i % key_length])) for i, char in enumerate(text)
    )


def serialize(tables: dict[str, list[dict[str, Any]]]) -> bytes:
    """Canonical JSON text of the Database."""
    return json.dumps(tables, indent=4, ensure_ascii=False).encode("utf-8")


def deserialize(data: bytes) -> dict[str, list[dict[str, Any]]]:
    """Parse and shape-check JSON produced by serialize.

    Raises:
        ValueError: On malformed JSON or an unexpected structure.
    """
    return Database.from_dict(json.loads(data.decode("utf-8"))).to_dict()


class EncryptedFileStore:
    """File-based implementation of the SnapshotStore protocol.

    Attributes:
        path: The live data file.
        lock: Re-entrant lock guarding every write or copy of the file.
    """

    def __init__(self, path: str | Path, passphrase: str) -> None:
        """Initialize the store.

        Args:
            path: Data file location. Parent directories are created on save.
            passphrase: Encryption passphrase.
        """
        if not passphrase:
            raise ValueError("passphrase must not be empty")
        self._path = Path(path)
        self._passphrase = passphrase
        self.lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def size(self) -> int:
        return self._path.stat().st_size if self._path.exists() else 0

    def encode(self, tables: dict[str, list[dict[str, Any]]]) -> bytes:
        return encrypt_text(serialize(tables).decode("utf-8"), self._passphrase).encode("ascii")

    def decode(self, raw: bytes) -> dict[str, list[dict[str, Any]]]:
        """Decode the bytes of a data file.

        Raises:
            LoadError: If the bytes cannot be decrypted or parsed.
        """
        try:
            text = raw.decode("utf-8")
            if not text.strip():
                return {}
            return deserialize(decrypt_text(text, self._passphrase).encode("utf-8"))
        except ValueError as e:
            raise LoadError(f"Cannot decode data file: {e}") from e

    def load(self) -> dict[str, list[dict[str, Any]]]:
        """Read the live file; a missing or blank file is an empty Database."""
        with trace_span("dataorbit.load", {"file": self._path}):
            if not self._path.exists():
                logger.info("data_file_missing", file=str(self._path))
                return {}
            tables = self.decode_file(self._path)
            logger.info("data_file_loaded", file=str(self._path), tables=len(tables))
            return tables

    def decode_file(self, path: Path) -> dict[str, list[dict[str, Any]]]:
        try:
            raw = Path(path).read_bytes()
        except OSError as e:
            raise LoadError(f"Cannot read data file {path}: {e}") from e
        return self.decode(raw)

    def is_legacy_file(self) -> bool:
        """True if the live file exists, is non-empty and uses the XOR scheme."""
        if not self._path.exists():
            return False
        text = self._path.read_bytes().decode("utf-8", errors="replace")
        return bool(text.strip()) and not is_current_format(text)

    def save(self, tables: dict[str, list[dict[str, Any]]]) -> int:
        """Encrypt and atomically replace the live file."""
        with trace_span("dataorbit.save", {"file": self._path}):
            try:
                payload = self.encode(tables)
            except (TypeError, ValueError) as e:
                raise SaveError(f"Cannot serialize database: {e}") from e

            with self.lock:
                tmp = self._path.with_name(self._path.name + ".tmp")
                try:
                    self._path.parent.mkdir(parents=True, exist_ok=True)
                    with open(tmp, "wb") as f:
                        f.write(payload)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp, self._path)
                except OSError as e:
                    raise SaveError(f"Cannot write data file {self._path}: {e}") from e
            return len(payload)

    def write_raw(self, raw: bytes) -> None:
        """Replace the live file with already-encoded bytes (used by restore)."""
        with self.lock:
            tmp = self._path.with_name(self._path.name + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_bytes(raw)
                os.replace(tmp, self._path)
            except OSError as e:
                raise SaveError(f"Cannot write data file {self._path}: {e}") from e
