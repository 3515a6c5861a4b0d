"""Plain (unencrypted) JSON import and export files.

The file layout matches the decrypted data file: an object mapping each
table name to an array of documents.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from dataorbit.domain.entities import Database
from dataorbit.ports.inbound.errors import LoadError, NotFoundError, SaveError


def read_tables(path: str | Path) -> dict[str, list[dict[str, Any]]]:
    """Read an import file.

    Raises:
        NotFoundError: If the file does not exist.
        LoadError: If it cannot be read or is not ``{table: [documents]}``.
    """
    source = Path(path)
    if not source.exists():
        raise NotFoundError(f"Import file not found: {source}")
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
        return Database.from_dict(data).to_dict()
    except OSError as e:
        raise LoadError(f"Cannot read import file {source}: {e}") from e
    except ValueError as e:
        raise LoadError(f"Malformed import file {source}: {e}") from e


def write_tables(path: str | Path, tables: dict[str, list[dict[str, Any]]]) -> int:
    """Write tables as indented JSON. Returns the number of bytes written.

    Raises:
        SaveError: If the file cannot be written.
    """
    target = Path(path)
    text = json.dumps(tables, indent=4, ensure_ascii=False)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    except OSError as e:
        raise SaveError(f"Cannot write export file {target}: {e}") from e
    return len(text.encode("utf-8"))
