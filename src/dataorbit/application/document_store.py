"""DataOrbit - unified entry point for the document store.

This module provides the DataOrbit class that owns every component of a
store instance: the Database aggregate, its derived projections (hash
indexes, uniqueness registry, primary-key counters), the encrypted file,
backups, and the transaction manager.

Usage:
    from dataorbit import DataOrbit

    with DataOrbit({"file": "data/app.db", "encryptionKey": "s3cret",
                    "tables": {"users": {"unique": ["email"]}}}) as db:
        user = db.insert("users", {"name": "Ana", "email": "ana@example.com"})
        db.update("users", user["id"], {"name": "Ana María"})
        adults = db.find("users", {"age": {"$gte": 18}})

Persistence:
    Every successful mutation rewrites the whole encrypted file before it
    returns. If that write fails, SaveError is raised but the mutation stays
    applied in memory; memory and disk disagree until the next successful
    save. Only transaction() rolls memory back on failure.
"""

from __future__ import annotations

import copy
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generator, Mapping, Sequence, TypeVar

from pydantic import ValidationError as PydanticValidationError

from dataorbit.adapters.outbound.encrypted_file_store import EncryptedFileStore
from dataorbit.adapters.outbound.file_backup_manager import FileBackupManager
from dataorbit.adapters.outbound.json_transfer import read_tables, write_tables
from dataorbit.application.backup_service import BackupService
from dataorbit.domain.entities import (
    CREATED_AT,
    METADATA_FIELDS,
    UPDATED_AT,
    Database,
    Document,
    utc_timestamp,
)
from dataorbit.domain.services import (
    MISSING,
    HashIndexManager,
    PrimaryKeyAllocator,
    TransactionManager,
    UniquenessRegistry,
    compile_query,
    normalize_document,
    resolve_field,
    run_pipeline,
    validate_document,
)
from dataorbit.domain.services.query_engine import values_equal
from dataorbit.domain.value_objects import freeze_value
from dataorbit.infrastructure.config import StoreConfig, TableConfig, load_config
from dataorbit.infrastructure.logging import get_logger
from dataorbit.infrastructure.metrics import MetricsRegistry, get_metrics
from dataorbit.infrastructure.tracing import trace_span
from dataorbit.ports.inbound.errors import (
    ConfigurationError,
    DataOrbitError,
    NotFoundError,
    SaveError,
    UniquenessError,
    ValidationError,
)
from dataorbit.ports.outbound import BackupStore, SnapshotStore

T = TypeVar("T")

IMPORT_MODES = ("merge", "replace")


@dataclass
class ImportResult:
    """Outcome of import_from_json."""

    mode: str
    inserted: int = 0
    replaced: int = 0
    skipped: int = 0


class DataOrbit:
    """Embedded encrypted document store.

    One instance owns one data file. Operations are synchronous and run to
    completion; the only background activity is the optional periodic
    backup service, which shares the file lock with saves.
    """

    def __init__(
        self,
        config: StoreConfig | Mapping[str, Any] | None = None,
        *,
        metrics: MetricsRegistry | None = None,
        **overrides: Any,
    ) -> None:
        """Open (or create) a store.

        Args:
            config: StoreConfig or a mapping in the documented shape
                (camelCase or snake_case keys).
            metrics: Metrics registry (defaults to the process-wide one).
            **overrides: Individual settings, e.g. ``file=...``.

        Raises:
            ConfigurationError: If the file path or encryption key is missing.
            LoadError: If the existing data file cannot be decoded.
        """
        self._config = load_config(config, **overrides)
        self._metrics = metrics or get_metrics()
        self._logger = get_logger(__name__, file=str(self._config.file))

        self._file_store: SnapshotStore = EncryptedFileStore(
            self._config.file, self._config.encryption_key.get_secret_value()
        )
        self._backups: BackupStore = FileBackupManager(
            self._config.resolved_backup_dir, lock=self._file_store.lock
        )
        self._table_configs: dict[str, TableConfig] = dict(self._config.tables)

        self._database = Database()
        self._indexes = HashIndexManager()
        self._unique = UniquenessRegistry()
        self._keys = PrimaryKeyAllocator()
        self._transactions = TransactionManager(
            self._database,
            rebuild_derived=lambda: self._rebuild_all(keep_progress=True),
            persist=self._save,
            keys=self._keys,
        )
        self._backup_service = BackupService(self._scheduled_backup, self._config.backups)

        self._load()

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def path(self) -> Path:
        """Location of the encrypted data file."""
        return self._file_store.path

    @property
    def backup_dir(self) -> Path:
        return self._backups.backup_dir

    def create_table(
        self, name: str, config: TableConfig | Mapping[str, Any] | None = None
    ) -> bool:
        """Create an empty table with its indexes, registry and counter.

        Args:
            name: Table name.
            config: Optional table configuration for this store instance.

        Returns:
            True if created, False if the table already exists.
        """
        with self._operation("create_table"):
            self._check_table_name(name)
            if self._database.has_table(name):
                return False
            if config is not None:
                self._table_configs[name] = self._parse_table_config(name, config)

            self._database.ensure_table(name)
            self._rebuild_table(name)
            self._logger.info("table_created", table=name)
            self._persist()
            return True

    def drop_table(self, name: str) -> bool:
        """Discard a table with its indexes, registry and counter."""
        with self._operation("drop_table"):
            if not self._database.drop_table(name):
                return False
            self._discard_table_state(name)
            self._logger.info("table_dropped", table=name)
            self._persist()
            return True

    def list_tables(self) -> list[str]:
        return self._database.table_names()

    def insert(self, table: str, document: Mapping[str, Any]) -> Document:
        """Insert a document, assigning a primary key when absent.

        Returns:
            A copy of the stored document (with key and timestamps).

        Raises:
            ValidationError: Schema violation; nothing is changed.
            UniquenessError: Duplicate primary key or unique value; nothing
                is changed.
            SaveError: The write failed; the insert stays applied in memory.
        """
        with self._operation("insert"):
            self._check_table_name(table)
            if not isinstance(document, Mapping):
                raise ValidationError(
                    f"Document must be a mapping, got {type(document).__name__}", table=table
                )

            created = self._database.ensure_table(table)
            if created:
                self._rebuild_table(table)
            try:
                candidate = self._prepare_insert(table, document)
            except DataOrbitError:
                if created:
                    self._database.drop_table(table)
                    self._discard_table_state(table)
                raise

            documents = self._database.table(table)
            position = len(documents)
            documents.append(candidate)
            self._indexes.add_document(table, candidate, position)
            self._unique.add(table, candidate)
            self._metrics.documents.labels(table=table).set(len(documents))
            self._logger.debug(
                "document_inserted",
                table=table,
                key=candidate[self._table_config(table).primary_key],
            )
            self._persist()
            return copy.deepcopy(candidate)

    def update(self, table: str, key: Any, patch: Mapping[str, Any]) -> Document | None:
        """Merge a patch into the document with the given primary key.

        Returns:
            A copy of the updated document, or None if no document has the key.

        Raises:
            ValidationError: The patch changes the primary key or the merged
                document violates the schema; nothing is changed.
            UniquenessError: A changed unique field collides; nothing is changed.
        """
        with self._operation("update"):
            if not isinstance(patch, Mapping):
                raise ValidationError(
                    f"Patch must be a mapping, got {type(patch).__name__}", table=table
                )
            located = self._locate(table, key)
            if located is None:
                return None
            position, current = located

            config = self._table_config(table)
            primary_key = config.primary_key
            changes = normalize_document(copy.deepcopy(dict(patch)))
            if primary_key in changes and not values_equal(
                changes[primary_key], current.get(primary_key)
            ):
                raise ValidationError(
                    f"Primary key '{primary_key}' of table '{table}' cannot be changed",
                    table=table,
                    field=primary_key,
                )
            changes.pop(CREATED_AT, None)

            merged = {**current, **changes, UPDATED_AT: utc_timestamp()}
            validate_document(table, merged, config.field_schema)
            self._unique.check_update(table, current, merged)

            self._indexes.remove_document(table, current, position)
            self._database.table(table)[position] = merged
            self._indexes.add_document(table, merged, position)
            self._unique.replace(table, current, merged)
            self._logger.debug("document_updated", table=table, key=key)
            self._persist()
            return copy.deepcopy(merged)

    def delete(self, table: str, key: Any) -> bool:
        """Delete the document with the given primary key.

        Returns:
            True if deleted, False if no document has the key.
        """
        with self._operation("delete"):
            located = self._locate(table, key)
            if located is None:
                return False
            position, current = located

            documents = self._database.table(table)
            self._unique.remove(table, current)
            self._indexes.remove_document(table, current, position)
            del documents[position]
            # Later documents shifted down by one; patching is not enough.
            self._indexes.rebuild_table(table, documents)
            self._metrics.documents.labels(table=table).set(len(documents))
            self._logger.debug("document_deleted", table=table, key=key)
            self._persist()
            return True

    def reset(self) -> None:
        """Empty the whole store (configured tables are recreated empty)."""
        with self._operation("reset"):
            self._keys.clear()
            self._replace_database({})
            self._logger.info("store_reset")
            self._persist()

    def find_all(self, table: str) -> list[Document]:
        """Every document of a table, in insertion order."""
        with self._operation("find_all"):
            return copy.deepcopy(self._database.table(table))

    def find(self, table: str, query: Mapping[str, Any] | None = None) -> list[Document]:
        """Documents matching a query, in insertion order.

        Raises:
            InvalidQueryError: On unknown operators or malformed queries.
        """
        with self._operation("find"):
            documents = self._database.table(table)
            return [
                copy.deepcopy(documents[position])
                for position in self._matching_positions(table, query)
            ]

    def find_one(self, table: str, query: Mapping[str, Any] | None = None) -> Document | None:
        with self._operation("find_one"):
            positions = self._matching_positions(table, query, first_only=True)
            if not positions:
                return None
            return copy.deepcopy(self._database.table(table)[positions[0]])

    def find_by_id(self, table: str, key: Any) -> Document | None:
        with self._operation("find_by_id"):
            located = self._locate(table, key)
            return copy.deepcopy(located[1]) if located else None

    def get_all_columns(self, table: str, column: str) -> list[Any]:
        """One value of ``column`` per document (None where absent)."""
        with self._operation("get_all_columns"):
            values = []
            for document in self._database.table(table):
                value = resolve_field(document, column)
                values.append(None if value is MISSING else copy.deepcopy(value))
            return values

    def count(self, table: str, query: Mapping[str, Any] | None = None) -> int:
        with self._operation("count"):
            if query is None:
                return len(self._database.table(table))
            return len(self._matching_positions(table, query))

    def aggregate(self, table: str, pipeline: Sequence[Any]) -> list[Document]:
        """Run an aggregation pipeline over a table.

        Raises:
            InvalidQueryError: On unknown stages, accumulators or operators.
        """
        with self._operation("aggregate"), trace_span(
            "dataorbit.aggregate", {"table": table}
        ):
            return run_pipeline(self._database.table(table), pipeline)

    def create_index(self, table: str, field: str) -> bool:
        """Build a hash index on a field of an existing table.

        Returns:
            True if created, False if the table is unknown or the index exists.
        """
        with self._operation("create_index"):
            if not self._database.has_table(table):
                return False
            created = self._indexes.create_index(table, field, self._database.table(table))
            if created:
                self._logger.info("index_created", table=table, field=field)
            return created

    def drop_index(self, table: str, field: str) -> bool:
        with self._operation("drop_index"):
            dropped = self._indexes.drop_index(table, field)
            if dropped:
                self._logger.info("index_dropped", table=table, field=field)
            return dropped

    def transaction(self, fn: Callable[[DataOrbit], T]) -> T:
        """Run ``fn(store)`` all-or-nothing.

        On success the store is persisted once and fn's result returned. If
        fn raises, document content is restored to the state before the
        call, indexes and unique registries are rebuilt from it, nothing is
        written to disk, and the exception propagates.
        """
        with self._operation("transaction"), trace_span("dataorbit.transaction"):
            rolled_back_before = self._transactions.get_stats().rolled_back_total
            try:
                result = self._transactions.run(lambda: fn(self))
            except BaseException as e:
                if self._transactions.get_stats().rolled_back_total > rolled_back_before:
                    self._metrics.transactions_total.labels(status="rollback").inc()
                    self._logger.warning(
                        "transaction_rolled_back", error=f"{type(e).__name__}: {e}"
                    )
                else:
                    self._metrics.transactions_total.labels(status="save_failed").inc()
                raise
            self._metrics.transactions_total.labels(status="commit").inc()
            return result

    def backup(self) -> Path:
        """Copy the encrypted data file into the backup directory.

        If nothing has been persisted yet, the current state is saved first.

        Returns:
            Path of the new backup file.
        """
        with self._operation("backup"), trace_span("dataorbit.backup"):
            return self._copy_live_file(save_missing=True)

    def _scheduled_backup(self) -> Path | None:
        """Backup taken from the service thread.

        Only the file on disk is copied; in-memory state is never read, so a
        store that has not been persisted yet is skipped.
        """
        with self._operation("backup"), trace_span("dataorbit.scheduled_backup"):
            return self._copy_live_file(save_missing=False)

    def _copy_live_file(self, save_missing: bool) -> Path | None:
        try:
            with self._file_store.lock:
                if not self._file_store.exists():
                    if not save_missing:
                        return None
                    self._save()
                path = self._backups.backup(self._file_store.path)
        except DataOrbitError:
            self._metrics.backups_total.labels(status="error").inc()
            raise
        self._metrics.backups_total.labels(status="success").inc()
        return path

    def list_backups(self) -> list[Path]:
        """Backup files, oldest first."""
        return self._backups.list_backups()

    def restore(self, backup_file: str | Path) -> None:
        """Replace the store's content with a backup file.

        A safety backup of the current file is taken first.

        Raises:
            NotFoundError: If the backup file does not exist.
            LoadError: If it cannot be decoded with this store's key (the
                live file is left untouched).
        """
        with self._operation("restore"), trace_span("dataorbit.restore"):
            if self._transactions.in_transaction:
                raise DataOrbitError("restore cannot run inside a transaction")
            source = Path(backup_file)
            if not source.is_file():
                raise NotFoundError(f"Backup file not found: {source}")

            tables = self._file_store.decode_file(source)
            with self._file_store.lock:
                safety = None
                if self._file_store.exists():
                    safety = self._backups.backup(self._file_store.path)
                self._file_store.write_raw(source.read_bytes())

            self._replace_database(tables)
            self._logger.info(
                "store_restored",
                backup=str(source),
                safety_backup=str(safety) if safety else None,
            )

    def import_from_json(
        self, path: str | Path, mode: str = "merge", overwrite: bool = False
    ) -> ImportResult:
        """Import tables from a plain JSON file.

        Args:
            path: File holding ``{table: [documents]}``.
            mode: "merge" appends documents with new primary keys and handles
                collisions per ``overwrite``; "replace" discards the whole
                current content.
            overwrite: In merge mode, replace existing documents on primary
                key collision instead of skipping the incoming ones.

        Raises:
            ValidationError: Unknown mode.
            NotFoundError / LoadError: Missing or malformed source file.
            UniquenessError: The imported content breaks a unique constraint;
                nothing is changed.
        """
        with self._operation("import"), trace_span(
            "dataorbit.import", {"mode": mode, "path": path}
        ):
            if mode not in IMPORT_MODES:
                raise ValidationError(f"Unknown import mode '{mode}'; use one of {IMPORT_MODES}")
            incoming = read_tables(path)

            result = ImportResult(mode=mode)
            if mode == "replace":
                candidate = {
                    name: [normalize_document(document) for document in documents]
                    for name, documents in incoming.items()
                }
                result.inserted = sum(len(documents) for documents in candidate.values())
            else:
                candidate = self._database.snapshot()
                for name, documents in incoming.items():
                    self._merge_table(candidate, name, documents, overwrite, result)

            self._complete_imported(candidate, keep_progress=mode == "merge")
            for name, documents in candidate.items():
                violation = UniquenessRegistry.find_violation(
                    name, self._constrained_fields(name), documents
                )
                if violation is not None:
                    raise violation

            self._replace_database(candidate, keep_progress=mode == "merge")
            self._logger.info(
                "import_completed",
                source=str(path),
                mode=mode,
                inserted=result.inserted,
                replaced=result.replaced,
                skipped=result.skipped,
            )
            self._persist()
            return result

    def export_to_json(
        self,
        path: str | Path,
        tables: Sequence[str] | None = None,
        exclude_metadata: bool = False,
    ) -> dict[str, int]:
        """Write tables as plain (decrypted) JSON.

        Args:
            path: Output file.
            tables: Tables to export (default: all). Unknown names are skipped.
            exclude_metadata: Strip created_at / updated_at from every document.

        Returns:
            Number of documents exported per table.
        """
        with self._operation("export"), trace_span(
            "dataorbit.export", {"path": path, "tables": tables}
        ):
            names = list(tables) if tables is not None else self._database.table_names()
            exported: dict[str, list[Document]] = {}
            for name in names:
                if not self._database.has_table(name):
                    self._logger.warning("export_table_missing", table=name)
                    continue
                documents = copy.deepcopy(self._database.table(name))
                if exclude_metadata:
                    for document in documents:
                        for field_name in METADATA_FIELDS:
                            document.pop(field_name, None)
                exported[name] = documents

            write_tables(path, exported)
            counts = {name: len(documents) for name, documents in exported.items()}
            self._logger.info("export_completed", target=str(path), tables=counts)
            return counts

    def start_backup_service(self) -> None:
        """Start periodic backups for every configured backup policy."""
        self._backup_service.start()

    def close(self) -> None:
        """Stop background work. The data file is already up to date."""
        self._backup_service.stop()

    def stats(self) -> dict[str, Any]:
        """Store statistics."""
        tables = {}
        for name, documents in self._database:
            config = self._table_config(name)
            tables[name] = {
                "documents": len(documents),
                "primary_key": config.primary_key,
                "indexes": self._indexes.indexed_fields(name),
                "unique": list(config.unique),
                "next_id": self._keys.peek(name),
            }

        txn_stats = self._transactions.get_stats()
        index_stats = self._indexes.get_stats()
        return {
            "file": str(self._file_store.path),
            "file_size_bytes": self._file_store.size(),
            "table_count": len(tables),
            "total_documents": self._database.total_documents(),
            "tables": tables,
            "indexes": {
                "count": index_stats.num_indexes,
                "entries": index_stats.total_entries,
                "lookups": index_stats.lookup_count,
            },
            "transactions": {
                "committed": txn_stats.committed_total,
                "rolled_back": txn_stats.rolled_back_total,
            },
            "backups": {
                "directory": str(self._backups.backup_dir),
                "count": len(self._backups.list_backups()),
                "service_running": self._backup_service.is_running,
                "scheduled_completed": self._backup_service.completed,
                "scheduled_failed": self._backup_service.failed,
                "scheduled_skipped": self._backup_service.skipped,
            },
            "connection_timeout": self._config.connection_timeout,
        }

    def __enter__(self) -> DataOrbit:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @contextmanager
    def _operation(self, name: str) -> Generator[None, None, None]:
        start = time.perf_counter()
        status = "success"
        try:
            yield
        except BaseException:
            status = "error"
            raise
        finally:
            self._metrics.operations_total.labels(operation=name, status=status).inc()
            self._metrics.operation_latency_seconds.labels(operation=name).observe(
                time.perf_counter() - start
            )

    def _load(self) -> None:
        tables = self._file_store.load()
        if self._file_store.is_legacy_file():
            self._logger.warning("legacy_format_detected", action="upgraded on next save")
        self._replace_database(tables)

    def _persist(self) -> None:
        if self._transactions.in_transaction:
            return
        self._save()

    def _save(self) -> None:
        start = time.perf_counter()
        try:
            written = self._file_store.save(self._database.to_dict())
        except SaveError as e:
            self._metrics.saves_total.labels(status="error").inc()
            self._logger.error("save_failed", error=str(e))
            raise
        self._metrics.saves_total.labels(status="success").inc()
        self._metrics.save_latency_seconds.observe(time.perf_counter() - start)
        self._logger.debug("database_saved", bytes=written)

    def _table_config(self, name: str) -> TableConfig:
        config = self._table_configs.get(name)
        if config is None:
            config = self._table_configs[name] = TableConfig()
        return config

    @staticmethod
    def _parse_table_config(name: str, config: TableConfig | Mapping[str, Any]) -> TableConfig:
        if isinstance(config, TableConfig):
            return config
        try:
            return TableConfig.model_validate(config)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration for table '{name}': {e}") from e

    @staticmethod
    def _check_table_name(name: Any) -> None:
        if not isinstance(name, str) or not name:
            raise ValidationError(f"Table name must be a non-empty string, got {name!r}")

    def _constrained_fields(self, table: str) -> list[str]:
        config = self._table_config(table)
        return [config.primary_key, *config.unique]

    def _rebuild_table(self, name: str, keep_progress: bool = False) -> None:
        """Recompute every projection of one table from its documents."""
        config = self._table_config(name)
        documents = self._database.table(name)
        for field_name in (config.primary_key, *config.indexes):
            self._indexes.create_index(name, field_name)
        self._indexes.rebuild_table(name, documents)
        self._unique.rebuild_table(name, config.unique, documents)
        self._keys.rebuild_table(name, config.primary_key, documents, keep_progress)
        self._metrics.documents.labels(table=name).set(len(documents))

    def _rebuild_all(self, keep_progress: bool = False) -> None:
        for name in self._indexes.table_names():
            if not self._database.has_table(name):
                self._indexes.drop_table(name)
                self._unique.drop_table(name)
                if not keep_progress:
                    self._keys.drop_table(name)
                self._metrics.documents.labels(table=name).set(0)
        for name in self._database.table_names():
            self._rebuild_table(name, keep_progress)

    def _discard_table_state(self, name: str) -> None:
        self._indexes.drop_table(name)
        self._unique.drop_table(name)
        self._keys.drop_table(name)
        self._metrics.documents.labels(table=name).set(0)

    def _replace_database(
        self, tables: dict[str, list[Document]], keep_progress: bool = False
    ) -> None:
        """Swap in new content; configured tables always exist afterwards."""
        self._database.restore(tables)
        for name in self._config.tables:
            self._database.ensure_table(name)
        self._rebuild_all(keep_progress)

    def _prepare_insert(self, table: str, document: Mapping[str, Any]) -> Document:
        """Build the document to store, raising before any state changes."""
        config = self._table_config(table)
        primary_key = config.primary_key
        candidate = normalize_document(copy.deepcopy(dict(document)))

        key = candidate.get(primary_key)
        supplied = key is not None
        if not supplied:
            key = candidate[primary_key] = self._keys.peek(table)

        validate_document(table, candidate, config.field_schema)
        if supplied and self._locate(table, key) is not None:
            raise UniquenessError(table, primary_key, key)
        self._unique.check_insert(table, candidate)

        if supplied:
            self._keys.observe(table, key)
        else:
            self._keys.next_key(table)
        now = utc_timestamp()
        candidate[CREATED_AT] = now
        candidate[UPDATED_AT] = now
        return candidate

    def _locate(self, table: str, key: Any) -> tuple[int, Document] | None:
        """Position and document holding a primary key value."""
        if key is None:
            return None
        primary_key = self._table_config(table).primary_key
        documents = self._database.table(table)

        positions = self._indexes.lookup(table, primary_key, key)
        if positions is None:
            candidates: Any = range(len(documents))
        else:
            self._metrics.index_lookups_total.labels(table=table).inc()
            candidates = positions

        for position in candidates:
            if position < len(documents) and values_equal(
                documents[position].get(primary_key), key
            ):
                return position, documents[position]
        return None

    def _matching_positions(
        self, table: str, query: Mapping[str, Any] | None, first_only: bool = False
    ) -> list[int]:
        predicate = compile_query(query)
        documents = self._database.table(table)

        equality = predicate.single_equality()
        positions = None
        if equality is not None:
            positions = self._indexes.lookup(table, equality.field, equality.value)
            if positions is not None:
                self._metrics.index_lookups_total.labels(table=table).inc()
        if positions is None:
            positions = range(len(documents))

        matched = []
        for position in positions:
            if predicate.matches(documents[position]):
                matched.append(position)
                if first_only:
                    break
        return matched

    def _merge_table(
        self,
        candidate: dict[str, list[Document]],
        name: str,
        documents: list[Document],
        overwrite: bool,
        result: ImportResult,
    ) -> None:
        primary_key = self._table_config(name).primary_key
        target = candidate.setdefault(name, [])
        positions = {
            freeze_value(document[primary_key]): position
            for position, document in enumerate(target)
            if document.get(primary_key) is not None
        }
        for document in documents:
            incoming = normalize_document(copy.deepcopy(document))
            key = incoming.get(primary_key)
            if key is None:
                target.append(incoming)
                result.inserted += 1
                continue
            position = positions.get(freeze_value(key))
            if position is None:
                positions[freeze_value(key)] = len(target)
                target.append(incoming)
                result.inserted += 1
            elif overwrite:
                target[position] = incoming
                result.replaced += 1
            else:
                result.skipped += 1

    def _complete_imported(
        self, candidate: dict[str, list[Document]], keep_progress: bool
    ) -> None:
        """Give imported documents missing keys and timestamps."""
        allocator = PrimaryKeyAllocator()
        for name, documents in candidate.items():
            primary_key = self._table_config(name).primary_key
            if keep_progress:
                allocator.observe(name, self._keys.peek(name) - 1)
            allocator.rebuild_table(name, primary_key, documents, keep_progress=True)
            now = utc_timestamp()
            for document in documents:
                if document.get(primary_key) is None:
                    document[primary_key] = allocator.next_key(name)
                document.setdefault(CREATED_AT, now)
                document.setdefault(UPDATED_AT, now)
