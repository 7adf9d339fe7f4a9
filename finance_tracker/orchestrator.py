"""
Component Wiring for Finance Tracker

Builds a ready-to-use ledger from process configuration: storage backend,
settings store, audit logger, engine and CSV exporter.

DESIGN DECISION: Wiring happens here and only here. Every component takes
its collaborators as constructor arguments, so tests build their own graph
around an InMemoryStorage without touching the environment.
"""

from typing import NamedTuple, Optional

import structlog

from finance_tracker.audit import AuditLogger, configure_logging
from finance_tracker.config import EngineSettings, StorageBackend, get_settings
from finance_tracker.export import CsvExporter
from finance_tracker.ledger import LedgerEngine
from finance_tracker.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorage,
)
from finance_tracker.settings_store import SettingsStore


logger = structlog.get_logger(__name__)


class LedgerComponents(NamedTuple):
    engine: LedgerEngine
    settings_store: SettingsStore
    exporter: CsvExporter
    audit_logger: AuditLogger


def create_storage(settings: EngineSettings) -> KeyValueStorage:
    """Instantiate the configured storage backend."""
    if settings.storage_backend == StorageBackend.MEMORY:
        return InMemoryStorage()
    elif settings.storage_backend == StorageBackend.FILE:
        return JsonFileStorage(settings.data_dir)
    else:
        raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")


def create_ledger_components(
    settings: Optional[EngineSettings] = None,
    storage: Optional[KeyValueStorage] = None,
) -> LedgerComponents:
    """
    Factory function to create all ledger components.

    Args:
        settings: Process configuration. Defaults to get_settings().
        storage: Backend override. Defaults to the configured backend.

    Returns:
        LedgerComponents(engine, settings_store, exporter, audit_logger)
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    storage = storage if storage is not None else create_storage(settings)
    audit_logger = AuditLogger()
    settings_store = SettingsStore(
        storage,
        key_prefix=settings.key_prefix,
        default_currency=settings.default_currency,
        audit_logger=audit_logger,
    )
    engine = LedgerEngine(
        storage,
        settings_store=settings_store,
        audit_logger=audit_logger,
        key_prefix=settings.key_prefix,
    )

    logger.info(
        "ledger_ready",
        storage_backend=settings.storage_backend.value,
        key_prefix=settings.key_prefix,
    )
    return LedgerComponents(engine, settings_store, CsvExporter(engine), audit_logger)


def create_engine(settings: Optional[EngineSettings] = None) -> LedgerEngine:
    """Shortcut for callers that only need the engine."""
    return create_ledger_components(settings).engine
