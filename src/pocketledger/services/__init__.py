"""Service module exports."""

from . import (
    analytics,
    budgeting,
    bulk_operations,
    export_csv,
    import_csv,
    ledger_service,
    normalizer,
    sync_tracker,
    watcher,
)

__all__ = [
    "analytics",
    "budgeting",
    "bulk_operations",
    "export_csv",
    "import_csv",
    "ledger_service",
    "normalizer",
    "sync_tracker",
    "watcher",
]
