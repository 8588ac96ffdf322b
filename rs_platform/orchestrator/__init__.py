# Public surface of the orchestrator package.
from ..id_map import ID_KEYS, matches  # single source of truth
from ._types import (
    AuthExpiredError,
    BatchResult,
    CategoryResult,
    CategoryStatus,
    LocalPersistenceError,
    RunSummary,
    SyncCancelled,
    SyncError,
    SyncGateway,
    TransportError,
)
from .facade import Orchestrator

__all__ = [
    "Orchestrator", "SyncGateway", "BatchResult", "CategoryResult", "CategoryStatus", "RunSummary",
    "SyncError", "AuthExpiredError", "TransportError", "LocalPersistenceError", "SyncCancelled",
    "ID_KEYS", "matches",
]
