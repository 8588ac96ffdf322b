# rs_platform/errors.py
# Error taxonomy shared by the library, the orchestrator and the gateways.
from __future__ import annotations


class SyncError(RuntimeError): ...
class AuthExpiredError(SyncError): ...          # second 401 after one refresh + retry
class TransportError(SyncError): ...            # network/protocol failure; the category aborts
class LocalPersistenceError(SyncError): ...     # one item failed to save; the batch continues
class SyncCancelled(SyncError): ...


__all__ = ["SyncError", "AuthExpiredError", "TransportError", "LocalPersistenceError", "SyncCancelled"]
