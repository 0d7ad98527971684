"""General-ledger backend adapters."""

from wire_recon.ledger.base import (
    LedgerBackend,
    LedgerUnavailableError,
    PostingContext,
    PostResult,
    ReversalResult,
)
from wire_recon.ledger.faults import (
    AlwaysFail,
    FailOnReferences,
    FaultStrategy,
    NoFaults,
    RandomFaults,
    ScriptedFaults,
)
from wire_recon.ledger.simulator import LedgerSimulator

__all__ = [
    "LedgerBackend",
    "LedgerUnavailableError",
    "PostingContext",
    "PostResult",
    "ReversalResult",
    "AlwaysFail",
    "FailOnReferences",
    "FaultStrategy",
    "NoFaults",
    "RandomFaults",
    "ScriptedFaults",
    "LedgerSimulator",
]
