"""Movie stats reconciliation."""

from bigpicture.services.reconciliation.errors import (
    AmbiguousTitleError,
    BatchInProgressError,
    PersistenceError,
    ReconciliationError,
)
from bigpicture.services.reconciliation.reconciler import (
    MovieResult,
    ReconcileStatus,
    StatReconciler,
)
from bigpicture.services.reconciliation.store import MovieRecord, StatsSnapshot, StatsStore

__all__ = [
    "AmbiguousTitleError",
    "BatchInProgressError",
    "MovieRecord",
    "MovieResult",
    "PersistenceError",
    "ReconcileStatus",
    "ReconciliationError",
    "StatReconciler",
    "StatsSnapshot",
    "StatsStore",
]
