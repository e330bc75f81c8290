"""Errors raised by the reconciliation pipeline."""


class ReconciliationError(Exception):
    """Base class for reconciliation pipeline errors."""


class PersistenceError(ReconciliationError):
    """The stats store could not be read or written."""


class BatchInProgressError(ReconciliationError):
    """Another batch run holds the batch lock."""


class AmbiguousTitleError(ReconciliationError):
    """A title search matched more than one movie in strict mode."""

    def __init__(self, query: str, candidates: list[str]):
        super().__init__(
            f"'{query}' matches {len(candidates)} movies: {', '.join(candidates)}"
        )
        self.query = query
        self.candidates = candidates
