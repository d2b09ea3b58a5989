"""Error taxonomy for the memory subsystem."""


class RagmemError(Exception):
    """Base class for all ragmem memory errors."""


class StoreError(RagmemError):
    """Datastore I/O failure."""


class NotFoundError(StoreError):
    """A row required by a write path does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class ValidationError(RagmemError):
    """Missing or invalid input (e.g. a document without a title)."""


class RankingUnavailable(RagmemError):
    """The lexical search backend failed."""
