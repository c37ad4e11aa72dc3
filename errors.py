class InvalidInput(ValueError):
    """Input rejected before any occurrence or mutation is planned."""


class ConsistencyViolation(ValueError):
    """A request would break a ledger invariant; retrying will not help."""


class NotFound(ValueError):
    """A referenced row does not exist for the current user."""


class StoreFailure(RuntimeError):
    """The persistence boundary failed while applying a batch."""
