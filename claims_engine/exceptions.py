"""Engine exceptions.

Expected domain problems are returned as violations or transition
errors. Only misuse and misconfiguration raise.
"""


class EngineError(Exception):
    """Base class for claims engine errors."""
    pass


class UnknownRuleContext(EngineError):
    """Raised when no rule set is registered for a (kind, context) pair."""

    def __init__(self, kind, context):
        self.kind = kind
        self.context = context
        super().__init__(f"No rule set registered for kind={kind!r} context={context!r}")


class ClaimNotEditableError(EngineError):
    """Raised when service lines are edited on a claim that has left draft."""
    pass


class ReconciliationInvariantError(EngineError):
    """Raised when a payment record's status contradicts its variance."""
    pass


class ConcurrentTransitionError(EngineError):
    """Raised when two copies of an entity took different transitions from a shared version."""
    pass
