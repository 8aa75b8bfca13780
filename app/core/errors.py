"""Domain error taxonomy.

Services raise these; app.api.errors turns them into HTTP responses.
Each carries a stable ``code`` so clients can branch without parsing
the human-readable message.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(MarketplaceError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ForbiddenError(MarketplaceError):
    code = "forbidden"


class InvalidTransitionError(MarketplaceError):
    code = "invalid_transition"

    def __init__(self, entity: str, current: str, attempted: str) -> None:
        super().__init__(
            f"{entity} cannot move from '{current}' to '{attempted}'"
        )
        self.current = current
        self.attempted = attempted


class ConflictError(MarketplaceError):
    code = "conflict"


class ValidationError(MarketplaceError):
    code = "validation_error"


class TransactionFailure(MarketplaceError):
    """The unit of work was rolled back for a non-domain reason.

    The message is deliberately generic; the underlying exception is
    chained for the server log only.
    """

    code = "transaction_failed"

    def __init__(self) -> None:
        super().__init__("The operation could not be completed; please retry")
