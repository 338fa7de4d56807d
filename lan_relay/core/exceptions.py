"""
Service Exceptions

Errors raised by the store and repositories. The gateway maps each of them
to a client-visible status code; none of them may terminate the process,
except StoreInitializationError which aborts startup.
"""

from typing import Optional


class RelayServiceError(Exception):
    """Base class for all service errors."""

    status_code: int = 400
    error: str = "Bad Request"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class MalformedRequestError(RelayServiceError):
    """Request body missing, not decodable, or of the wrong shape."""

    error = "Malformed Request"


class MalformedOrderError(MalformedRequestError):
    """Order payload lacks tableId or items."""

    error = "Malformed Order"


class DuplicateEntityError(RelayServiceError):
    """Insert collided with an existing primary key."""

    status_code = 409
    error = "Conflict"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} '{entity_id}' already exists")
        self.entity = entity
        self.entity_id = entity_id


class StoreInitializationError(RelayServiceError):
    """Store could not be opened or its schema created."""

    status_code = 500
    error = "Store Unavailable"


class PersistenceError(RelayServiceError):
    """Store rejected or failed a write for a reason other than a duplicate key."""

    status_code = 503
    error = "Store Unavailable"
