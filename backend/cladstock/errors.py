# Overview: Error taxonomy shared by the storage backends and services.

"""
Three failure families cross module boundaries:

- NotConfiguredError: no persistence backend is configured. Raised by every
  write; reads on the same backend degrade to empty results instead.
- NotFoundError: an operation that needs an existing row did not find it.
  Plain CRUD lookups return None/False rather than raising this.
- ValidationError (validation.py): a client supplied bad input.

Service modules add their own narrower errors (AssistantError, ...).
"""


class NotConfiguredError(RuntimeError):
    """Raised when a write is attempted without a persistence backend."""

    def __init__(self, message: str = "Database not configured"):
        super().__init__(message)


class NotFoundError(LookupError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")
