"""
AuthStore - Error taxonomy.

Not-found is never an exception: mutations that match nothing are no-ops.
Store errors are raised by store clients and annotated by the adapter with
the model and operation that triggered them.
"""

from __future__ import annotations


class AdapterError(Exception):
    """Base class for all adapter errors."""


class MalformedConditionError(AdapterError, ValueError):
    """A condition the predicate compiler cannot map to a store expression."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)


class ImmutableFieldError(AdapterError, ValueError):
    """An update tried to change an identity or key attribute."""

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Cannot update key attributes: {', '.join(fields)}")


class StoreError(AdapterError):
    """
    A failure reported by the store client.

    `model` and `operation` are filled in by the adapter as the error
    passes through it.
    """

    def __init__(self, message: str, code: str | None = None):
        self.code = code
        self.model: str | None = None
        self.operation: str | None = None
        super().__init__(message)

    def add_context(self, model: str, operation: str) -> None:
        if self.model is None:
            self.model = model
            self.operation = operation

    def __str__(self) -> str:
        message = super().__str__()
        if self.model:
            return f"{self.operation} on '{self.model}' failed: {message}"
        return message


class StoreThrottledError(StoreError):
    """The store rejected the request for exceeding provisioned or account limits."""


class StoreUnavailableError(StoreError):
    """The store could not be reached or returned a server-side failure."""


class BatchPartialFailure(AdapterError):
    """
    A bulk operation stopped after some items were already applied.

    Nothing is rolled back; `completed` is the number of confirmed
    completions out of `total`.
    """

    def __init__(self, model: str, operation: str, completed: int, total: int):
        self.model = model
        self.operation = operation
        self.completed = completed
        self.total = total
        super().__init__(
            f"{operation} on '{model}' partially failed: "
            f"{completed}/{total} items completed"
        )
