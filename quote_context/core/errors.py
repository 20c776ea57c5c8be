"""Exception types raised across the Quote Context engine."""


class QuoteContextError(Exception):
    """Base class for errors raised by this package."""


class StorageError(QuoteContextError):
    """A storage collaborator call failed.

    Raised for any failure reading or writing conversations, messages or
    specifications. The context engine lets it propagate from load-bearing
    reads (message retrieval) and logs it for advisory writes.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")
