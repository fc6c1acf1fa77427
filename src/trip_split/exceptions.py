"""Custom exceptions for TripSplit."""


class TripSplitError(Exception):
    """Base exception for all TripSplit errors."""

    pass


class ConfigurationError(TripSplitError):
    """Raised when configuration is invalid or missing."""

    pass


class StorageError(TripSplitError):
    """Raised when the stored groups document cannot be read."""

    pass


class GroupNotFoundError(TripSplitError):
    """Raised when a group id does not match any stored group."""

    def __init__(self, group_id: str, message: str | None = None):
        self.group_id = group_id
        super().__init__(message or f"Group {group_id} not found")


class TransactionNotFoundError(TripSplitError):
    """Raised when a transaction id does not exist in its group."""

    def __init__(self, group_id: str, transaction_id: str):
        self.group_id = group_id
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found in group {group_id}")


class PersonNotFoundError(TripSplitError):
    """Raised when a name or id does not match anyone in the group."""

    def __init__(self, group_id: str, reference: str):
        self.group_id = group_id
        self.reference = reference
        super().__init__(f"No person matching '{reference}' in group {group_id}")


class InvalidGroupError(TripSplitError):
    """Raised when a group or person fails validation."""

    pass


class InvalidTransactionError(TripSplitError):
    """Raised when a transaction fails validation before it is stored."""

    pass
