"""Custom exceptions for Household Ledger."""


class LedgerError(Exception):
    """Base exception for all Household Ledger errors."""

    pass


class ConfigurationError(LedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class SplitValidationError(LedgerError):
    """Raised when split or transaction input is malformed.

    Always raised before anything is written to the store.
    """

    pass


class TransactionNotFoundError(LedgerError):
    """Raised when a referenced transaction does not exist."""

    def __init__(self, transaction_id: str, message: str | None = None):
        self.transaction_id = transaction_id
        super().__init__(message or f"Transaction {transaction_id} not found")


class SplitPortionError(LedgerError):
    """Raised when a split portion is targeted by a direct edit or delete.

    Portions only change through reconciliation of their main transaction.
    """

    def __init__(self, transaction_id: str, main_transaction_id: str | None = None):
        self.transaction_id = transaction_id
        self.main_transaction_id = main_transaction_id
        super().__init__(
            f"Transaction {transaction_id} is a split portion of "
            f"{main_transaction_id}; edit the main transaction instead"
        )


class HouseholdNotFoundError(LedgerError):
    """Raised when a referenced household does not exist."""

    pass


class CategoryNotFoundError(LedgerError):
    """Raised when a referenced category does not exist."""

    pass


class StoreError(LedgerError):
    """Base class for persistence-related errors."""

    pass


class DocumentNotFoundError(StoreError):
    """Raised when updating a document that does not exist."""

    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"Document {collection}/{document_id} not found")


class DocumentDecodeError(StoreError):
    """Raised when a stored document does not match the expected schema."""

    def __init__(self, document_id: str | None, message: str):
        self.document_id = document_id
        super().__init__(f"Malformed document {document_id}: {message}")


class BackendUnavailableError(StoreError):
    """Raised when the document store cannot be reached."""

    pass
