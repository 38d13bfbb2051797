"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ConfigurationError(DomainException):
    """Card billing parameters are missing or invalid (closing day, due day, calendar)"""

    pass


class InvalidTransactionDataError(DomainException):
    """Transaction record is malformed beyond repair at the ingestion boundary"""

    def __init__(self, transaction_id: str, reason: str):
        super().__init__(f"Invalid transaction {transaction_id}: {reason}")
        self.transaction_id = transaction_id
        self.reason = reason


class ClassificationAmbiguous(DomainException):
    """
    Transaction could not be confidently classified as purchase, payment or refund.

    Soft error: callers default to `default_kind` and record the ambiguity on the
    audit trail instead of aborting the computation.
    """

    def __init__(self, transaction_id: str, reason: str, default_kind: str = "purchase"):
        super().__init__(f"Ambiguous classification for {transaction_id}: {reason}")
        self.transaction_id = transaction_id
        self.reason = reason
        self.default_kind = default_kind
