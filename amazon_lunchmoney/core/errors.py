"""Exception types shared across the reconciliation pipeline."""


class ConfigurationError(Exception):
    """Problem with the run setup; fatal, raised before any ledger mutation."""


class RecordError(Exception):
    """A single record could not be processed; the run moves on to the next one."""


class ApplyError(RecordError):
    """Lunch Money did not apply an update to a transaction."""

    def __init__(self, transaction_id: int, detail: str):
        self.transaction_id = transaction_id
        self.detail = detail
        super().__init__(f"Failed to update transaction {transaction_id}: {detail}")


class LunchMoneyError(Exception):
    """Base exception for Lunch Money API errors."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Lunch Money API Error [{status_code}]: {detail}")
