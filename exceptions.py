class LedgerError(Exception):
    """Base class for failures that must stop processing."""

    error_code = "LEDGER_ERROR"


class AmountOverflowError(LedgerError):
    """Raised when a balance would leave the representable amount range."""

    error_code = "AMOUNT_OVERFLOW"

    def __init__(self, operation: str, left, right):
        self.operation = operation
        self.left = left
        self.right = right
        super().__init__(f"Amount overflow: {left} {operation} {right}")
