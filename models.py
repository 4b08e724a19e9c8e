from pydantic import BaseModel, Field, field_serializer, field_validator
from enum import Enum
from typing import Dict, List, Literal, Optional
from datetime import datetime
from decimal import Decimal

from amount import AMOUNT_CONTEXT, ZERO, format_amount, parse_amount

MAX_CLIENT_ID = 2 ** 16 - 1
MAX_TRANSACTION_ID = 2 ** 32 - 1


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"


class Transaction(BaseModel):
    """A single event from the ordered transaction stream.

    The amount is only meaningful for deposits and withdrawals. A missing
    or negative amount is not a parsing error: the processor rejects it.
    """

    type: TransactionType = Field(..., description="Transaction type")
    client: int = Field(..., ge=0, le=MAX_CLIENT_ID, description="Client identifier")
    tx: int = Field(..., ge=0, le=MAX_TRANSACTION_ID, description="Transaction identifier")
    amount: Optional[Decimal] = Field(
        None,
        description="Amount with up to 4 decimal places (deposit/withdrawal only)"
    )

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def validate_amount(cls, v):
        return parse_amount(v)


class Account(BaseModel):
    """Mutable balance state for one client."""

    client: int
    available: Decimal = ZERO
    held: Decimal = ZERO
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return AMOUNT_CONTEXT.add(self.available, self.held)


class DisputeStatus(str, Enum):
    active = "active"
    disputed = "disputed"


class HistoryEntry(BaseModel):
    """What a deposit leaves behind for later dispute handling."""

    client: int
    amount: Decimal
    status: DisputeStatus = DisputeStatus.active


class RejectionReason(str, Enum):
    account_locked = "account_locked"
    invalid_amount = "invalid_amount"
    insufficient_funds = "insufficient_funds"
    duplicate_transaction = "duplicate_transaction"
    transaction_not_found = "transaction_not_found"
    already_disputed = "already_disputed"
    not_disputed = "not_disputed"


class ProcessingOutcome(BaseModel):
    tx: int = Field(..., description="Transaction identifier")
    type: TransactionType = Field(..., description="Transaction type")
    status: Literal["applied", "rejected"] = Field(..., description="Whether the transaction took effect")
    reason: Optional[RejectionReason] = Field(None, description="Why the transaction was dropped")

    @property
    def applied(self) -> bool:
        return self.status == "applied"

    @classmethod
    def accept(cls, transaction: Transaction) -> "ProcessingOutcome":
        return cls(tx=transaction.tx, type=transaction.type, status="applied")

    @classmethod
    def reject(cls, transaction: Transaction, reason: RejectionReason) -> "ProcessingOutcome":
        return cls(tx=transaction.tx, type=transaction.type, status="rejected", reason=reason)


class ProcessingSummary(BaseModel):
    applied: int = 0
    rejected: int = 0
    rejections: Dict[RejectionReason, int] = Field(default_factory=dict)

    def record(self, outcome: ProcessingOutcome) -> None:
        if outcome.applied:
            self.applied += 1
        else:
            self.rejected += 1
            self.rejections[outcome.reason] = self.rejections.get(outcome.reason, 0) + 1


class AccountSnapshot(BaseModel):
    client: int = Field(..., description="Client identifier")
    available: Decimal = Field(..., description="Funds available for withdrawal")
    held: Decimal = Field(..., description="Funds held by open disputes")
    total: Decimal = Field(..., description="available + held")
    locked: bool = Field(..., description="Frozen after a chargeback")

    @field_serializer('available', 'held', 'total')
    def serialize_amount(self, v: Decimal) -> str:
        return format_amount(v)

    @classmethod
    def from_account(cls, account: Account) -> "AccountSnapshot":
        return cls(
            client=account.client,
            available=account.available,
            held=account.held,
            total=account.total,
            locked=account.locked,
        )


class BatchRequest(BaseModel):
    transactions: List[Transaction] = Field(..., min_length=1, description="Transactions in processing order")


class BatchResponse(BaseModel):
    outcomes: List[ProcessingOutcome] = Field(..., description="One outcome per submitted transaction")
    applied: int = Field(..., description="Number of applied transactions")
    rejected: int = Field(..., description="Number of rejected transactions")


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Error description")
    error_code: str = Field(..., description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(default_factory=datetime.now)
    accounts_count: int = Field(..., description="Number of accounts in the ledger")
    transactions_processed: int = Field(..., description="Total transactions submitted")
    open_disputes: int = Field(..., description="Transactions currently under dispute")
