"""Transaction state machine.

Each transaction is checked against the account ledger and the dispute
history, then either applied in full or dropped without touching state.
Dropped transactions are routine input noise and are reported as a
rejected ``ProcessingOutcome``, never raised. The only exception that
escapes ``process`` is ``AmountOverflowError``; new balances are computed
before anything is written, so the ledger is left as it was.
"""
from typing import Iterable, List, Optional

import structlog

from amount import ZERO, checked_add, checked_sub
from models import (
    AccountSnapshot,
    DisputeStatus,
    ProcessingOutcome,
    ProcessingSummary,
    RejectionReason,
    Transaction,
    TransactionType,
)
from repositories import (
    AccountRepository,
    HistoryRepository,
    InMemoryAccountRepository,
    InMemoryHistoryRepository,
)

logger = structlog.get_logger()


class TransactionProcessor:
    """Applies an ordered transaction stream to one ledger.

    The processor owns its stores for the whole run. Transactions must be
    fed in the order they were received.
    """

    def __init__(
        self,
        accounts: Optional[AccountRepository] = None,
        history: Optional[HistoryRepository] = None
    ):
        self.accounts = accounts if accounts is not None else InMemoryAccountRepository()
        self.history = history if history is not None else InMemoryHistoryRepository()

    def process(self, transaction: Transaction) -> ProcessingOutcome:
        handlers = {
            TransactionType.deposit: self._process_deposit,
            TransactionType.withdrawal: self._process_withdrawal,
            TransactionType.dispute: self._process_dispute,
            TransactionType.resolve: self._process_resolve,
            TransactionType.chargeback: self._process_chargeback,
        }
        reason = handlers[transaction.type](transaction)

        if reason is None:
            return ProcessingOutcome.accept(transaction)

        logger.debug(
            "Transaction rejected",
            tx=transaction.tx,
            client=transaction.client,
            type=transaction.type.value,
            reason=reason.value
        )
        return ProcessingOutcome.reject(transaction, reason)

    def process_all(self, transactions: Iterable[Transaction]) -> ProcessingSummary:
        summary = ProcessingSummary()
        for transaction in transactions:
            summary.record(self.process(transaction))
        return summary

    def snapshot(self) -> List[AccountSnapshot]:
        """Final account states, sorted by client id."""
        return [AccountSnapshot.from_account(account) for account in self.accounts]

    @property
    def open_disputes(self) -> int:
        return self.history.disputed_count()

    @property
    def history_size(self) -> int:
        return len(self.history)

    def _process_deposit(self, transaction: Transaction) -> Optional[RejectionReason]:
        amount = transaction.amount
        if amount is None or amount < ZERO:
            return RejectionReason.invalid_amount

        if transaction.tx in self.history:
            return RejectionReason.duplicate_transaction

        account = self.accounts.get_or_create(transaction.client)
        if account.locked:
            return RejectionReason.account_locked

        available = checked_add(account.available, amount)
        self.history.record(transaction.tx, transaction.client, amount)
        account.available = available
        return None

    def _process_withdrawal(self, transaction: Transaction) -> Optional[RejectionReason]:
        amount = transaction.amount
        if amount is None or amount < ZERO:
            return RejectionReason.invalid_amount

        account = self.accounts.get_or_create(transaction.client)
        if account.locked:
            return RejectionReason.account_locked

        if account.available < amount:
            return RejectionReason.insufficient_funds

        account.available = checked_sub(account.available, amount)
        return None

    def _process_dispute(self, transaction: Transaction) -> Optional[RejectionReason]:
        # The referenced deposit decides which account is affected.
        entry = self.history.get(transaction.tx)
        if entry is None:
            return RejectionReason.transaction_not_found

        account = self.accounts.get_or_create(entry.client)
        if account.locked:
            return RejectionReason.account_locked

        if entry.status != DisputeStatus.active:
            return RejectionReason.already_disputed

        available = checked_sub(account.available, entry.amount)
        held = checked_add(account.held, entry.amount)
        self.history.mark_disputed(transaction.tx)
        account.available = available
        account.held = held
        return None

    # Resolve and chargeback ignore the lock: a dispute opened before the
    # account froze can still be settled.
    def _process_resolve(self, transaction: Transaction) -> Optional[RejectionReason]:
        entry = self.history.get(transaction.tx)
        if entry is None:
            return RejectionReason.transaction_not_found
        if entry.status != DisputeStatus.disputed:
            return RejectionReason.not_disputed

        account = self.accounts.get_or_create(entry.client)
        held = checked_sub(account.held, entry.amount)
        available = checked_add(account.available, entry.amount)
        self.history.settle(transaction.tx)
        account.held = held
        account.available = available
        return None

    def _process_chargeback(self, transaction: Transaction) -> Optional[RejectionReason]:
        entry = self.history.get(transaction.tx)
        if entry is None:
            return RejectionReason.transaction_not_found
        if entry.status != DisputeStatus.disputed:
            return RejectionReason.not_disputed

        account = self.accounts.get_or_create(entry.client)
        held = checked_sub(account.held, entry.amount)
        self.history.settle(transaction.tx)
        account.held = held
        account.locked = True
        return None
