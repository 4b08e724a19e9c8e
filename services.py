import asyncio
from typing import List, Optional

import structlog

from exceptions import LedgerError
from models import (
    AccountSnapshot,
    BatchResponse,
    HealthResponse,
    ProcessingOutcome,
    Transaction,
)
from processor import TransactionProcessor

# Configure structured logging
logger = structlog.get_logger()


class LedgerService:
    """Serialises submissions into one processor.

    Requests may arrive concurrently; the lock keeps them in arrival order
    so the processor always sees a single ordered stream.
    """

    def __init__(self, processor: Optional[TransactionProcessor] = None):
        self.processor = processor if processor is not None else TransactionProcessor()
        self.lock = asyncio.Lock()
        self.transactions_processed = 0

    async def submit(self, transaction: Transaction) -> ProcessingOutcome:
        """Process one transaction and report whether it took effect."""
        async with self.lock:
            outcome = self._apply(transaction)

        logger.info(
            "Transaction processed",
            tx=transaction.tx,
            client=transaction.client,
            type=transaction.type.value,
            status=outcome.status,
            reason=outcome.reason.value if outcome.reason else None
        )
        return outcome

    async def submit_batch(self, transactions: List[Transaction]) -> BatchResponse:
        """Process transactions in list order without interleaving other requests."""
        async with self.lock:
            outcomes = [self._apply(transaction) for transaction in transactions]

        applied = sum(1 for outcome in outcomes if outcome.applied)
        response = BatchResponse(
            outcomes=outcomes,
            applied=applied,
            rejected=len(outcomes) - applied
        )

        logger.info(
            "Batch processed",
            size=len(outcomes),
            applied=response.applied,
            rejected=response.rejected
        )
        return response

    async def list_accounts(self) -> List[AccountSnapshot]:
        async with self.lock:
            return self.processor.snapshot()

    async def get_account(self, client: int) -> Optional[AccountSnapshot]:
        async with self.lock:
            account = self.processor.accounts.get(client)
            if account is None:
                return None
            return AccountSnapshot.from_account(account)

    async def health(self) -> HealthResponse:
        async with self.lock:
            return HealthResponse(
                status="healthy",
                accounts_count=len(self.processor.accounts),
                transactions_processed=self.transactions_processed,
                open_disputes=self.processor.open_disputes
            )

    def _apply(self, transaction: Transaction) -> ProcessingOutcome:
        try:
            outcome = self.processor.process(transaction)
        except LedgerError as e:
            logger.error(
                "Transaction halted processing",
                tx=transaction.tx,
                client=transaction.client,
                type=transaction.type.value,
                error=str(e)
            )
            raise
        self.transactions_processed += 1
        return outcome


# Factory function for dependency injection
def get_ledger_service(processor: Optional[TransactionProcessor] = None) -> LedgerService:
    return LedgerService(processor)
