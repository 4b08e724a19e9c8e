import asyncio
import pytest
from decimal import Decimal
from unittest.mock import patch

from amount import MAX_AMOUNT
from exceptions import AmountOverflowError
from models import RejectionReason, Transaction
from services import LedgerService, get_ledger_service


def tx(type, client, tx_id, amount=None):
    return Transaction(type=type, client=client, tx=tx_id, amount=amount)


class TestLedgerService:
    """Async facade over a single processor."""

    @pytest.mark.asyncio
    async def test_submit_returns_outcome(self):
        service = get_ledger_service()

        outcome = await service.submit(tx("deposit", 1, 1, "12.5"))

        assert outcome.applied
        account = await service.get_account(1)
        assert account.available == Decimal("12.5")

    @pytest.mark.asyncio
    async def test_submit_batch_reports_counts(self):
        service = LedgerService()

        response = await service.submit_batch([
            tx("deposit", 1, 1, "10"),
            tx("withdrawal", 1, 2, "20"),
            tx("dispute", 1, 1),
        ])

        assert response.applied == 2
        assert response.rejected == 1
        assert response.outcomes[1].reason == RejectionReason.insufficient_funds

    @pytest.mark.asyncio
    async def test_concurrent_submissions_are_serialised(self):
        service = LedgerService()
        await service.submit(tx("deposit", 1, 1, "100"))

        results = await asyncio.gather(*[
            service.submit(tx("withdrawal", 1, 100 + i, "30")) for i in range(5)
        ])

        assert sum(1 for outcome in results if outcome.applied) == 3
        account = await service.get_account(1)
        assert account.available == Decimal("10")

    @pytest.mark.asyncio
    async def test_health_statistics(self):
        service = LedgerService()
        await service.submit_batch([
            tx("deposit", 1, 1, "5"),
            tx("deposit", 2, 2, "5"),
            tx("dispute", 2, 2),
            tx("resolve", 2, 7),
        ])

        health = await service.health()

        assert health.status == "healthy"
        assert health.accounts_count == 2
        assert health.transactions_processed == 4
        assert health.open_disputes == 1

    @pytest.mark.asyncio
    async def test_unknown_account(self):
        assert await LedgerService().get_account(99) is None

    @pytest.mark.asyncio
    @patch('services.logger')
    async def test_overflow_is_logged_and_raised(self, mock_logger):
        service = LedgerService()
        await service.submit(tx("deposit", 1, 1, MAX_AMOUNT))

        with pytest.raises(AmountOverflowError):
            await service.submit(tx("deposit", 1, 2, "1"))

        mock_logger.error.assert_called()
        assert service.transactions_processed == 1


class TestServiceOutsideLoop:
    """A service built before any event loop runs, as main.py does at import."""

    def test_lock_usable_from_later_loop(self):
        """Test that contended submissions work in a loop started after construction."""
        service = LedgerService()

        async def run():
            await service.submit(tx("deposit", 1, 1, "10"))
            return await asyncio.gather(*[
                service.submit(tx("withdrawal", 1, 10 + i, "4")) for i in range(3)
            ])

        results = asyncio.run(run())

        assert [outcome.applied for outcome in results].count(True) == 2
