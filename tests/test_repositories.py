from decimal import Decimal

from models import DisputeStatus
from repositories import InMemoryAccountRepository, InMemoryHistoryRepository


class TestAccountRepository:
    def test_get_or_create_returns_same_account(self):
        repo = InMemoryAccountRepository()
        account = repo.get_or_create(1)
        account.available = Decimal("5")

        assert repo.get_or_create(1) is account
        assert repo.get(1).available == Decimal("5")

    def test_new_account_is_empty_and_unlocked(self):
        account = InMemoryAccountRepository().get_or_create(3)

        assert account.client == 3
        assert account.available == 0
        assert account.held == 0
        assert account.total == 0
        assert account.locked is False

    def test_get_does_not_create(self):
        repo = InMemoryAccountRepository()
        assert repo.get(1) is None
        assert len(repo) == 0

    def test_iterates_in_client_order(self):
        repo = InMemoryAccountRepository()
        for client in (9, 2, 5):
            repo.get_or_create(client)
        assert [account.client for account in repo] == [2, 5, 9]


class TestHistoryRepository:
    def test_record_creates_active_entry(self):
        history = InMemoryHistoryRepository()

        assert history.record(1, 7, Decimal("2.5"))
        entry = history.get(1)
        assert entry.client == 7
        assert entry.amount == Decimal("2.5")
        assert entry.status == DisputeStatus.active

    def test_record_duplicate_is_noop(self):
        history = InMemoryHistoryRepository()
        history.record(1, 7, Decimal("2.5"))

        assert not history.record(1, 8, Decimal("100"))
        assert history.get(1).client == 7
        assert history.get(1).amount == Decimal("2.5")

    def test_mark_disputed_only_from_active(self):
        history = InMemoryHistoryRepository()
        history.record(1, 1, Decimal("1"))

        assert history.mark_disputed(1).status == DisputeStatus.disputed
        assert history.mark_disputed(1) is None
        assert history.mark_disputed(2) is None
        assert history.disputed_count() == 1

    def test_settle_only_disputed(self):
        history = InMemoryHistoryRepository()
        history.record(1, 1, Decimal("1"))

        assert history.settle(1) is None
        assert 1 in history

        history.mark_disputed(1)
        entry = history.settle(1)
        assert entry.amount == Decimal("1")
        assert 1 not in history
        assert history.settle(1) is None
        assert len(history) == 0
