from abc import ABC, abstractmethod
from typing import Dict, Iterator, Optional
from decimal import Decimal

from models import Account, DisputeStatus, HistoryEntry


class AccountRepository(ABC):
    @abstractmethod
    def get_or_create(self, client: int) -> Account:
        """Return the live account for a client, creating an empty one on first use."""
        pass

    @abstractmethod
    def get(self, client: int) -> Optional[Account]:
        """Get account without creating it. Returns None if unknown."""
        pass

    @abstractmethod
    def __iter__(self) -> Iterator[Account]:
        """Iterate over all accounts in client id order."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class HistoryRepository(ABC):
    @abstractmethod
    def record(self, tx: int, client: int, amount: Decimal) -> bool:
        """Insert an active entry. Returns False, changing nothing, if tx is already present."""
        pass

    @abstractmethod
    def get(self, tx: int) -> Optional[HistoryEntry]:
        pass

    @abstractmethod
    def mark_disputed(self, tx: int) -> Optional[HistoryEntry]:
        """Move an active entry to disputed. Returns None if absent or already disputed."""
        pass

    @abstractmethod
    def settle(self, tx: int) -> Optional[HistoryEntry]:
        """Remove and return a disputed entry. Returns None otherwise."""
        pass

    @abstractmethod
    def __contains__(self, tx: int) -> bool:
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

    @abstractmethod
    def disputed_count(self) -> int:
        pass


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}

    def get_or_create(self, client: int) -> Account:
        account = self.accounts.get(client)
        if account is None:
            account = self.accounts[client] = Account(client=client)
        return account

    def get(self, client: int) -> Optional[Account]:
        return self.accounts.get(client)

    def __iter__(self) -> Iterator[Account]:
        for client in sorted(self.accounts):
            yield self.accounts[client]

    def __len__(self) -> int:
        return len(self.accounts)


class InMemoryHistoryRepository(HistoryRepository):
    def __init__(self):
        self.entries: Dict[int, HistoryEntry] = {}

    def record(self, tx: int, client: int, amount: Decimal) -> bool:
        if tx in self.entries:
            return False
        self.entries[tx] = HistoryEntry(client=client, amount=amount)
        return True

    def get(self, tx: int) -> Optional[HistoryEntry]:
        return self.entries.get(tx)

    def mark_disputed(self, tx: int) -> Optional[HistoryEntry]:
        entry = self.entries.get(tx)
        if entry is None or entry.status != DisputeStatus.active:
            return None
        entry.status = DisputeStatus.disputed
        return entry

    def settle(self, tx: int) -> Optional[HistoryEntry]:
        entry = self.entries.get(tx)
        if entry is None or entry.status != DisputeStatus.disputed:
            return None
        return self.entries.pop(tx)

    def __contains__(self, tx: int) -> bool:
        return tx in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def disputed_count(self) -> int:
        return sum(1 for entry in self.entries.values() if entry.status == DisputeStatus.disputed)
