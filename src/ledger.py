from decimal import Decimal
from typing import Dict, List, Optional

from models import AccountSnapshot, ClientAccount, Deposit


class Ledger:
    """
    Holds client accounts and deposit history for dispute lookups.
    Applies no business rules; TransactionProcessor decides what is legal.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._deposits: Dict[int, Deposit] = {}

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        """Look up an account without creating it."""
        return self._accounts.get(client_id)

    def record_deposit(self, transaction_id: int, client_id: int, amount: Decimal) -> Optional[Deposit]:
        """
        Store a deposit for future dispute lookups.
        Returns None and leaves the existing entry alone if the id is taken.
        """
        if transaction_id in self._deposits:
            return None
        deposit = Deposit(transaction_id=transaction_id, client_id=client_id, amount=amount)
        self._deposits[transaction_id] = deposit
        return deposit

    def get_deposit(self, transaction_id: int) -> Optional[Deposit]:
        """Retrieve stored deposit by ID."""
        return self._deposits.get(transaction_id)

    def deposits_for(self, client_id: int) -> List[Deposit]:
        return [d for d in self._deposits.values() if d.client_id == client_id]

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts (for final output)."""
        return dict(self._accounts)

    def snapshots(self) -> List[AccountSnapshot]:
        """Return read-only account views ordered by client id."""
        return [self._accounts[client_id].snapshot() for client_id in sorted(self._accounts)]
