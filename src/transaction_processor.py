import logging
from typing import Optional, Tuple

from models import ClientAccount, Deposit, DepositState, ProcessingResult, Transaction, TransactionType
from ledger import Ledger

logger = logging.getLogger(__name__)

# Operations refused once an account has been locked by a chargeback.
LOCK_BLOCKED_TYPES = frozenset({TransactionType.WITHDRAWAL, TransactionType.CHARGEBACK})


class TransactionProcessor:
    """
    Applies transactions to a ledger one at a time.
    Returns ProcessingResult to indicate success or the rejection reason.
    A rejected transaction leaves the ledger exactly as it was.
    """

    def __init__(self, ledger: Ledger):
        self._ledger = ledger

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Returns:
            SUCCESS: Applied to the ledger
            Any other member: Rejected, nothing changed
        """
        account = self._ledger.get_account(transaction.client_id)

        if account is not None and account.locked and transaction.transaction_type in LOCK_BLOCKED_TYPES:
            logger.warning(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: account {transaction.client_id} is locked")
            return ProcessingResult.ACCOUNT_LOCKED

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(transaction)

    def _handle_deposit(self, transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None or transaction.amount < 0:
            logger.warning(f"Deposit tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.INVALID_AMOUNT

        if self._ledger.get_deposit(transaction.transaction_id) is not None:
            logger.warning(f"Deposit tx {transaction.transaction_id}: duplicate transaction id, skipping")
            return ProcessingResult.DUPLICATE_TRANSACTION

        account = self._ledger.get_or_create_account(transaction.client_id)
        account.credit(transaction.amount)
        self._ledger.record_deposit(transaction.transaction_id, transaction.client_id, transaction.amount)
        return ProcessingResult.SUCCESS

    def _handle_withdrawal(self, account: Optional[ClientAccount], transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None or transaction.amount < 0:
            logger.warning(f"Withdrawal tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.INVALID_AMOUNT

        available = account.available if account is not None else 0
        if available < transaction.amount:
            logger.warning(f"Withdrawal tx {transaction.transaction_id}: insufficient funds ({transaction.amount} > {available})")
            return ProcessingResult.INSUFFICIENT_FUNDS

        if account is None:
            account = self._ledger.get_or_create_account(transaction.client_id)
        account.debit(transaction.amount)
        return ProcessingResult.SUCCESS

    def _handle_dispute(self, transaction: Transaction) -> ProcessingResult:
        deposit, result = self._lookup_deposit(transaction)
        if deposit is None:
            return result

        if deposit.state is not DepositState.OK:
            logger.warning(f"Dispute for tx {transaction.transaction_id}: deposit is {deposit.state.value}, expected ok")
            return ProcessingResult.ILLEGAL_STATE_TRANSITION

        account = self._ledger.get_or_create_account(deposit.client_id)
        if account.available < deposit.amount:
            logger.warning(f"Dispute for tx {transaction.transaction_id}: insufficient funds to hold ({deposit.amount} > {account.available})")
            return ProcessingResult.INSUFFICIENT_FUNDS

        account.hold(deposit.amount)
        deposit.state = DepositState.DISPUTED
        return ProcessingResult.SUCCESS

    def _handle_resolve(self, transaction: Transaction) -> ProcessingResult:
        deposit, result = self._lookup_deposit(transaction)
        if deposit is None:
            return result

        if deposit.state is not DepositState.DISPUTED:
            logger.warning(f"Resolve for tx {transaction.transaction_id}: deposit is {deposit.state.value}, expected disputed")
            return ProcessingResult.ILLEGAL_STATE_TRANSITION

        account = self._ledger.get_or_create_account(deposit.client_id)
        account.release(deposit.amount)
        deposit.state = DepositState.OK
        return ProcessingResult.SUCCESS

    def _handle_chargeback(self, transaction: Transaction) -> ProcessingResult:
        deposit, result = self._lookup_deposit(transaction)
        if deposit is None:
            return result

        if deposit.state is not DepositState.DISPUTED:
            logger.warning(f"Chargeback for tx {transaction.transaction_id}: deposit is {deposit.state.value}, expected disputed")
            return ProcessingResult.ILLEGAL_STATE_TRANSITION

        account = self._ledger.get_or_create_account(deposit.client_id)
        account.remove_held(deposit.amount)
        account.lock()
        deposit.state = DepositState.CHARGED_BACK
        return ProcessingResult.SUCCESS

    def _lookup_deposit(self, transaction: Transaction) -> Tuple[Optional[Deposit], ProcessingResult]:
        """Find the deposit a dispute, resolve or chargeback refers to."""
        label = transaction.transaction_type.value.capitalize()
        deposit = self._ledger.get_deposit(transaction.transaction_id)

        if deposit is None:
            logger.warning(f"{label} for tx {transaction.transaction_id}: no such deposit")
            return None, ProcessingResult.UNKNOWN_TRANSACTION

        if deposit.client_id != transaction.client_id:
            logger.error(f"{label} for tx {transaction.transaction_id}: client mismatch (expected {deposit.client_id}, got {transaction.client_id})")
            return None, ProcessingResult.CLIENT_MISMATCH

        return deposit, ProcessingResult.SUCCESS
