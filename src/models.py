from collections import Counter
from dataclasses import dataclass
from decimal import Context, Decimal
from enum import Enum
from typing import Optional

# Parsed amounts carry at most this many significant digits.
MAX_AMOUNT_DIGITS = 28

# Balances are summed with enough headroom that bounded amounts never round.
AMOUNT_CONTEXT = Context(prec=64)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class DepositState(Enum):
    OK = "ok"
    DISPUTED = "disputed"
    CHARGED_BACK = "charged_back"


class ProcessingResult(Enum):
    SUCCESS = "success"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    UNKNOWN_TRANSACTION = "unknown_transaction"
    CLIENT_MISMATCH = "client_mismatch"
    ILLEGAL_STATE_TRANSITION = "illegal_state_transition"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    ACCOUNT_LOCKED = "account_locked"
    INVALID_AMOUNT = "invalid_amount"

    @property
    def rejected(self) -> bool:
        return self is not ProcessingResult.SUCCESS


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class Deposit:
    """A stored deposit; the only kind of transaction that can be disputed."""

    transaction_id: int
    client_id: int
    amount: Decimal
    state: DepositState = DepositState.OK


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return AMOUNT_CONTEXT.add(self.available, self.held)

    def credit(self, amount: Decimal) -> None:
        self.available = AMOUNT_CONTEXT.add(self.available, amount)

    def debit(self, amount: Decimal) -> None:
        self.available = AMOUNT_CONTEXT.subtract(self.available, amount)

    def hold(self, amount: Decimal) -> None:
        self.available = AMOUNT_CONTEXT.subtract(self.available, amount)
        self.held = AMOUNT_CONTEXT.add(self.held, amount)

    def release(self, amount: Decimal) -> None:
        self.held = AMOUNT_CONTEXT.subtract(self.held, amount)
        self.available = AMOUNT_CONTEXT.add(self.available, amount)

    def remove_held(self, amount: Decimal) -> None:
        self.held = AMOUNT_CONTEXT.subtract(self.held, amount)

    def lock(self) -> None:
        self.locked = True

    def snapshot(self) -> "AccountSnapshot":
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


class ProcessingStats:
    """Counters for tracking processing statistics."""

    def __init__(self):
        self.processed = 0
        self.failed = 0
        self.skipped = 0
        self.rejections: Counter = Counter()

    def record(self, result: ProcessingResult) -> None:
        if result.rejected:
            self.failed += 1
            self.rejections[result] += 1
        else:
            self.processed += 1

    def record_skipped(self) -> None:
        self.skipped += 1

    def __repr__(self) -> str:
        return f"ProcessingStats(processed={self.processed}, failed={self.failed}, skipped={self.skipped})"
