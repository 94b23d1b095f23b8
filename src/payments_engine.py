import csv
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Iterator, List, Optional, TextIO

from models import AMOUNT_CONTEXT, MAX_AMOUNT_DIGITS, AccountSnapshot, ClientAccount, ProcessingStats, Transaction, TransactionType
from ledger import Ledger
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1
AMOUNT_PLACES = 4
OUTPUT_QUANTUM = Decimal(1).scaleb(-AMOUNT_PLACES)

OUTPUT_HEADER = ["client", "available", "held", "total", "locked"]


class PaymentsEngine:
    """
    Replays a transaction log against a ledger, strictly in input order.
    Each record's legality depends on everything before it, so there is
    exactly one processor and it sees records one at a time.
    """

    def __init__(self, ledger: Optional[Ledger] = None):
        self._ledger = ledger if ledger is not None else Ledger()
        self._processor = TransactionProcessor(self._ledger)
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing {filepath}")
        with open(filepath, "r", newline="") as f:
            accounts = self.process_transactions(self.read_transactions(f))
        logger.info(
            f"Processed: {self._stats.processed}, "
            f"Failed: {self._stats.failed}, "
            f"Skipped: {self._stats.skipped}"
        )
        for result, count in self._stats.rejections.most_common():
            logger.info(f"  Rejected {result.value}: {count}")
        return accounts

    def process_transactions(self, transactions: Iterable[Transaction]) -> Dict[int, ClientAccount]:
        for transaction in transactions:
            result = self._processor.process_transaction(transaction)
            self._stats.record(result)
        return self._ledger.get_all_accounts()

    def read_transactions(self, stream: TextIO) -> Iterator[Transaction]:
        """Lazily parse CSV rows, skipping any row that is malformed."""
        reader = csv.DictReader(stream)
        for row in reader:
            transaction = self._parse_csv_row(row)
            if transaction is None:
                self._stats.record_skipped()
                continue
            yield transaction

    def snapshots(self) -> List[AccountSnapshot]:
        return self._ledger.snapshots()

    def _parse_csv_row(self, row: Dict[str, str]) -> Optional[Transaction]:
        """Parse CSV row into Transaction."""
        try:
            normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

            transaction_type = TransactionType(normalized["type"].lower())
            client_id = _parse_id(normalized["client"], MAX_CLIENT_ID)
            transaction_id = _parse_id(normalized["tx"], MAX_TRANSACTION_ID)

            amount = None
            amount_str = normalized.get("amount", "")
            if amount_str and transaction_type in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL):
                amount = _parse_amount(amount_str)

            return Transaction(
                transaction_type=transaction_type,
                client_id=client_id,
                transaction_id=transaction_id,
                amount=amount,
            )
        except (KeyError, ValueError, InvalidOperation) as e:
            logger.warning(f"Failed to parse row {row}: {e!r}")
            return None


def _parse_id(value: str, upper: int) -> int:
    parsed = int(value)
    if not 0 <= parsed <= upper:
        raise ValueError(f"id {parsed} out of range 0..{upper}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    amount = Decimal(value)
    if not amount.is_finite():
        raise ValueError(f"amount {value} is not a finite number")
    if amount.as_tuple().exponent < -AMOUNT_PLACES:
        raise ValueError(f"amount {value} has more than {AMOUNT_PLACES} decimal places")
    if amount.adjusted() >= MAX_AMOUNT_DIGITS or len(amount.as_tuple().digits) > MAX_AMOUNT_DIGITS:
        raise ValueError(f"amount {value} exceeds {MAX_AMOUNT_DIGITS} significant digits")
    return amount


def format_amount(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places."""
    return f"{value.quantize(OUTPUT_QUANTUM, context=AMOUNT_CONTEXT):f}"


def write_accounts(snapshots: Iterable[AccountSnapshot], out: TextIO) -> None:
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    for snapshot in snapshots:
        writer.writerow([
            snapshot.client_id,
            format_amount(snapshot.available),
            format_amount(snapshot.held),
            format_amount(snapshot.total),
            str(snapshot.locked).lower(),
        ])
