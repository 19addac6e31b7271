"""
Transaction Processing Module

The ledger is the only caller-facing way to move money between accounts.
Every deposit, withdrawal and successful transfer is recorded as exactly one
immutable Transaction in an append-only sequence. Business-rule failures are
returned as results, never raised.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional
from contextlib import ExitStack
from enum import Enum
import threading
import uuid

from .currency import Money, AmountLike
from .accounts import Account
from .errors import (
    LedgerErrorCode, InvalidAmountError, CompensationFailedError
)
from .logging_config import get_logger, log_action


class TransactionType(Enum):
    """Types of ledger events"""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    TRANSFER = "transfer"


class TransactionStatus(Enum):
    """Final status, assigned once when the record is created"""
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Transaction:
    """
    Immutable record of one completed ledger event
    """
    id: str
    sequence: int                   # Position in the ledger, assigned at append time
    from_account: Optional[str]     # None for deposits
    to_account: Optional[str]       # None for withdrawals
    amount: Money
    type: TransactionType
    status: TransactionStatus
    timestamp: datetime
    description: Optional[str] = None
    balance_after: Optional[Money] = None  # None when the operation failed

    def __post_init__(self):
        if not self.from_account and not self.to_account:
            raise ValueError("Transaction must reference at least one account")

        # Amount is always the positive amount requested
        if not self.amount.is_positive():
            raise ValueError("Transaction amount must be positive")

        if self.status == TransactionStatus.FAILED and self.balance_after is not None:
            raise ValueError("Failed transactions carry no balance_after")

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == TransactionStatus.FAILED

    def involves(self, account_no: str) -> bool:
        """Check if account is the source or destination"""
        return self.from_account == account_no or self.to_account == account_no

    def to_dict(self) -> Dict[str, Any]:
        """Convert Transaction to dictionary for storage"""
        return {
            'id': self.id,
            'sequence': self.sequence,
            'from_account': self.from_account,
            'to_account': self.to_account,
            'amount': str(self.amount.amount),
            'type': self.type.value,
            'status': self.status.value,
            'timestamp': self.timestamp.isoformat(),
            'description': self.description,
            'balance_after': str(self.balance_after.amount) if self.balance_after is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        """Convert dictionary to Transaction"""
        balance_after = None
        if data.get('balance_after') is not None:
            balance_after = Money(Decimal(data['balance_after']))

        return cls(
            id=data['id'],
            sequence=int(data['sequence']),
            from_account=data.get('from_account'),
            to_account=data.get('to_account'),
            amount=Money(Decimal(data['amount'])),
            type=TransactionType(data['type']),
            status=TransactionStatus(data['status']),
            timestamp=datetime.fromisoformat(data['timestamp']),
            description=data.get('description'),
            balance_after=balance_after,
        )


@dataclass
class TransactionResult:
    """Outcome of a ledger operation"""
    success: bool
    message: str
    transaction: Optional[Transaction] = None
    error: Optional[LedgerErrorCode] = None


class Ledger:
    """
    Records money movements against accounts.

    Lock order: account locks (ascending account number) first, then the
    ledger lock. The ledger lock is taken while the account locks are still
    held, so per-account history order matches completion order.
    """

    def __init__(self):
        self._transactions: List[Transaction] = []
        self._by_id: Dict[str, Transaction] = {}
        self._next_sequence = 1
        self._lock = threading.RLock()
        self.logger = get_logger("bank_ledger.transactions")

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def deposit(
        self,
        account: Account,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> TransactionResult:
        """
        Deposit into an account and record the outcome

        Args:
            account: Resolved destination account
            amount: Amount to deposit
            description: Optional free text

        Returns:
            TransactionResult; a non-positive amount is rejected before any
            record is made
        """
        rejected = self._reject_invalid_amount(amount, "deposit", account.account_no)
        if rejected:
            return rejected
        amount = Money.of(amount)

        with account.lock:
            result = account.deposit(amount)
            transaction = self._record(
                transaction_type=TransactionType.DEPOSIT,
                from_account=None,
                to_account=account.account_no,
                amount=amount,
                success=result.success,
                description=description,
                balance_after=account.balance if result.success else None,
            )

        self._log_outcome("deposit", account.account_no, amount, result.success,
                          result.message, result.error, transaction)
        return TransactionResult(result.success, result.message, transaction, result.error)

    def withdraw(
        self,
        account: Account,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> TransactionResult:
        """
        Withdraw from an account and record the outcome

        Rejections by the account's withdrawal rule are recorded as FAILED
        transactions with no balance_after.
        """
        rejected = self._reject_invalid_amount(amount, "withdraw", account.account_no)
        if rejected:
            return rejected
        amount = Money.of(amount)

        with account.lock:
            result = account.withdraw(amount)
            transaction = self._record(
                transaction_type=TransactionType.WITHDRAW,
                from_account=account.account_no,
                to_account=None,
                amount=amount,
                success=result.success,
                description=description,
                balance_after=account.balance if result.success else None,
            )

        self._log_outcome("withdraw", account.account_no, amount, result.success,
                          result.message, result.error, transaction)
        return TransactionResult(result.success, result.message, transaction, result.error)

    def transfer(
        self,
        from_account: Account,
        to_account: Account,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> TransactionResult:
        """
        Move money between two accounts

        Withdraws from the source, then deposits into the destination. If the
        deposit fails the amount is re-deposited into the source. Only a
        fully successful transfer is recorded, as a single TRANSFER
        transaction whose balance_after is the source's new balance.

        Args:
            from_account: Source account
            to_account: Destination account
            amount: Amount to move
            description: Optional free text

        Returns:
            TransactionResult; COMPENSATION_FAILED if the source could not be
            restored after a failed deposit
        """
        rejected = self._reject_invalid_amount(amount, "transfer", from_account.account_no)
        if rejected:
            return rejected
        amount = Money.of(amount)

        with ExitStack() as stack:
            for account in self._lock_order(from_account, to_account):
                stack.enter_context(account.lock)

            withdrawal = from_account.withdraw(amount)
            if not withdrawal.success:
                self._log_outcome("transfer", from_account.account_no, amount, False,
                                  withdrawal.message, withdrawal.error, None,
                                  to_account_no=to_account.account_no)
                return TransactionResult(False, withdrawal.message, None, withdrawal.error)

            deposit = to_account.deposit(amount)
            if not deposit.success:
                compensation = from_account.deposit(amount)
                if not compensation.success:
                    error = CompensationFailedError(
                        f"Transfer to {to_account.account_no} failed ({deposit.message}) and "
                        f"{amount.to_string()} could not be returned to {from_account.account_no}"
                    )
                    log_action(
                        self.logger, "error", error.message,
                        action="transfer", resource=f"account:{from_account.account_no}",
                        account_no=from_account.account_no, error_code=error.code.value,
                        extra={"to_account": to_account.account_no, "amount": str(amount.amount)}
                    )
                    return TransactionResult(False, error.message, None, error.code)

                self._log_outcome("transfer", from_account.account_no, amount, False,
                                  deposit.message, deposit.error, None,
                                  to_account_no=to_account.account_no)
                return TransactionResult(False, deposit.message, None, deposit.error)

            transaction = self._record(
                transaction_type=TransactionType.TRANSFER,
                from_account=from_account.account_no,
                to_account=to_account.account_no,
                amount=amount,
                success=True,
                description=description,
                balance_after=from_account.balance,
            )

        message = (f"Transferred {amount.to_string()} from {from_account.account_no} "
                   f"to {to_account.account_no}")
        self._log_outcome("transfer", from_account.account_no, amount, True, message, None,
                          transaction, to_account_no=to_account.account_no)
        return TransactionResult(True, message, transaction)

    def history(
        self,
        account_no: str,
        transaction_types: Optional[Iterable[TransactionType]] = None,
        limit: Optional[int] = None
    ) -> List[Transaction]:
        """
        Get transactions referencing an account, in recording order

        Args:
            account_no: Account number (source or destination)
            transaction_types: Optional transaction type filter
            limit: Optional cap; keeps the most recent entries (0 gives none)

        Returns:
            List of Transaction objects, oldest first
        """
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")

        types = set(transaction_types) if transaction_types else None
        with self._lock:
            entries = [t for t in self._transactions if t.involves(account_no)]

        if types:
            entries = [t for t in entries if t.type in types]

        if limit is not None:
            entries = entries[-limit:] if limit else []

        return entries

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction by ID"""
        with self._lock:
            return self._by_id.get(transaction_id)

    def all_transactions(self) -> List[Transaction]:
        return self.export_state()

    def count(self) -> int:
        with self._lock:
            return len(self._transactions)

    def load_state(self, transactions: Iterable[Transaction]) -> None:
        """Replace the whole ledger sequence (used when restoring a checkpoint)"""
        ordered = sorted(transactions, key=lambda t: t.sequence)
        with self._lock:
            self._transactions = list(ordered)
            self._by_id = {t.id: t for t in self._transactions}
            self._next_sequence = (self._transactions[-1].sequence + 1) if self._transactions else 1

    def export_state(self) -> List[Transaction]:
        """Copy of the ledger sequence in recording order"""
        with self._lock:
            return list(self._transactions)

    def _record(
        self,
        transaction_type: TransactionType,
        from_account: Optional[str],
        to_account: Optional[str],
        amount: Money,
        success: bool,
        description: Optional[str],
        balance_after: Optional[Money]
    ) -> Transaction:
        """Create and append one transaction"""
        with self._lock:
            transaction = Transaction(
                id=str(uuid.uuid4()),
                sequence=self._next_sequence,
                from_account=from_account,
                to_account=to_account,
                amount=amount,
                type=transaction_type,
                status=TransactionStatus.COMPLETED if success else TransactionStatus.FAILED,
                timestamp=datetime.now(timezone.utc),
                description=description,
                balance_after=balance_after,
            )
            self._next_sequence += 1
            self._transactions.append(transaction)
            self._by_id[transaction.id] = transaction
            return transaction

    def _reject_invalid_amount(self, amount: AmountLike, action: str,
                               account_no: str) -> Optional[TransactionResult]:
        """Return a failed result for a non-positive amount, None otherwise"""
        try:
            Money.of(amount).require_positive()
        except InvalidAmountError as e:
            message = f"Invalid {action} amount: {amount}"
            log_action(
                self.logger, "warning", message,
                action=action, resource=f"account:{account_no}",
                account_no=account_no, error_code=e.code.value
            )
            return TransactionResult(False, message, None, e.code)
        return None

    @staticmethod
    def _lock_order(*accounts: Account) -> List[Account]:
        """Distinct accounts sorted by account number"""
        unique = {account.account_no: account for account in accounts}
        return [unique[number] for number in sorted(unique)]

    def _log_outcome(self, action: str, account_no: str, amount: Money, success: bool,
                     message: str, error: Optional[LedgerErrorCode],
                     transaction: Optional[Transaction],
                     to_account_no: Optional[str] = None) -> None:
        extra = {"amount": str(amount.amount)}
        if to_account_no:
            extra["to_account"] = to_account_no
        if transaction:
            extra["transaction_id"] = transaction.id
            extra["status"] = transaction.status.value
            if transaction.balance_after is not None:
                extra["balance_after"] = str(transaction.balance_after.amount)

        log_action(
            self.logger, "info" if success else "warning", message,
            action=action, resource=f"account:{account_no}",
            account_no=account_no, error_code=error.value if error else None,
            extra=extra
        )
