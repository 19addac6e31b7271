"""
Snapshot Persistence Module

Persists the three ledger collections (users, accounts, transactions) through
a StorageInterface backend. Reads degrade to empty collections and writes
report failure instead of raising, so an unavailable store never stops the
in-memory ledger.
"""

from typing import Any, Callable, Dict, Iterable, List, Tuple, TypeVar

from .accounts import Account
from .credentials import UserDetails
from .errors import LedgerErrorCode
from .storage import StorageInterface
from .transactions import Transaction
from .logging_config import get_logger, log_action


USERS_TABLE = "users"
ACCOUNTS_TABLE = "accounts"
TRANSACTIONS_TABLE = "transactions"

T = TypeVar('T')


class SnapshotStore:
    """
    Reads and writes whole-collection snapshots
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.logger = get_logger("bank_ledger.snapshot")

    def save_users(self, users: Iterable[UserDetails]) -> bool:
        return self._save(USERS_TABLE, self._user_records(users))

    def save_accounts(self, accounts: Iterable[Account]) -> bool:
        return self._save(ACCOUNTS_TABLE, self._account_records(accounts))

    def save_transactions(self, transactions: Iterable[Transaction]) -> bool:
        return self._save(TRANSACTIONS_TABLE, self._transaction_records(transactions))

    def load_users(self) -> Dict[str, UserDetails]:
        users = self._load(USERS_TABLE, UserDetails.from_dict)
        return {user.username: user for user in users}

    def load_accounts(self) -> Dict[str, Account]:
        accounts = self._load(ACCOUNTS_TABLE, Account.from_dict)
        return {account.account_no: account for account in accounts}

    def load_transactions(self) -> List[Transaction]:
        transactions = self._load(TRANSACTIONS_TABLE, Transaction.from_dict)
        return sorted(transactions, key=lambda t: t.sequence)

    def checkpoint(
        self,
        users: Iterable[UserDetails],
        accounts: Iterable[Account],
        transactions: Iterable[Transaction]
    ) -> bool:
        """
        Write all three collections as one unit

        Args:
            users: Registered users
            accounts: All accounts
            transactions: Ledger sequence in recording order

        Returns:
            True if every collection was written, False otherwise (the
            previous snapshot is left in place)
        """
        user_records = self._user_records(users)
        account_records = self._account_records(accounts)
        transaction_records = self._transaction_records(transactions)

        try:
            with self.storage.atomic():
                self.storage.replace_table(USERS_TABLE, user_records)
                self.storage.replace_table(ACCOUNTS_TABLE, account_records)
                self.storage.replace_table(TRANSACTIONS_TABLE, transaction_records)
        except Exception as e:
            log_action(
                self.logger, "error", f"Checkpoint failed: {e}",
                action="checkpoint", error_code=LedgerErrorCode.PERSISTENCE_UNAVAILABLE.value
            )
            return False

        log_action(
            self.logger, "info", "Checkpoint written",
            action="checkpoint",
            extra={
                "users": len(user_records),
                "accounts": len(account_records),
                "transactions": len(transaction_records)
            }
        )
        return True

    def _save(self, table: str, records: List[Tuple[str, Dict[str, Any]]]) -> bool:
        try:
            with self.storage.atomic():
                self.storage.replace_table(table, records)
        except Exception as e:
            log_action(
                self.logger, "error", f"Failed to save {table}: {e}",
                action="save", resource=table,
                error_code=LedgerErrorCode.PERSISTENCE_UNAVAILABLE.value
            )
            return False
        return True

    def _load(self, table: str, parse: Callable[[Dict[str, Any]], T]) -> List[T]:
        try:
            records = self.storage.load_all(table)
        except Exception as e:
            log_action(
                self.logger, "warning", f"Could not read {table}, starting empty: {e}",
                action="load", resource=table,
                error_code=LedgerErrorCode.PERSISTENCE_UNAVAILABLE.value
            )
            return []

        if not records:
            log_action(
                self.logger, "warning", f"No stored {table}, starting empty",
                action="load", resource=table,
                error_code=LedgerErrorCode.PERSISTENCE_UNAVAILABLE.value
            )
            return []

        items = []
        for record in records:
            try:
                items.append(parse(record))
            except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                log_action(
                    self.logger, "warning", f"Skipping unreadable {table} record: {e}",
                    action="load", resource=table,
                    error_code=LedgerErrorCode.PERSISTENCE_UNAVAILABLE.value,
                    extra={"record": record}
                )
        return items

    @staticmethod
    def _user_records(users: Iterable[UserDetails]) -> List[Tuple[str, Dict[str, Any]]]:
        return [(user.username, user.to_dict()) for user in users]

    @staticmethod
    def _account_records(accounts: Iterable[Account]) -> List[Tuple[str, Dict[str, Any]]]:
        return [(account.account_no, account.to_dict()) for account in accounts]

    @staticmethod
    def _transaction_records(transactions: Iterable[Transaction]) -> List[Tuple[str, Dict[str, Any]]]:
        return [(transaction.id, transaction.to_dict()) for transaction in transactions]
