"""
Bank System

Wires the credential store, account registry, ledger, interest engine and
snapshot store into one explicitly constructed object. Callers work with
account numbers here; the ledger itself only sees resolved accounts.
"""

from decimal import Decimal
from contextlib import ExitStack
from typing import Dict, List, Optional
import random
import threading

from .accounts import Account, AccountType, open_account
from .config import LedgerConfig, get_config
from .credentials import CredentialStore, UserDetails
from .currency import Money, AmountLike
from .errors import AccountNotFoundError, LedgerErrorCode, PersistenceUnavailableError
from .identifiers import AccountIdGenerator
from .interest import InterestEngine, InterestRunSummary
from .snapshot import SnapshotStore
from .storage import StorageInterface, InMemoryStorage, SQLiteStorage
from .transactions import Ledger, Transaction, TransactionResult
from .logging_config import setup_logging, get_logger, log_action


class BankSystem:
    """Bank ledger with all components initialized"""

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        config: Optional[LedgerConfig] = None,
        rng: Optional[random.Random] = None
    ):
        self.config = config or get_config()
        self.logger = get_logger("bank_ledger.bank")
        self.storage = storage if storage is not None else self._create_storage(self.config)

        self.credentials = CredentialStore(password_min_length=self.config.password_min_length)
        self.ledger = Ledger()
        self.id_generator = AccountIdGenerator(rng=rng, default_length=self.config.account_number_length)
        self.interest_engine = InterestEngine()
        self.snapshots = SnapshotStore(self.storage)

        self._accounts: Dict[str, Account] = {}
        self._registry_lock = threading.RLock()

        self._restore()

    def _create_storage(self, config: LedgerConfig) -> StorageInterface:
        """Create storage backend based on configuration

        An SQLite file that cannot be opened is not fatal: the system falls
        back to empty in-memory storage and logs the failure.
        """
        if config.storage_backend == "memory":
            return InMemoryStorage()
        try:
            return SQLiteStorage(config.database_path)
        except PersistenceUnavailableError as e:
            log_action(
                self.logger, "error", f"{e.message}; starting with in-memory storage",
                action="open_storage", resource=config.database_path,
                error_code=e.code.value
            )
            return InMemoryStorage()

    def _restore(self) -> None:
        users = self.snapshots.load_users()
        accounts = self.snapshots.load_accounts()
        transactions = self.snapshots.load_transactions()

        self.credentials.load_state(users.values())
        with self._registry_lock:
            self._accounts = dict(accounts)
        self.id_generator.reserve_all(accounts.keys())
        self.ledger.load_state(transactions)

        log_action(
            self.logger, "info", "Bank state restored",
            action="restore",
            extra={"users": len(users), "accounts": len(accounts), "transactions": len(transactions)}
        )

    # Users

    def register_user(self, username: str, password: str, name: str,
                      city: str, email: str, phone: str) -> UserDetails:
        user = self.credentials.register_user(username, password, name, city, email, phone)
        self._auto_checkpoint()
        return user

    def authenticate(self, username: str, password: str) -> Optional[UserDetails]:
        return self.credentials.authenticate(username, password)

    def change_password(self, username: str, old_password: str, new_password: str) -> bool:
        changed = self.credentials.change_password(username, old_password, new_password)
        if changed:
            self._auto_checkpoint()
        return changed

    def list_users(self) -> List[UserDetails]:
        return self.credentials.list_users()

    # Accounts

    def open_account(
        self,
        owner_username: str,
        bank_name: Optional[str] = None,
        account_type: AccountType = AccountType.SAVINGS
    ) -> Account:
        """
        Open a zero-balance account for an existing user

        Args:
            owner_username: Registered username
            bank_name: Bank name (defaults to the configured bank)
            account_type: SAVINGS or CURRENT

        Returns:
            Created Account object

        Raises:
            UserNotFoundError: If the owner is not registered
        """
        self.credentials.require_user(owner_username)

        min_balance = None
        if account_type == AccountType.SAVINGS:
            min_balance = Money(Decimal(self.config.savings_min_balance))

        with self._registry_lock:
            account = open_account(
                account_no=self.id_generator.generate(),
                owner_username=owner_username,
                bank_name=bank_name or self.config.bank_name,
                account_type=account_type,
                min_balance=min_balance,
            )
            self._accounts[account.account_no] = account

        log_action(
            self.logger, "info", "Account opened",
            action="open_account", resource=f"account:{account.account_no}",
            account_no=account.account_no, username=owner_username,
            extra={"account_type": account_type.value, "bank_name": account.bank_name}
        )
        self._auto_checkpoint()
        return account

    def find_account(self, account_no: str) -> Optional[Account]:
        with self._registry_lock:
            return self._accounts.get(account_no)

    def resolve_account(self, account_no: str) -> Account:
        """Get account or raise AccountNotFoundError"""
        account = self.find_account(account_no)
        if account is None:
            raise AccountNotFoundError(f"Account {account_no} not found")
        return account

    def find_accounts_by_user(self, username: str) -> List[Account]:
        with self._registry_lock:
            return [a for a in self._accounts.values() if a.owner_username == username]

    def list_accounts(self) -> List[Account]:
        with self._registry_lock:
            return list(self._accounts.values())

    # Money movements

    def deposit(self, account_no: str, amount: AmountLike,
                description: Optional[str] = None) -> TransactionResult:
        account = self.find_account(account_no)
        if account is None:
            return self._account_not_found("deposit", account_no)
        result = self.ledger.deposit(account, amount, description)
        self._auto_checkpoint()
        return result

    def withdraw(self, account_no: str, amount: AmountLike,
                 description: Optional[str] = None) -> TransactionResult:
        account = self.find_account(account_no)
        if account is None:
            return self._account_not_found("withdraw", account_no)
        result = self.ledger.withdraw(account, amount, description)
        self._auto_checkpoint()
        return result

    def transfer(self, from_no: str, to_no: str, amount: AmountLike,
                 description: Optional[str] = None) -> TransactionResult:
        from_account = self.find_account(from_no)
        if from_account is None:
            return self._account_not_found("transfer", from_no)
        to_account = self.find_account(to_no)
        if to_account is None:
            return self._account_not_found("transfer", to_no)
        result = self.ledger.transfer(from_account, to_account, amount, description)
        self._auto_checkpoint()
        return result

    def history(self, account_no: str) -> List[Transaction]:
        return self.ledger.history(account_no)

    def apply_monthly_interest_to_all_savings(self, annual_rate_percent=None) -> InterestRunSummary:
        """
        Credit one month of interest to every savings account, then checkpoint

        Args:
            annual_rate_percent: Annual percentage (defaults to the configured rate)

        Returns:
            InterestRunSummary for the run
        """
        if annual_rate_percent is None:
            annual_rate_percent = Decimal(self.config.default_annual_interest_percent)

        summary = self.interest_engine.apply_to_savings(self.list_accounts(), annual_rate_percent)
        self.checkpoint()
        return summary

    # Persistence

    def checkpoint(self) -> bool:
        """
        Write a consistent snapshot of users, accounts and transactions

        Holds the registry lock, every account lock (ascending account
        number) and the ledger lock while the collections are copied, so no
        operation is half-applied in the snapshot.
        """
        with ExitStack() as stack:
            stack.enter_context(self._registry_lock)
            accounts = [self._accounts[number] for number in sorted(self._accounts)]
            for account in accounts:
                stack.enter_context(account.lock)
            stack.enter_context(self.ledger.lock)

            users = self.credentials.snapshot_users()
            account_records = [Account.from_dict(account.to_dict()) for account in accounts]
            transactions = self.ledger.export_state()

        return self.snapshots.checkpoint(users, account_records, transactions)

    def close(self) -> None:
        self.storage.close()

    def _auto_checkpoint(self) -> None:
        if self.config.auto_checkpoint:
            self.checkpoint()

    def _account_not_found(self, action: str, account_no: str) -> TransactionResult:
        message = f"Account {account_no} not found"
        log_action(
            self.logger, "warning", message,
            action=action, resource=f"account:{account_no}",
            account_no=account_no, error_code=LedgerErrorCode.ACCOUNT_NOT_FOUND.value
        )
        return TransactionResult(False, message, None, LedgerErrorCode.ACCOUNT_NOT_FOUND)


def create_bank_system(
    config: Optional[LedgerConfig] = None,
    storage: Optional[StorageInterface] = None
) -> BankSystem:
    """Configure package logging from settings and build a BankSystem"""
    config = config or get_config()
    setup_logging(level=config.log_level, log_format=config.log_format, log_file=config.log_file)
    return BankSystem(storage=storage, config=config)
