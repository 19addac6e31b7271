"""
Account Module

Savings and current accounts sharing one record type. The variant is a tag
(AccountType); withdrawal eligibility is looked up in a per-variant rule
table and only savings accounts accrue interest.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from enum import Enum
import threading

from .currency import Money, AmountLike
from .errors import (
    LedgerError, LedgerErrorCode, InvalidAmountError,
    BelowMinimumBalanceError, InsufficientFundsError
)
from .interest import calculate_monthly_interest


class AccountType(Enum):
    """Account variants"""
    SAVINGS = "savings"   # Minimum balance floor, earns monthly interest
    CURRENT = "current"   # No floor, no interest


DEFAULT_SAVINGS_MIN_BALANCE = Money(Decimal('1000'))

# Fields fixed once the account is opened
_IMMUTABLE_FIELDS = frozenset({'account_no', 'owner_username', 'bank_name', 'account_type', 'min_balance'})


@dataclass
class AccountOperationResult:
    """Outcome of a single deposit or withdrawal against one account"""
    success: bool
    message: str
    error: Optional[LedgerErrorCode] = None

    @classmethod
    def ok(cls, message: str) -> 'AccountOperationResult':
        return cls(success=True, message=message)

    @classmethod
    def failed(cls, error: LedgerError) -> 'AccountOperationResult':
        return cls(success=False, message=error.message, error=error.code)


@dataclass(eq=False)
class Account:
    """
    Balance-holding account identified by a unique account number.

    The balance is only changed through deposit(), withdraw() and, for
    savings accounts, apply_monthly_interest(). Callers that need several
    operations to appear atomic hold `lock` around them.
    """
    account_no: str
    owner_username: str
    bank_name: str
    account_type: AccountType
    min_balance: Optional[Money] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Zero for new accounts, the checkpointed balance for restored ones
    opening_balance: Money = field(default_factory=Money.zero, repr=False)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def __post_init__(self):
        if not self.account_no or not self.account_no.isdigit():
            raise ValueError("Account number must be a non-empty string of digits")

        if self.account_type == AccountType.SAVINGS:
            floor = DEFAULT_SAVINGS_MIN_BALANCE if self.min_balance is None else self.min_balance
            object.__setattr__(self, 'min_balance', Money.of(floor).require_non_negative())
        elif self.min_balance is not None:
            raise ValueError("Only savings accounts carry a minimum balance")

        self._balance = Money.of(self.opening_balance).require_non_negative()

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _IMMUTABLE_FIELDS and name in self.__dict__:
            raise AttributeError(f"{name} cannot be changed once the account is opened")
        object.__setattr__(self, name, value)

    @property
    def balance(self) -> Money:
        """Current balance"""
        return self._balance

    @property
    def is_savings(self) -> bool:
        return self.account_type == AccountType.SAVINGS

    @property
    def is_current(self) -> bool:
        return self.account_type == AccountType.CURRENT

    def deposit(self, amount: AmountLike) -> AccountOperationResult:
        """Increase the balance by a strictly positive amount"""
        try:
            amount = Money.of(amount).require_positive()
        except InvalidAmountError:
            return AccountOperationResult.failed(
                InvalidAmountError(f"Invalid deposit amount: {amount}")
            )

        with self.lock:
            self._balance = self._balance + amount
        return AccountOperationResult.ok(f"Deposited {amount.to_string()}")

    def withdraw(self, amount: AmountLike) -> AccountOperationResult:
        """Decrease the balance if this variant's withdrawal rule allows it"""
        try:
            amount = Money.of(amount).require_positive()
        except InvalidAmountError:
            return AccountOperationResult.failed(
                InvalidAmountError(f"Invalid withdraw amount: {amount}")
            )

        with self.lock:
            try:
                _WITHDRAWAL_RULES[self.account_type](self, amount)
            except LedgerError as e:
                return AccountOperationResult.failed(e)
            self._balance = self._balance - amount
        return AccountOperationResult.ok(f"Withdrew {amount.to_string()}")

    def apply_monthly_interest(self, annual_rate_percent) -> Money:
        """
        Credit one month of interest at the given annual rate.

        Interest is balance * (annual_rate_percent / 12 / 100), rounded
        half-up to 2 digits, and is only added when strictly positive.

        Returns:
            The interest credited (zero when nothing was added)
        """
        if not self.is_savings:
            raise ValueError(f"Account {self.account_no} is not a savings account")

        with self.lock:
            interest = calculate_monthly_interest(self._balance, annual_rate_percent)
            if not interest.is_positive():
                return Money.zero()
            self._balance = self._balance + interest
            return interest

    def account_summary(self) -> str:
        """Read-only description: owner, number and balance"""
        label = _SUMMARY_LABELS[self.account_type]
        return f"{label}(owner={self.owner_username}, no={self.account_no}, balance={self.balance.to_string()})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert Account to dictionary for storage"""
        with self.lock:
            return {
                'account_no': self.account_no,
                'owner_username': self.owner_username,
                'bank_name': self.bank_name,
                'account_type': self.account_type.value,
                'balance': str(self._balance.amount),
                'min_balance': str(self.min_balance.amount) if self.min_balance is not None else None,
                'created_at': self.created_at.isoformat(),
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        """Convert dictionary to Account"""
        min_balance = None
        if data.get('min_balance') is not None:
            min_balance = Money(Decimal(data['min_balance']))

        return cls(
            account_no=data['account_no'],
            owner_username=data['owner_username'],
            bank_name=data['bank_name'],
            account_type=AccountType(data['account_type']),
            min_balance=min_balance,
            created_at=datetime.fromisoformat(data['created_at']),
            opening_balance=Money(Decimal(data['balance'])),
        )


def _check_savings_withdrawal(account: Account, amount: Money) -> None:
    if account.balance - amount < account.min_balance:
        raise BelowMinimumBalanceError(
            f"Minimum balance {account.min_balance.to_string()} must be maintained"
        )


def _check_current_withdrawal(account: Account, amount: Money) -> None:
    if amount > account.balance:
        raise InsufficientFundsError("Insufficient funds")


_WITHDRAWAL_RULES: Dict[AccountType, Callable[[Account, Money], None]] = {
    AccountType.SAVINGS: _check_savings_withdrawal,
    AccountType.CURRENT: _check_current_withdrawal,
}

_SUMMARY_LABELS = {
    AccountType.SAVINGS: "SavingsAccount",
    AccountType.CURRENT: "CurrentAccount",
}


def open_account(
    account_no: str,
    owner_username: str,
    bank_name: str,
    account_type: AccountType,
    min_balance: Optional[Money] = None
) -> Account:
    """
    Build a new zero-balance account

    Args:
        account_no: Freshly issued account number
        owner_username: Username of an existing credential entry
        bank_name: Descriptive bank name
        account_type: SAVINGS or CURRENT
        min_balance: Savings floor (defaults to 1000.00; ignored for current)

    Returns:
        Created Account object
    """
    return Account(
        account_no=account_no,
        owner_username=owner_username,
        bank_name=bank_name,
        account_type=account_type,
        min_balance=min_balance if account_type == AccountType.SAVINGS else None,
    )
