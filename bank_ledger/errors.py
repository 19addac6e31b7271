"""
Ledger Error Taxonomy

Domain errors for account, ledger, credential and persistence operations.
Account and ledger operations turn these into result values at the point
they occur; only lookups at the boundary raise them to the caller.
"""

from enum import Enum


class LedgerErrorCode(Enum):
    """Stable error codes carried by results and log records"""
    INVALID_AMOUNT = "invalid_amount"
    BELOW_MINIMUM_BALANCE = "below_minimum_balance"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    ACCOUNT_NOT_FOUND = "account_not_found"
    USER_NOT_FOUND = "user_not_found"
    USER_ALREADY_EXISTS = "user_already_exists"
    PERSISTENCE_UNAVAILABLE = "persistence_unavailable"
    COMPENSATION_FAILED = "compensation_failed"


class LedgerError(Exception):
    """Base class for all ledger domain errors"""
    code: LedgerErrorCode = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidAmountError(LedgerError):
    """Amount is zero or negative where a positive amount is required"""
    code = LedgerErrorCode.INVALID_AMOUNT


class BelowMinimumBalanceError(LedgerError):
    """Savings withdrawal would leave the balance under its floor"""
    code = LedgerErrorCode.BELOW_MINIMUM_BALANCE


class InsufficientFundsError(LedgerError):
    """Current account withdrawal exceeds the balance"""
    code = LedgerErrorCode.INSUFFICIENT_FUNDS


class AccountNotFoundError(LedgerError):
    code = LedgerErrorCode.ACCOUNT_NOT_FOUND


class UserNotFoundError(LedgerError):
    code = LedgerErrorCode.USER_NOT_FOUND


class UserAlreadyExistsError(LedgerError):
    code = LedgerErrorCode.USER_ALREADY_EXISTS


class PersistenceUnavailableError(LedgerError):
    """Snapshot storage could not be read or written"""
    code = LedgerErrorCode.PERSISTENCE_UNAVAILABLE


class CompensationFailedError(LedgerError):
    """Re-deposit into the source account failed after a transfer's second phase failed"""
    code = LedgerErrorCode.COMPENSATION_FAILED
