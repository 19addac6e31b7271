"""
Tests for monthly interest calculation and batch runs
"""

from decimal import Decimal

from bank_ledger.currency import Money
from bank_ledger.accounts import Account, AccountType
from bank_ledger.interest import (
    InterestEngine, calculate_monthly_interest, monthly_rate
)


def make_account(account_no, account_type, balance):
    return Account(
        account_no=account_no,
        owner_username="owner",
        bank_name="SBI",
        account_type=account_type,
        opening_balance=Money.of(balance),
    )


class TestInterestCalculation:
    """Test rate conversion and rounding"""

    def test_monthly_rate_precision(self):
        """Test annual percent to monthly fraction at 8 places"""
        assert monthly_rate(6) == Decimal('0.00500000')
        assert monthly_rate(Decimal('3.5')) == Decimal('0.00291667')
        assert monthly_rate("4") == Decimal('0.00333333')

    def test_calculate_monthly_interest(self):
        """Test interest amount rounded to 2 digits half-up"""
        assert calculate_monthly_interest(Money(Decimal('10000')), 6) == Money(Decimal('50.00'))
        assert calculate_monthly_interest(Money(Decimal('1000')), 6) == Money(Decimal('5.00'))
        assert calculate_monthly_interest(Money(Decimal('1000')), 4) == Money(Decimal('3.33'))
        assert calculate_monthly_interest(Money(Decimal('1234.56')), Decimal('3.5')) == Money(Decimal('3.60'))

    def test_zero_inputs(self):
        """Test zero balance or zero rate gives zero"""
        assert calculate_monthly_interest(Money.zero(), 10).is_zero()
        assert calculate_monthly_interest(Money(Decimal('5000')), 0).is_zero()


class TestInterestEngine:
    """Test batch interest over many accounts"""

    def setup_method(self):
        self.engine = InterestEngine()
        self.rich = make_account("100000000001", AccountType.SAVINGS, "10000")
        self.poor = make_account("100000000002", AccountType.SAVINGS, "0")
        self.business = make_account("200000000003", AccountType.CURRENT, "50000")

    def test_only_savings_credited(self):
        """Test that current accounts are skipped"""
        summary = self.engine.apply_to_savings([self.rich, self.poor, self.business], 6)

        assert summary.accounts_examined == 2
        assert summary.accounts_credited == 1
        assert summary.credited_accounts == ["100000000001"]
        assert summary.total_interest == Money(Decimal('50.00'))
        assert self.rich.balance == Money(Decimal('10050.00'))
        assert self.poor.balance.is_zero()
        assert self.business.balance == Money(Decimal('50000'))

    def test_repeated_runs_compound(self):
        """Test that the second month earns interest on the first"""
        self.engine.apply_to_savings([self.rich], 6)
        summary = self.engine.apply_to_savings([self.rich], 6)

        assert summary.total_interest == Money(Decimal('50.25'))
        assert self.rich.balance == Money(Decimal('10100.25'))

    def test_summary_rate(self):
        """Test that the summary records the rate used"""
        summary = self.engine.apply_to_savings([], "2.5")
        assert summary.annual_rate_percent == Decimal('2.5')
        assert summary.accounts_examined == 0
        assert summary.total_interest.is_zero()
