"""
Interest Module

Monthly interest for savings accounts. The monthly rate is the annual
percentage divided by 12 and by 100, held at 8 decimal places; the interest
amount is rounded half-up to 2 digits before it is credited.
"""

from decimal import Decimal, ROUND_HALF_UP
from dataclasses import dataclass, field
from typing import Iterable, List

from .currency import Money, to_decimal
from .logging_config import get_logger, log_action


MONTHLY_RATE_PRECISION = Decimal('0.00000001')


def monthly_rate(annual_rate_percent) -> Decimal:
    """Convert an annual percentage (e.g. 6 for 6%) into a monthly fraction"""
    annual = to_decimal(annual_rate_percent)
    return (annual / Decimal('12') / Decimal('100')).quantize(
        MONTHLY_RATE_PRECISION, rounding=ROUND_HALF_UP
    )


def calculate_monthly_interest(balance: Money, annual_rate_percent) -> Money:
    """One month of simple interest on `balance`, rounded to 2 digits half-up"""
    return balance * monthly_rate(annual_rate_percent)


@dataclass
class InterestRunSummary:
    """Totals for one batch interest run"""
    annual_rate_percent: Decimal
    accounts_examined: int = 0
    accounts_credited: int = 0
    total_interest: Money = field(default_factory=Money.zero)
    credited_accounts: List[str] = field(default_factory=list)


class InterestEngine:
    """
    Applies monthly interest across savings accounts
    """

    def __init__(self):
        self.logger = get_logger("bank_ledger.interest")

    def apply_to_savings(self, accounts: Iterable, annual_rate_percent) -> InterestRunSummary:
        """
        Credit one month of interest to every savings account

        Args:
            accounts: Accounts to consider; non-savings accounts are skipped
            annual_rate_percent: Annual rate as a percentage

        Returns:
            InterestRunSummary with counts and the total credited
        """
        rate = to_decimal(annual_rate_percent)
        summary = InterestRunSummary(annual_rate_percent=rate)

        for account in accounts:
            if not account.is_savings:
                continue
            summary.accounts_examined += 1

            interest = account.apply_monthly_interest(rate)
            if interest.is_positive():
                summary.accounts_credited += 1
                summary.total_interest = summary.total_interest + interest
                summary.credited_accounts.append(account.account_no)
                log_action(
                    self.logger, "debug", "Interest credited",
                    action="apply_interest", resource=f"account:{account.account_no}",
                    account_no=account.account_no,
                    extra={"interest": str(interest.amount), "balance": str(account.balance.amount)}
                )

        log_action(
            self.logger, "info", "Monthly interest run completed",
            action="apply_interest_batch",
            extra={
                "annual_rate_percent": str(rate),
                "accounts_examined": summary.accounts_examined,
                "accounts_credited": summary.accounts_credited,
                "total_interest": str(summary.total_interest.amount)
            }
        )

        return summary
