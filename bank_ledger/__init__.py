"""
Bank Ledger

A small banking ledger: savings and current accounts, an append-only
transaction ledger with compensated transfers, monthly interest accrual,
and snapshot persistence. All monetary values use Decimal precision.
"""

__version__ = "1.0.0"
