"""
Budget Ledger - Source Package

A household budget ledger that tracks a monthly budgeting cycle,
weekly pocket-cash allowances, two piggy banks and a safety fund.

DESIGN PRINCIPLES:
1. Every balance is derived from the transaction log, never cached
2. Money is stored in integer cents
3. Every mutation is a single database transaction
4. Fail early, fail visibly
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Ledger Team"
