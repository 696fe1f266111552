"""
WealthTrack - Source Package

The consistency engine of a personal-finance tracker: wallets grouped into
budgets, categorised income and expense transactions, transfers between
wallets, and savings/spending goals.

DESIGN PRINCIPLES:
1. Aggregates move only through one set of pure rules
2. One mutation = one atomic commit
3. Fail early, change nothing
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "WealthTrack Team"
