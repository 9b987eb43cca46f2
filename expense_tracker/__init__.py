"""
Expense Tracker - Source Package

Personal expense and income tracking backed by a remote document store,
with savings shown in the currency of the user's choice.

DESIGN PRINCIPLES:
1. The storage backend is swappable
2. Derived data (totals, savings) is recomputed, never stored
3. Services are constructed explicitly and passed in
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
