"""
Expense Manager - Source Package

Personal expense tracking core: expenses, categories, budgets and
preferences held in observable stores, mirrored to a local key-value
store and optionally synced with a remote document store.

DESIGN PRINCIPLES:
1. Stores own the data, the local store only mirrors it
2. Derived views are recomputed, never persisted
3. Lower layers never raise on bad input
4. Remote sync is last-write-wins by content equality
5. Remote storage is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Manager Team"
