# portfolio_performance/__init__.py
"""
Portfolio performance and tax engine.

Turns a transaction ledger and historical prices into daily performance
snapshots, time-weighted returns, period analytics and tax-lot exposure.
"""

__version__ = "0.1.0"
