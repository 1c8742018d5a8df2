"""
Ledger Kernel

Multi-tenant double-entry bookkeeping core:
- Hierarchical chart of accounts per tenant
- Balanced, sequentially numbered journal entries
- Audit-preserving reversal of posted entries
- Trial balances and running ledgers computed from posted lines
"""

__version__ = "0.1.0"
