"""
Ledger Kernel

The double-entry core behind reconciliation and statutory reporting:
- Balanced, append-only journal postings
- Fiscal-period lifecycle with close/post serialization
- Trial balance with an enforced accounting identity
- Append-only reconciliation history
"""

__version__ = "0.1.0"
