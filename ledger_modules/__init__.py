"""
Ledger Modules.

Operational sub-ledgers over the ledger kernel.  Each module owns its
transaction tables (orm.py) and a service that records documents and posts
their journal entries through the kernel JournalWriter, naming account
ROLES that the active LedgerConfig binds to concrete account codes.

Modules:
- gl: chart of accounts bootstrap from configuration
- parties: customers, vendors, employees
- ar: customer invoices and receipts
- ap: vendor bills, TDS withholding and payments
- cash: bank transactions
- payroll: monthly payroll records with statutory deductions
- expense: direct expenses (cash and bank)
- assets: fixed assets and the depreciation batch
"""
