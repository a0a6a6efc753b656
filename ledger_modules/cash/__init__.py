"""Cash module: bank transactions, the bank sub-ledger."""
