"""General ledger setup: chart of accounts bootstrap from configuration."""
