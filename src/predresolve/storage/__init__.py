"""DuckDB ledger: markets and resolution attempts."""
