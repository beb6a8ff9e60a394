"""Split accounting: allocation, reconciliation and the ledger service."""
