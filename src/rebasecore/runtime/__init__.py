"""Ledger runtime: operation transitions, fail-atomic apply and the synchronous facade."""
