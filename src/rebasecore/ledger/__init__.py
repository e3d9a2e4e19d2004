"""Ledger storage layer: fixed-point operators, state schema and account credits."""
