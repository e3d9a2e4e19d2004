"""Operator tooling (replay of recorded operation sequences)."""
