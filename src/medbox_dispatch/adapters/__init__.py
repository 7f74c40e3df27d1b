"""Adapters — in-memory implementations of the ports."""
