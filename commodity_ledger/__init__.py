"""Commodity position and execution ledger package."""
