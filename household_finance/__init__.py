"""Household finance backend: shared accounts, categories and bank statement import."""

__version__ = "0.1.0"
