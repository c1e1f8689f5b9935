"""
ExpenseTerminal API - plans, billing and transaction ingestion.
"""

__version__ = "1.0.0"
