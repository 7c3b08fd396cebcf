"""
Bank accounts, transactions, transfers and reconciliation statements.
"""
