"""
Accounts: users, roles, login and login history.
"""
