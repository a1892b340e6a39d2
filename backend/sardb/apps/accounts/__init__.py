"""
Accounts: member logins, roles and the permission keys each role grants.
"""
