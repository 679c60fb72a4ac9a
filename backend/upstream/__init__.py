"""
Clients for the upstream exploration-contract API.
"""
