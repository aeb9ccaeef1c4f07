"""
Database connection, batch operations and the wallet store.
"""
