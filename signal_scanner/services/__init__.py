"""
External API clients.
"""
