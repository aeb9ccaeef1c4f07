"""
Shared helpers for the SIGNAL wallet scanner.
"""
