"""
Scheduled tasks for the SIGNAL wallet scanner.
"""
