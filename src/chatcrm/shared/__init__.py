"""
Shared infrastructure: settings-aware logging, database sessions, exceptions.
"""
