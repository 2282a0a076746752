"""
chatcrm - contacts and contact-group management for the chat application.
"""

__version__ = "0.1.0"
