"""
Contacts: one row per (owner, phone number) with free-text profile fields.
"""

from chatcrm.contacts.models import Contact

__all__ = ["Contact"]
