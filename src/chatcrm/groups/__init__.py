"""
Chat groups and their contact memberships.
"""

from chatcrm.groups.models import ChatGroup, ContactGroup

__all__ = ["ChatGroup", "ContactGroup"]
