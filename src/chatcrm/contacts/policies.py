"""
Row-level access policies for contacts and memberships.

These mirror the PostgreSQL policies declared in ``storage/sql/V0001.up.sql``.
The SQL predicates are attached to every repository statement, so a backend
without row-level security (SQLite in tests) still enforces ownership, and
the boolean checks guard writes before they are issued.
"""

from uuid import UUID

from sqlalchemy import ColumnElement, and_, exists, select
from sqlalchemy.orm import aliased

from chatcrm.contacts.models import Contact
from chatcrm.groups.models import ChatGroup, ContactGroup


def contact_visible_to(caller_id: UUID) -> ColumnElement[bool]:
    """SELECT / UPDATE / DELETE on contacts: the caller owns the row."""
    return Contact.owner_id == caller_id


def can_write_contact(caller_id: UUID, owner_id: UUID | None) -> bool:
    """INSERT / UPDATE check on contacts.

    An absent owner is accepted; the store fills it with the caller.
    """
    return owner_id is None or owner_id == caller_id


def group_visible_to(caller_id: UUID) -> ColumnElement[bool]:
    """Any access to chat_groups: the caller owns the group."""
    return ChatGroup.owner_id == caller_id


def membership_visible_to(caller_id: UUID) -> ColumnElement[bool]:
    """SELECT / DELETE on contact_groups: the caller owns the referenced contact.

    The contact is aliased so only ``contact_groups`` correlates with the outer
    statement, which may itself join ``contacts``.
    """
    owned = aliased(Contact)
    return exists(
        select(owned.id).where(
            and_(
                owned.id == ContactGroup.contact_id,
                owned.owner_id == caller_id,
            )
        )
    )


def can_add_membership(
    caller_id: UUID,
    contact_owner_id: UUID | None,
    group_owner_id: UUID | None,
) -> bool:
    """INSERT check on contact_groups: the caller owns both the contact and the group."""
    return contact_owner_id == caller_id and group_owner_id == caller_id

