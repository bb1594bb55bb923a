"""Role resolution and access predicates for shared lists.

These predicates are the single source of truth for list access. They are
pure: no session, no I/O, no exceptions. Services load the list first
(existence failures win), then call role_of and the predicate they need.

Roles:
- creator: the list owner (implicit, never stored as a member row)
- admin: member who may edit the list, its roster and its items
- viewer: member with read-only access
- None: no access
"""

from enum import Enum

from watchtogether.db.models import WatchList


class ListRole(str, Enum):
    """A viewer's role on a list. Absence of access is None, not a member."""

    creator = "creator"
    admin = "admin"
    viewer = "viewer"


def role_of(watch_list: WatchList, subject: str) -> ListRole | None:
    """Return the subject's role on the list, or None."""
    if watch_list.owner_subject == subject:
        return ListRole.creator

    for member in watch_list.members:
        if member.subject == subject:
            return ListRole(member.role)

    return None


def can_view(role: ListRole | None) -> bool:
    return role is not None


def can_edit(role: ListRole | None) -> bool:
    return role in (ListRole.creator, ListRole.admin)
