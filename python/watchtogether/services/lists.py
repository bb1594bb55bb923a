"""List registry service layer.

Owns list records and their member roster. Every operation loads the list
first (NotFoundError), then checks the viewer's role (ForbiddenError), then
validates input (InvalidRequestError), and only then writes, in a single
transaction.

Roster rules:
- The owner holds the implicit creator role and is never a member row.
- At most LIST_MEMBERS_MAX members besides the owner.
- A subject appears at most once.
"""

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from watchtogether import limits
from watchtogether.auth.permissions import ListRole, can_edit, can_view, role_of
from watchtogether.db.models import ListMember, SortOrder, WatchList
from watchtogether.db.session import transaction
from watchtogether.errors import (
    ApiErrorCode,
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
)
from watchtogether.logging import get_logger
from watchtogether.schemas.list import ListMembersOut, ListOut, MemberOut
from watchtogether.services.changes import UNCHANGED, Change, apply_change
from watchtogether.services.users import get_users_by_subject
from watchtogether.services.validation import validate_string

logger = get_logger(__name__)


# =============================================================================
# Helpers
# =============================================================================


def load_list(db: Session, list_id: UUID) -> WatchList:
    """Fetch a list by id.

    Raises:
        NotFoundError: If the list does not exist.
    """
    watch_list = db.get(WatchList, list_id)
    if watch_list is None:
        raise NotFoundError(ApiErrorCode.E_LIST_NOT_FOUND, "List not found")
    return watch_list


def require_view(watch_list: WatchList, subject: str) -> ListRole:
    role = role_of(watch_list, subject)
    if not can_view(role):
        raise ForbiddenError(ApiErrorCode.E_FORBIDDEN, "You do not have access to this list")
    return role


def require_edit(watch_list: WatchList, subject: str) -> ListRole:
    role = role_of(watch_list, subject)
    if not can_edit(role):
        raise ForbiddenError(
            ApiErrorCode.E_FORBIDDEN, "You do not have permission to edit this list"
        )
    return role


def _list_out(watch_list: WatchList, role: ListRole) -> ListOut:
    return ListOut(
        id=watch_list.id,
        name=watch_list.name,
        description=watch_list.description,
        owner_subject=watch_list.owner_subject,
        default_sort=watch_list.default_sort,
        role=role.value,
        member_count=len(watch_list.members),
        created_at=watch_list.created_at,
        updated_at=watch_list.updated_at,
    )


def _validate_name(name: str | None) -> str:
    return validate_string(
        name,
        "List name",
        required=True,
        min_length=limits.LIST_NAME_MIN,
        max_length=limits.LIST_NAME_MAX,
        code=ApiErrorCode.E_NAME_INVALID,
    )


def _validate_description(description: str | None) -> str | None:
    return validate_string(
        description,
        "Description",
        max_length=limits.LIST_DESCRIPTION_MAX,
    )


def _find_member(watch_list: WatchList, member_subject: str) -> ListMember | None:
    for member in watch_list.members:
        if member.subject == member_subject:
            return member
    return None


def _reject_owner_target(watch_list: WatchList, member_subject: str, action: str) -> None:
    if member_subject == watch_list.owner_subject:
        raise InvalidRequestError(
            ApiErrorCode.E_OWNER_TARGET_FORBIDDEN, f"Cannot {action} the list owner"
        )


# =============================================================================
# List CRUD
# =============================================================================


def create_list(
    db: Session, subject: str, name: str, description: str | None = None
) -> ListOut:
    """Create a list owned by the viewer.

    Raises:
        InvalidRequestError: If name or description is out of bounds.
    """
    name = _validate_name(name)
    description = _validate_description(description)

    watch_list = WatchList(
        name=name,
        description=description,
        owner_subject=subject,
        default_sort=SortOrder.added.value,
    )
    with transaction(db):
        db.add(watch_list)

    logger.info("list_created", list_id=str(watch_list.id))
    return _list_out(watch_list, ListRole.creator)


def get_list(db: Session, subject: str, list_id: UUID) -> ListOut:
    watch_list = load_list(db, list_id)
    role = require_view(watch_list, subject)
    return _list_out(watch_list, role)


def update_list(
    db: Session,
    subject: str,
    list_id: UUID,
    *,
    name: str | None = None,
    description: Change = UNCHANGED,
    default_sort: str | None = None,
) -> ListOut:
    """Update name, description and/or default sort (creator or admin).

    name / default_sort of None mean "leave unchanged"; description takes a
    tri-state Change so it can be cleared.
    """
    watch_list = load_list(db, list_id)
    role = require_edit(watch_list, subject)

    new_name = _validate_name(name) if name is not None else watch_list.name
    new_description = _validate_description(apply_change(watch_list.description, description))
    if default_sort is not None:
        try:
            new_sort = SortOrder(default_sort).value
        except ValueError as e:
            raise InvalidRequestError(
                ApiErrorCode.E_INVALID_REQUEST, f"Unknown sort order: {default_sort}"
            ) from e
    else:
        new_sort = watch_list.default_sort

    with transaction(db):
        watch_list.name = new_name
        watch_list.description = new_description
        watch_list.default_sort = new_sort
        watch_list.touch()

    logger.info("list_updated", list_id=str(list_id))
    return _list_out(watch_list, role)


def delete_list(db: Session, subject: str, list_id: UUID) -> None:
    """Delete a list and all of its items and member rows (creator only)."""
    watch_list = load_list(db, list_id)
    if role_of(watch_list, subject) is not ListRole.creator:
        raise ForbiddenError(
            ApiErrorCode.E_OWNER_REQUIRED, "Only the list creator can delete this list"
        )

    item_count = len(watch_list.items)
    with transaction(db):
        db.delete(watch_list)

    logger.info("list_deleted", list_id=str(list_id), item_count=item_count)


def lists_visible_to(db: Session, subject: str) -> list[ListOut]:
    """Lists the viewer owns plus lists where the viewer is a member.

    Ordered by most recently updated first.
    """
    member_of = select(ListMember.list_id).where(ListMember.subject == subject)
    rows = db.scalars(
        select(WatchList)
        .where(or_(WatchList.owner_subject == subject, WatchList.id.in_(member_of)))
        .order_by(WatchList.updated_at.desc(), WatchList.id)
    ).all()

    result = []
    for watch_list in rows:
        role = role_of(watch_list, subject)
        if role is not None:
            result.append(_list_out(watch_list, role))
    return result


# =============================================================================
# Roster
# =============================================================================


def list_members(db: Session, subject: str, list_id: UUID) -> ListMembersOut:
    """Owner plus members resolved against the identity directory.

    Members without a directory record (never signed in) are omitted. The
    owner is always returned, with blank profile fields if not yet synced.
    """
    watch_list = load_list(db, list_id)
    require_view(watch_list, subject)

    subjects = [watch_list.owner_subject] + [m.subject for m in watch_list.members]
    users = get_users_by_subject(db, subjects)

    owner_user = users.get(watch_list.owner_subject)
    owner = MemberOut(
        subject=watch_list.owner_subject,
        role=ListRole.creator.value,
        email=owner_user.email if owner_user else None,
        display_name=owner_user.display_name if owner_user else None,
        avatar_url=owner_user.avatar_url if owner_user else None,
    )

    members = []
    for member in watch_list.members:
        user = users.get(member.subject)
        if user is None:
            continue
        members.append(
            MemberOut(
                subject=member.subject,
                role=member.role,
                email=user.email,
                display_name=user.display_name,
                avatar_url=user.avatar_url,
            )
        )

    return ListMembersOut(owner=owner, members=members)


def add_member(
    db: Session, subject: str, list_id: UUID, member_subject: str, role: str = "viewer"
) -> ListMembersOut:
    """Add a member to the roster (creator or admin).

    Raises:
        InvalidRequestError: Roster full, owner targeted, or bad role.
        ConflictError: Subject is already a member.
    """
    watch_list = load_list(db, list_id)
    require_edit(watch_list, subject)

    member_subject = (member_subject or "").strip()
    if not member_subject:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Member subject is required")
    if role not in (ListRole.admin.value, ListRole.viewer.value):
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, f"Invalid member role: {role}")

    if len(watch_list.members) >= limits.LIST_MEMBERS_MAX:
        raise InvalidRequestError(
            ApiErrorCode.E_ROSTER_FULL,
            f"Maximum {limits.LIST_MEMBERS_MAX} members allowed",
        )
    if _find_member(watch_list, member_subject) is not None:
        raise ConflictError(ApiErrorCode.E_MEMBER_EXISTS, "User is already a member of this list")
    _reject_owner_target(watch_list, member_subject, "add")

    position = max((m.position for m in watch_list.members), default=-1) + 1
    with transaction(
        db,
        conflict_code=ApiErrorCode.E_MEMBER_EXISTS,
        conflict_message="User is already a member of this list",
    ):
        watch_list.members.append(ListMember(subject=member_subject, role=role, position=position))
        watch_list.touch()

    logger.info("list_member_added", list_id=str(list_id), role=role)
    return list_members(db, subject, list_id)


def remove_member(db: Session, subject: str, list_id: UUID, member_subject: str) -> None:
    """Remove a member from the roster (creator or admin)."""
    watch_list = load_list(db, list_id)
    require_edit(watch_list, subject)
    _reject_owner_target(watch_list, member_subject, "remove")

    member = _find_member(watch_list, member_subject)
    if member is None:
        raise NotFoundError(ApiErrorCode.E_MEMBER_NOT_FOUND, "User is not a member of this list")

    with transaction(db):
        watch_list.members.remove(member)
        watch_list.touch()

    logger.info("list_member_removed", list_id=str(list_id))


def update_member_role(
    db: Session, subject: str, list_id: UUID, member_subject: str, role: str
) -> ListMembersOut:
    """Change a member's role between admin and viewer (creator or admin)."""
    watch_list = load_list(db, list_id)
    require_edit(watch_list, subject)
    _reject_owner_target(watch_list, member_subject, "change the role of")

    if role not in (ListRole.admin.value, ListRole.viewer.value):
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, f"Invalid member role: {role}")

    member = _find_member(watch_list, member_subject)
    if member is None:
        raise NotFoundError(ApiErrorCode.E_MEMBER_NOT_FOUND, "User is not a member of this list")

    with transaction(db):
        member.role = role
        watch_list.touch()

    logger.info("list_member_role_updated", list_id=str(list_id), role=role)
    return list_members(db, subject, list_id)
