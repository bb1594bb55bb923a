"""List-item tracking engine.

Owns watch status and per-field tracking data of list entries, including
the season-progress state machine for TV shows.

Every mutation:
1. loads the item (or list) - NotFoundError
2. checks the viewer can edit the list - ForbiddenError
3. validates input - InvalidRequestError
4. writes item fields and bumps the list's updated_at in one transaction

Status rules:
- movie: status is written directly.
- tv: status is derived from season progress on every season status
  change; a direct set is only allowed to force "dropped".

Season rating / notes / dates upsert a to_watch entry when the season has
no progress yet and never recompute the aggregate status.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from watchtogether import limits
from watchtogether.db.models import (
    ListItem,
    MediaKind,
    MediaRecord,
    Priority,
    SortOrder,
    WatchList,
    WatchStatus,
)
from watchtogether.db.session import transaction
from watchtogether.errors import (
    ApiErrorCode,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
)
from watchtogether.logging import get_logger
from watchtogether.schemas.item import ExportItemOut, ExportOut, ListItemOut
from watchtogether.services import tv_status
from watchtogether.services.changes import UNCHANGED, Change, apply_change
from watchtogether.services.lists import load_list, require_edit, require_view
from watchtogether.services.media import media_out
from watchtogether.services.validation import (
    validate_dates,
    validate_rating,
    validate_season_number,
    validate_string,
    validate_tags,
)

logger = get_logger(__name__)


# =============================================================================
# Helpers
# =============================================================================


def _load_item(db: Session, item_id: UUID) -> ListItem:
    item = db.get(ListItem, item_id)
    if item is None:
        raise NotFoundError(ApiErrorCode.E_ITEM_NOT_FOUND, "List item not found")
    return item


def _load_editable_item(db: Session, subject: str, item_id: UUID) -> ListItem:
    item = _load_item(db, item_id)
    require_edit(item.watch_list, subject)
    return item


def _require_tv(item: ListItem) -> None:
    if item.media.kind != MediaKind.tv.value:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_KIND, "This operation is only for TV shows"
        )


def _parse_status(status: str) -> str:
    try:
        return WatchStatus(status).value
    except ValueError as e:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST, f"Unknown status: {status}"
        ) from e


def _validate_notes(notes: str | None) -> str | None:
    return validate_string(notes, "Notes", max_length=limits.NOTES_MAX)


def item_out(item: ListItem) -> ListItemOut:
    media = item.media
    if media.kind == MediaKind.tv.value:
        display = tv_status.display_status(media.seasons, item.season_progress, item.status)
    else:
        display = item.status

    return ListItemOut(
        id=item.id,
        list_id=item.list_id,
        media_id=item.media_id,
        status=item.status,
        display_status=display,
        rating=item.rating,
        notes=item.notes,
        priority=item.priority,
        tags=item.tags,
        started_at=item.started_at,
        finished_at=item.finished_at,
        season_progress=item.season_progress,
        created_at=item.created_at,
        media=media_out(media),
    )


def _commit_item(db: Session, item: ListItem, **fields) -> ListItemOut:
    """Write fields onto the item and bump the list in one transaction."""
    with transaction(db):
        for name, value in fields.items():
            setattr(item, name, value)
        item.watch_list.touch()
    return item_out(item)


def _season_entry(progress: list[dict], season_number: int) -> dict:
    for entry in progress:
        if entry["season_number"] == season_number:
            return entry
    return {}


def _upsert_season_fields(
    progress: list[dict] | None, season_number: int, **fields
) -> list[dict]:
    """New progress list with fields set on one season (None removes a field).

    A season without an entry gets one with status to_watch.
    """
    entries = [dict(entry) for entry in progress or []]
    entry = _season_entry(entries, season_number)
    if not entry:
        entry = {"season_number": season_number, "status": WatchStatus.to_watch.value}
        entries.append(entry)

    for name, value in fields.items():
        if value is None:
            entry.pop(name, None)
        else:
            entry[name] = value
    return entries


_SORT_COLUMNS = {
    SortOrder.added.value: lambda: (ListItem.created_at.asc(), ListItem.id.asc()),
    SortOrder.release.value: lambda: (
        MediaRecord.release_date.desc().nulls_last(),
        ListItem.created_at.asc(),
    ),
    SortOrder.rating.value: lambda: (
        ListItem.rating.desc().nulls_last(),
        ListItem.created_at.asc(),
    ),
    SortOrder.alpha.value: lambda: (func.lower(MediaRecord.title).asc(), ListItem.created_at.asc()),
}


def _items_query(watch_list: WatchList, sort: str | None):
    sort = sort or watch_list.default_sort
    if sort not in _SORT_COLUMNS:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, f"Unknown sort order: {sort}")
    return (
        select(ListItem)
        .join(MediaRecord, ListItem.media_id == MediaRecord.id)
        .where(ListItem.list_id == watch_list.id)
        .order_by(*_SORT_COLUMNS[sort]())
    )


# =============================================================================
# Items
# =============================================================================


def add_item(
    db: Session,
    subject: str,
    list_id: UUID,
    media_id: UUID,
    status: str = WatchStatus.to_watch.value,
) -> ListItemOut:
    """Add a media record to a list.

    Not idempotent: a second add of the same media is a ConflictError.
    """
    watch_list = load_list(db, list_id)
    require_edit(watch_list, subject)

    media = db.get(MediaRecord, media_id)
    if media is None:
        raise NotFoundError(ApiErrorCode.E_MEDIA_NOT_FOUND, "Media not found")
    status = _parse_status(status)

    duplicate = db.scalar(
        select(ListItem.id).where(ListItem.list_id == list_id, ListItem.media_id == media_id)
    )
    if duplicate is not None:
        raise ConflictError(ApiErrorCode.E_ITEM_EXISTS, "This item already exists in the list")

    item = ListItem(watch_list=watch_list, media=media, status=status)
    with transaction(
        db,
        conflict_code=ApiErrorCode.E_ITEM_EXISTS,
        conflict_message="This item already exists in the list",
    ):
        db.add(item)
        watch_list.touch()

    logger.info("list_item_added", list_id=str(list_id), item_id=str(item.id))
    return item_out(item)


def get_items(
    db: Session,
    subject: str,
    list_id: UUID,
    *,
    sort: str | None = None,
    limit: int = limits.ITEMS_PAGE_DEFAULT,
    offset: int = 0,
) -> list[ListItemOut]:
    """Items of a list with media joined, ordered by sort or the list default."""
    watch_list = load_list(db, list_id)
    require_view(watch_list, subject)

    limit = max(1, min(limit, limits.ITEMS_PAGE_MAX))
    offset = max(0, offset)
    rows = db.scalars(_items_query(watch_list, sort).limit(limit).offset(offset)).unique().all()
    return [item_out(item) for item in rows]


def get_item(db: Session, subject: str, item_id: UUID) -> ListItemOut:
    item = _load_item(db, item_id)
    require_view(item.watch_list, subject)
    return item_out(item)


def delete_item(db: Session, subject: str, item_id: UUID) -> None:
    """Remove an item from its list. The media record is untouched."""
    item = _load_editable_item(db, subject, item_id)
    watch_list = item.watch_list
    list_id = item.list_id
    with transaction(db):
        watch_list.touch()
        db.delete(item)
    db.expire(watch_list, ["items"])
    logger.info("list_item_deleted", list_id=str(list_id), item_id=str(item_id))


# =============================================================================
# Status
# =============================================================================


def set_status(db: Session, subject: str, item_id: UUID, status: str) -> ListItemOut:
    """Set the item status.

    Movies accept any status. TV shows accept only "dropped"; every other
    TV status is derived from season progress.
    """
    item = _load_editable_item(db, subject, item_id)
    status = _parse_status(status)

    if item.media.kind == MediaKind.tv.value and status != WatchStatus.dropped.value:
        raise InvalidRequestError(
            ApiErrorCode.E_STATUS_NOT_ALLOWED,
            "For TV shows, update season status instead of show status",
        )

    return _commit_item(db, item, status=status)


def set_season_status(
    db: Session, subject: str, item_id: UUID, season_number: int, status: str
) -> ListItemOut:
    """Change one season's status and recompute the show status."""
    item = _load_editable_item(db, subject, item_id)
    _require_tv(item)
    season_number = validate_season_number(season_number)
    status = _parse_status(status)

    progress = tv_status.apply_season_status(item.season_progress, season_number, status)
    seasons = tv_status.known_season_numbers(item.media.seasons, progress)
    aggregate = tv_status.aggregate_status(seasons, progress)

    result = _commit_item(db, item, season_progress=progress or None, status=aggregate)
    logger.info(
        "season_status_updated",
        item_id=str(item_id),
        season_number=season_number,
        status=status,
        aggregate=aggregate,
    )
    return result


# =============================================================================
# Per-field updates
# =============================================================================


def set_rating(db: Session, subject: str, item_id: UUID, rating: int | None) -> ListItemOut:
    item = _load_editable_item(db, subject, item_id)
    return _commit_item(db, item, rating=validate_rating(rating))


def set_notes(db: Session, subject: str, item_id: UUID, notes: str | None) -> ListItemOut:
    item = _load_editable_item(db, subject, item_id)
    return _commit_item(db, item, notes=_validate_notes(notes))


def set_priority(db: Session, subject: str, item_id: UUID, priority: str | None) -> ListItemOut:
    item = _load_editable_item(db, subject, item_id)
    if priority is not None:
        try:
            priority = Priority(priority).value
        except ValueError as e:
            raise InvalidRequestError(
                ApiErrorCode.E_INVALID_REQUEST, "Priority must be low, medium or high"
            ) from e
    return _commit_item(db, item, priority=priority)


def set_tags(db: Session, subject: str, item_id: UUID, tags: list[str] | None) -> ListItemOut:
    item = _load_editable_item(db, subject, item_id)
    return _commit_item(db, item, tags=validate_tags(tags))


def set_dates(
    db: Session,
    subject: str,
    item_id: UUID,
    started_at: Change = UNCHANGED,
    finished_at: Change = UNCHANGED,
) -> ListItemOut:
    """Tri-state update of started_at / finished_at, validated after merging."""
    item = _load_editable_item(db, subject, item_id)

    new_started = apply_change(item.started_at, started_at)
    new_finished = apply_change(item.finished_at, finished_at)
    validate_dates(new_started, new_finished)

    return _commit_item(db, item, started_at=new_started, finished_at=new_finished)


# =============================================================================
# Season field updates
# =============================================================================


def set_season_rating(
    db: Session, subject: str, item_id: UUID, season_number: int, rating: int | None
) -> ListItemOut:
    item = _load_editable_item(db, subject, item_id)
    _require_tv(item)
    season_number = validate_season_number(season_number)
    rating = validate_rating(rating, "Season rating")

    progress = _upsert_season_fields(item.season_progress, season_number, rating=rating)
    return _commit_item(db, item, season_progress=progress)


def set_season_notes(
    db: Session, subject: str, item_id: UUID, season_number: int, notes: str | None
) -> ListItemOut:
    item = _load_editable_item(db, subject, item_id)
    _require_tv(item)
    season_number = validate_season_number(season_number)
    notes = _validate_notes(notes)

    progress = _upsert_season_fields(item.season_progress, season_number, notes=notes)
    return _commit_item(db, item, season_progress=progress)


def set_season_dates(
    db: Session,
    subject: str,
    item_id: UUID,
    season_number: int,
    started_at: Change = UNCHANGED,
    finished_at: Change = UNCHANGED,
) -> ListItemOut:
    item = _load_editable_item(db, subject, item_id)
    _require_tv(item)
    season_number = validate_season_number(season_number)

    current = _season_entry(item.season_progress or [], season_number)
    new_started = apply_change(current.get("started_at"), started_at)
    new_finished = apply_change(current.get("finished_at"), finished_at)
    validate_dates(new_started, new_finished)

    progress = _upsert_season_fields(
        item.season_progress,
        season_number,
        started_at=new_started,
        finished_at=new_finished,
    )
    return _commit_item(db, item, season_progress=progress)


# =============================================================================
# Export
# =============================================================================


def _joined(values: list[str] | None) -> str | None:
    values = [v for v in values or [] if v]
    return ", ".join(values) if values else None


def export_list_items(db: Session, subject: str, list_id: UUID) -> ExportOut:
    """Flat read-only projection of every item, in insertion order."""
    watch_list = load_list(db, list_id)
    require_view(watch_list, subject)

    rows = db.scalars(_items_query(watch_list, SortOrder.added.value)).unique().all()
    items = [
        ExportItemOut(
            title=item.media.title,
            kind=item.media.kind,
            status=item.status,
            rating=item.rating,
            priority=item.priority,
            tags=_joined(item.tags),
            started_at=item.started_at,
            finished_at=item.finished_at,
            notes=item.notes,
            release_date=item.media.release_date,
            genres=_joined([g.get("name") for g in item.media.genres or []]),
            total_seasons=item.media.total_seasons,
            total_episodes=item.media.total_episodes,
        )
        for item in rows
    ]

    return ExportOut(list_name=watch_list.name, exported_at=datetime.now(UTC), items=items)
