"""Season-progress state machine for TV list items.

Pure functions over plain data: season_progress is a list of dicts
{season_number, status, rating?, notes?, started_at?, finished_at?} and the
media record's season list is [{season_number, episode_count, air_date?}].

Stored aggregate (aggregate_status), over every known season:
    any season watching          -> watching
    every season watched         -> watched
    every season dropped         -> dropped
    anything else                -> to_watch

Display status (display_status) is a softer read-only projection over
aired seasons only, where partial progress reads as "watching".
"""

from collections.abc import Iterable

from watchtogether.db.models import WatchStatus

TO_WATCH = WatchStatus.to_watch.value
WATCHING = WatchStatus.watching.value
WATCHED = WatchStatus.watched.value
DROPPED = WatchStatus.dropped.value


def progress_by_season(progress: Iterable[dict] | None) -> dict[int, dict]:
    return {entry["season_number"]: entry for entry in progress or []}


def known_season_numbers(seasons: list[dict] | None, progress: list[dict] | None) -> list[int]:
    """Season numbers the aggregate is computed over.

    The media record's season list when it has one; otherwise the seasons
    that have progress entries.
    """
    if seasons:
        return [season["season_number"] for season in seasons]
    return sorted(progress_by_season(progress))


def apply_season_status(
    progress: list[dict] | None, season_number: int, status: str
) -> list[dict]:
    """Return a new progress list with one season's status changed.

    - watching: any other season currently watching is downgraded to to_watch
    - to_watch: the season's entry is removed (its rating/notes/dates are lost)
    - otherwise: the entry is upserted, keeping its other fields
    """
    entries = [dict(entry) for entry in progress or []]

    if status == WATCHING:
        for entry in entries:
            if entry["status"] == WATCHING and entry["season_number"] != season_number:
                entry["status"] = TO_WATCH

    if status == TO_WATCH:
        return [entry for entry in entries if entry["season_number"] != season_number]

    for entry in entries:
        if entry["season_number"] == season_number:
            entry["status"] = status
            return entries

    entries.append({"season_number": season_number, "status": status})
    return entries


def aggregate_status(season_numbers: list[int], progress: list[dict] | None) -> str:
    """Derive the stored show status from per-season status.

    Seasons without a progress entry count as to_watch. A show with no
    known seasons is to_watch.
    """
    if not season_numbers:
        return TO_WATCH

    by_season = progress_by_season(progress)
    statuses = [by_season.get(n, {}).get("status", TO_WATCH) for n in season_numbers]

    if WATCHING in statuses:
        return WATCHING
    if all(s == WATCHED for s in statuses):
        return WATCHED
    if all(s == DROPPED for s in statuses):
        return DROPPED
    return TO_WATCH


def display_status(
    seasons: list[dict] | None, progress: list[dict] | None, fallback: str
) -> str:
    """Presentation status computed over aired seasons (those with an air date).

    Falls back to the stored status when no season has aired.
    """
    aired = [season["season_number"] for season in seasons or [] if season.get("air_date")]
    if not aired:
        return fallback

    by_season = progress_by_season(progress)
    statuses = [by_season.get(n, {}).get("status", TO_WATCH) for n in aired]

    watched = statuses.count(WATCHED)
    watching = statuses.count(WATCHING)
    dropped = statuses.count(DROPPED)
    to_watch = statuses.count(TO_WATCH)

    if watched == len(statuses):
        return WATCHED
    if watching:
        return WATCHING
    if watched and to_watch:
        return WATCHING
    if dropped == len(statuses):
        return DROPPED
    if dropped and watched:
        return WATCHING
    return TO_WATCH
