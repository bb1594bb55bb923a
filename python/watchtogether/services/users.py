"""Identity directory service.

Maps identity-provider subjects to local user records. Records are written
only by identity sync events (upsert_user / delete_user); everything else
reads them.
"""

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from watchtogether import limits
from watchtogether.db.models import User
from watchtogether.db.session import insert_or_reread, transaction
from watchtogether.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from watchtogether.logging import get_logger
from watchtogether.schemas.user import UserOut
from watchtogether.services.validation import validate_email

logger = get_logger(__name__)


def _apply_profile(
    user: User, email: str, display_name: str | None, avatar_url: str | None
) -> None:
    user.email = email
    user.email_normalized = email.lower()
    user.display_name = display_name or None
    user.avatar_url = avatar_url or None


def upsert_user(
    db: Session,
    subject: str,
    email: str,
    display_name: str | None = None,
    avatar_url: str | None = None,
) -> UserOut:
    """Create or update the directory record for a subject.

    Idempotent and race-safe: a concurrent insert for the same subject is
    caught on the unique constraint and the winner's row is updated instead.

    Raises:
        InvalidRequestError: If subject is blank or email is malformed.
    """
    subject = (subject or "").strip()
    if not subject:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Subject is required")
    email = validate_email(email)

    existing = db.scalar(select(User).where(User.external_subject == subject))
    if existing is not None:
        with transaction(db):
            _apply_profile(existing, email, display_name, avatar_url)
        logger.info("user_updated", user_id=str(existing.id))
        return UserOut.model_validate(existing)

    user = User(external_subject=subject)
    _apply_profile(user, email, display_name, avatar_url)
    user, created = insert_or_reread(
        db, user, lambda: db.scalar(select(User).where(User.external_subject == subject))
    )
    if created:
        logger.info("user_created", user_id=str(user.id))
    else:
        # Lost the race; apply this profile to the winning row
        with transaction(db):
            _apply_profile(user, email, display_name, avatar_url)
    return UserOut.model_validate(user)


def delete_user(db: Session, subject: str) -> bool:
    """Remove the directory record for a subject.

    Lists and memberships referencing the subject are left untouched; the
    member is then omitted from member listings.

    Returns:
        True if a record was removed, False if none existed.
    """
    with transaction(db):
        result = db.execute(delete(User).where(User.external_subject == subject))
    deleted = result.rowcount > 0
    logger.info("user_deleted", deleted=deleted)
    return deleted


def get_user(db: Session, subject: str) -> UserOut:
    """Fetch a directory record by subject.

    Raises:
        NotFoundError: If no record exists for the subject.
    """
    user = db.scalar(select(User).where(User.external_subject == subject))
    if user is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")
    return UserOut.model_validate(user)


def get_users_by_subject(db: Session, subjects: list[str]) -> dict[str, User]:
    """Batch lookup keyed by subject; unknown subjects are simply absent."""
    if not subjects:
        return {}
    rows = db.scalars(select(User).where(User.external_subject.in_(subjects))).all()
    return {row.external_subject: row for row in rows}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_users(
    db: Session,
    email_prefix: str,
    exclude_subject: str | None = None,
    limit: int = limits.USER_SEARCH_LIMIT,
) -> list[UserOut]:
    """Case-insensitive email prefix search, used to find people to share with."""
    prefix = (email_prefix or "").strip().lower()
    if not prefix:
        return []

    limit = max(1, min(limit, limits.USER_SEARCH_LIMIT))
    query = (
        select(User)
        .where(User.email_normalized.like(f"{_escape_like(prefix)}%", escape="\\"))
        .order_by(User.email_normalized)
        .limit(limit)
    )
    if exclude_subject:
        query = query.where(User.external_subject != exclude_subject)

    return [UserOut.model_validate(row) for row in db.scalars(query).all()]
