"""Test helpers for authentication and seeding.

Provides:
- Token minting for test authentication
- Header generation for test requests
- Media payloads and seeded records shaped like catalog responses
"""

import time
from uuid import uuid4

import jwt
from sqlalchemy.orm import Session

from tests.support.mock_verifier import MockJwtVerifier
from watchtogether.db.models import MediaRecord

DEFAULT_ISSUER = "test-issuer"
DEFAULT_AUDIENCE = "test-audience"
DEFAULT_EXPIRES_IN = 3600  # 1 hour

INTERNAL_SECRET = "test-internal-secret"


def mint_test_token(
    subject: str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    issuer: str = DEFAULT_ISSUER,
    audience: str = DEFAULT_AUDIENCE,
    **extra_claims,
) -> str:
    """Mint a valid test JWT with `subject` as the sub claim."""
    now = int(time.time())
    payload = {
        "sub": subject,
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, MockJwtVerifier.get_private_key(), algorithm="RS256")


def auth_headers(subject: str, **token_kwargs) -> dict[str, str]:
    """Headers with a valid bearer token for the given subject."""
    return {"Authorization": f"Bearer {mint_test_token(subject, **token_kwargs)}"}


def internal_headers(secret: str = INTERNAL_SECRET) -> dict[str, str]:
    return {"X-Internal-Secret": secret}


def new_subject() -> str:
    return f"user_{uuid4().hex[:12]}"


def create_media(
    db: Session,
    *,
    catalog_id: int = 550,
    kind: str = "movie",
    title: str = "Fight Club",
    seasons: list[dict] | None = None,
    genres: list[dict] | None = None,
    release_date: str | None = "1999-10-15",
    watch_providers: list[dict] | None = None,
) -> MediaRecord:
    """Insert a media record directly, bypassing the catalog."""
    media = MediaRecord(
        catalog_id=catalog_id,
        kind=kind,
        title=title,
        release_date=release_date,
        genres=genres if genres is not None else [{"id": 18, "name": "Drama"}],
        seasons=seasons,
        total_seasons=len(seasons) if seasons else None,
        total_episodes=sum(s.get("episode_count") or 0 for s in seasons) if seasons else None,
        watch_providers=watch_providers,
        raw_catalog_payload={"id": catalog_id},
    )
    db.add(media)
    db.commit()
    return media


def create_show(
    db: Session,
    *,
    catalog_id: int = 1399,
    title: str = "Game of Thrones",
    season_count: int = 3,
    aired: int | None = None,
) -> MediaRecord:
    """A TV record with seasons 1..season_count; the first `aired` have air dates."""
    if aired is None:
        aired = season_count
    seasons = [
        {
            "season_number": n,
            "episode_count": 10,
            "air_date": f"20{10 + n}-04-01" if n <= aired else None,
        }
        for n in range(1, season_count + 1)
    ]
    return create_media(
        db,
        catalog_id=catalog_id,
        kind="tv",
        title=title,
        seasons=seasons,
        release_date="2011-04-17",
        genres=[{"id": 10765, "name": "Sci-Fi & Fantasy"}],
    )


def movie_detail_payload(catalog_id: int = 27205, **overrides) -> dict:
    payload = {
        "id": catalog_id,
        "title": "Inception",
        "poster_path": "/inception.jpg",
        "backdrop_path": "/inception-bg.jpg",
        "release_date": "2010-07-16",
        "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
        "overview": "A thief who steals corporate secrets through dream-sharing.",
        "tagline": "Your mind is the scene of the crime.",
        "vote_average": 8.4,
    }
    payload.update(overrides)
    return payload


def tv_detail_payload(catalog_id: int = 1399, **overrides) -> dict:
    payload = {
        "id": catalog_id,
        "name": "Game of Thrones",
        "poster_path": "/got.jpg",
        "backdrop_path": None,
        "first_air_date": "2011-04-17",
        "last_air_date": "2019-05-19",
        "genres": [{"id": 10765, "name": "Sci-Fi & Fantasy"}],
        "overview": "Seven noble families fight for control of Westeros.",
        "tagline": "",
        "vote_average": 8.5,
        "number_of_seasons": 2,
        "seasons": [
            {"season_number": 0, "episode_count": 14, "air_date": "2010-12-05"},
            {"season_number": 1, "episode_count": 10, "air_date": "2011-04-17"},
            {"season_number": 2, "episode_count": 10, "air_date": "2012-04-01"},
        ],
    }
    payload.update(overrides)
    return payload


def providers_payload(region: str = "US", flatrate: list[dict] | None = None) -> dict:
    if flatrate is None:
        flatrate = [
            {
                "provider_id": 8,
                "provider_name": "Netflix",
                "logo_path": "/netflix.png",
                "display_priority": 1,
            }
        ]
    return {"id": 1, "results": {region: {"flatrate": flatrate, "rent": []}}}
