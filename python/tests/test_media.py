"""Tests for media record normalization and lazy creation."""

from uuid import uuid4

import httpx
import pytest
import respx
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tests.helpers import movie_detail_payload, providers_payload, tv_detail_payload
from watchtogether.db.models import MediaRecord
from watchtogether.errors import ApiErrorCode, InvalidRequestError, NotFoundError, UpstreamError
from watchtogether.services import media as media_service
from watchtogether.services.tmdb import TMDBClient

TMDB_HOST = "api.themoviedb.org"
IMAGE_BASE = "https://image.tmdb.org/t/p"


def normalize(catalog_id, kind, detail, providers=None, region="US"):
    return media_service.normalize_media(
        catalog_id, kind, detail, providers, region=region, image_base_url=IMAGE_BASE
    )


def count_media(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(MediaRecord))


class TestNormalizeMedia:
    def test_movie(self):
        values = normalize(27205, "movie", movie_detail_payload(), providers_payload())

        assert values["title"] == "Inception"
        assert values["poster_url"] == f"{IMAGE_BASE}/w342/inception.jpg"
        assert values["backdrop_url"] == f"{IMAGE_BASE}/w780/inception-bg.jpg"
        assert values["release_date"] == "2010-07-16"
        assert [g["name"] for g in values["genres"]] == ["Action", "Science Fiction"]
        assert values["seasons"] is None
        assert values["total_seasons"] is None
        assert values["last_air_date"] is None
        assert values["watch_providers"][0]["provider_name"] == "Netflix"
        assert values["raw_catalog_payload"]["id"] == 27205

    def test_tv_drops_specials(self):
        values = normalize(1399, "tv", tv_detail_payload())

        assert [s["season_number"] for s in values["seasons"]] == [1, 2]
        assert values["total_seasons"] == 2
        assert values["total_episodes"] == 20
        assert values["title"] == "Game of Thrones"
        assert values["release_date"] == "2011-04-17"
        assert values["last_air_date"] == "2019-05-19"

    def test_tv_season_count_falls_back_to_seasons(self):
        detail = tv_detail_payload()
        del detail["number_of_seasons"]

        assert normalize(1399, "tv", detail)["total_seasons"] == 2

    def test_blank_text_becomes_none(self):
        values = normalize(1399, "tv", tv_detail_payload(overview="  "))

        assert values["tagline"] is None
        assert values["overview"] is None
        assert values["backdrop_url"] is None

    def test_providers_of_other_regions_ignored(self):
        values = normalize(27205, "movie", movie_detail_payload(), providers_payload(region="GB"))

        assert values["watch_providers"] is None

    def test_empty_flatrate_is_none(self):
        values = normalize(27205, "movie", movie_detail_payload(), providers_payload(flatrate=[]))

        assert values["watch_providers"] is None


class TestGetOrCreateMedia:
    @respx.mock
    def test_creates_on_first_use(self, db_session: Session, catalog_client: TMDBClient):
        respx.get(host=TMDB_HOST, path="/3/movie/27205").respond(200, json=movie_detail_payload())
        respx.get(host=TMDB_HOST, path="/3/movie/27205/watch/providers").respond(
            200, json=providers_payload()
        )

        media = media_service.get_or_create_media(db_session, catalog_client, 27205, "movie")

        assert media.catalog_id == 27205
        assert media.kind == "movie"
        assert media.poster_url.endswith("/w342/inception.jpg")
        assert media.watch_providers[0].normalized_name == "Netflix"

    @respx.mock
    def test_second_call_reuses_record(self, db_session: Session, catalog_client: TMDBClient):
        detail = respx.get(host=TMDB_HOST, path="/3/movie/27205").respond(
            200, json=movie_detail_payload()
        )
        respx.get(host=TMDB_HOST, path="/3/movie/27205/watch/providers").respond(
            200, json=providers_payload()
        )

        first = media_service.get_or_create_media(db_session, catalog_client, 27205, "movie")
        second = media_service.get_or_create_media(db_session, catalog_client, 27205, "movie")

        assert first.id == second.id
        assert detail.call_count == 1
        assert count_media(db_session) == 1

    @respx.mock
    def test_provider_failure_is_not_fatal(
        self, db_session: Session, catalog_client: TMDBClient
    ):
        respx.get(host=TMDB_HOST, path="/3/tv/1399").respond(200, json=tv_detail_payload())
        respx.get(host=TMDB_HOST, path="/3/tv/1399/watch/providers").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        media = media_service.get_or_create_media(db_session, catalog_client, 1399, "tv")

        assert media.watch_providers is None
        assert [s.season_number for s in media.seasons] == [1, 2]

    @respx.mock
    def test_detail_failure_is_upstream_error(
        self, db_session: Session, catalog_client: TMDBClient
    ):
        respx.get(host=TMDB_HOST, path="/3/movie/27205").respond(500)

        with pytest.raises(UpstreamError) as exc_info:
            media_service.get_or_create_media(db_session, catalog_client, 27205, "movie")

        assert exc_info.value.status_code == 502
        assert count_media(db_session) == 0

    def test_invalid_kind(self, db_session: Session, catalog_client: TMDBClient):
        with pytest.raises(InvalidRequestError) as exc_info:
            media_service.get_or_create_media(db_session, catalog_client, 27205, "podcast")
        assert exc_info.value.code == ApiErrorCode.E_INVALID_KIND

    @pytest.mark.parametrize("catalog_id", [0, -3])
    def test_invalid_catalog_id(self, db_session: Session, catalog_client: TMDBClient, catalog_id):
        with pytest.raises(InvalidRequestError):
            media_service.get_or_create_media(db_session, catalog_client, catalog_id, "movie")


class TestGetMedia:
    def test_missing(self, db_session: Session):
        with pytest.raises(NotFoundError) as exc_info:
            media_service.get_media(db_session, uuid4())
        assert exc_info.value.code == ApiErrorCode.E_MEDIA_NOT_FOUND

    def test_providers_collapsed_on_read(self, db_session: Session):
        record = MediaRecord(
            **normalize(
                27205,
                "movie",
                movie_detail_payload(),
                providers_payload(
                    flatrate=[
                        {"provider_id": 1796, "provider_name": "Netflix Standard with Ads"},
                        {"provider_id": 8, "provider_name": "Netflix"},
                    ]
                ),
            )
        )
        db_session.add(record)
        db_session.commit()

        media = media_service.get_media(db_session, record.id)

        assert [p.provider_name for p in media.watch_providers] == ["Netflix"]
