"""Source-agnostic content model and response envelopes.

Everything here serializes with camelCase keys (``model_dump(by_alias=True)``),
which is what the web front-end consumes.
"""
from __future__ import annotations
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel

SourceTag = Literal["kp", "tmdb"]
MediaType = Literal["movie", "tv"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UnifiedGenre(CamelModel):
    id: str
    name: str


class UnifiedCastMember(CamelModel):
    id: int = 0
    name: str = ""
    character: str = ""


class ExternalIds(CamelModel):
    kp: int | None = None
    tmdb: int | None = None
    imdb: str = ""


class UnifiedEpisode(CamelModel):
    id: str
    source_id: str
    name: str = ""
    episode_number: int = 0
    season_number: int = 0
    air_date: str = ""
    duration: int = 0
    description: str = ""
    still_url: str = ""


class UnifiedSeason(CamelModel):
    id: str
    source_id: str
    name: str = ""
    season_number: int = 0
    episode_count: int = 0
    release_date: str = ""
    poster_url: str = ""
    episodes: list[UnifiedEpisode] | None = None

    @model_serializer(mode="wrap")
    def _drop_empty_episodes(self, handler):
        data = handler(self)
        if self.episodes is None:
            data.pop("episodes", None)
        return data


class UnifiedContent(CamelModel):
    id: str
    source_id: str
    title: str = ""
    original_title: str = ""
    description: str = ""
    release_date: str = ""
    end_date: str | None = None
    type: MediaType
    genres: list[UnifiedGenre] = Field(default_factory=list)
    rating: float = 0.0
    poster_url: str = ""
    backdrop_url: str = ""
    director: str = ""
    cast: list[UnifiedCastMember] = Field(default_factory=list)
    duration: int = 0
    country: str = ""
    language: str = ""
    budget: int | None = None
    revenue: int | None = None
    imdb_id: str = ""
    external_ids: ExternalIds = Field(default_factory=ExternalIds)
    seasons: list[UnifiedSeason] | None = None

    @model_serializer(mode="wrap")
    def _drop_movie_seasons(self, handler):
        data = handler(self)
        if self.seasons is None:
            data.pop("seasons", None)
        return data


class UnifiedSearchItem(CamelModel):
    id: str
    source_id: str
    title: str = ""
    type: MediaType
    original_type: str | None = None
    release_date: str = ""
    poster_url: str = ""
    rating: float = 0.0
    description: str = ""
    external_ids: ExternalIds = Field(default_factory=ExternalIds)

    @model_serializer(mode="wrap")
    def _drop_original_type(self, handler):
        data = handler(self)
        if not self.original_type:
            data.pop("originalType", None)
            data.pop("original_type", None)
        return data


class Pagination(CamelModel):
    page: int = 1
    total_pages: int = 0
    total_results: int = 0
    page_size: int = 0


class Metadata(CamelModel):
    fetched_at: str
    api_version: str = "3.0"
    response_time: int = 0
    query: str | None = None

    @model_serializer(mode="wrap")
    def _drop_empty_query(self, handler):
        data = handler(self)
        if not self.query:
            data.pop("query", None)
        return data


class SearchPage(BaseModel):
    """Mapped search result before it is wrapped in an envelope."""

    items: list[UnifiedSearchItem] = Field(default_factory=list)
    page: int = 1
    total_pages: int = 0
    total_results: int = 0

