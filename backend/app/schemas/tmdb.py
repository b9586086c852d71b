"""TMDB response payloads. Unknown fields are ignored, missing ones default."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.types import FlexibleFloat, FlexibleInt, LooseStr


class TMDBModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Genre(TMDBModel):
    id: FlexibleInt = 0
    name: LooseStr = ""


class ProductionCountry(TMDBModel):
    iso_3166_1: LooseStr = ""
    name: LooseStr = ""


class ExternalIds(TMDBModel):
    id: FlexibleInt = 0
    imdb_id: LooseStr = ""
    tvdb_id: FlexibleInt = 0
    wikidata_id: LooseStr = ""


class Movie(TMDBModel):
    id: FlexibleInt = 0
    title: LooseStr = ""
    original_title: LooseStr = ""
    overview: LooseStr = ""
    poster_path: LooseStr = ""
    backdrop_path: LooseStr = ""
    release_date: LooseStr = ""
    genre_ids: list[FlexibleInt] = Field(default_factory=list)
    genres: list[Genre] = Field(default_factory=list)
    vote_average: FlexibleFloat = 0.0
    vote_count: FlexibleInt = 0
    popularity: FlexibleFloat = 0.0
    adult: bool = False
    original_language: LooseStr = ""
    runtime: FlexibleInt = 0
    budget: FlexibleInt = 0
    revenue: FlexibleInt = 0
    imdb_id: LooseStr = ""
    production_countries: list[ProductionCountry] = Field(default_factory=list)
    external_ids: ExternalIds | None = None


class SeasonSummary(TMDBModel):
    id: FlexibleInt = 0
    name: LooseStr = ""
    season_number: FlexibleInt = 0
    episode_count: FlexibleInt = 0
    air_date: LooseStr = ""
    poster_path: LooseStr = ""
    overview: LooseStr = ""


class TVShow(TMDBModel):
    id: FlexibleInt = 0
    name: LooseStr = ""
    original_name: LooseStr = ""
    overview: LooseStr = ""
    poster_path: LooseStr = ""
    backdrop_path: LooseStr = ""
    first_air_date: LooseStr = ""
    last_air_date: LooseStr = ""
    genre_ids: list[FlexibleInt] = Field(default_factory=list)
    genres: list[Genre] = Field(default_factory=list)
    vote_average: FlexibleFloat = 0.0
    vote_count: FlexibleInt = 0
    popularity: FlexibleFloat = 0.0
    original_language: LooseStr = ""
    episode_run_time: list[FlexibleInt] = Field(default_factory=list)
    number_of_seasons: FlexibleInt = 0
    number_of_episodes: FlexibleInt = 0
    origin_country: list[LooseStr] = Field(default_factory=list)
    production_countries: list[ProductionCountry] = Field(default_factory=list)
    seasons: list[SeasonSummary] = Field(default_factory=list)
    external_ids: ExternalIds | None = None


class MultiResult(TMDBModel):
    id: FlexibleInt = 0
    media_type: LooseStr = ""
    title: LooseStr = ""
    name: LooseStr = ""
    original_title: LooseStr = ""
    original_name: LooseStr = ""
    overview: LooseStr = ""
    poster_path: LooseStr = ""
    backdrop_path: LooseStr = ""
    release_date: LooseStr = ""
    first_air_date: LooseStr = ""
    vote_average: FlexibleFloat = 0.0


class MoviePage(TMDBModel):
    page: FlexibleInt = 1
    results: list[Movie] = Field(default_factory=list)
    total_pages: FlexibleInt = 0
    total_results: FlexibleInt = 0


class TVPage(TMDBModel):
    page: FlexibleInt = 1
    results: list[TVShow] = Field(default_factory=list)
    total_pages: FlexibleInt = 0
    total_results: FlexibleInt = 0


class MultiPage(TMDBModel):
    page: FlexibleInt = 1
    results: list[MultiResult] = Field(default_factory=list)
    total_pages: FlexibleInt = 0
    total_results: FlexibleInt = 0


class FindResult(TMDBModel):
    movie_results: list[Movie] = Field(default_factory=list)
    tv_results: list[TVShow] = Field(default_factory=list)


class GenreList(TMDBModel):
    genres: list[Genre] = Field(default_factory=list)


class Episode(TMDBModel):
    id: FlexibleInt = 0
    name: LooseStr = ""
    episode_number: FlexibleInt = 0
    season_number: FlexibleInt = 0
    air_date: LooseStr = ""
    runtime: FlexibleInt = 0
    overview: LooseStr = ""
    still_path: LooseStr = ""


class SeasonDetails(TMDBModel):
    id: FlexibleInt = 0
    name: LooseStr = ""
    season_number: FlexibleInt = 0
    air_date: LooseStr = ""
    poster_path: LooseStr = ""
    episodes: list[Episode] = Field(default_factory=list)
