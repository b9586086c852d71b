"""Kinopoisk unofficial API payloads (camelCase on the wire)."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.types import FlexibleFloat, FlexibleInt, LooseStr


class KPModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


class KPCountry(KPModel):
    country: LooseStr = ""


class KPGenre(KPModel):
    genre: LooseStr = ""


class KPFilm(KPModel):
    """Full film record from /v2.2/films/{id}."""

    kinopoisk_id: FlexibleInt = 0
    imdb_id: LooseStr = ""
    name_ru: LooseStr = ""
    name_en: LooseStr = ""
    name_original: LooseStr = ""
    poster_url: LooseStr = ""
    poster_url_preview: LooseStr = ""
    cover_url: LooseStr = ""
    rating_kinopoisk: FlexibleFloat = 0.0
    rating_kinopoisk_vote_count: FlexibleInt = 0
    rating_imdb: FlexibleFloat = 0.0
    year: FlexibleInt = 0
    film_length: FlexibleInt = 0
    slogan: LooseStr = ""
    description: LooseStr = ""
    short_description: LooseStr = ""
    type: LooseStr = ""
    countries: list[KPCountry] = Field(default_factory=list)
    genres: list[KPGenre] = Field(default_factory=list)
    start_year: FlexibleInt = 0
    end_year: FlexibleInt = 0
    serial: bool | None = False
    completed: bool | None = False


class KPFilmShort(KPModel):
    """List row; older endpoints use filmId + string rating, newer kinopoiskId + ratingKinopoisk."""

    kinopoisk_id: FlexibleInt = 0
    film_id: FlexibleInt = 0
    imdb_id: LooseStr = ""
    name_ru: LooseStr = ""
    name_en: LooseStr = ""
    name_original: LooseStr = ""
    type: LooseStr = ""
    year: LooseStr = ""
    description: LooseStr = ""
    film_length: LooseStr = ""
    countries: list[KPCountry] = Field(default_factory=list)
    genres: list[KPGenre] = Field(default_factory=list)
    rating: LooseStr = ""
    rating_kinopoisk: FlexibleFloat = 0.0
    rating_vote_count: FlexibleInt = 0
    poster_url: LooseStr = ""
    poster_url_preview: LooseStr = ""


class KPFilmList(KPModel):
    films: list[KPFilmShort] = Field(default_factory=list)
    total_pages: FlexibleInt = 0
    total_results: FlexibleInt = 0
