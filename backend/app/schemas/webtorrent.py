from pydantic import BaseModel

from app.schemas.unified import CamelModel


class MetadataGenre(BaseModel):
    id: int
    name: str


class EpisodeMetadata(CamelModel):
    episode_number: int
    season_number: int
    name: str = ""
    overview: str | None = None
    runtime: int | None = None
    still_path: str | None = None


class SeasonMetadata(CamelModel):
    season_number: int
    name: str = ""
    episodes: list[EpisodeMetadata] = []


class MediaMetadata(CamelModel):
    """What the in-browser torrent player shows next to the playing file.

    Dumped with ``exclude_none`` so empty optional fields are omitted.
    """

    id: int
    title: str
    type: str
    year: int | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    overview: str | None = None
    runtime: int | None = None
    genres: list[MetadataGenre] | None = None
    seasons: list[SeasonMetadata] | None = None
    episodes: list[EpisodeMetadata] | None = None
