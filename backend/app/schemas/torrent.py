from __future__ import annotations
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from app.schemas.types import FlexibleInt, LooseStr, loose_list


def _size_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return f"{value:.0f}"
    return str(value)


def _quality_to_str(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return f"{value:.0f}p"
    return str(value)


class RedAPIInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    quality: Annotated[str, BeforeValidator(_quality_to_str)] = ""
    voices: Annotated[list[LooseStr], BeforeValidator(loose_list)] = Field(default_factory=list)
    types: Annotated[list[LooseStr], BeforeValidator(loose_list)] = Field(default_factory=list)
    seasons: Annotated[list[FlexibleInt], BeforeValidator(loose_list)] = Field(default_factory=list)


class RedAPITorrent(BaseModel):
    """Raw indexer row (PascalCase on the wire)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_pascal)

    title: LooseStr = ""
    tracker: LooseStr = ""
    size: Annotated[str, BeforeValidator(_size_to_str)] = ""
    seeders: FlexibleInt = 0
    peers: FlexibleInt = 0
    magnet_uri: LooseStr = ""
    publish_date: LooseStr = ""
    category_desc: LooseStr = ""
    details: LooseStr = ""
    info: RedAPIInfo | None = None


class RedAPIResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: list[RedAPITorrent] = Field(default_factory=list, alias="Results")


class TorrentResult(BaseModel):
    title: str = ""
    tracker: str = ""
    size: str = ""
    seeders: int = 0
    peers: int = 0
    quality: str = ""
    voice: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    seasons: list[int] = Field(default_factory=list)
    category: str = ""
    magnet: str = ""
    details: str = ""
    publish_date: str = ""
    source: str = "RedAPI"


class TitleInfo(BaseModel):
    title: str = ""
    original_title: str = ""
    year: str = ""
