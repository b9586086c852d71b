"""Stateless torrent result pipeline: parse, filter, sort, group.

All functions take and return lists of ``TorrentResult`` and never mutate
their input rows.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field

from app.schemas.torrent import RedAPITorrent, TorrentResult

QUALITY_LADDER = (
    (re.compile(r"2160p|4k", re.IGNORECASE), "4K"),
    (re.compile(r"1440p", re.IGNORECASE), "1440p"),
    (re.compile(r"1080p", re.IGNORECASE), "1080p"),
    (re.compile(r"720p", re.IGNORECASE), "720p"),
    (re.compile(r"480p", re.IGNORECASE), "480p"),
    (re.compile(r"360p", re.IGNORECASE), "360p"),
)
UNKNOWN_QUALITY = "Unknown"

QUALITY_RANK = {
    "360p": 1,
    "480p": 2,
    "720p": 3,
    "1080p": 4,
    "1440p": 5,
    "4k": 6,
    "2160p": 6,
}

SEASON_RE = re.compile(r"(?:s|сезон)[\s:]*(\d+)|(\d+)\s*сезон", re.IGNORECASE)
SERIAL_TITLE_RE = re.compile(r"(сезон|серии|series|season|эпизод)", re.IGNORECASE)
ANIME_TITLE_RE = re.compile(r"anime", re.IGNORECASE)
HDR_RE = re.compile(r"(hdr|dolby.vision|dv)", re.IGNORECASE)
HEVC_RE = re.compile(r"(hevc|h\.265|x265)", re.IGNORECASE)
SIZE_RE = re.compile(r"([\d]+(?:[.,]\d+)?)\s*([KMGTP]?I?B)?", re.IGNORECASE)

CONTENT_TYPES = {
    "movie": {"movie", "multfilm", "documovie"},
    "serial": {"serial", "multserial", "docuserial", "tvshow"},
    "anime": {"anime"},
}
CONTENT_TYPE_ALIASES = {"tv": "serial", "series": "serial", "serial": "serial", "movie": "movie", "anime": "anime"}

SIZE_UNITS = {"": 1, "B": 1, "K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4, "P": 1024**5}

UNKNOWN_SEASON = "Неизвестно"


@dataclass
class TorrentSearchOptions:
    season: int | None = None
    quality: list[str] = field(default_factory=list)
    min_quality: str = ""
    max_quality: str = ""
    exclude_qualities: list[str] = field(default_factory=list)
    hdr: bool | None = None
    hevc: bool | None = None
    sort_by: str = "seeders"
    sort_order: str = "desc"
    group_by_quality: bool = False
    group_by_season: bool = False
    content_type: str = ""


def extract_quality(title: str) -> str:
    for pattern, quality in QUALITY_LADDER:
        if pattern.search(title or ""):
            return quality
    return UNKNOWN_QUALITY


def quality_rank(quality: str) -> int:
    return QUALITY_RANK.get((quality or "").lower(), 0)


def parse_size(size: str) -> int:
    """Bytes for "1.46 GB", "700 MiB" or a bare byte count; 0 when unparseable."""
    match = SIZE_RE.search((size or "").replace("\xa0", " "))
    if not match:
        return 0
    number = float(match.group(1).replace(",", "."))
    unit = (match.group(2) or "").upper()
    return int(number * SIZE_UNITS.get(unit[:1], 1))


def parse_results(rows: list[RedAPITorrent]) -> list[TorrentResult]:
    results = []
    for row in rows:
        info = row.info
        result = TorrentResult(
            title=row.title,
            tracker=row.tracker,
            size=row.size,
            seeders=row.seeders,
            peers=row.peers,
            magnet=row.magnet_uri,
            publish_date=row.publish_date,
            category=row.category_desc,
            details=row.details,
        )
        if info is not None:
            result.quality = info.quality
            result.voice = list(info.voices)
            result.types = list(info.types)
            result.seasons = list(info.seasons)
        if not result.quality:
            result.quality = extract_quality(result.title)
        results.append(result)
    return results


def title_seasons(title: str) -> set[int]:
    seasons = set()
    for match in SEASON_RE.finditer(title or ""):
        number = match.group(1) or match.group(2)
        if number and int(number) > 0:
            seasons.add(int(number))
    return seasons


def matches_season(torrent: TorrentResult, season: int) -> bool:
    if season in torrent.seasons:
        return True
    return season in title_seasons(torrent.title)


def filter_by_season(results: list[TorrentResult], season: int | None) -> list[TorrentResult]:
    if not season:
        return list(results)
    return [t for t in results if matches_season(t, season)]


def normalize_content_type(content_type: str | None) -> str:
    return CONTENT_TYPE_ALIASES.get((content_type or "").strip().lower(), "")


def filter_by_content_type(results: list[TorrentResult], content_type: str | None) -> list[TorrentResult]:
    kind = normalize_content_type(content_type)
    if not kind:
        return list(results)
    allowed = CONTENT_TYPES[kind]
    filtered = []
    for torrent in results:
        if torrent.types:
            if allowed.intersection(torrent.types):
                filtered.append(torrent)
            continue
        is_serial = bool(SERIAL_TITLE_RE.search(torrent.title))
        if kind == "movie" and not is_serial:
            filtered.append(torrent)
        elif kind == "serial" and is_serial:
            filtered.append(torrent)
        elif kind == "anime" and (torrent.category == "TV/Anime" or ANIME_TITLE_RE.search(torrent.title)):
            filtered.append(torrent)
    return filtered


def filter_torrents(results: list[TorrentResult], options: TorrentSearchOptions) -> list[TorrentResult]:
    wanted = {q.lower() for q in options.quality if q}
    excluded = {q.lower() for q in options.exclude_qualities if q}
    min_rank = quality_rank(options.min_quality) if options.min_quality else None
    max_rank = quality_rank(options.max_quality) if options.max_quality else None

    filtered = []
    for torrent in results:
        quality = torrent.quality.lower()
        if wanted and quality not in wanted:
            continue
        if min_rank is not None and quality_rank(quality) < min_rank:
            continue
        if max_rank is not None and quality_rank(quality) > max_rank:
            continue
        if quality in excluded:
            continue
        if options.hdr is not None and bool(HDR_RE.search(torrent.title)) != options.hdr:
            continue
        if options.hevc is not None and bool(HEVC_RE.search(torrent.title)) != options.hevc:
            continue
        if options.season and not matches_season(torrent, options.season):
            continue
        filtered.append(torrent)
    return filtered


def merge_unique(*groups: list[TorrentResult]) -> list[TorrentResult]:
    """Concatenate keeping the first row per magnet link."""
    seen: set[str] = set()
    merged = []
    for group in groups:
        for torrent in group:
            if torrent.magnet in seen:
                continue
            seen.add(torrent.magnet)
            merged.append(torrent)
    return merged


def sort_torrents(results: list[TorrentResult], sort_by: str = "seeders", sort_order: str = "desc") -> list[TorrentResult]:
    if sort_by == "size":
        key = lambda t: parse_size(t.size)  # noqa: E731
    elif sort_by == "date":
        key = lambda t: t.publish_date  # noqa: E731
    else:
        key = lambda t: t.seeders  # noqa: E731
    return sorted(results, key=key, reverse=sort_order != "asc")


def _by_seeders(results: list[TorrentResult]) -> list[TorrentResult]:
    return sorted(results, key=lambda t: t.seeders, reverse=True)


def group_by_quality(results: list[TorrentResult]) -> dict[str, list[TorrentResult]]:
    groups: dict[str, list[TorrentResult]] = {}
    for torrent in results:
        quality = torrent.quality or "unknown"
        if quality.lower() in ("2160p", "4k"):
            quality = "4K"
        groups.setdefault(quality, []).append(torrent)
    return {key: _by_seeders(rows) for key, rows in groups.items()}


def group_by_season(results: list[TorrentResult]) -> dict[str, list[TorrentResult]]:
    """A row lands in every season bucket it mentions, once per bucket."""
    groups: dict[str, list[TorrentResult]] = {}
    seen: dict[str, set[str]] = {}
    for torrent in results:
        seasons = {s for s in torrent.seasons if s > 0} | title_seasons(torrent.title)
        keys = [f"Сезон {s}" for s in sorted(seasons)] or [UNKNOWN_SEASON]
        for key in keys:
            bucket_seen = seen.setdefault(key, set())
            if torrent.magnet in bucket_seen:
                continue
            bucket_seen.add(torrent.magnet)
            groups.setdefault(key, []).append(torrent)
    return {key: _by_seeders(rows) for key, rows in groups.items()}


def group_by_season_and_quality(results: list[TorrentResult]) -> dict[str, dict[str, list[TorrentResult]]]:
    return {season: group_by_quality(rows) for season, rows in group_by_season(results).items()}


def available_seasons(results: list[TorrentResult]) -> list[int]:
    found: set[int] = set()
    for torrent in results:
        found.update(s for s in torrent.seasons if s > 0)
        found.update(title_seasons(torrent.title))
    return sorted(found)


def apply_options(results: list[TorrentResult], options: TorrentSearchOptions) -> list[TorrentResult]:
    """Content-type filter, option filter and sort, in that order."""
    filtered = filter_by_content_type(results, options.content_type)
    filtered = filter_torrents(filtered, options)
    return sort_torrents(filtered, options.sort_by, options.sort_order)


def group_results(results: list[TorrentResult], options: TorrentSearchOptions) -> dict | None:
    if options.group_by_season and options.group_by_quality:
        return group_by_season_and_quality(results)
    if options.group_by_season:
        return group_by_season(results)
    if options.group_by_quality:
        return group_by_quality(results)
    return None
