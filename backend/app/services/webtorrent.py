"""Metadata lookup and page rendering for the in-browser torrent player."""
from __future__ import annotations
import json
import logging
from urllib.parse import unquote

from app.exceptions import InvalidInputError, NotFoundError, ServiceError
from app.schemas.webtorrent import EpisodeMetadata, MediaMetadata, MetadataGenre, SeasonMetadata
from app.services.mappers import leading_year
from app.services.tmdb import TMDBClient

logger = logging.getLogger(__name__)

LANGUAGE = "ru-RU"

PLAYER_PAGE = """<!DOCTYPE html>
<html lang="ru">
<head>
<meta charset="utf-8"/>
<meta name="viewport" content="width=device-width, initial-scale=1"/>
<title>NeoMovies WebTorrent Player</title>
<script src="https://cdn.jsdelivr.net/npm/webtorrent@latest/webtorrent.min.js"></script>
<style>
html,body{margin:0;height:100%;background:#000;color:#fff;font-family:sans-serif;overflow:hidden;}
#status{position:absolute;top:50%;left:50%;transform:translate(-50%,-50%);}
#files{position:absolute;left:12px;right:12px;bottom:12px;display:flex;flex-wrap:wrap;gap:8px;z-index:2;}
#files button{background:#333;color:#fff;border:0;border-radius:4px;padding:6px 10px;cursor:pointer;}
video{width:100%;height:100%;object-fit:contain;display:none;}
</style>
</head>
<body>
<div id="status">Загружаем торрент...</div>
<video id="video" controls autoplay></video>
<div id="files"></div>
<script>
const magnetLink = __MAGNET__;
const client = new WebTorrent();
const status = document.getElementById("status");
const files = document.getElementById("files");
const video = document.getElementById("video");
function play(file) {
  video.style.display = "block";
  file.renderTo(video);
}
client.add(magnetLink, function (torrent) {
  const videos = torrent.files.filter(f => /\\.(mp4|avi|mkv|mov|wmv|flv|webm|m4v)$/i.test(f.name));
  if (!videos.length) { status.textContent = "Видео файлы не найдены в торренте"; return; }
  status.remove();
  videos.forEach(function (file) {
    const button = document.createElement("button");
    button.textContent = file.name;
    button.onclick = function () { play(file); };
    files.appendChild(button);
  });
  play(videos[0]);
});
client.on("error", function (err) { status.textContent = "Ошибка: " + err.message; });
</script>
</body>
</html>"""


def render_player(magnet: str) -> str:
    if not magnet:
        raise InvalidInputError("Magnet link is required")
    decoded = unquote(magnet)
    # JSON literal inside <script>; "</" must not close the tag
    literal = json.dumps(decoded).replace("</", "<\\/")
    return PLAYER_PAGE.replace("__MAGNET__", literal)


class WebTorrentService:
    def __init__(self, tmdb: TMDBClient | None):
        self.tmdb = tmdb

    async def metadata(self, query: str) -> MediaMetadata:
        """First movie match wins, then the first TV match with its seasons (specials skipped)."""
        if not query:
            raise InvalidInputError("Query parameter is required")
        if self.tmdb is None:
            raise NotFoundError("Media not found: TMDB is not configured")

        last_error: ServiceError | None = None
        try:
            movies = await self.tmdb.search_movies(query, 1, LANGUAGE)
            if movies.results:
                movie = await self.tmdb.get_movie(movies.results[0].id, LANGUAGE)
                return MediaMetadata(
                    id=movie.id,
                    title=movie.title,
                    type="movie",
                    year=leading_year(movie.release_date) or None,
                    poster_path=movie.poster_path or None,
                    backdrop_path=movie.backdrop_path or None,
                    overview=movie.overview or None,
                    runtime=movie.runtime or None,
                    genres=[MetadataGenre(id=g.id, name=g.name) for g in movie.genres] or None,
                )
        except ServiceError as e:
            last_error = e
            logger.info(f"Webtorrent movie lookup for {query!r} failed: {e}")

        try:
            shows = await self.tmdb.search_tv(query, 1, LANGUAGE)
            if shows.results:
                return await self._tv_metadata(shows.results[0].id)
        except ServiceError as e:
            last_error = e
            logger.info(f"Webtorrent TV lookup for {query!r} failed: {e}")

        reason = str(last_error) if last_error else "no results"
        raise NotFoundError(f"Media not found: {reason}")

    async def _tv_metadata(self, tv_id: int) -> MediaMetadata:
        show = await self.tmdb.get_tv(tv_id, LANGUAGE)
        seasons: list[SeasonMetadata] = []
        all_episodes: list[EpisodeMetadata] = []
        for summary in show.seasons:
            if summary.season_number == 0:
                continue
            try:
                details = await self.tmdb.get_season(show.id, summary.season_number, LANGUAGE)
            except ServiceError as e:
                logger.info(f"Season {summary.season_number} of {show.id} unavailable: {e}")
                continue
            episodes = [
                EpisodeMetadata(
                    episode_number=ep.episode_number,
                    season_number=summary.season_number,
                    name=ep.name,
                    overview=ep.overview or None,
                    runtime=ep.runtime or None,
                    still_path=ep.still_path or None,
                )
                for ep in details.episodes
            ]
            all_episodes.extend(episodes)
            seasons.append(SeasonMetadata(season_number=summary.season_number, name=summary.name, episodes=episodes))
        return MediaMetadata(
            id=show.id,
            title=show.name,
            type="tv",
            year=leading_year(show.first_air_date) or None,
            poster_path=show.poster_path or None,
            backdrop_path=show.backdrop_path or None,
            overview=show.overview or None,
            genres=[MetadataGenre(id=g.id, name=g.name) for g in show.genres] or None,
            seasons=seasons or None,
            episodes=all_episodes or None,
        )
