from unittest.mock import AsyncMock

import pytest

from app.exceptions import InvalidInputError, NotFoundError, UpstreamError
from app.services import players
from app.services.players import AllohaPlayer, Embed, LumexPlayer


def test_extract_iframe_token():
    page = '<iframe src="https://videoframe.space/film/abc123/iframe" frameborder="0"></iframe>'
    assert players.extract_iframe_token(page) == "abc123"
    assert players.extract_iframe_token("<html>nothing here</html>") is None
    assert players.extract_iframe_token("") is None


def test_with_episode_appends_query():
    assert players.with_episode("https://p.test/embed", None, "2") == "https://p.test/embed"
    assert players.with_episode("https://p.test/embed", "1", "2") == "https://p.test/embed?season=1&episode=2"
    assert (
        players.with_episode("https://p.test/embed?x=1", "1", "2", translation="66")
        == "https://p.test/embed?x=1&season=1&episode=2&translation=66"
    )


def test_validate_id_kind():
    assert players.validate_id_kind("IMDB") == "imdb"
    assert players.validate_id_kind("kp") == "kp"
    with pytest.raises(InvalidInputError):
        players.validate_id_kind("tmdb")


def test_player_page_escapes_url_and_title():
    page = players.render_player_page('https://p.test/"><script>alert(1)</script>', "<Title>")
    assert "<script>alert(1)</script>" not in page
    assert "&quot;&gt;&lt;script&gt;" in page
    assert "<title>&lt;Title&gt;</title>" in page
    assert 'id="fullscreen"' in page


def test_extract_iframe_src():
    snippet = "<div><IFRAME width=\"100%\" SRC='https://alloha.test/v/1?a=1&amp;b=2'></IFRAME></div>"
    assert players.extract_iframe_src(snippet) == "https://alloha.test/v/1?a=1&b=2"
    assert players.extract_iframe_src("<div>no frame</div>") is None


def test_lumex_accepts_only_imdb_ids():
    lumex = LumexPlayer("https://lumex.test/embed")
    assert lumex.embed("imdb", "tt0111161", "1", "3").url == (
        "https://lumex.test/embed?imdb_id=tt0111161&season=1&episode=3"
    )
    with pytest.raises(InvalidInputError):
        lumex.embed("kp", "326")


async def test_alloha_embed_adds_episode_and_default_translation():
    alloha = AllohaPlayer("token")
    alloha._get = AsyncMock(return_value={"status": "success", "data": {"iframe": "https://alloha.test/v/1"}})

    embed = await alloha.embed("kp", "326", "2", "5")

    assert embed.url == "https://alloha.test/v/1?season=2&episode=5&translation=66"
    assert alloha._get.await_args.args[1] == {"token": "token", "kp": "326"}


async def test_alloha_snippet_is_reduced_to_escaped_url():
    alloha = AllohaPlayer("token")
    snippet = '<iframe src=\\"https://alloha.test/v/1\\" onload=\\"alert(1)\\"></iframe><script>alert(2)</script>'
    alloha._get = AsyncMock(return_value={"status": "success", "data": {"iframe": snippet}})

    embed = await alloha.embed("kp", "326")

    assert embed == Embed(url="https://alloha.test/v/1")
    page = players.render_player_page(embed, "Alloha Player")
    assert "alert" not in page
    assert 'src="https://alloha.test/v/1"' in page


async def test_alloha_rejects_non_http_iframe():
    alloha = AllohaPlayer("token")
    alloha._get = AsyncMock(return_value={"status": "success", "data": {"iframe": "javascript:alert(1)"}})
    with pytest.raises(NotFoundError):
        await alloha.embed("kp", "326")


async def test_alloha_missing_video():
    alloha = AllohaPlayer("token")
    alloha._get = AsyncMock(return_value={"status": "error"})
    with pytest.raises(NotFoundError):
        await alloha.embed("imdb", "tt0000001")


async def test_vidsrc_route_renders_page(client):
    resp = await client.get("/api/v1/players/vidsrc/movie/tt0111161")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert 'src="https://vidsrc.to/embed/movie/tt0111161"' in resp.text


async def test_vidsrc_tv_requires_episode(client):
    resp = await client.get("/api/v1/players/vidsrc/tv/tt0903747", params={"season": "1"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "season and episode are required for TV shows"


async def test_unconfigured_player_is_a_server_error(client):
    resp = await client.get("/api/v1/players/alloha/kp/326")
    assert resp.status_code == 500
    assert resp.json()["error"] == "Server misconfiguration: ALLOHA_TOKEN missing"


async def test_rgshows_player_wraps_stream(client, providers):
    providers.rgshows._get = AsyncMock(return_value={"stream": {"url": "https://cdn.test/v.m3u8"}})

    resp = await client.get("/api/v1/players/rgshows/1399/1/2")

    assert resp.status_code == 200
    assert "https://cdn.test/v.m3u8" in resp.text
    assert providers.rgshows._get.await_args.args[0] == "main/tv/1399/1/2"


async def test_stream_api_rejects_unknown_provider(client):
    resp = await client.get("/api/v1/stream/nope/550")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Unsupported provider"


async def test_stream_api_returns_rgshows_stream(client, providers):
    providers.rgshows._get = AsyncMock(return_value={"stream": {"url": "https://cdn.test/m.mp4"}})

    resp = await client.get("/api/v1/stream/rgshows/550")

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "stream_url": "https://cdn.test/m.mp4",
        "provider": "RgShows",
        "type": "direct",
    }


async def test_stream_api_reports_provider_failure_in_body(client, providers):
    providers.rgshows._get = AsyncMock(side_effect=UpstreamError("RgShows", 503))

    resp = await client.get("/api/v1/stream/rgshows/550")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert body["provider"] == "rgshows"
    assert body["error"] == "RgShows API error: 503"


async def test_iframevideo_three_step_flow(client, providers):
    iframe = providers.iframevideo
    iframe._get = AsyncMock(return_value={"results": [{"path": "https://iframe.video/f/1", "cid": 42, "type": "movie"}]})
    iframe._get_text = AsyncMock(return_value='<iframe src="https://videoframe.space/film/tok-9/iframe"></iframe>')
    iframe._post = AsyncMock(return_value={"src": "https://cdn.test/v.mp4"})

    resp = await client.get("/api/v1/stream/iframevideo/550", params={"kinopoisk_id": "361"})

    assert resp.json()["stream_url"] == "https://cdn.test/v.mp4"
    assert iframe._get.await_args.args[1] == {"imdb": "", "kp": "361"}
    assert iframe._get_text.await_args.args[0] == "https://iframe.video/f/1"
    assert iframe._post.await_args.args[0] == "https://videoframe.space/loadvideo"


async def test_iframevideo_requires_an_id(client):
    resp = await client.get("/api/v1/stream/iframevideo/550")
    assert resp.status_code == 400
