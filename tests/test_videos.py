from pathlib import Path

import pytest

from conftest import touch
from servevideos.bridge import Bridge, run
from servevideos.config import ServerConfig
from servevideos.services.videos import VideoService

NO_STORE: str = "no-store, no-cache, must-revalidate, max-age=0"


@pytest.fixture
def service(media: Path):
	res = VideoService(ServerConfig.Make(media))
	yield res
	res.watcher.stop()


@pytest.fixture
def bridge(service: VideoService):
	res = run(service).start()
	yield res
	res.stop()


# -----------------------------------------------------------------------------
#
# RAW FILES
#
# -----------------------------------------------------------------------------


def test_raw_media(bridge: Bridge):
	res = bridge.get("/raw/a.mp4")
	assert res.status == 200
	assert res.body == bytes(range(100))
	assert res.header("Content-Type") == "video/mp4"
	assert res.header("Content-Length") == "100"
	assert res.header("Cache-Control") == "public, max-age=86400"
	assert res.header("Accept-Ranges") == "bytes"
	assert res.header("Pragma") is None


def test_raw_playlist(bridge: Bridge):
	res = bridge.get("/raw/live.m3u8")
	assert res.status == 200
	assert res.body.startswith(b"#EXTM3U")
	assert res.header("Content-Type") == "application/vnd.apple.mpegurl"
	assert "no-store" in (res.header("Cache-Control") or "")
	assert res.header("Cache-Control") == NO_STORE
	assert res.header("Pragma") == "no-cache"
	assert res.header("Expires") == "0"


def test_raw_segment(bridge: Bridge):
	res = bridge.get("/raw/seg.ts")
	assert res.status == 200
	assert res.header("Content-Type") == "video/mp2t"
	assert res.header("Cache-Control") == "public, max-age=86400"


def test_raw_encoded_path(bridge: Bridge):
	assert bridge.get("/raw/sp%20ace.mp4").status == 200
	assert bridge.get("/raw/sp+ace.mp4").status == 404


def test_raw_not_indexed(bridge: Bridge):
	for path in (
		"/raw/notes.txt",
		"/raw/missing.mp4",
		"/raw/../secret.mp4",
		"/raw/%2e%2e/secret.mp4",
		"/raw/",
		"/raw//a.mp4",
		"/raw/%zz.mp4",
		"/raw/%ff.mp4",
	):
		res = bridge.get(path)
		assert res.status == 404, path
		assert res.body == b"Not Found"


def test_raw_head(bridge: Bridge):
	res = bridge.head("/raw/a.mp4")
	assert res.status == 200
	assert res.body == b""
	assert res.header("Content-Length") == "100"
	assert res.header("Cache-Control") == "public, max-age=86400"


def test_raw_ranges(bridge: Bridge):
	res = bridge.get("/raw/a.mp4", Range="bytes=10-19")
	assert res.status == 206
	assert res.body == bytes(range(10, 20))
	assert res.header("Content-Range") == "bytes 10-19/100"
	assert res.header("Content-Length") == "10"
	assert res.header("Cache-Control") == "public, max-age=86400"

	res = bridge.get("/raw/a.mp4", Range="bytes=-5")
	assert res.status == 206
	assert res.body == bytes(range(95, 100))

	res = bridge.get("/raw/a.mp4", Range="bytes=200-")
	assert res.status == 416
	assert res.header("Content-Range") == "bytes */100"

	# Multiple ranges are served as the whole content
	res = bridge.get("/raw/a.mp4", Range="bytes=0-1,5-6")
	assert res.status == 200
	assert len(res.body) == 100


def test_raw_removed_after_indexing(bridge: Bridge, service: VideoService):
	store = service.store
	index = store.snapshot()
	# Publishes an index with a file that doesn't exist, keeping the
	# current handle.
	store.publish(tuple(sorted(index + ("ghost.mp4",))), store.handle)
	assert "ghost.mp4" in store
	assert bridge.get("/raw/ghost.mp4").status == 404


def test_raw_follows_changes(bridge: Bridge, service: VideoService, media: Path):
	assert bridge.get("/raw/b.mkv").status == 404
	touch(media, "b.mkv", content=b"matroska")
	assert service.watcher.wait(lambda _: "b.mkv" in _, timeout=10.0)
	res = bridge.get("/raw/b.mkv")
	assert res.status == 200
	assert res.body == b"matroska"
	assert res.header("Content-Type") == "video/x-matroska"


# -----------------------------------------------------------------------------
#
# PAGES
#
# -----------------------------------------------------------------------------


def test_list_page(bridge: Bridge):
	res = bridge.get("/list")
	assert res.status == 200
	assert res.header("Content-Type") == "text/html; charset=utf-8"
	assert res.header("Cache-Control") == NO_STORE
	assert res.header("Pragma") == "no-cache"
	assert res.header("Expires") == "0"
	assert res.text.startswith("<!DOCTYPE html>")
	assert '<ul id="parent"></ul>' in res.text
	assert (
		"const data = "
		'{"files": ["a.mp4", "live.m3u8", "seg.ts", "sp ace.mp4"]};'
	) in res.text
	assert "notes.txt" not in res.text


def test_player_page(bridge: Bridge):
	res = bridge.get("/")
	assert res.status == 200
	assert res.header("Cache-Control") == NO_STORE
	assert "hls.min.js" in res.text
	assert '<div id="players"></div>' in res.text
	assert "IntersectionObserver" in res.text
	assert '"files": ["a.mp4", "live.m3u8", "seg.ts", "sp ace.mp4"]' in res.text


def test_pages_escape_names(bridge: Bridge, service: VideoService, media: Path):
	touch(media, "</script><b>.mp4")
	assert service.watcher.wait(lambda _: "</script><b>.mp4" in _, timeout=10.0)
	text = bridge.get("/list").text
	assert "</script><b>" not in text
	assert "\\u003c/script\\u003e\\u003cb\\u003e.mp4" in text


def test_unknown_route(bridge: Bridge):
	assert bridge.get("/nope").status == 404
	assert bridge.get("/list/extra").status == 404
	assert bridge.request("POST", "/list").status == 404


# EOF
