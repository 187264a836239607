import json

from servevideos.features.caching import cacheHeaders
from servevideos.utils.files import contentType, isPlaylist
from servevideos.utils.htmpl import H, html
from servevideos.utils.json import scriptjson
from servevideos.utils.limits import LimitType, limit, unlimit


def test_htmpl():
	node = H.ul(H.li(H.a("<b> & co", href='a"b.mp4', target="_blank")), id="parent")
	assert str(node) == (
		'<ul id="parent"><li><a href="a&quot;b.mp4" target="_blank">'
		"&lt;b&gt; &amp; co</a></li></ul>"
	)
	assert str(H.script(src="hls.js", defer=True)) == '<script src="hls.js" defer></script>'
	assert str(H.script("a < b && c")) == "<script>a < b && c</script>"
	assert str(H.meta(charset="utf-8")) == '<meta charset="utf-8">'
	assert "".join(html(H.p("x"), doctype="html")) == "<!DOCTYPE html>\n<p>x</p>"


def test_scriptjson():
	value = {"files": ["</script>.mp4", "a&b .ts", "été.mkv"]}
	text = scriptjson(value)
	assert "<" not in text and ">" not in text and "&" not in text
	assert " " not in text
	assert "été.mkv" in text
	assert json.loads(text) == value


def test_content_types():
	assert contentType("a/b.m3u8") == "application/vnd.apple.mpegurl"
	assert contentType("seg.TS") == "video/mp2t"
	assert contentType("a.mkv") == "video/x-matroska"
	assert contentType("a.unknownext") == "application/octet-stream"
	assert isPlaylist("live/index.m3u8")
	assert not isPlaylist("live/index.m3u8.bak")


def test_cache_headers():
	assert cacheHeaders("a.mp4") == {"Cache-Control": "public, max-age=86400"}
	headers = cacheHeaders("sub/live.m3u8")
	assert headers["Cache-Control"].startswith("no-store")
	assert headers["Pragma"] == "no-cache"
	assert headers["Expires"] == "0"
	# Each call returns its own dictionary
	headers["Expires"] = "1"
	assert cacheHeaders("sub/live.m3u8")["Expires"] == "0"


def test_unlimit_never_lowers():
	before = limit(LimitType.Files)
	unlimit(LimitType.Files)
	after = limit(LimitType.Files)
	assert after.soft >= before.soft


# EOF
