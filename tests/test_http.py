import pytest

from servevideos.http.model import HTTPProcessingStatus, HTTPRequest, HTTPResponse
from servevideos.http.parser import HTTPParser, parseQuery
from servevideos.http.ranges import RangeNotSatisfiable, parseRange
from servevideos.routing import Route
from servevideos.utils.io import LineParser, LineTooLong

REQUEST: bytes = (
	b"GET /raw/a.mp4?x=1 HTTP/1.1\r\nHost: 127.0.0.1\r\nConnection: close\r\n\r\n"
)


def requests(parser: HTTPParser, *chunks: bytes) -> list[HTTPRequest]:
	return [
		atom
		for chunk in chunks
		for atom in parser.feed(chunk)
		if isinstance(atom, HTTPRequest)
	]


# -----------------------------------------------------------------------------
#
# PARSING
#
# -----------------------------------------------------------------------------


def test_line_parser_across_chunks():
	parser = LineParser()
	lines: list[bytes] = []
	for chunk in [b"GET / HTTP/1.1\r\nHost: a\r", b"\n\r", b"\n"]:
		offset = 0
		while offset < len(chunk):
			line, read = parser.feed(chunk, offset)
			offset += read
			if line is not None:
				lines.append(line)
	assert lines == [b"GET / HTTP/1.1", b"Host: a", b""]


def test_line_parser_limit():
	with pytest.raises(LineTooLong):
		LineParser(limit=16).feed(b"x" * 32)


def test_request_in_one_chunk():
	(req,) = requests(HTTPParser(), REQUEST)
	assert req.method == "GET"
	assert req.path == "/raw/a.mp4"
	assert req.query == {"x": "1"}
	assert req.header("host") == "127.0.0.1"
	assert req.keepAlive is False


def test_request_split_in_chunks():
	chunks = [REQUEST[i : i + 5] for i in range(0, len(REQUEST), 5)]
	(req,) = requests(HTTPParser(), *chunks)
	assert req.path == "/raw/a.mp4"
	assert req.header("Connection") == "close"


def test_pipelined_requests():
	data = b"GET /a HTTP/1.1\r\n\r\nHEAD /b HTTP/1.1\r\nRange: bytes=0-1\r\n\r\n"
	reqs = requests(HTTPParser(), data)
	assert [(_.method, _.path) for _ in reqs] == [("GET", "/a"), ("HEAD", "/b")]
	assert reqs[1].rangeHeader() == "bytes=0-1"
	assert reqs[0].keepAlive is True


def test_request_keeps_raw_path_bytes():
	# UTF-8 bytes come through as latin-1 characters, one per byte
	(req,) = requests(HTTPParser(), "GET /raw/é HTTP/1.1\r\n\r\n".encode("utf8"))
	assert req.path.encode("latin-1") == "/raw/é".encode("utf8")


def test_malformed_request_line():
	atoms = list(HTTPParser().feed(b"HELLO\r\n\r\n"))
	assert atoms == [HTTPProcessingStatus.BadFormat]


def test_http10_keep_alive():
	(req,) = requests(HTTPParser(), b"GET / HTTP/1.0\r\n\r\n")
	assert req.keepAlive is False
	(req,) = requests(HTTPParser(), b"GET / HTTP/1.0\r\nConnection: Keep-Alive\r\n\r\n")
	assert req.keepAlive is True


def test_parse_query():
	assert parseQuery("") == {}
	assert parseQuery("a=1&b&c=x=y") == {"a": "1", "b": "", "c": "x=y"}


# -----------------------------------------------------------------------------
#
# RANGES
#
# -----------------------------------------------------------------------------


def test_ranges():
	assert parseRange(None, 100) is None
	r = parseRange("bytes=10-19", 100)
	assert r and (r.start, r.end, r.count) == (10, 19, 10)
	assert r.contentRange == "bytes 10-19/100"
	r = parseRange("bytes=90-", 100)
	assert r and (r.start, r.end) == (90, 99)
	r = parseRange("bytes=-10", 100)
	assert r and (r.start, r.end) == (90, 99)
	r = parseRange("bytes=-500", 100)
	assert r and (r.start, r.end) == (0, 99)
	r = parseRange("bytes=50-1000", 100)
	assert r and r.end == 99


def test_ignored_ranges():
	# These are served as the full content
	assert parseRange("items=0-1", 100) is None
	assert parseRange("bytes=0-1,5-6", 100) is None
	assert parseRange("bytes=abc", 100) is None
	assert parseRange("bytes=9-1", 100) is None


def test_unsatisfiable_ranges():
	for value in ("bytes=100-", "bytes=200-300", "bytes=-0"):
		with pytest.raises(RangeNotSatisfiable):
			parseRange(value, 100)
	with pytest.raises(RangeNotSatisfiable):
		parseRange("bytes=-5", 0)


# -----------------------------------------------------------------------------
#
# RESPONSES & ROUTES
#
# -----------------------------------------------------------------------------


def test_response_head():
	res = HTTPResponse.Create("Hello", "text/plain", status=404)
	head = res.head()
	assert head.startswith(b"HTTP/1.1 404 Not Found\r\n")
	assert b"Content-Length: 5\r\n" in head
	assert head.endswith(b"\r\n\r\n")
	res.setHeader("cache-control", "no-store")
	assert res.getHeader("Cache-Control") == "no-store"
	res.setHeader("Cache-Control", None)
	assert res.getHeader("Cache-Control") is None


def test_route_any():
	route = Route("/raw/{path:any}")
	assert route.match("/raw/a/b c.mp4") == {"path": "a/b c.mp4"}
	assert route.match("/raw/../x") == {"path": "../x"}
	assert route.match("/list") is None
	assert Route("/list").match("/list") == {}


# EOF
