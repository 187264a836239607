from typing import Iterator, TypeAlias, Union
from ..utils.io import LineParser
from .body import HTTPBodyBlob
from .model import (
	HTTPRequest,
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	headername,
)

# What the parser yields: complete requests, or `BadFormat` after which the
# connection can't be read any further.
HTTPAtom: TypeAlias = Union[HTTPProcessingStatus, HTTPRequest]

# Latin-1 maps each byte to one character, so that the raw bytes of a path
# can be recovered before percent-decoding it.
WIRE_ENCODING: str = "latin-1"


def parseRequestLine(line: bytes) -> HTTPRequestLine | None:
	"""Parses `METHOD TARGET PROTOCOL`, returning `None` when malformed."""
	parts = line.decode(WIRE_ENCODING).split(" ")
	if len(parts) != 3 or not parts[0] or not parts[2].startswith("HTTP/"):
		return None
	method, target, protocol = parts
	path, _, query = target.partition("?")
	return HTTPRequestLine(method, path, query, protocol)


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	for item in text.split("&") if text else ():
		key, _, value = item.partition("=")
		res[key] = value
	return res


class HTTPParser:
	"""A stateful HTTP request parser, fed with chunks as they are read
	from a connection, yielding the requests as soon as they're complete.

	The parser goes through three phases for each request: the request
	line, the headers up to the empty line, and then the body when a
	`Content-Length` is given. Bodies are read so that pipelined requests
	stay aligned, but nothing in this server looks at them."""

	__slots__ = ["line", "requestLine", "fields", "headers", "body", "expected"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.requestLine: HTTPRequestLine | None = None
		self.fields: dict[str, str] = {}
		self.headers: HTTPHeaders | None = None
		self.body: bytearray = bytearray()
		self.expected: int = 0

	def reset(self) -> "HTTPParser":
		self.line.reset()
		self.requestLine = None
		self.fields = {}
		self.headers = None
		self.body.clear()
		self.expected = 0
		return self

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		offset: int = 0
		size: int = len(chunk)
		while offset < size:
			if self.headers is not None:
				# Body phase
				read = min(size - offset, self.expected - len(self.body))
				self.body += chunk[offset : offset + read]
				offset += read
				if len(self.body) >= self.expected:
					yield self.flush()
				continue
			line, read = self.line.feed(chunk, offset)
			offset += read
			if line is None:
				continue
			elif self.requestLine is None:
				# Empty lines between pipelined requests are ignored
				if not line:
					continue
				self.requestLine = parseRequestLine(line)
				if self.requestLine is None:
					self.reset()
					yield HTTPProcessingStatus.BadFormat
					return
				self.fields = {}
			elif line:
				name, sep, value = line.decode(WIRE_ENCODING).partition(":")
				if sep:
					self.fields[headername(name.strip())] = value.strip()
			else:
				self.headers = self.parseHeaders(self.fields)
				self.expected = self.headers.contentLength or 0
				if not self.expected:
					yield self.flush()

	@staticmethod
	def parseHeaders(fields: dict[str, str]) -> HTTPHeaders:
		length = fields.get("Content-Length")
		try:
			contentLength = max(0, int(length)) if length else None
		except ValueError:
			contentLength = None
		return HTTPHeaders(fields, fields.get("Content-Type"), contentLength)

	def flush(self) -> HTTPRequest:
		"""Returns the request parsed so far, and gets ready for the next."""
		line, headers = self.requestLine, self.headers
		if line is None or headers is None:
			raise RuntimeError("Request is not complete yet")
		body = HTTPBodyBlob(bytes(self.body), len(self.body))
		self.requestLine = None
		self.headers = None
		self.body = bytearray()
		self.expected = 0
		return HTTPRequest(
			method=line.method,
			path=line.path,
			query=parseQuery(line.query),
			headers=headers,
			protocol=line.protocol,
			body=body,
		)


# EOF
