from enum import Enum
from typing import Any, NamedTuple

from ..utils.io import DEFAULT_ENCODING
from .body import HTTPBodyBlob, HTTPBodyFile, THTTPBody
from .api import ResponseFactory
from .status import HTTP_STATUS

# -----------------------------------------------------------------------------
#
# HEADERS
#
# -----------------------------------------------------------------------------

# Lowercase header names to their `Kebab-Case` form, filled as names are seen
HEADER_NAMES: dict[str, str] = {}


def headername(name: str) -> str:
	"""Returns the `Kebab-Case` form of the given header name, so that
	`content-type` and `Content-Type` designate the same header."""
	key: str = name.lower()
	normalized = HEADER_NAMES.get(key)
	if normalized is None:
		normalized = HEADER_NAMES[key] = "-".join(
			_.capitalize() for _ in key.split("-")
		)
	return normalized


class HTTPHeaders(NamedTuple):
	"""Headers by normalized name, along with the content type and length
	extracted from them."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPRequestLine(NamedTuple):
	"""The `METHOD PATH?QUERY PROTOCOL` line that starts a request."""

	method: str
	path: str
	query: str
	protocol: str


class HTTPProcessingStatus(Enum):
	"""Why a connection stopped being read."""

	Timeout = 10
	NoData = 11
	BadFormat = 12


class HTTPRequestError(Exception):
	"""Raised by handlers to answer with an error response. The status
	defaults to 500."""

	def __init__(
		self,
		message: str,
		status: int | None = None,
		contentType: str | None = None,
	):
		super().__init__(message)
		self.message: str = message
		self.status: int | None = status
		self.contentType: str | None = contentType


# -----------------------------------------------------------------------------
#
# REQUEST
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""A parsed request. Handlers create their response from it, using
	the `ResponseFactory` methods."""

	__slots__ = ["method", "path", "query", "protocol", "_headers", "_body"]

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None,
		headers: HTTPHeaders,
		body: HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		self.query: dict[str, str] | None = query
		self.protocol: str = protocol
		self._headers: HTTPHeaders = headers
		self._body: HTTPBodyBlob | None = body

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	@property
	def contentType(self) -> str | None:
		return self._headers.contentType

	@property
	def contentLength(self) -> int | None:
		return self._headers.contentLength

	@property
	def body(self) -> HTTPBodyBlob:
		return self._body if self._body is not None else HTTPBodyBlob()

	@property
	def keepAlive(self) -> bool:
		"""HTTP/1.1 connections persist unless the client sends
		`Connection: close`, HTTP/1.0 ones only with `Connection: keep-alive`."""
		connection = (self.header("Connection") or "").lower()
		if self.protocol == "HTTP/1.0":
			return connection == "keep-alive"
		return connection != "close"

	def rangeHeader(self) -> str | None:
		return self.header("Range")

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			content,
			contentType,
			contentLength,
			headers=headers,
			status=status,
			message=message,
			protocol=self.protocol,
		)

	def __str__(self) -> str:
		query = f"?{self.query}" if self.query else ""
		return f"Request({self.method} {self.path}{query})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""A response, made of a status, headers and an optional body that is
	either bytes in memory or a region of a file."""

	@staticmethod
	def Body(content: Any) -> THTTPBody | None:
		"""Wraps text, bytes or a file body, `None` meaning no body."""
		if content is None:
			return None
		elif isinstance(content, HTTPBodyFile):
			return content
		elif isinstance(content, str):
			content = content.encode(DEFAULT_ENCODING)
		if isinstance(content, (bytes, bytearray)):
			return HTTPBodyBlob(bytes(content), len(content))
		raise ValueError(f"Unsupported content {type(content)}: {content}")

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		body = HTTPResponse.Body(content)
		length: int = body.length if body is not None else (contentLength or 0)
		fields: dict[str, str] = {headername(k): v for k, v in (headers or {}).items()}
		if contentType is not None:
			fields["Content-Type"] = contentType
		# Always sent, so that the connection can be kept alive
		fields["Content-Length"] = str(length)
		return HTTPResponse(
			protocol,
			status,
			message or HTTP_STATUS.get(status, "Unknown status"),
			HTTPHeaders(fields, fields.get("Content-Type"), length),
			body,
		)

	__slots__ = ["protocol", "status", "message", "headers", "body", "shouldClose"]

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
		shouldClose: bool = False,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body
		self.shouldClose: bool = shouldClose

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		"""Sets the header, or removes it when the value is `None`."""
		key = headername(name)
		if value is None:
			self.headers.headers.pop(key, None)
		else:
			self.headers.headers[key] = str(value)
		return self

	def setHeaders(self, headers: dict[str, str | int | None]) -> "HTTPResponse":
		for name, value in headers.items():
			self.setHeader(name, value)
		return self

	def head(self) -> bytes:
		"""Returns the status line and headers as sent on the wire, ending
		with the blank line that separates them from the body."""
		message = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		head = f"{self.protocol} {self.status} {message}\r\n"
		head += "".join(f"{k}: {v}\r\n" for k, v in self.headers.headers.items())
		# Header values are latin-1 on the wire
		return f"{head}\r\n".encode("latin-1", errors="replace")

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message})"


# EOF
