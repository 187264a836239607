from abc import ABC, abstractmethod
from email.utils import formatdate
from pathlib import Path
from stat import S_ISREG
from typing import Any, Generic, TypeVar

from ..utils.files import contentType as getContentType
from .body import HTTPBodyFile
from .ranges import RangeNotSatisfiable, parseRange
from .status import HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------

# --
# == HTTP Request Response API
#
# Defines the high level API functions (orthogonal to the underlying model)
# to create responses.


class ResponseFactory(ABC, Generic[T]):
	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> T: ...

	def rangeHeader(self) -> str | None:
		"""Returns the byte range requested for the response, if any."""
		return None

	def error(
		self,
		status: int,
		content: str | None = None,
		contentType: str = "text/plain",
		headers: dict[str, str] | None = None,
	) -> T:
		message = HTTP_STATUS.get(status, "Server Error")
		return self.respond(
			content=message if content is None else content,
			contentType=contentType,
			status=status,
			message=message,
			headers=headers,
		)

	def notFound(
		self,
		content: str = "Not Found",
		contentType: str = "text/plain",
		*,
		status: int = 404,
	) -> T:
		return self.error(status, content=content, contentType=contentType)

	def fail(
		self,
		content: str | None = None,
		*,
		status: int = 500,
		contentType: str = "text/plain",
	) -> T:
		return self.error(status, content=content, contentType=contentType)

	def respondText(
		self,
		content: str | bytes,
		contentType: str = "text/plain",
		status: int = 200,
	) -> T:
		return self.respond(content=content, contentType=contentType, status=status)

	def respondHTML(
		self, html: str | bytes, status: int = 200, headers: dict[str, str] | None = None
	) -> T:
		return self.respond(
			content=html,
			contentType="text/html; charset=utf-8",
			status=status,
			headers=headers,
		)

	def respondFile(
		self,
		path: Path | str,
		headers: dict[str, str] | None = None,
		status: int = 200,
		contentType: str | None = None,
	) -> T:
		"""Responds with the contents of the file at the given path, honouring
		a single byte range as returned by `rangeHeader()`. The length is
		fixed when the response is created, so a file that is still being
		written is sent as it was at that time."""
		p: Path = path if isinstance(path, Path) else Path(path)
		try:
			stat = p.stat()
		except OSError:
			return self.notFound()
		if not S_ISREG(stat.st_mode):
			return self.notFound()
		size: int = stat.st_size
		base_headers: dict[str, str] = {
			"Content-Type": contentType or getContentType(p),
			"Accept-Ranges": "bytes",
			"Last-Modified": formatdate(stat.st_mtime, usegmt=True),
		}
		if headers:
			base_headers |= headers
		try:
			byte_range = parseRange(self.rangeHeader(), size)
		except RangeNotSatisfiable:
			return self.error(
				416,
				headers=base_headers | {"Content-Range": f"bytes */{size}"},
			)
		if byte_range:
			return self.respond(
				content=HTTPBodyFile(p, byte_range.start, byte_range.count),
				status=206,
				headers=base_headers | {"Content-Range": byte_range.contentRange},
			)
		else:
			return self.respond(
				content=HTTPBodyFile(p, 0, size),
				status=status,
				headers=base_headers,
			)


# EOF
