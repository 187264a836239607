from abc import ABC, abstractmethod
from pathlib import Path
from typing import NamedTuple, TypeAlias

# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents a part (or a whole) body as bytes."""

	payload: bytes = b""
	length: int = 0
	# NOTE: We don't know how many is remaining
	remaining: int | None = None


class HTTPBodyFile(NamedTuple):
	"""Represents an HTTP body read from a file, optionally restricted to
	the `count` bytes starting at `start`."""

	path: Path
	start: int = 0
	count: int | None = None

	@property
	def length(self) -> int:
		return (
			self.count
			if self.count is not None
			else self.path.stat().st_size - self.start
		)


# The different types of bodies that are managed
THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFile


class HTTPBodyWriter(ABC):
	"""A generic writer for response bodies."""

	__slots__ = ["shouldClose"]

	def __init__(self) -> None:
		self.shouldClose: bool = False

	async def write(self, body: THTTPBody | bytes | None) -> bool:
		"""Writes the given type of body."""
		if isinstance(body, bytes):
			return await self._writeBytes(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._writeBytes(body.payload)
		elif isinstance(body, HTTPBodyFile):
			return await self._writeFile(body.path, body.start, body.length)
		elif body is None:
			return True
		else:
			raise ValueError(f"Unsupported body format: {body}")

	async def _writeFile(
		self, path: Path, start: int, count: int, size: int = 64_000
	) -> bool:
		with open(path, "rb") as f:
			f.seek(start)
			left: int = count
			while left > 0 and (chunk := f.read(min(size, left))):
				left -= len(chunk)
				await self._writeBytes(chunk, left > 0)
		return True

	@abstractmethod
	async def _writeBytes(self, chunk: bytes, more: bool = False) -> bool: ...


# EOF
