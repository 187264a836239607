from typing import NamedTuple

# --
# Support for single byte ranges (RFC 9110 §14), which is what media
# players use to seek. Multiple ranges are ignored and the whole
# content is sent instead, which the RFC allows.


class RangeNotSatisfiable(ValueError):
	"""Raised when a byte range lies outside of the content"""

	def __init__(self, value: str, size: int):
		super().__init__(f"Range not satisfiable for {size} bytes: {value}")
		self.size: int = size


class ByteRange(NamedTuple):
	"""An inclusive range of bytes within a content of `size` bytes."""

	start: int
	end: int
	size: int

	@property
	def count(self) -> int:
		return self.end - self.start + 1

	@property
	def contentRange(self) -> str:
		return f"bytes {self.start}-{self.end}/{self.size}"


def parseRange(value: str | None, size: int) -> ByteRange | None:
	"""Parses the value of a `Range` header for a content of `size` bytes,
	returning `None` when the header should be ignored and raising
	`RangeNotSatisfiable` when the range can't be served."""
	if not value:
		return None
	unit, _, ranges = value.strip().partition("=")
	if unit.strip().lower() != "bytes" or not ranges or "," in ranges:
		return None
	first, sep, last = ranges.strip().partition("-")
	first, last = first.strip(), last.strip()
	if not sep or (first and not first.isdigit()) or (last and not last.isdigit()):
		return None
	if not first:
		# A suffix range, `-N` is the last N bytes
		if not last:
			return None
		suffix = int(last)
		if suffix == 0 or size == 0:
			raise RangeNotSatisfiable(value, size)
		return ByteRange(max(0, size - suffix), size - 1, size)
	start = int(first)
	end = int(last) if last else size - 1
	if end < start:
		return None
	elif start >= size:
		raise RangeNotSatisfiable(value, size)
	else:
		return ByteRange(start, min(end, size - 1), size)


# EOF
