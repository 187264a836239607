import re
import threading
from bisect import bisect_left
from typing import Pattern
from urllib.parse import unquote_to_bytes

from .scanner import FileIndex, WatchHandle

# -----------------------------------------------------------------------------
#
# STORE
#
# -----------------------------------------------------------------------------


class IndexStore:
	"""Holds the current file index along with the watch handle it was
	scanned with. The index is only ever replaced as a whole, so readers
	take a reference under the lock and use it without holding the lock."""

	def __init__(self) -> None:
		self.lock: threading.Lock = threading.Lock()
		self._index: FileIndex = ()
		self._handle: WatchHandle | None = None
		self._generation: int = 0

	@property
	def handle(self) -> WatchHandle | None:
		with self.lock:
			return self._handle

	@property
	def generation(self) -> int:
		"""The number of indexes published so far."""
		with self.lock:
			return self._generation

	def snapshot(self) -> FileIndex:
		with self.lock:
			return self._index

	def publish(
		self, index: FileIndex, handle: WatchHandle | None
	) -> WatchHandle | None:
		"""Replaces the index and handle, returning the previous handle that
		the caller is then responsible for closing."""
		with self.lock:
			previous = self._handle
			self._index = index
			self._handle = handle
			self._generation += 1
		return previous

	def close(self) -> None:
		with self.lock:
			handle = self._handle
			self._handle = None
		if handle:
			handle.close()

	def __len__(self) -> int:
		return len(self.snapshot())

	def __contains__(self, path: str) -> bool:
		return resolve(path, self.snapshot())


# -----------------------------------------------------------------------------
#
# RESOLVER
#
# -----------------------------------------------------------------------------


class PathDecodeError(ValueError):
	"""Raised when a request path is not valid percent-encoded UTF-8."""


RE_BAD_ESCAPE: Pattern[str] = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decodePath(path: str) -> str:
	"""Percent-decodes the given path, strictly: `+` stays as is, and
	malformed escapes or non UTF-8 bytes raise `PathDecodeError`."""
	if RE_BAD_ESCAPE.search(path):
		raise PathDecodeError(f"Malformed escape sequence in path: {path!r}")
	# Paths off the wire are latin-1 decoded, so this gives back the
	# original bytes.
	try:
		data = path.encode("latin-1")
	except UnicodeEncodeError:
		data = path.encode("utf8")
	try:
		return unquote_to_bytes(data).decode("utf8")
	except UnicodeDecodeError as e:
		raise PathDecodeError(f"Path is not valid UTF-8: {path!r}") from e


def resolve(path: str, index: FileIndex) -> bool:
	"""Tells if `path` is exactly one of the entries of the sorted index."""
	i: int = bisect_left(index, path)
	return i < len(index) and index[i] == path


# EOF
