import errno
import os
import queue
from pathlib import Path
from typing import ClassVar, Iterable, TypeAlias

from watchdog.events import (
	EVENT_TYPE_CREATED,
	EVENT_TYPE_DELETED,
	EVENT_TYPE_MODIFIED,
	EVENT_TYPE_MOVED,
	FileSystemEvent,
	FileSystemEventHandler,
)
from watchdog.observers import Observer

from ..utils.logging import debug, info, warning

# A sorted tuple of root-relative, `/`-separated paths without duplicates.
FileIndex: TypeAlias = tuple[str, ...]

EXTENSIONS: tuple[str, ...] = ("m3u8", "mkv", "mp4", "ts")

# Errors telling that the system is out of watches or descriptors
EXHAUSTED: frozenset[int] = frozenset(
	(errno.EMFILE, errno.ENFILE, errno.ENOSPC, errno.ENOMEM)
)


class WatchError(Exception):
	"""Raised when the filesystem watch can't be set up, or the root can't
	be read."""


# -----------------------------------------------------------------------------
#
# WATCH HANDLE
#
# -----------------------------------------------------------------------------


class ChangeQueue(FileSystemEventHandler):
	"""Queues the filesystem events that denote a change of the tree,
	dropping access notifications (opened, closed)."""

	CHANGES: ClassVar[frozenset[str]] = frozenset(
		(EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED)
	)

	def __init__(self) -> None:
		super().__init__()
		self.events: queue.Queue[FileSystemEvent] = queue.Queue()

	def on_any_event(self, event: FileSystemEvent) -> None:
		if event.event_type in self.CHANGES:
			self.events.put(event)


class WatchHandle:
	"""Wraps a watchdog observer and the queue of change events for the
	directories registered with `watch()`. A handle is used for a single
	scan and closed when it is replaced."""

	def __init__(self) -> None:
		self.handler: ChangeQueue = ChangeQueue()
		self.observer = Observer()
		self.observer.daemon = True
		self.directories: int = 0
		self.isClosed: bool = False

	def start(self) -> "WatchHandle":
		try:
			self.observer.start()
		except (OSError, RuntimeError) as e:
			raise WatchError(f"Could not start filesystem watch: {e}") from e
		return self

	def watch(self, directory: str, *, recursive: bool = False) -> bool:
		"""Registers the directory, returning `False` when it can't be
		watched. Running out of watches, descriptors or threads raises
		`WatchError`, as no further directory could be watched either."""
		try:
			self.observer.schedule(self.handler, directory, recursive=recursive)
		except OSError as e:
			if e.errno in EXHAUSTED:
				raise WatchError(f"Could not watch {directory}: {e}") from e
			warning("Could not watch directory", Path=directory, Error=str(e))
			return False
		except RuntimeError as e:
			raise WatchError(f"Could not watch {directory}: {e}") from e
		self.directories += 1
		return True

	def next(self, timeout: float | None = None) -> FileSystemEvent | None:
		"""Waits at most `timeout` seconds for the next change event."""
		if self.isClosed:
			return None
		try:
			return self.handler.events.get(timeout=timeout)
		except queue.Empty:
			return None

	def drain(self) -> list[FileSystemEvent]:
		"""Returns the events that are already queued."""
		res: list[FileSystemEvent] = []
		while True:
			try:
				res.append(self.handler.events.get_nowait())
			except queue.Empty:
				return res

	def close(self) -> None:
		if self.isClosed:
			return
		self.isClosed = True
		self.observer.stop()
		if self.observer.is_alive():
			self.observer.join()

	def __repr__(self) -> str:
		return f"(WatchHandle {self.directories}{' :closed' if self.isClosed else ''})"


# -----------------------------------------------------------------------------
#
# SCANNER
#
# -----------------------------------------------------------------------------


def matches(name: str, extensions: Iterable[str]) -> bool:
	"""Tells if the file name ends with one of the extensions. This is a
	plain suffix test, so `ts` matches `parts` as well as `a.ts`."""
	for ext in extensions:
		if name.endswith(ext):
			return True
	return False


def isWithin(path: str, parents: Iterable[str]) -> bool:
	for parent in parents:
		if path == parent or path.startswith(parent.rstrip(os.sep) + os.sep):
			return True
	return False


def scan(
	root: Path | str, extensions: Iterable[str] = EXTENSIONS
) -> tuple[WatchHandle, FileIndex]:
	"""Walks `root`, returning a started watch handle covering the visited
	directories along with the index of the files matching the extensions.

	Each directory is watched recursively, so that a single watch covers
	the whole tree. When that fails (an unreadable subdirectory), the
	directory is watched on its own and its subdirectories are tried in
	turn. Subdirectories that can't be watched or read are skipped with a
	warning. An unreadable root, or a handle that ends up watching
	nothing, raises `WatchError` and the handle is closed."""
	base: str = os.fspath(root)
	exts: tuple[str, ...] = tuple(extensions)
	handle = WatchHandle().start()
	try:
		offset: int = len(base) if base.endswith(os.sep) else len(base) + 1
		files: set[str] = set()
		trees: list[str] = []
		failures: list[OSError] = []
		top: str = os.path.normpath(base)

		def onError(error: OSError) -> None:
			if error.filename is not None and os.path.normpath(error.filename) == top:
				failures.append(error)
			else:
				warning("Could not read directory", Path=error.filename, Error=str(error))

		for dirpath, _, filenames in os.walk(base, onerror=onError):
			if not isWithin(dirpath, trees):
				if handle.watch(dirpath, recursive=True):
					trees.append(dirpath)
				else:
					handle.watch(dirpath)
			parent: str = dirpath[offset:]
			for name in filenames:
				if matches(name, exts):
					path = os.path.join(parent, name) if parent else name
					files.add(path.replace(os.sep, "/"))
		if failures:
			raise WatchError(f"Could not read {base}: {failures[0]}")
		elif not handle.directories:
			raise WatchError(f"Could not watch any directory in {base}")
	except BaseException:
		handle.close()
		raise
	index: FileIndex = tuple(sorted(files))
	debug("Scanned", Root=base, Watched=handle.directories)
	info("Found files", Files=len(index))
	return handle, index


# EOF
