import os
import threading
import time
from pathlib import Path
from typing import Callable, Iterable

from ..utils.logging import error, event, exception, info, warning
from .scanner import EXTENSIONS, FileIndex, WatchError, WatchHandle, scan
from .store import IndexStore

# The scanning function, which can be substituted to observe rescans.
TScanner = Callable[[Path | str, Iterable[str]], tuple[WatchHandle, FileIndex]]


class WatchLoop:
	"""Keeps the index store up to date with the filesystem: the loop waits
	for change events on the current watch handle and rescans the root on
	each of them, publishing the new index and handle only when the scan
	succeeds."""

	def __init__(
		self,
		root: Path | str,
		extensions: Iterable[str] = EXTENSIONS,
		store: IndexStore | None = None,
		*,
		coalesce: float = 0.0,
		polling: float = 1.0,
		scanner: TScanner = scan,
	) -> None:
		self.root: str = os.fspath(root)
		self.extensions: tuple[str, ...] = tuple(extensions)
		self.store: IndexStore = store or IndexStore()
		# Extra events received within this delay (in seconds) are folded
		# into a single rescan.
		self.coalesce: float = coalesce
		# How often the stop flag is checked while waiting for events
		self.polling: float = polling
		self.scanner: TScanner = scanner
		self.rescans: int = 0
		self.failures: int = 0
		self._stopped = threading.Event()
		self._thread: threading.Thread | None = None

	@property
	def isRunning(self) -> bool:
		return bool(self._thread and self._thread.is_alive())

	def start(self) -> "WatchLoop":
		"""Does the initial scan, which raises `WatchError` if the watch
		can't be started, and then starts watching on a daemon thread."""
		if self._thread:
			return self
		info("Looking for files", Root=self.root, Extensions=",".join(self.extensions))
		handle, index = self.scanner(self.root, self.extensions)
		previous = self.store.publish(index, handle)
		if previous:
			previous.close()
		self._stopped.clear()
		self._thread = threading.Thread(target=self.run, name="WatchLoop", daemon=True)
		self._thread.start()
		return self

	def run(self) -> None:
		try:
			while not self._stopped.is_set():
				handle = self.store.handle
				if handle is None:
					warning("No watch handle, stopping watch loop")
					break
				change = handle.next(self.polling)
				if change is None:
					continue
				event(change.event_type, change.src_path)
				if self.coalesce > 0:
					self._stopped.wait(self.coalesce)
					handle.drain()
				if not self._stopped.is_set():
					self.rescan()
		except Exception as e:
			exception(e, "Watch loop failed")
		finally:
			self.store.close()

	def rescan(self) -> bool:
		"""Rescans the root, publishing the result. On failure, the last
		index stays published along with its handle."""
		self.rescans += 1
		try:
			handle, index = self.scanner(self.root, self.extensions)
		except (WatchError, OSError) as e:
			self.failures += 1
			error(f"Could not rescan {self.root}: {e}", "WATCHERR")
			return False
		previous = self.store.publish(index, handle)
		if previous:
			previous.close()
		return True

	def stop(self, timeout: float | None = None) -> "WatchLoop":
		self._stopped.set()
		thread = self._thread
		if thread and thread is not threading.current_thread():
			thread.join(timeout)
		self._thread = None
		self.store.close()
		return self

	def wait(self, predicate: Callable[[FileIndex], bool], timeout: float = 5.0) -> bool:
		"""Waits until the published index satisfies the predicate, up to
		`timeout` seconds."""
		deadline = time.monotonic() + timeout
		while True:
			if predicate(self.store.snapshot()):
				return True
			elif time.monotonic() >= deadline:
				return False
			time.sleep(0.05)


# EOF
