import errno
import os
from pathlib import Path

import pytest

from conftest import touch
from servevideos.index import scanner
from servevideos.index.scanner import WatchError, matches, scan


def scanned(root: Path | str, extensions=scanner.EXTENSIONS) -> tuple[str, ...]:
	handle, index = scan(root, extensions)
	handle.close()
	return index


def test_scan_selects_and_sorts(tmp_path: Path):
	touch(
		tmp_path,
		"z.mp4",
		"a.mkv",
		"sub/b.m3u8",
		"sub/deep/000.ts",
		"notes.txt",
		"sub/cover.jpg",
	)
	index = scanned(tmp_path)
	assert index == ("a.mkv", "sub/b.m3u8", "sub/deep/000.ts", "z.mp4")
	assert list(index) == sorted(set(index))


def test_scan_plain_suffix(tmp_path: Path):
	touch(tmp_path, "parts", "a.MP4", "b.mp4", "c.mp4.txt")
	assert scanned(tmp_path, ("ts", "mp4")) == ("b.mp4", "parts")
	assert scanned(tmp_path, ("MP4",)) == ("a.MP4",)
	assert matches("video.mkv", ("mp4", "mkv"))
	assert not matches("video.mkv", ())


def test_scan_is_idempotent(tmp_path: Path):
	touch(tmp_path, "a.mp4", "b/c.mkv", "b/d/e.ts")
	assert scanned(tmp_path) == scanned(tmp_path)


def test_scan_root_with_separator(tmp_path: Path):
	touch(tmp_path, "a.mp4", "b/c.mkv")
	assert scanned(f"{tmp_path}{os.sep}") == ("a.mp4", "b/c.mkv")


def test_scan_empty_root(tmp_path: Path):
	assert scanned(tmp_path) == ()


def test_scan_returns_started_handle(tmp_path: Path):
	touch(tmp_path, "a.mp4", "b/c.mkv")
	handle, _ = scan(tmp_path)
	try:
		assert handle.observer.is_alive()
		assert handle.directories >= 1
		assert not handle.isClosed
	finally:
		handle.close()
	assert handle.isClosed
	assert handle.next(0.01) is None


@pytest.mark.parametrize("code", [errno.EACCES, errno.EMFILE, errno.ENOSPC])
def test_scan_fails_without_watches(tmp_path: Path, monkeypatch, code: int):
	touch(tmp_path, "a.mp4", "b/c.mkv")

	def failing(self, *args, **kwargs):
		raise OSError(code, os.strerror(code))

	monkeypatch.setattr(scanner.Observer, "schedule", failing)
	with pytest.raises(WatchError):
		scan(tmp_path)


def test_scan_watches_readable_subtrees(tmp_path: Path, monkeypatch):
	touch(tmp_path, "a.mp4", "b/c.mkv", "b/d/e.ts", "f/g.mp4")
	schedule = scanner.Observer.schedule
	calls: list[tuple[str, bool]] = []

	# The root can't be watched recursively, as if one of its
	# subdirectories was unreadable.
	def partial(self, handler, path, recursive=False, **kwargs):
		calls.append((os.path.relpath(path, tmp_path), recursive))
		if recursive and path == str(tmp_path):
			raise OSError(errno.EACCES, "Permission denied", path)
		return schedule(self, handler, path, recursive=recursive, **kwargs)

	monkeypatch.setattr(scanner.Observer, "schedule", partial)
	handle, index = scan(tmp_path)
	handle.close()
	assert index == ("a.mp4", "b/c.mkv", "b/d/e.ts", "f/g.mp4")
	assert sorted(calls) == [(".", False), (".", True), ("b", True), ("f", True)]
	assert handle.directories == 3


def test_scan_fails_when_root_is_unreadable(tmp_path: Path, monkeypatch):
	touch(tmp_path, "a.mp4")

	def unreadable(top, onerror=None, **kwargs):
		if onerror:
			onerror(OSError(errno.EMFILE, "Too many open files", os.fspath(top)))
		return iter(())

	monkeypatch.setattr(scanner.os, "walk", unreadable)
	with pytest.raises(WatchError):
		scan(tmp_path)


def test_scan_tolerates_unreadable_subdirectory(tmp_path: Path, monkeypatch):
	touch(tmp_path, "a.mp4", "b/c.mkv")
	walk = os.walk

	def partial(top, onerror=None, **kwargs):
		for dirpath, dirnames, filenames in walk(top, onerror=onerror, **kwargs):
			if dirpath.endswith(f"{os.sep}b") and onerror:
				onerror(OSError(errno.EACCES, "Permission denied", dirpath))
				continue
			yield dirpath, dirnames, filenames

	monkeypatch.setattr(scanner.os, "walk", partial)
	handle, index = scan(tmp_path)
	handle.close()
	assert index == ("a.mp4",)


def test_scan_fails_when_watch_does_not_start(tmp_path: Path, monkeypatch):
	touch(tmp_path, "a.mp4")

	def failing(self):
		raise RuntimeError("can't start new thread")

	monkeypatch.setattr(scanner.Observer, "start", failing)
	with pytest.raises(WatchError):
		scan(tmp_path)


# EOF
