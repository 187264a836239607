from pathlib import Path

import pytest


def touch(root: Path, *paths: str, content: bytes = b"") -> list[Path]:
	"""Creates the files at the given root-relative paths."""
	res: list[Path] = []
	for path in paths:
		p = root / path
		p.parent.mkdir(parents=True, exist_ok=True)
		p.write_bytes(content)
		res.append(p)
	return res


@pytest.fixture
def media(tmp_path: Path) -> Path:
	"""A media root, with a file sitting next to (outside of) it."""
	root = tmp_path / "media"
	root.mkdir()
	touch(root, "a.mp4", content=bytes(range(100)))
	touch(root, "live.m3u8", content=b"#EXTM3U\n#EXT-X-VERSION:3\n")
	touch(root, "seg.ts", "sp ace.mp4", "notes.txt")
	touch(tmp_path, "secret.mp4")
	return root


# EOF
