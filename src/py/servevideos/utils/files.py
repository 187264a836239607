import mimetypes
from pathlib import Path

mimetypes.init()

# Media types that are either missing from or inconsistent across the
# platform's mime databases.
MIME_TYPES: dict[str, str] = dict(
	m3u8="application/vnd.apple.mpegurl",
	m3u="audio/mpegurl",
	ts="video/mp2t",
	m4s="video/iso.segment",
	mkv="video/x-matroska",
	mka="audio/x-matroska",
	webm="video/webm",
	mp4="video/mp4",
	m4v="video/mp4",
	mov="video/quicktime",
	vtt="text/vtt",
)


def contentType(path: Path | str) -> str:
	"""Guesses the content type from the given path"""
	name = str(path)
	return (
		res
		if (res := MIME_TYPES.get(name.rsplit(".", 1)[-1].lower()))
		else mimetypes.guess_type(name)[0] or "application/octet-stream"
	)


def isPlaylist(path: Path | str) -> bool:
	"""Tells if the path is an HLS playlist, which may be appended to while
	it is being served."""
	return str(path).endswith(".m3u8")


# EOF
