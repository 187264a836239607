from ..decorators import post
from ..http.model import HTTPRequest, HTTPResponse
from ..utils.files import isPlaylist

# Headers for content that changes while it is being served, like live
# playlists and the pages listing the files.
NO_STORE: dict[str, str] = {
	"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
	"Pragma": "no-cache",
	"Expires": "0",
}

# Media files and segments don't change once written.
CACHE_DAY: dict[str, str] = {"Cache-Control": "public, max-age=86400"}


@post
def nostore(request: HTTPRequest, response: HTTPResponse) -> HTTPResponse:
	"""A post decorator that prevents clients from caching the response."""
	return response.setHeaders(dict(NO_STORE))


def cacheHeaders(path: str) -> dict[str, str]:
	"""Returns the caching headers for the media file at the given path."""
	return dict(NO_STORE if isPlaylist(path) else CACHE_DAY)


# EOF
