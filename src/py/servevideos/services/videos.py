from ..config import ServerConfig
from ..decorators import on
from ..features.caching import cacheHeaders, nostore
from ..http.model import HTTPRequest, HTTPResponse
from ..index.store import IndexStore, PathDecodeError, decodePath, resolve
from ..index.watch import WatchLoop
from ..model import Service
from ..utils.logging import debug, info
from .pages import listPage, playerPage


class VideoService(Service):
	"""Serves the indexed media files of the configured root, along with
	a page listing them and a page playing them. Only the files present
	in the latest published index are served."""

	def __init__(self, config: ServerConfig, *, store: IndexStore | None = None):
		self.config: ServerConfig = config
		self.store: IndexStore = store or IndexStore()
		self.watcher: WatchLoop = WatchLoop(
			config.root,
			config.extensions,
			self.store,
			coalesce=config.coalesce,
		)
		super().__init__()

	async def start(self) -> None:
		# NOTE: The initial scan is synchronous so that the first requests
		# see a complete index.
		self.watcher.start()
		info("Serving files", Root=str(self.config.root), Files=len(self.store))

	async def stop(self) -> None:
		self.watcher.stop()

	@on(GET_HEAD="/raw/{path:any}")
	def raw(self, request: HTTPRequest, path: str) -> HTTPResponse:
		try:
			name = decodePath(path)
		except PathDecodeError as e:
			debug("Undecodable path", Path=path, Error=str(e))
			return request.notFound()
		if not resolve(name, self.store.snapshot()):
			info("File not found", Path=name)
			return request.notFound()
		# The file may have been removed since the index was published,
		# in which case this is a 404 too.
		return request.respondFile(self.config.root / name, headers=cacheHeaders(name))

	@nostore
	@on(GET_HEAD="/list")
	def listing(self, request: HTTPRequest) -> HTTPResponse:
		return request.respondHTML(listPage(self.store.snapshot()))

	@nostore
	@on(GET_HEAD="/")
	def index(self, request: HTTPRequest) -> HTTPResponse:
		return request.respondHTML(playerPage(self.store.snapshot()))


# EOF
