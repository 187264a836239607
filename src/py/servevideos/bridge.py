import asyncio
from typing import Any, Coroutine, NamedTuple

from .http.body import HTTPBodyWriter
from .http.model import HTTPProcessingStatus, HTTPRequest, HTTPResponse
from .http.parser import HTTPParser
from .model import Application, Service, mount

# --
# The Python bridge runs an application in-process, without sockets: raw
# request bytes are parsed and processed, and the response is collected
# in memory. This is mostly useful for testing.


class BytesBodyWriter(HTTPBodyWriter):
	"""A body writer that accumulates what's written."""

	__slots__ = ["chunks"]

	def __init__(self) -> None:
		super().__init__()
		self.chunks: list[bytes] = []

	async def _writeBytes(self, chunk: bytes, more: bool = False) -> bool:
		if chunk:
			self.chunks.append(chunk)
		return True

	@property
	def data(self) -> bytes:
		return b"".join(self.chunks)


class BridgeResponse(NamedTuple):
	"""A response as it was sent by the application."""

	status: int
	headers: dict[str, str]
	body: bytes
	response: HTTPResponse

	def header(self, name: str) -> str | None:
		return self.response.getHeader(name)

	@property
	def text(self) -> str:
		return self.body.decode("utf8")


class Bridge:
	def __init__(self, application: Application):
		self.application: Application = application
		if not self.application:
			raise ValueError("Bridge has not been given an application")

	async def process(self, request: HTTPRequest) -> BridgeResponse:
		r: HTTPResponse | Coroutine[Any, HTTPResponse, Any] = (
			self.application.process(request)
		)
		res: HTTPResponse = r if isinstance(r, HTTPResponse) else await r
		writer = BytesBodyWriter()
		if request.method != "HEAD":
			await writer.write(res.body)
		return BridgeResponse(
			res.status, dict(res.headers.headers), writer.data, res
		)

	async def requestBytes(self, data: bytes) -> list[BridgeResponse]:
		"""Processes all the requests in the given data, in order."""
		res: list[BridgeResponse] = []
		for atom in HTTPParser().feed(data):
			if atom is HTTPProcessingStatus.BadFormat:
				raise ValueError(f"Malformed request: {data!r}")
			elif isinstance(atom, HTTPRequest):
				res.append(await self.process(atom))
		return res

	def request(
		self, method: str, path: str, headers: dict[str, str] | None = None
	) -> BridgeResponse:
		"""Synchronously processes a request with the given method and path."""
		lines = [f"{method} {path} HTTP/1.1", "Host: localhost"]
		lines += [f"{k}: {v}" for k, v in (headers or {}).items()]
		data = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
		responses = asyncio.run(self.requestBytes(data))
		if len(responses) != 1:
			raise RuntimeError(f"Expected one response, got {len(responses)}")
		return responses[0]

	def get(self, path: str, **headers: str) -> BridgeResponse:
		return self.request("GET", path, headers)

	def head(self, path: str, **headers: str) -> BridgeResponse:
		return self.request("HEAD", path, headers)

	def start(self) -> "Bridge":
		asyncio.run(self.application.start())
		return self

	def stop(self) -> "Bridge":
		asyncio.run(self.application.stop())
		return self


def run(*components: Application | Service) -> Bridge:
	"""Mounts the given services/application in a Python bridge."""
	return Bridge(mount(*components))


# EOF
