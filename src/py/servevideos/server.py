import asyncio
import socket
import threading
from dataclasses import dataclass, field
from pathlib import Path
from signal import SIGINT, SIGTERM
from typing import Any, Callable, Coroutine, NamedTuple

from .config import HOST, LOG_REQUESTS, PORT
from .http.body import HTTPBodyWriter
from .http.model import HTTPProcessingStatus, HTTPRequest, HTTPResponse
from .http.parser import HTTPParser
from .model import Application, Service, mount
from .utils.io import LineTooLong
from .utils.limits import LimitType, unlimit
from .utils.logging import LogLevel, debug, error, event, exception, info, logged, warning

# -----------------------------------------------------------------------------
#
# OPTIONS & STATE
#
# -----------------------------------------------------------------------------


class ServerOptions(NamedTuple):
	host: str = HOST
	port: int = PORT
	backlog: int = 10_000
	# Applies to every read, including the wait for the next request on a
	# kept-alive connection.
	timeout: float = 10.0
	# Applies to sending a response, which for a large video on a slow
	# connection takes a while.
	writeTimeout: float = 3_600.0
	# Delay given to in-flight responses on shutdown
	grace: float = 5.0
	# Delay between checks of the running state while accepting
	polling: float = 1.0
	readsize: int = 4_096
	logRequests: bool = LOG_REQUESTS
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


OPTIONS: ServerOptions = ServerOptions()


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True
	# Connections waiting for a request, cancelled first on shutdown
	idle: set[asyncio.Task[None]] = field(default_factory=set)

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)
		else:
			error(str(context.get("message")), "LOOPERR")


BAD_REQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 11\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Bad Request"
)

# -----------------------------------------------------------------------------
#
# WRITER
#
# -----------------------------------------------------------------------------


class AIOSocketBodyWriter(HTTPBodyWriter):
	"""Writes response bodies to a non-blocking socket, sending files with
	`sendfile` where the platform supports it."""

	__slots__ = ["client", "loop"]

	def __init__(self, client: socket.socket, loop: asyncio.AbstractEventLoop) -> None:
		super().__init__()
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(self, chunk: bytes, more: bool = False) -> bool:
		if chunk:
			await self.loop.sock_sendall(self.client, chunk)
		return True

	async def _writeFile(
		self, path: Path, start: int, count: int, size: int = 64_000
	) -> bool:
		if count <= 0:
			return True
		with open(path, "rb") as f:
			sent = await self.loop.sock_sendfile(self.client, f, offset=start, count=count)
		if sent < count:
			# Truncated after the head went out: closing is the only way
			# left to tell the client.
			warning("File shorter than announced", Path=str(path), Sent=sent, Expected=count)
			self.shouldClose = True
			return False
		return True


# -----------------------------------------------------------------------------
#
# SERVER
#
# -----------------------------------------------------------------------------


class AIOSocketServer:
	"""Serves an application over plain asyncio sockets, one task per
	client connection."""

	@staticmethod
	async def Receive(
		client: socket.socket,
		buffer: bytearray,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
		state: ServerState,
	) -> int | HTTPProcessingStatus:
		"""Reads the next chunk from the client, returning the number of
		bytes read or the status that ends the connection. The task is
		marked idle while it waits."""
		task = asyncio.current_task()
		if task:
			state.idle.add(task)
		try:
			n = await asyncio.wait_for(
				loop.sock_recv_into(client, buffer), timeout=options.timeout
			)
		except asyncio.TimeoutError:
			return HTTPProcessingStatus.Timeout
		except (ConnectionResetError, BrokenPipeError):
			return HTTPProcessingStatus.NoData
		finally:
			if task:
				state.idle.discard(task)
		return n if n else HTTPProcessingStatus.NoData

	@classmethod
	async def OnRequest(
		cls,
		app: Application,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
		state: ServerState,
	) -> None:
		"""Answers the requests of a client connection for as long as it is
		kept alive, then closes it."""
		buffer = bytearray(options.readsize)
		parser = HTTPParser()
		writer = AIOSocketBodyWriter(client, loop)
		peer: str = f"{id(client):x}"
		keepAlive: bool = True
		received: int = 0
		answered: int = 0
		try:
			while keepAlive and not writer.shouldClose and state.isRunning:
				n = await cls.Receive(
					client, buffer, loop=loop, options=options, state=state
				)
				if isinstance(n, HTTPProcessingStatus):
					if n is HTTPProcessingStatus.Timeout and not received:
						warning("Client timed out", Client=peer)
					break
				logged(LogLevel.Debug) and debug("Read", Client=peer, Bytes=n)
				# A single read may hold several pipelined requests
				try:
					atoms = list(parser.feed(bytes(buffer[:n])))
				except LineTooLong:
					atoms = [HTTPProcessingStatus.BadFormat]
				for atom in atoms:
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Client=peer)
						await asyncio.wait_for(
							loop.sock_sendall(client, BAD_REQUEST), timeout=options.timeout
						)
						keepAlive = False
					elif isinstance(atom, HTTPRequest):
						received += 1
						if options.logRequests:
							event(atom.method, atom.path)
						keepAlive = atom.keepAlive
						res = await cls.SendResponse(
							atom, app, writer, options, keepAlive=keepAlive
						)
						if res:
							answered += 1
							keepAlive = keepAlive and not res.shouldClose
					if not keepAlive or writer.shouldClose:
						break
			if answered != received:
				warning("Incomplete responses", Requests=received, Responses=answered)
		except asyncio.CancelledError:
			debug("Connection cancelled", Client=peer, Requests=received)
			raise
		except Exception as e:
			exception(e)
		finally:
			client.close()

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		app: Application,
		writer: HTTPBodyWriter,
		options: ServerOptions = OPTIONS,
		*,
		keepAlive: bool = True,
	) -> HTTPResponse | None:
		"""Sends the application's response to the request, returning it
		once fully written, or `None` when the connection broke."""
		try:
			r: HTTPResponse | Coroutine[Any, HTTPResponse, Any] = app.process(request)
			res: HTTPResponse | None = r if isinstance(r, HTTPResponse) else await r
		except Exception as e:
			exception(e, f"Handler failed for {request.method} {request.path}")
			res = None
		if res is None:
			res = request.fail("Internal Server Error")
		if not keepAlive:
			res.setHeader("Connection", "close")
		try:
			await asyncio.wait_for(writer.write(res.head()), timeout=options.writeTimeout)
			if request.method != "HEAD":
				await asyncio.wait_for(writer.write(res.body), timeout=options.writeTimeout)
		except (BrokenPipeError, ConnectionResetError):
			debug("Client closed early", Path=request.path)
		except asyncio.TimeoutError:
			warning("Response timed out", Method=request.method, Path=request.path)
		except OSError as e:
			# Includes the file disappearing once the head was sent
			exception(e, f"Could not send response for {request.path}")
		else:
			return res
		writer.shouldClose = True
		return None

	@staticmethod
	def Bind(options: ServerOptions) -> socket.socket:
		"""Returns a non-blocking listening socket bound to the options'
		host and port, using the address family of the host (IPv4 or
		IPv6)."""
		server: socket.socket | None = None
		try:
			family, kind, proto, _, address = socket.getaddrinfo(
				options.host or None,
				options.port,
				type=socket.SOCK_STREAM,
				flags=socket.AI_PASSIVE,
			)[0]
			server = socket.socket(family, kind, proto)
			server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
			server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
			server.bind(address)
		except OSError:
			error(f"Unable to bind to {options.host}:{options.port}, aborting.", "HOSTPORTERR")
			if server:
				server.close()
			raise
		server.listen(options.backlog)
		server.setblocking(False)
		return server

	@classmethod
	async def Serve(cls, app: Application, options: ServerOptions = OPTIONS) -> None:
		"""Starts the application, accepts connections until stopped and
		then shuts down gracefully. A service that fails to start prevents
		the server from listening at all."""
		loop = asyncio.get_running_loop()
		await app.start()
		try:
			server = cls.Bind(options)
		except OSError:
			await app.stop()
			raise

		tasks: set[asyncio.Task[None]] = set()
		state = ServerState()
		# Signal handlers can only be set from the main thread
		signals: bool = (
			options.stopSignals and threading.current_thread() is threading.main_thread()
		)
		if signals:
			for sig in (SIGINT, SIGTERM):
				loop.add_signal_handler(sig, state.stop)
		loop.set_exception_handler(state.onException)
		info("Server listening", icon="🚀", Host=options.host, Port=server.getsockname()[1])

		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling or 1.0
					)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					# EMFILE: out of descriptors until some connections close
					if e.errno == 24:
						await asyncio.sleep(0.1)
					else:
						exception(e)
					continue
				client.setblocking(False)
				task = loop.create_task(
					cls.OnRequest(app, client, loop=loop, options=options, state=state)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			state.isRunning = False
			server.close()
			if signals:
				for sig in (SIGINT, SIGTERM):
					loop.remove_signal_handler(sig)
			await cls.Shutdown(tasks, state, options)
			await app.stop()

	@staticmethod
	async def Shutdown(
		tasks: set[asyncio.Task[None]], state: ServerState, options: ServerOptions
	) -> None:
		"""Cancels the idle connections and gives the others up to the grace
		period to complete before cancelling them."""
		idle = [_ for _ in tasks if _ in state.idle]
		busy = [_ for _ in tasks if _ not in state.idle]
		for task in idle:
			task.cancel()
		if busy:
			info("Waiting for responses", Count=len(busy), Grace=options.grace)
			_, pending = await asyncio.wait(busy, timeout=options.grace)
			for task in pending:
				task.cancel()
			if pending:
				warning("Cancelled responses", Count=len(pending))
		await asyncio.gather(*idle, *busy, return_exceptions=True)


def run(
	*components: Application | Service,
	host: str = HOST,
	port: int = PORT,
	backlog: int = OPTIONS.backlog,
	condition: Callable[[], bool] | None = None,
	timeout: float = OPTIONS.timeout,
	writeTimeout: float = OPTIONS.writeTimeout,
	grace: float = OPTIONS.grace,
	polling: float = OPTIONS.polling,
	logRequests: bool = OPTIONS.logRequests,
) -> None:
	"""Runs the given services until the process is interrupted."""
	unlimit(LimitType.Files)
	options = ServerOptions(
		host=host,
		port=port,
		backlog=backlog,
		condition=condition,
		timeout=timeout,
		writeTimeout=writeTimeout,
		grace=grace,
		polling=polling,
		logRequests=logRequests,
	)
	try:
		asyncio.run(AIOSocketServer.Serve(mount(*components), options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
