from os import getenv
from pathlib import Path
from typing import Iterable, NamedTuple

from .index.scanner import EXTENSIONS

PORT: int = int(getenv("PORT", 8010))

# The default host listens on all interfaces, like a `:8010` address.
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

ROOT: str = getenv("SERVE_VIDEOS_ROOT", ".")

EXT: tuple[str, ...] = tuple(
	_.strip()
	for _ in getenv("SERVE_VIDEOS_EXT", ",".join(EXTENSIONS)).split(",")
	if _.strip()
)

LOG_REQUESTS: bool = getenv("SERVE_VIDEOS_LOG_REQUESTS", "1") == "1"


class ConfigurationError(ValueError):
	"""Raised when the server can't be configured with the given values."""


def parseAddress(address: str, host: str = HOST) -> tuple[str, int]:
	"""Parses an address like `:8010`, `localhost:8010` or `[::1]:8010`,
	where a missing host defaults to `host`."""
	text = address.strip()
	name, sep, port = text.rpartition(":")
	if not sep or not port:
		raise ConfigurationError(f"Address must be like HOST:PORT, got: {address!r}")
	if name.startswith("[") and name.endswith("]"):
		name = name[1:-1]
	try:
		number = int(port)
	except ValueError as e:
		raise ConfigurationError(f"Port is not a number: {port!r}") from e
	if not 0 <= number <= 65535:
		raise ConfigurationError(f"Port is out of range: {number}")
	return name or host, number


class ServerConfig(NamedTuple):
	"""The validated configuration of the video server."""

	root: Path
	host: str = HOST
	port: int = PORT
	extensions: tuple[str, ...] = EXT
	coalesce: float = 0.0
	grace: float = 5.0
	logRequests: bool = LOG_REQUESTS

	@staticmethod
	def Make(
		root: Path | str = ROOT,
		*,
		address: str | None = None,
		host: str = HOST,
		port: int = PORT,
		extensions: Iterable[str] | None = None,
		coalesce: float = 0.0,
		grace: float = 5.0,
		logRequests: bool = LOG_REQUESTS,
	) -> "ServerConfig":
		"""Makes a configuration, raising `ConfigurationError` when the root
		isn't an existing directory or the address is invalid."""
		if address is not None:
			host, port = parseAddress(address, host)
		try:
			path = Path(root).expanduser().resolve()
		except (OSError, RuntimeError) as e:
			raise ConfigurationError(f"Invalid root {root}: {e}") from e
		if not path.exists():
			raise ConfigurationError(f"Root does not exist: {root}")
		if not path.is_dir():
			raise ConfigurationError(f"Root is not a directory: {root}")
		exts = tuple(_ for _ in (EXT if extensions is None else extensions) if _)
		if not exts:
			raise ConfigurationError("At least one extension is required")
		if coalesce < 0:
			raise ConfigurationError(f"Coalescing delay can't be negative: {coalesce}")
		if grace < 0:
			raise ConfigurationError(f"Grace period can't be negative: {grace}")
		return ServerConfig(
			root=path,
			host=host,
			port=port,
			extensions=exts,
			coalesce=coalesce,
			grace=grace,
			logRequests=logRequests,
		)

	@property
	def address(self) -> str:
		return f"{self.host}:{self.port}"

	def __str__(self) -> str:
		return f"ServerConfig({self.root} {self.address} {','.join(self.extensions)})"


# EOF
