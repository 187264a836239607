import argparse
import sys

from .config import EXT, ROOT, ConfigurationError, ServerConfig
from .index.scanner import WatchError
from .server import OPTIONS, run
from .services.videos import VideoService
from .utils.logging import info

NAME: str = "serve-videos"


def parser() -> argparse.ArgumentParser:
	res = argparse.ArgumentParser(
		prog=NAME,
		description="Serves the videos of a directory, following its changes",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	res.add_argument(
		"-a",
		"--addr",
		action="store",
		dest="addr",
		default=":8010",
		help="Address to listen on, as HOST:PORT",
	)
	res.add_argument(
		"-r",
		"--root",
		action="store",
		dest="root",
		default=ROOT,
		help="Directory to serve",
	)
	res.add_argument(
		"-e",
		"--ext",
		action="append",
		dest="extensions",
		metavar="EXT",
		help=f"File extension to serve, can be repeated (default: {' '.join(EXT)})",
	)
	res.add_argument(
		"--coalesce",
		action="store",
		dest="coalesce",
		type=float,
		default=0.0,
		help="Folds the changes received within this delay (in seconds) into one rescan",
	)
	res.add_argument(
		"--grace",
		action="store",
		dest="grace",
		type=float,
		default=OPTIONS.grace,
		help="Delay (in seconds) given to responses to complete on shutdown",
	)
	res.add_argument("rest", nargs="*", help=argparse.SUPPRESS)
	return res


def configure(args: list[str] | None = None) -> ServerConfig:
	"""Parses the command line arguments into a configuration, raising
	`ConfigurationError` when they are invalid."""
	options = parser().parse_args(args=args)
	if options.rest:
		raise ConfigurationError(f"Unexpected arguments: {' '.join(options.rest)}")
	return ServerConfig.Make(
		options.root,
		address=options.addr,
		extensions=options.extensions,
		coalesce=options.coalesce,
		grace=options.grace,
	)


def main(args: list[str] | None = None) -> int:
	try:
		config = configure(args)
		info("Starting", Root=str(config.root), Address=config.address)
		run(
			VideoService(config),
			host=config.host,
			port=config.port,
			grace=config.grace,
			logRequests=config.logRequests,
		)
	except (ConfigurationError, WatchError, OSError) as e:
		sys.stderr.write(f"{NAME}: {e}\n")
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
