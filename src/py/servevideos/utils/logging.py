import os
import sys
import time
import threading
from enum import Enum
from typing import NamedTuple, Any, TypeAlias
from contextvars import ContextVar
from .term import Term

ERR = sys.stderr

# Log entries are written both from the event loop and from the watch
# thread, so writes are serialized.
LOCK: threading.Lock = threading.Lock()

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="servevideos")

TValue: TypeAlias = str | int | float | bool | None


class LogType(Enum):
	Message = 0  # A general information message
	Event = 20  # An event


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30  # A Warning
	Error = 40  # A managed error
	Exception = 50  # An un-managed error


LOG_LEVEL_COLOR = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}

LOG_LEVEL: LogLevel = LogLevel.__members__.get(
	os.getenv("SERVE_VIDEOS_LOG", "Info").capitalize(), LogLevel.Info
)


class LogEntry(NamedTuple):
	origin: str
	time: float
	type: LogType = LogType.Message
	level: LogLevel = LogLevel.Info
	message: str | None = None
	name: str | None = None
	value: Any = None
	context: dict[str, TValue] | None = None
	icon: str | None = None


def formatData(value: Any) -> str:
	if value is None or value == () or value == [] or value == {}:
		return "◌"
	elif isinstance(value, dict):
		return " ".join(
			f"{Term.BOLD}{k}{Term.RESET}={formatData(v)}" for k, v in value.items()
		)
	elif isinstance(value, list) or isinstance(value, tuple):
		return ",".join(formatData(v) for v in value)
	elif isinstance(value, str):
		return repr(value) if " " in value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def formatTime(at: float) -> str:
	return time.strftime("%H:%M:%S", time.localtime(at))


def send(entry: LogEntry) -> LogEntry:
	if entry.level.value < LOG_LEVEL.value:
		return entry
	icon: str = f" {entry.icon}" if entry.icon else ""
	clr: str = Term.Color(LOG_LEVEL_COLOR[entry.level])
	at: str = formatTime(entry.time)
	if entry.type == LogType.Event:
		line = f"{at} {clr}{Term.BOLD}[{entry.origin}] {entry.name}{Term.RESET} {formatData(entry.value)} {formatData(entry.context)}{Term.RESET}\n"
	else:
		line = f"{at} {clr}{Term.BOLD}[{entry.origin}]{Term.RESET}{icon} {entry.message} {formatData(entry.context)}{Term.RESET}\n"
	with LOCK:
		ERR.write(line)
		ERR.flush()
	return entry


def log(
	level: LogLevel,
	message: str | None,
	*,
	type: LogType = LogType.Message,
	name: str | None = None,
	value: Any = None,
	origin: str | None = None,
	icon: str | None = None,
	context: dict[str, TValue] | None = None,
) -> LogEntry:
	"""Creates the entry and sends it, unless its level is filtered out."""
	return send(
		LogEntry(
			origin=origin or LogOrigin.get(),
			time=time.time(),
			type=type,
			level=level,
			message=message,
			name=name,
			value=value,
			context=context,
			icon=icon,
		)
	)


def debug(
	message: str, *, origin: str | None = None, icon: str | None = None, **context: TValue
) -> LogEntry:
	return log(LogLevel.Debug, message, origin=origin, icon=icon, context=context)


def info(
	message: str, *, origin: str | None = None, icon: str | None = None, **context: TValue
) -> LogEntry:
	return log(LogLevel.Info, message, origin=origin, icon=icon, context=context)


def warning(
	message: str, *, origin: str | None = None, icon: str | None = None, **context: TValue
) -> LogEntry:
	return log(LogLevel.Warning, message, origin=origin, icon=icon, context=context)


def error(
	message: str,
	code: int | str | None,
	*,
	origin: str | None = None,
	icon: str | None = None,
	**context: TValue,
) -> LogEntry:
	"""Logs a managed error, tagged with a short code like `WATCHERR` that
	can be searched for in the logs."""
	return log(
		LogLevel.Error,
		f"{message} [{code}]" if code else message,
		value=code,
		origin=origin,
		icon=icon,
		context=context,
	)


def event(
	event: str, value: Any = None, *, origin: str | None = None, **context: TValue
) -> LogEntry:
	"""Logs something that happened, like a request or a file change."""
	return log(
		LogLevel.Info,
		None,
		type=LogType.Event,
		name=event,
		value=value,
		origin=origin,
		context=context,
	)


def exception(
	exception: BaseException,
	message: str | None = None,
) -> BaseException:
	"""Writes the exception along with its traceback, returning it so that
	it can be re-raised with `raise exception(e)`."""
	prefix: str = f"{message}: " if message else ""
	lines: list[str] = [
		f"!!! EXCP {prefix}[{exception.__class__.__name__}] {exception}\n"
	]
	try:
		tb = exception.__traceback__
		while tb:
			code = tb.tb_frame.f_code
			lines.append(
				f"... in {code.co_name:15s} at {tb.tb_lineno:4d} in {code.co_filename}\n"
			)
			tb = tb.tb_next
		with LOCK:
			ERR.write("".join(lines))
			ERR.flush()
	except Exception:  # nosec: B110
		# Called from exception handlers, where failing to log must not
		# replace the original error.
		pass
	return exception


def logged(level: LogLevel) -> bool:
	"""Tells if entries of the given level are written, to skip building
	costly entries otherwise."""
	return level.value >= LOG_LEVEL.value


# EOF
