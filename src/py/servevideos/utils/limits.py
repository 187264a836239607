from typing import NamedTuple
from enum import Enum
import resource


class LimitType(Enum):
	# Each client connection and each directory watch holds a descriptor
	Files = resource.RLIMIT_NOFILE


REASONABLE_LIMITS: dict[LimitType, int] = {
	LimitType.Files: 10 * 10240,
}


class Limit(NamedTuple):
	type: LimitType
	soft: int
	hard: int


def limit(scope: LimitType) -> Limit:
	return Limit(scope, *resource.getrlimit(scope.value))


def unlimit(
	scope: LimitType, ratio: float = 1.0, *, maximum: int | None = 0
) -> int | bool:
	"""Raises the soft limit of the given resource towards its hard limit,
	capped to a reasonable maximum. Returns the new limit, or `False` when
	it could not be changed."""
	lm = limit(scope)
	hard = lm.hard
	if lm.soft == resource.RLIM_INFINITY:
		return lm.soft
	try:
		# An unlimited hard limit is capped by the reasonable maximum below
		if hard == resource.RLIM_INFINITY:
			target = REASONABLE_LIMITS[scope]
		else:
			target = int(lm.soft + ratio * (hard - lm.soft))
		maximum = REASONABLE_LIMITS.get(scope) if maximum == 0 else maximum
		if maximum:
			target = min(maximum, target)
		if target <= lm.soft:
			return lm.soft
		resource.setrlimit(scope.value, (target, hard))
		return target
	except ValueError:
		return False
	except OSError:
		return False


# EOF
