from typing import Any, Callable, ClassVar, Optional, Pattern
from inspect import iscoroutine
import re

from .decorators import Transform, Extra
from .http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from .utils.logging import debug


async def awaited(value: Any) -> Any:
    return (await value) if iscoroutine(value) else value


# -----------------------------------------------------------------------------
#
# ROUTE
#
# -----------------------------------------------------------------------------
#
# A route is a path template where `{name}` or `{name:pattern}` placeholders
# capture parts of the request path, like `/raw/{path:any}`.


class Route:
    PLACEHOLDER: ClassVar[Pattern[str]] = re.compile(
        r"\{(?P<name>[A-Za-z_]\w*)(:(?P<pattern>[^}]+))?\}"
    )

    # What each placeholder pattern matches
    PATTERNS: ClassVar[dict[str, str]] = {
        "segment": r"[^/]+",
        "any": r".*",
    }

    @classmethod
    def Compile(cls, template: str) -> tuple[Pattern[str], tuple[str, ...]]:
        """Compiles the template to a regular expression matching a whole
        path, along with the names of its placeholders. A placeholder without
        pattern matches a single segment."""
        expr: list[str] = []
        names: list[str] = []
        offset: int = 0
        for match in cls.PLACEHOLDER.finditer(template):
            name = match.group("name")
            kind = match.group("pattern") or "segment"
            if kind not in cls.PATTERNS:
                raise ValueError(
                    f"Unknown pattern '{kind}' in route {template!r}, pick one of: {', '.join(cls.PATTERNS)}"
                )
            names.append(name)
            expr.append(re.escape(template[offset : match.start()]))
            expr.append(f"(?P<{name}>{cls.PATTERNS[kind]})")
            offset = match.end()
        expr.append(re.escape(template[offset:]))
        return re.compile(f"^{''.join(expr)}$"), tuple(names)

    def __init__(self, template: str, handler: Optional["Handler"] = None):
        self.template: str = template
        self.regexp, self.names = self.Compile(template)
        self.handler: Optional[Handler] = handler

    @property
    def priority(self) -> int:
        return self.handler.priority if self.handler else 0

    def match(self, path: str) -> dict[str, Any] | None:
        """Returns the placeholder values when the path matches."""
        matched = self.regexp.match(path)
        if not matched:
            return None
        return {_: matched.group(_) for _ in self.names}

    def __repr__(self) -> str:
        return f"(Route {self.template!r})"


# -----------------------------------------------------------------------------
#
# HANDLER
#
# -----------------------------------------------------------------------------


class Handler:
    """Wraps a service method annotated by `@on`, with the HTTP methods
    and route templates it responds to."""

    @staticmethod
    def Get(value: Any, extra: dict[str, Any] | None = None) -> Optional["Handler"]:
        """Returns a handler for the given value if it is annotated, where
        `extra` holds the annotations of the value's class."""
        methods = getattr(value, Extra.ON, None)
        if not methods:
            return None
        post: list[Transform] = list((extra or {}).get(Extra.POST, ()))
        post += getattr(value, Extra.POST, None) or ()
        return Handler(
            value,
            methods,
            priority=getattr(value, Extra.ON_PRIORITY, 0),
            post=post,
        )

    def __init__(
        self,
        functor: Callable[..., Any],
        methods: list[tuple[str, str]],
        priority: int = 0,
        post: list[Transform] | None = None,
    ):
        self.functor = functor
        self.methods: list[tuple[str, str]] = methods
        self.priority: int = priority
        self.post: list[Transform] = post or []

    async def __call__(self, request: HTTPRequest, params: dict[str, Any]) -> HTTPResponse:
        try:
            response: HTTPResponse = await awaited(self.functor(request, **params))
        except HTTPRequestError as e:
            response = request.error(
                e.status or 500, e.message, contentType=e.contentType or "text/plain"
            )
        # Post transforms apply to error responses as well
        for t in self.post:
            response = t.transform(request, response, *t.args, **t.kwargs) or response
        return response

    def __repr__(self) -> str:
        return f"(Handler {self.functor.__name__} {self.methods} :priority {self.priority})"


# -----------------------------------------------------------------------------
#
# DISPATCHER
#
# -----------------------------------------------------------------------------


class Dispatcher:
    """Matches requests against the routes registered by HTTP method,
    trying routes of higher priority first."""

    def __init__(self) -> None:
        self.routes: dict[str, list[Route]] = {}
        self.isPrepared: bool = True

    def register(self, handler: Handler, prefix: str | None = None) -> "Dispatcher":
        for method, template in handler.methods:
            path = f"{prefix or ''}{template}"
            if not path.startswith("/"):
                path = f"/{path}"
            self.routes.setdefault(method, []).append(Route(path, handler))
            debug("Registered route", Method=method, Path=path)
            self.isPrepared = False
        return self

    def prepare(self) -> "Dispatcher":
        for routes in self.routes.values():
            # Sorting is stable, so routes of equal priority keep their
            # registration order.
            routes.sort(key=lambda _: -_.priority)
        self.isPrepared = True
        return self

    def match(self, method: str, path: str) -> tuple[Route | None, dict[str, Any] | None]:
        if not self.isPrepared:
            self.prepare()
        for route in self.routes.get(method, ()):
            params = route.match(path)
            if params is not None:
                return route, params
        return None, None


# EOF
