from typing import ClassVar, Callable, NamedTuple, TypeVar, Any, cast

from .http.model import HTTPRequest, HTTPResponse

T = TypeVar("T")


class Transform(NamedTuple):
    """A function applied to the response of a handler, given the request
    and the response along with the extra arguments."""

    transform: Callable[..., Any]
    args: tuple[Any, ...]
    kwargs: dict[str, Any]


class Extra:
    """Names the attributes set by the decorators on the functions (and
    classes) they annotate."""

    ON: ClassVar[str] = "_servevideos_on"
    ON_PRIORITY: ClassVar[str] = "_servevideos_on_priority"
    POST: ClassVar[str] = "_servevideos_post"

    @staticmethod
    def Meta(scope: Any) -> dict[str, Any]:
        """Returns the dictionary of annotations of the given function or
        class. Classes get their own dictionary, so that annotations are not
        inherited from base classes."""
        if isinstance(scope, type):
            if "__servevideos__" not in scope.__dict__:
                setattr(scope, "__servevideos__", {})
            return cast(dict[str, Any], scope.__dict__["__servevideos__"])
        elif hasattr(scope, "__dict__"):
            return cast(dict[str, Any], scope.__dict__)
        else:
            raise RuntimeError(f"Annotations cannot be attached to: {scope}")


def on(priority: int = 0, **methods: str | list[str] | tuple[str, ...]) -> Callable[[T], T]:
    """Marks a service method as the handler of the requests matching the
    given HTTP methods and route templates. Keyword names are the HTTP
    methods, joined by `_` when there are more than one, and values are one
    or more templates (see `Route`).

    >    @on(GET_HEAD="/raw/{path:any}")
    >    def raw(self, request, path):
    >        ....

    Routes with a higher priority are tried first."""

    def decorator(function: T) -> T:
        meta = Extra.Meta(function)
        routes: list[tuple[str, str]] = meta.setdefault(Extra.ON, [])
        meta[Extra.ON_PRIORITY] = max(priority, meta.get(Extra.ON_PRIORITY, priority))
        for names, templates in methods.items():
            for template in (templates,) if isinstance(templates, str) else templates:
                routes += [(_, template) for _ in names.upper().split("_")]
        return function

    return decorator


def post(
    transform: Callable[[HTTPRequest, HTTPResponse], HTTPResponse]
) -> Callable[[T], T]:
    """Turns the given `transform` into a decorator that applies it to the
    responses of the decorated handler."""

    def decorator(function: T) -> T:
        Extra.Meta(function).setdefault(Extra.POST, []).append(
            Transform(transform, (), {})
        )
        return function

    return decorator


# EOF
