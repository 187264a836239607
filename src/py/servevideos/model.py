from typing import Any, ClassVar, Coroutine, Iterable, Iterator, Optional

from .routing import Handler, Dispatcher
from .http.model import HTTPRequest, HTTPResponse
from .decorators import Extra
from .utils.logging import debug, error

# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


class Service:
    """Groups the request handlers (methods annotated with `@on`) sharing
    some state. A service is mounted in an application, which starts and
    stops it along with the server."""

    PREFIX: ClassVar[str] = ""
    # Attributes that are never handlers, some of which would fail if
    # accessed before the service is mounted.
    NO_HANDLER: ClassVar[frozenset[str]] = frozenset(
        ("app", "handlers", "isMounted", "start", "stop")
    )

    def __init__(self, name: Optional[str] = None, *, prefix: str | None = None) -> None:
        self.name: str = name or self.__class__.__name__
        self.prefix: str = prefix or self.PREFIX
        self.app: Optional[Application] = None
        self._handlers: Optional[list[Handler]] = None
        self.init()

    def init(self) -> None:
        pass

    async def start(self) -> None:
        """Called before the server accepts connections."""

    async def stop(self) -> None:
        """Called once the server stopped accepting connections."""

    @property
    def isMounted(self) -> bool:
        return self.app is not None

    @property
    def handlers(self) -> list[Handler]:
        if self._handlers is None:
            self._handlers = list(self.iterHandlers())
        return self._handlers

    def iterHandlers(self) -> Iterator[Handler]:
        annotations = Extra.Meta(self.__class__)
        for name in dir(self):
            if name.startswith("_") or name in self.NO_HANDLER:
                continue
            handler = Handler.Get(getattr(self, name), annotations)
            if handler:
                yield handler

    def __repr__(self) -> str:
        return f"(Service {self.name}{' :mounted' if self.isMounted else ''})"


# -----------------------------------------------------------------------------
#
# APPLICATION
#
# -----------------------------------------------------------------------------


class Application:
    """Routes requests to the handlers of the mounted services."""

    def __init__(self, services: Iterable[Service] = ()) -> None:
        self.dispatcher: Dispatcher = Dispatcher()
        self.services: list[Service] = []
        for service in services:
            self.mount(service)

    def mount(self, service: Service, prefix: Optional[str] = None) -> Service:
        if service.isMounted:
            raise RuntimeError(f"Service is already mounted: {service}")
        for handler in service.handlers:
            self.dispatcher.register(handler, prefix or service.prefix)
        service.app = self
        self.services.append(service)
        return service

    async def start(self) -> "Application":
        self.dispatcher.prepare()
        for service in self.services:
            try:
                await service.start()
            except Exception as e:
                error(f"Could not start {service}: {e}", "APPSTART")
                raise
        return self

    async def stop(self) -> "Application":
        """Stops the services in reverse order. All of them are stopped, the
        first failure is raised afterwards."""
        failure: Exception | None = None
        for service in reversed(self.services):
            try:
                await service.stop()
            except Exception as e:
                error(f"Could not stop {service}: {e}", "APPSTOP")
                failure = failure or e
        if failure:
            raise failure
        return self

    def process(
        self, request: HTTPRequest
    ) -> HTTPResponse | Coroutine[Any, HTTPResponse, Any]:
        route, params = self.dispatcher.match(request.method, request.path)
        if not route:
            debug("No route", Method=request.method, Path=request.path)
            return request.notFound()
        elif not route.handler:
            raise RuntimeError(f"Route has no handler: {route}")
        else:
            return route.handler(request, params or {})

    def __repr__(self) -> str:
        return f"(Application {' '.join(_.name for _ in self.services)})"


def mount(*components: Application | Service) -> Application:
    """Mounts the given services in the given application, or in a new one
    when none is given."""
    apps = [_ for _ in components if isinstance(_, Application)]
    if len(apps) > 1:
        raise RuntimeError(f"Expected at most one application, got: {apps}")
    app: Application = apps[0] if apps else Application()
    for component in components:
        if isinstance(component, Service):
            if component.app is not app:
                app.mount(component)
        elif not isinstance(component, Application):
            raise RuntimeError(f"Unsupported component type {type(component)}: {component}")
    return app


# EOF
