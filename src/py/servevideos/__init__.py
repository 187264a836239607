from .http.model import HTTPRequest, HTTPResponse, HTTPRequestError  # NOQA: F401
from .decorators import on, post  # NOQA: F401
from .server import run  # NOQA: F401
from .model import Service, Application, mount  # NOQA: F401
from .config import ServerConfig, ConfigurationError  # NOQA: F401
from .index import IndexStore, WatchLoop, WatchError, scan  # NOQA: F401
from .services.videos import VideoService  # NOQA: F401


# EOF
