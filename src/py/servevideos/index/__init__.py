from .scanner import EXTENSIONS, FileIndex, WatchError, WatchHandle, scan  # NOQA: F401
from .store import IndexStore, PathDecodeError, decodePath, resolve  # NOQA: F401
from .watch import WatchLoop  # NOQA: F401

# EOF
