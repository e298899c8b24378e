"""pyartchain - Async session and query cache client for the ArtChain API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyartchain")
except PackageNotFoundError:
    __version__ = "0+local"
from pyartchain.client import ArtchainClient
from pyartchain.config import ArtchainConfig
from pyartchain.exceptions import (
    ArtchainApiError,
    ArtchainAuthenticationError,
    ArtchainConfigError,
    ArtchainError,
    ArtchainTransportError,
    StorageUnavailableError,
)
from pyartchain.hydration import HydrationGate, SessionInitializer
from pyartchain.models import (
    AuthResponse,
    Contest,
    ContestStatus,
    RegisterRequest,
    UserAchievements,
    UserRole,
    WhoAmI,
)
from pyartchain.query import (
    ConditionalFetch,
    EntrySnapshot,
    ErrorInfo,
    FetchStatus,
    QueryCache,
    QueryKey,
    optional_key,
    query_key,
)
from pyartchain.session import SessionState, SessionStore
from pyartchain.storage import DurableStorage, FileStorage, MemoryStorage, open_storage

__all__ = [
    "__version__",
    "ArtchainApiError",
    "ArtchainAuthenticationError",
    "ArtchainClient",
    "ArtchainConfig",
    "ArtchainConfigError",
    "ArtchainError",
    "ArtchainTransportError",
    "AuthResponse",
    "ConditionalFetch",
    "Contest",
    "ContestStatus",
    "DurableStorage",
    "EntrySnapshot",
    "ErrorInfo",
    "FetchStatus",
    "FileStorage",
    "HydrationGate",
    "MemoryStorage",
    "QueryCache",
    "QueryKey",
    "RegisterRequest",
    "SessionInitializer",
    "SessionState",
    "SessionStore",
    "StorageUnavailableError",
    "UserAchievements",
    "UserRole",
    "WhoAmI",
    "open_storage",
    "optional_key",
    "query_key",
]
