"""Public SDK exports for Osaurus Python."""

from . import main
from .config import FrozenSDKSettings, SDKSettings, get_sdk_config, settings
from .discovery import discover_latest_running_instance
from .errors import (
    OsaurusDecodeError,
    OsaurusDiscoveryFailedError,
    OsaurusError,
    OsaurusHTTPError,
    OsaurusInvalidResponseError,
)
from .main import AsyncOsaurus, Defaults, Osaurus, check_health, check_health_async, is_running
from .schemas import ChatMessage, OsaurusInstance, OsaurusModel
from .streaming import AsyncCompletionStream, CompletionStream

__version__ = "0.1.0"
