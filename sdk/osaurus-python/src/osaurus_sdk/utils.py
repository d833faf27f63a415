from collections.abc import Callable, Iterable
from typing import NamedTuple, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from osaurus_sdk.config import SDKSettings, parse_base_url
from osaurus_sdk.discovery import discover_latest_running_instance
from osaurus_sdk.errors import OsaurusDecodeError, OsaurusDiscoveryFailedError, OsaurusHTTPError
from osaurus_sdk.logger import logger

DEFAULT_BASE_URL = "http://localhost:1337"
CHAT_COMPLETIONS_PATH = "v1/chat/completions"
MODELS_PATH = "v1/models"
JSON_CONTENT_TYPE = "application/json"
EVENT_STREAM_CONTENT_TYPE = "text/event-stream"

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class BaseURLResolver(NamedTuple):
    """A named strategy producing a base URL, or None when it does not apply."""

    name: str
    resolve: Callable[[], httpx.URL | None]


def explicit_url(url: str | httpx.URL | None) -> BaseURLResolver:
    return BaseURLResolver("explicit", lambda: parse_base_url(url))


def environment_override(config: SDKSettings) -> BaseURLResolver:
    return BaseURLResolver("environment", lambda: parse_base_url(config.connection.base_url))


def discovered_instance(config: SDKSettings) -> BaseURLResolver:
    def resolve() -> httpx.URL | None:
        try:
            instance = discover_latest_running_instance(config=config)
        except OsaurusDiscoveryFailedError as exc:
            logger.debug(f"Discovery found no instance: {exc}")
            return None
        return parse_base_url(instance.url)

    return BaseURLResolver("discovery", resolve)


def local_default() -> BaseURLResolver:
    return BaseURLResolver("default", lambda: httpx.URL(DEFAULT_BASE_URL))


def strict_resolvers(config: SDKSettings) -> list[BaseURLResolver]:
    """Resolvers that fail unless an override or a running instance exists."""
    return [environment_override(config), discovered_instance(config)]


def lenient_resolvers(base_url: str | httpx.URL | None, config: SDKSettings) -> list[BaseURLResolver]:
    """Resolvers that fall back to the local development default."""
    return [explicit_url(base_url), environment_override(config), local_default()]


def resolve_base_url(resolvers: Iterable[BaseURLResolver]) -> httpx.URL:
    """Evaluate resolvers in priority order and return the first URL produced.

    Raises:
        OsaurusDiscoveryFailedError: If every resolver declines.
    """
    for resolver in resolvers:
        if (url := resolver.resolve()) is not None:
            logger.debug(f"Using Osaurus base URL {url} ({resolver.name})")
            return url
    raise OsaurusDiscoveryFailedError("Could not resolve an Osaurus base URL")


def endpoint_url(base_url: httpx.URL, path: str) -> httpx.URL:
    """Append an API path such as `v1/models` to the base URL's own path."""
    normalized = path if path.startswith("/") else f"/{path}"
    return base_url.copy_with(path=base_url.path.rstrip("/") + normalized)


def build_headers(config: SDKSettings, accept: str | None = None) -> dict[str, str]:
    headers = {"Content-Type": JSON_CONTENT_TYPE}
    if accept:
        headers["Accept"] = accept
    if api_key := config.connection.api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def check_response(response: httpx.Response) -> None:
    """Raise for any status outside the 2xx range without touching the body."""
    if not 200 <= response.status_code <= 299:
        raise OsaurusHTTPError(response.status_code)


def decode_payload(payload_type: type[PayloadT], content: bytes) -> PayloadT:
    try:
        return payload_type.model_validate_json(content)
    except ValidationError as exc:
        raise OsaurusDecodeError(f"Could not decode {payload_type.__name__}: {exc}") from exc
