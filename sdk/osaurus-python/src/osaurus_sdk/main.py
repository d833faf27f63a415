"""Osaurus Python SDK public interface for chatting with a local Osaurus server."""

import asyncio
from abc import ABC

import httpx

from osaurus_sdk.config import FrozenSDKSettings, SDKSettings, get_sdk_config, parse_base_url
from osaurus_sdk.discovery import discover_latest_running_instance
from osaurus_sdk.errors import OsaurusDiscoveryFailedError, OsaurusError, OsaurusInvalidResponseError
from osaurus_sdk.logger import logger
from osaurus_sdk.schemas import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatCompletionStreamRequest,
    ChatMessage,
    ModelsResponse,
    OsaurusModel,
)
from osaurus_sdk.streaming import AsyncCompletionStream, CompletionStream
from osaurus_sdk.utils import (
    CHAT_COMPLETIONS_PATH,
    EVENT_STREAM_CONTENT_TYPE,
    MODELS_PATH,
    build_headers,
    check_response,
    decode_payload,
    endpoint_url,
    lenient_resolvers,
    resolve_base_url,
    strict_resolvers,
)


class Defaults:
    """Tweak defaults used when the caller supplies no settings of its own."""

    model = "llama-3.2-3b-instruct-4bit"
    system_prompt = (
        "Improve the provided text for clarity and tone. Preserve meaning and formatting. "
        "Output only the revised text."
    )
    temperature = 0.3


def build_tweak_messages(text: str, system_prompt: str) -> list[ChatMessage]:
    return [
        ChatMessage(role="system", content=system_prompt),
        ChatMessage(role="user", content=text),
    ]


def is_running(config: SDKSettings | None = None) -> bool:
    """Return whether discovery finds any running Osaurus instance."""
    try:
        discover_latest_running_instance(config=config)
    except OsaurusDiscoveryFailedError:
        return False
    return True


def check_health(config: SDKSettings | None = None) -> bool:
    """Check that the discovered instance answers a model listing request.

    Returns:
        True when discovery succeeds and `GET /v1/models` returns a 2xx status.
    """
    try:
        instance = discover_latest_running_instance(config=config)
        with Osaurus(base_url=instance.url, config=config) as client:
            response = client._send(client.build_request(MODELS_PATH))
            response.close()
            return response.is_success
    except (OsaurusError, httpx.HTTPError) as exc:
        logger.debug(f"Osaurus health check failed: {exc}")
        return False


async def check_health_async(config: SDKSettings | None = None) -> bool:
    """Async variant of `check_health`."""
    try:
        loop = asyncio.get_event_loop()
        instance = await loop.run_in_executor(None, lambda: discover_latest_running_instance(config=config))
        async with AsyncOsaurus(base_url=instance.url, config=config) as client:
            response = await client._send(client.build_request(MODELS_PATH))
            await response.aclose()
            return response.is_success
    except (OsaurusError, httpx.HTTPError) as exc:
        logger.debug(f"Osaurus health check failed: {exc}")
        return False


class OsaurusBase(ABC):
    """Base class for Osaurus clients: base URL resolution and request building."""

    def __init__(self, base_url: str | httpx.URL | None = None, config: SDKSettings | None = None):
        """Initialize a client.

        The base URL is taken from `base_url`, then the `OSAURUS_BASE_URL`
        override, then the local default `http://localhost:1337`. Use `make()`
        to require a discovered instance instead of the local default.

        Args:
            base_url: Explicit server URL, e.g. `http://127.0.0.1:1337`.
            config: SDK settings snapshot. Defaults to the global settings.
        """
        self.conf: FrozenSDKSettings = config.get_locked() if config is not None else get_sdk_config()
        if base_url is not None and parse_base_url(base_url) is None:
            raise ValueError(f"Base URL must be an absolute http(s) URL: {base_url}")
        self.base_url = resolve_base_url(lenient_resolvers(base_url, self.conf))
        self.http_client: httpx.Client | httpx.AsyncClient

    @classmethod
    def make(cls, config: SDKSettings | None = None, **kwargs):
        """Create a client for the override URL or the latest discovered instance.

        Raises:
            OsaurusDiscoveryFailedError: If neither an override nor a running
                instance is available.
        """
        conf = config.get_locked() if config is not None else get_sdk_config()
        return cls(base_url=resolve_base_url(strict_resolvers(conf)), config=conf, **kwargs)

    @property
    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.conf.connection.timeout)

    def url(self, path: str) -> httpx.URL:
        return endpoint_url(self.base_url, path)

    def build_request(
        self, path: str, method: str = "GET", accept: str | None = None, content: bytes | None = None
    ) -> httpx.Request:
        """Build a request for an API path such as `v1/chat/completions`.

        The configured timeout applies when set; otherwise the HTTP client's own
        timeout does.
        """
        options = {}
        if self.conf.connection.timeout is not None:
            options["timeout"] = self.timeout
        return self.http_client.build_request(
            method, self.url(path), headers=build_headers(self.conf, accept), content=content, **options
        )

    def _chat_request(
        self, model: str, messages: list[ChatMessage], temperature: float | None, stream: bool
    ) -> httpx.Request:
        if stream:
            payload = ChatCompletionStreamRequest(model=model, messages=messages, temperature=temperature)
            return self.build_request(CHAT_COMPLETIONS_PATH, "POST", EVENT_STREAM_CONTENT_TYPE, payload.encode())
        payload = ChatCompletionRequest(model=model, messages=messages, temperature=temperature)
        return self.build_request(CHAT_COMPLETIONS_PATH, "POST", content=payload.encode())


class Osaurus(OsaurusBase):
    """Synchronous Osaurus client."""

    def __init__(
        self,
        base_url: str | httpx.URL | None = None,
        config: SDKSettings | None = None,
        http_client: httpx.Client | None = None,
    ):
        super().__init__(base_url=base_url, config=config)
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.Client(timeout=self.timeout)

    def _send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        try:
            return self.http_client.send(request, stream=stream)
        except httpx.RemoteProtocolError as exc:
            raise OsaurusInvalidResponseError(f"No HTTP response from {request.url}: {exc}") from exc

    def create_completion(
        self, model: str, messages: list[ChatMessage], temperature: float | None = None
    ) -> ChatCompletionResponse:
        """Send a non-streaming chat completion request.

        Raises:
            OsaurusInvalidResponseError: If the server closed without responding.
            OsaurusHTTPError: If the status is outside 200-299.
            OsaurusDecodeError: If the body is not a chat completion response.
        """
        response = self._send(self._chat_request(model, messages, temperature, stream=False))
        check_response(response)
        return decode_payload(ChatCompletionResponse, response.content)

    def create(self, model: str, messages: list[ChatMessage], temperature: float | None = None) -> str | None:
        """Send a chat completion request and return the first choice's stripped content."""
        return self.create_completion(model, messages, temperature).content

    def create_stream(
        self, model: str, messages: list[ChatMessage], temperature: float | None = None
    ) -> CompletionStream:
        """Stream a chat completion as content deltas.

        Returns:
            A stream that sends the request when iteration starts.
        """
        request = self._chat_request(model, messages, temperature, stream=True)
        return CompletionStream(lambda: self._send(request, stream=True))

    def list_models(self) -> list[OsaurusModel]:
        """List models exposed by the server, in server order."""
        response = self._send(self.build_request(MODELS_PATH))
        check_response(response)
        return decode_payload(ModelsResponse, response.content).data

    def tweak(
        self,
        text: str,
        model: str = Defaults.model,
        system_prompt: str = Defaults.system_prompt,
        temperature: float = Defaults.temperature,
    ) -> str:
        """Rewrite `text` following the `system_prompt` instruction.

        Raises:
            OsaurusInvalidResponseError: If the server returns no content.
        """
        content = self.create(model, build_tweak_messages(text, system_prompt), temperature)
        if not content:
            raise OsaurusInvalidResponseError("Osaurus returned an empty completion")
        return content

    def tweak_stream(
        self,
        text: str,
        model: str = Defaults.model,
        system_prompt: str = Defaults.system_prompt,
        temperature: float = Defaults.temperature,
    ) -> CompletionStream:
        """Streaming variant of `tweak` yielding raw content deltas."""
        return self.create_stream(model, build_tweak_messages(text, system_prompt), temperature)

    def close(self):
        if self._owns_http_client:
            self.http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class AsyncOsaurus(OsaurusBase):
    """Asyncio-friendly Osaurus client."""

    def __init__(
        self,
        base_url: str | httpx.URL | None = None,
        config: SDKSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(base_url=base_url, config=config)
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=self.timeout)

    async def _send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        try:
            return await self.http_client.send(request, stream=stream)
        except httpx.RemoteProtocolError as exc:
            raise OsaurusInvalidResponseError(f"No HTTP response from {request.url}: {exc}") from exc

    async def create_completion(
        self, model: str, messages: list[ChatMessage], temperature: float | None = None
    ) -> ChatCompletionResponse:
        """Send a non-streaming chat completion request.

        Raises:
            OsaurusInvalidResponseError: If the server closed without responding.
            OsaurusHTTPError: If the status is outside 200-299.
            OsaurusDecodeError: If the body is not a chat completion response.
        """
        response = await self._send(self._chat_request(model, messages, temperature, stream=False))
        check_response(response)
        return decode_payload(ChatCompletionResponse, response.content)

    async def create(
        self, model: str, messages: list[ChatMessage], temperature: float | None = None
    ) -> str | None:
        completion = await self.create_completion(model, messages, temperature)
        return completion.content

    def create_stream(
        self, model: str, messages: list[ChatMessage], temperature: float | None = None
    ) -> AsyncCompletionStream:
        request = self._chat_request(model, messages, temperature, stream=True)
        return AsyncCompletionStream(lambda: self._send(request, stream=True))

    async def list_models(self) -> list[OsaurusModel]:
        response = await self._send(self.build_request(MODELS_PATH))
        check_response(response)
        return decode_payload(ModelsResponse, response.content).data

    async def tweak(
        self,
        text: str,
        model: str = Defaults.model,
        system_prompt: str = Defaults.system_prompt,
        temperature: float = Defaults.temperature,
    ) -> str:
        content = await self.create(model, build_tweak_messages(text, system_prompt), temperature)
        if not content:
            raise OsaurusInvalidResponseError("Osaurus returned an empty completion")
        return content

    def tweak_stream(
        self,
        text: str,
        model: str = Defaults.model,
        system_prompt: str = Defaults.system_prompt,
        temperature: float = Defaults.temperature,
    ) -> AsyncCompletionStream:
        return self.create_stream(model, build_tweak_messages(text, system_prompt), temperature)

    async def aclose(self):
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False
