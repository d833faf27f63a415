"""Delta streams over `text/event-stream` chat completion responses."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Iterator

import httpx
from pydantic import ValidationError

from osaurus_sdk.logger import logger
from osaurus_sdk.schemas import ChatCompletionChunk
from osaurus_sdk.utils import check_response

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


def event_payload(line: str) -> str | None:
    """Return the payload of a `data:` line, or None for any other line."""
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX) :].strip()


def decode_delta(payload: str) -> str | None:
    """Decode one chunk payload into its content delta.

    Payloads that are not valid chunks (keepalives, heartbeats) yield None.
    """
    try:
        chunk = ChatCompletionChunk.model_validate_json(payload)
    except ValidationError as exc:
        logger.debug(f"Discarding undecodable stream chunk {payload!r}: {exc}")
        return None
    return chunk.delta_content or None


class CompletionStream:
    """Iterator of content deltas from one streamed chat completion.

    The request is sent on first iteration. Use it as a context manager, or
    call `close()`, to release the connection when stopping early::

        with client.create_stream(model, messages) as stream:
            for delta in stream:
                print(delta, end="", flush=True)
    """

    def __init__(self, open_response: Callable[[], httpx.Response]) -> None:
        self._open_response = open_response
        self._deltas = self._iter_deltas()
        self.text: str = ""

    def _iter_deltas(self) -> Iterator[str]:
        response = self._open_response()
        try:
            check_response(response)
            for line in response.iter_lines():
                if (payload := event_payload(line)) is None:
                    continue
                if payload == DONE_SENTINEL:
                    return
                if delta := decode_delta(payload):
                    self.text += delta
                    yield delta
        finally:
            response.close()

    def __iter__(self) -> CompletionStream:
        return self

    def __next__(self) -> str:
        return next(self._deltas)

    def close(self) -> None:
        self._deltas.close()

    def __enter__(self) -> CompletionStream:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class AsyncCompletionStream:
    """Async iterator of content deltas from one streamed chat completion.

    Usage::

        async with client.create_stream(model, messages) as stream:
            async for delta in stream:
                print(delta, end="", flush=True)
    """

    def __init__(self, open_response: Callable[[], Awaitable[httpx.Response]]) -> None:
        self._open_response = open_response
        self._deltas = self._iter_deltas()
        self.text: str = ""

    async def _iter_deltas(self) -> AsyncIterator[str]:
        response = await self._open_response()
        try:
            check_response(response)
            async for line in response.aiter_lines():
                if (payload := event_payload(line)) is None:
                    continue
                if payload == DONE_SENTINEL:
                    return
                if delta := decode_delta(payload):
                    self.text += delta
                    yield delta
        finally:
            await response.aclose()

    def __aiter__(self) -> AsyncCompletionStream:
        return self

    async def __anext__(self) -> str:
        return await self._deltas.__anext__()

    async def aclose(self) -> None:
        await self._deltas.aclose()

    async def __aenter__(self) -> AsyncCompletionStream:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False
