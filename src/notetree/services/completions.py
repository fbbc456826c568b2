"""
Completion Relay

Streams text generation from the Anthropic Messages API back to clients as
newline-delimited JSON in Ollama's ``/api/generate`` format.

Design:
    - Async HTTP streaming via httpx (one client per relayed request).
    - The upstream SSE stream is parsed line by line; only
      ``content_block_delta`` events produce output chunks.
    - Upstream failures are logged and end the stream with the final
      ``done`` chunk, so clients always see a terminated response.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any, Final

import httpx

from notetree.core.config import settings
from notetree.core.errors import ModelNotAllowedError
from notetree.schemas.completions import (
    CompletedStreamChunk,
    GenerateRequest,
    ModelCard,
    ModelDetails,
    ModelList,
    ModelName,
    StreamChunk,
)

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION: Final[str] = "2023-06-01"
DELTA_EVENT: Final[str] = "content_block_delta"


def _ndjson(chunk: StreamChunk) -> bytes:
    return (chunk.model_dump_json() + "\n").encode("utf-8")


def _delta_text(data: Any) -> str | None:
    """Text of a ``content_block_delta`` payload, or None if it has none."""
    if not isinstance(data, dict):
        return None
    delta = data.get("delta")
    if not isinstance(delta, dict):
        return None
    text = delta.get("text")
    return text if isinstance(text, str) else None


class CompletionRelay:
    """
    Relay from an Ollama-style generate request to the Anthropic Messages API.

    Usage::

        relay = CompletionRelay()
        relay.check_model(request.model)
        async for line in relay.stream(request):
            ...

    Args:
        api_key: Upstream API key (default from config).
        route: Upstream Messages endpoint (default from config).
        timeout: Request timeout in seconds (default from config).
        allowed_models: Models clients may request (default from config).
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        api_key: str | None = None,
        route: str | None = None,
        timeout: float | None = None,
        allowed_models: list[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or settings.ANTHROPIC_API_KEY or ""
        self._route = route or settings.ANTHROPIC_ROUTE
        self._timeout = timeout or settings.ANTHROPIC_TIMEOUT
        self._allowed_models = list(allowed_models or settings.ALLOWED_MODELS)
        self._transport = transport

    @property
    def allowed_models(self) -> list[str]:
        return list(self._allowed_models)

    def check_model(self, model: str) -> None:
        """Raise ModelNotAllowedError unless ``model`` may be relayed."""
        if model not in self._allowed_models:
            raise ModelNotAllowedError(f"Model not allowed: {model}")

    def _payload(self, request: GenerateRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model,
            "system": request.system,
            "messages": [{"role": "user", "content": request.prompt}],
            "max_tokens": request.options.num_predict,
            "stream": True,
        }
        if request.options.temperature is not None:
            payload["temperature"] = request.options.temperature
        return payload

    def _headers(self) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "anthropic-version": ANTHROPIC_VERSION,
            "x-api-key": self._api_key,
        }

    async def stream(self, request: GenerateRequest) -> AsyncIterator[bytes]:
        """
        Yield NDJSON-encoded chunks for ``request``.

        The last chunk always has ``done=true`` and the elapsed time in
        milliseconds as ``total_duration``.
        """
        started = time.monotonic()
        emitted = 0

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                async with client.stream(
                    "POST", self._route, json=self._payload(request), headers=self._headers()
                ) as response:
                    if response.status_code != 200:
                        body = await response.aread()
                        logger.error(
                            "Anthropic API error (status=%d): %s",
                            response.status_code,
                            body[:500].decode("utf-8", errors="replace"),
                        )
                    else:
                        event_type = ""
                        async for line in response.aiter_lines():
                            if line.startswith("event:"):
                                event_type = line[len("event:") :].strip()
                            elif line.startswith("data:") and event_type == DELTA_EVENT:
                                data = json.loads(line[len("data:") :].strip())
                                text = _delta_text(data)
                                if text is None:
                                    logger.warning("Skipping malformed delta: %.200s", line)
                                    continue
                                emitted += 1
                                yield _ndjson(
                                    StreamChunk(
                                        model=request.model,
                                        response=text,
                                        created_at=datetime.now(UTC),
                                    )
                                )
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            logger.warning(
                "Completion stream interrupted (%s): %s", type(e).__name__, str(e)
            )

        total_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Completion relayed (model=%s, chunks=%d, %d ms)",
            request.model,
            emitted,
            total_ms,
        )
        yield _ndjson(
            CompletedStreamChunk(
                model=request.model,
                response="",
                created_at=datetime.now(UTC),
                total_duration=total_ms,
            )
        )

    def list_models(self) -> ModelList:
        return ModelList(models=[ModelName(name=m) for m in self._allowed_models])

    def show_model(self) -> ModelCard:
        """Static model card for the default (first allowed) model."""
        name = self._allowed_models[0] if self._allowed_models else ""
        return ModelCard(
            license="COMMERCIAL",
            modelfile=name,
            parameters=name,
            template=name,
            details=ModelDetails(
                parent_model=name,
                format="anthropic",
                family="claude",
                families=["claude"],
                parameter_size="unknown",
                quantization_level="unknown",
            ),
        )


completion_relay = CompletionRelay()


def get_completion_relay() -> CompletionRelay:
    """FastAPI dependency returning the shared relay."""
    return completion_relay
