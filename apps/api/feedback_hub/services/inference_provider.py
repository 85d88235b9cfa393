"""Inference collaborator abstraction.

The rest of the code only sees InferenceProvider.complete(): a prompt (plus
an optional image) in, generated text out. Supports Snowflake Cortex and
OpenAI-compatible chat completions.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from feedback_hub.core.config import settings
from feedback_hub.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class InferenceUpstreamError(UpstreamError):
    """Inference endpoint unreachable, timed out, or answered non-2xx."""


@dataclass(frozen=True)
class ImagePayload:
    """Base64 image attached to a prompt."""

    content_base64: str
    mime_type: str


class InferenceProvider(ABC):
    """Abstract base class for inference providers."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        image: ImagePayload | None = None,
        model: str | None = None,
    ) -> str:
        """Send one prompt and return the generated text."""


class CortexInferenceProvider(InferenceProvider):
    """Snowflake Cortex REST inference (streams SSE)."""

    def __init__(
        self,
        endpoint: str,
        api_token: str,
        default_model: str = "openai-gpt-5-mini",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.api_token = api_token
        self.default_model = default_model
        self.timeout = timeout
        self.transport = transport

    def build_body(self, prompt: str, image: ImagePayload | None, model: str) -> dict:
        content_list: list[dict] = [{"type": "text", "text": prompt}]
        if image:
            content_list.append(
                {
                    "type": "image",
                    "details": {
                        "type": "base64",
                        "content": image.content_base64,
                        "content_type": image.mime_type,
                    },
                }
            )
        return {
            "model": model,
            "messages": [{"role": "user", "content_list": content_list}],
        }

    async def complete(
        self,
        prompt: str,
        image: ImagePayload | None = None,
        model: str | None = None,
    ) -> str:
        model = model or self.default_model
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.endpoint}/api/v2/cortex/inference:complete",
                    headers={
                        "Authorization": f"Bearer {self.api_token}",
                        "Content-Type": "application/json",
                        "Accept": "application/json",
                    },
                    json=self.build_body(prompt, image, model),
                )
                response.raise_for_status()
                body = response.text
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Cortex inference error {e.response.status_code}: {e.response.text[:500]}"
            )
            raise InferenceUpstreamError() from e
        except httpx.HTTPError as e:
            logger.error(f"Cortex inference request failed: {e!r}")
            raise InferenceUpstreamError() from e

        return parse_sse_text(body)


def parse_sse_text(body: str) -> str:
    """
    Concatenate the delta text chunks of a Cortex SSE stream.

    Raises:
        InferenceUpstreamError: If the stream carries no data lines
    """
    lines = [line[len("data: "):] for line in body.splitlines() if line.startswith("data: ")]
    if not lines:
        logger.error("Cortex inference returned no SSE data")
        raise InferenceUpstreamError()

    chunks: list[str] = []
    for raw in lines:
        if raw.strip() == "[DONE]":
            continue
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Skipping malformed SSE line: {raw[:200]}")
            continue
        choices = message.get("choices") or []
        if choices:
            text = (choices[0].get("delta") or {}).get("text")
            if text:
                chunks.append(text)
    return "".join(chunks)


class OpenAIInferenceProvider(InferenceProvider):
    """OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def complete(
        self,
        prompt: str,
        image: ImagePayload | None = None,
        model: str | None = None,
    ) -> str:
        model = model or self.default_model

        content: str | list[dict] = prompt
        if image:
            content = [
                {"type": "text", "text": prompt},
                {
                    "type": "image_url",
                    "image_url": {
                        "url": f"data:{image.mime_type};base64,{image.content_base64}"
                    },
                },
            ]

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": model,
                        "messages": [{"role": "user", "content": content}],
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"OpenAI inference error {e.response.status_code}: {e.response.text[:500]}"
            )
            raise InferenceUpstreamError() from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"OpenAI inference request failed: {e!r}")
            raise InferenceUpstreamError() from e

        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"OpenAI inference response missing content: {e!r}")
            raise InferenceUpstreamError() from e


def get_provider(
    provider_name: str,
    endpoint: str,
    api_token: str,
    model: str | None = None,
    timeout: float = 60.0,
) -> InferenceProvider:
    """Factory function to get the configured inference provider."""
    if provider_name == "cortex":
        return CortexInferenceProvider(
            endpoint, api_token, default_model=model or "openai-gpt-5-mini", timeout=timeout
        )
    elif provider_name == "openai":
        return OpenAIInferenceProvider(
            api_token,
            default_model=model or "gpt-4o-mini",
            base_url=endpoint or "https://api.openai.com/v1",
            timeout=timeout,
        )
    else:
        raise ValueError(f"Unknown inference provider: {provider_name}")


def get_inference_provider() -> InferenceProvider:
    """FastAPI dependency returning the provider configured in settings."""
    return get_provider(
        settings.INFERENCE_PROVIDER,
        settings.INFERENCE_ENDPOINT,
        settings.INFERENCE_API_TOKEN,
        model=settings.INFERENCE_MODEL,
        timeout=settings.INFERENCE_TIMEOUT_SECONDS,
    )
