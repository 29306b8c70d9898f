"""Image generation gateway.

Talks to an OpenAI-compatible ``/images/generations`` endpoint. Every call
degrades to a placeholder image instead of raising, so a slow or failing
backend never stalls a round. Without an API key no request is made at all,
which keeps the game playable for local development.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

logger = logging.getLogger(__name__)

# Transparent 1x1 PNG.
PLACEHOLDER_IMAGE = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR4nGNgYAAAAAMAASsJTYQAAAAASUVORK5CYII="
)


class GatewayFailure(Exception):
    pass


@dataclass
class OriginalImage:
    prompt: str
    image: str


def original_prompt_for(category: str) -> str:
    return f"A detailed {category} scene generated for a prompt battle game."


class ImageGateway:
    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://api.openai.com/v1",
        model: str = "dall-e-3",
        size: str = "1024x1024",
        timeout_ms: int = 30000,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.size = size
        self.timeout_sec = max(0.001, timeout_ms / 1000)
        self._client = client

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ImageGateway":
        return cls(
            api_key=config.get("OPENAI_API_KEY", ""),
            base_url=config.get("OPENAI_BASE_URL", "https://api.openai.com/v1"),
            model=config.get("IMAGE_MODEL", "dall-e-3"),
            size=config.get("IMAGE_SIZE", "1024x1024"),
            timeout_ms=int(config.get("IMAGE_GENERATION_TIMEOUT", 30000)),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def generate_original(self, category: str) -> OriginalImage:
        prompt = original_prompt_for(category)
        if not self.enabled:
            return OriginalImage(prompt=prompt, image=PLACEHOLDER_IMAGE)
        try:
            return OriginalImage(prompt=prompt, image=self._generate(prompt))
        except GatewayFailure as exc:
            logger.warning("Original image generation failed for %r: %s", category, exc)
            return OriginalImage(prompt=prompt, image=PLACEHOLDER_IMAGE)

    def generate_from_prompt(self, prompt: str) -> str:
        if not self.enabled:
            return PLACEHOLDER_IMAGE
        try:
            return self._generate(prompt)
        except GatewayFailure as exc:
            logger.warning("Image generation from prompt failed: %s", exc)
            return PLACEHOLDER_IMAGE

    def _generate(self, prompt: str) -> str:
        payload = {"model": self.model, "prompt": prompt, "n": 1, "size": self.size}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        url = f"{self.base_url}/images/generations"

        try:
            if self._client is not None:
                response = self._client.post(url, json=payload, headers=headers, timeout=self.timeout_sec)
            else:
                with httpx.Client(timeout=self.timeout_sec) as client:
                    response = client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as exc:
            raise GatewayFailure(f"timed out after {self.timeout_sec}s") from exc
        except httpx.HTTPStatusError as exc:
            raise GatewayFailure(f"HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise GatewayFailure(str(exc) or exc.__class__.__name__) from exc

        return _extract_image(body)


def _extract_image(body: Any) -> str:
    try:
        item = body["data"][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise GatewayFailure("malformed response") from exc

    if not isinstance(item, dict):
        raise GatewayFailure("malformed response")
    if item.get("url"):
        return str(item["url"])
    if item.get("b64_json"):
        return f"data:image/png;base64,{item['b64_json']}"
    raise GatewayFailure("response has no image")
