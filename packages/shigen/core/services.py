"""Wiring of generation components from application config."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from shigen.core.api.http import AsyncApiClient, HttpClientConfig, RetryPolicy
from shigen.core.config.models import AppConfig
from shigen.core.generation.client import GenerationClient
from shigen.core.generation.retry_loader import ResourceLoader, http_probe


@dataclass
class GenerationServices:
    """Clients sharing one configuration.

    Attributes:
        text: Text generation client (text host)
        media: Client for image, audio and model-listing hosts (absolute URLs)
        images: Image loader probing through a retry-free client
    """

    config: AppConfig
    text: GenerationClient
    media: AsyncApiClient
    images: ResourceLoader
    _probe_http: AsyncApiClient

    @classmethod
    def from_config(
        cls, config: AppConfig, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> GenerationServices:
        gen = config.generation
        text_http = AsyncApiClient(
            HttpClientConfig.with_timeout(gen.text_base_url, gen.request_timeout_s),
            transport=transport,
        )
        media = AsyncApiClient(
            HttpClientConfig.with_timeout(gen.image_base_url, gen.request_timeout_s),
            transport=transport,
        )
        probe_http = AsyncApiClient(
            HttpClientConfig.with_timeout(gen.image_base_url, gen.request_timeout_s),
            retry_policy=RetryPolicy(max_attempts=1),
            transport=transport,
        )
        text = GenerationClient(
            text_http,
            classifier=gen.response_classifier(),
            chat_model_keywords=gen.chat_model_keywords,
        )
        images = ResourceLoader(http_probe(probe_http), policy=config.image_loader.retry_policy())
        return cls(config=config, text=text, media=media, images=images, _probe_http=probe_http)

    async def aclose(self) -> None:
        await self.images.aclose()
        await self.text.aclose()
        await self.media.aclose()
        await self._probe_http.aclose()

    async def __aenter__(self) -> GenerationServices:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
