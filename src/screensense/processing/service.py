"""OpenAI-compatible analysis service client."""

from __future__ import annotations

import base64
from typing import Protocol

import structlog
from openai import AsyncOpenAI

from ..config import AnalysisConfig

log = structlog.get_logger()


class AnalysisService(Protocol):
    async def complete(
        self,
        prompt: str,
        system_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        image: tuple[bytes, str] | None = None,
    ) -> str:
        ...


class OpenAIAnalysisService:
    """Chat-completions client. ``image`` is (bytes, mime type) when attached."""

    def __init__(self, config: AnalysisConfig) -> None:
        self.config = config
        self.client = AsyncOpenAI(
            base_url=config.api_base,
            api_key=config.api_key or "unused",
        )
        self.model = config.model

    async def complete(
        self,
        prompt: str,
        system_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        image: tuple[bytes, str] | None = None,
    ) -> str:
        if image is not None:
            data, mime_type = image
            encoded = base64.b64encode(data).decode()
            user_content: str | list[dict] = [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}},
            ]
        else:
            user_content = prompt

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        content = response.choices[0].message.content or ""
        log.debug("analysis_response", model=self.model, chars=len(content))
        return content
