import asyncio
import logging
import time
from typing import Any, Optional

import httpx
import openai

from textlens.core.config import Settings
from textlens.core.errors import (
    ConfigError,
    UpstreamConnectionError,
    UpstreamHTTPError,
    UpstreamTimeout,
)
from textlens.services.types import CompletionBudget

logger = logging.getLogger(__name__)


class CompletionClient:
    """
    One chat-completion call per analysis, bounded by a wall-clock deadline.

    The deadline is enforced here with ``asyncio.wait_for`` rather than left to
    the SDK, so an expired call is cancelled even if the transport keeps the
    connection open.
    """

    def __init__(self, settings: Settings, client: Optional[Any] = None) -> None:
        self.settings = settings
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.settings.llm_api_key,
                base_url=self.settings.llm_base_url,
                timeout=httpx.Timeout(self.settings.completion_timeout_s, connect=10.0),
                max_retries=0,
            )
        return self._client

    async def complete(self, prompt: str, budget: CompletionBudget) -> str:
        if not self.settings.llm_api_key:
            raise ConfigError("completion service API key is not configured")

        client = self._get_client()
        timeout_s = self.settings.completion_timeout_s
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.settings.llm_model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=budget.temperature,
                    max_tokens=budget.max_tokens,
                    presence_penalty=0,
                    frequency_penalty=0,
                ),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("completion call cancelled after %.1fs deadline", timeout_s)
            raise UpstreamTimeout(timeout_s) from None
        except openai.APITimeoutError as exc:
            raise UpstreamTimeout(timeout_s) from exc
        except openai.APIStatusError as exc:
            logger.warning("completion service returned status=%s", exc.status_code)
            raise UpstreamHTTPError(exc.status_code) from exc
        except openai.APIConnectionError as exc:
            raise UpstreamConnectionError(f"completion service unreachable: {exc}") from exc

        logger.info(
            "completion finished model=%s elapsed_ms=%d",
            self.settings.llm_model,
            int((time.monotonic() - start) * 1000),
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def aclose(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
