import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from app.core.config import OpenAIConfig
from app.core.exceptions import (
    ModelNotConfigured,
    ModelQuotaExceeded,
    ModelTransportError,
    UpstreamTimeout,
)

logger = logging.getLogger(__name__)


class OpenAIAnalysisIntegration:
    """
    Integration class for the review analysis prompts.

    Exposes a single text-in / text-out call. The reply is meant to be JSON
    but callers must still extract and validate it.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        config = OpenAIConfig()
        self.api_key = config.get_api_key()
        self.model = config.get_model()
        self.temperature = config.get_temperature()
        self.max_tokens = config.get_max_tokens()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ModelNotConfigured()
            # Retries are left to the caller; the pipeline never retries a stage.
            self._client = AsyncOpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    def ensure_configured(self) -> None:
        """Fail fast, before a rate-limit slot is spent, when no API key is set."""
        if self._client is None and not self.api_key:
            raise ModelNotConfigured()

    async def generate(
        self,
        prompt: str,
        timeout: float,
        system_prompt: str = "Respond only with valid JSON.",
    ) -> str:
        """
        Send one prompt and return the raw reply text.

        Args:
            prompt: User prompt
            timeout: Seconds before the request is abandoned
            system_prompt: System message for the conversation

        Returns:
            The model's reply, stripped

        Raises:
            ModelNotConfigured: If no API key is set
            ModelQuotaExceeded: On provider throttling or exhausted quota
            UpstreamTimeout: If the request exceeds ``timeout``
            ModelTransportError: For any other provider or network failure
        """
        client = self.client
        logger.info(f"Calling {self.model} (prompt: {len(prompt)} chars, timeout: {timeout:.1f}s)")

        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=timeout,
            )
        except openai.RateLimitError as e:
            raise ModelQuotaExceeded(details=str(e)) from e
        except openai.APITimeoutError as e:
            raise UpstreamTimeout(
                "AI model request timed out", details=f"No reply within {timeout:.1f}s"
            ) from e
        except openai.APIError as e:
            raise ModelTransportError(details=str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()
