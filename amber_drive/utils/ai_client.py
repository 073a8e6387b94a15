"""
AI client wrapper for the Groq chat completion API.

Groq exposes an OpenAI-compatible endpoint; the client is fail-fast with a
bounded timeout and no retries.
"""

import json
from decimal import Decimal
from typing import Any, Iterable

import httpx

from amber_drive.config.settings import settings
from amber_drive.exceptions import UpstreamError
from amber_drive.utils.logging import get_logger

logger = get_logger(__name__)


class AIClient:
    """
    Chat completion client for the configured language model.

    Provides methods for:
    - Text generation
    - JSON object generation
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = settings.ai.groq_api_key
        self.base_url = settings.ai.base_url.rstrip("/")
        self.model = settings.ai.model
        self.temperature = settings.ai.temperature
        self.max_tokens = settings.ai.max_tokens
        self.timeout = settings.ai.timeout_seconds
        self._transport = transport

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        json_output: bool = False,
    ) -> str:
        """
        Generate a chat completion.

        Args:
            prompt: User message
            system_prompt: Optional system instructions
            model: Model to use (defaults to config)
            max_tokens: Max output tokens
            temperature: Sampling temperature
            json_output: Ask the provider for a JSON object response

        Returns:
            Content of the first choice

        Raises:
            UpstreamError: On transport errors, non-2xx responses or an
                unexpected response shape
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        request_body: dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
        }

        if json_output:
            request_body["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key.get_secret_value() if self.api_key else ''}",
                        "Content-Type": "application/json",
                    },
                    json=request_body,
                )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("ai_request_rejected", status_code=e.response.status_code)
            raise UpstreamError(
                f"AI API error: {e.response.status_code}",
                upstream_status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("ai_request_failed", error_type=type(e).__name__)
            raise UpstreamError(f"AI API request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise UpstreamError("AI API returned a non-JSON envelope") from e

        try:
            return result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamError("AI API response has no completion content") from e

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
    ) -> dict[str, Any]:
        """
        Generate a completion and parse it as a JSON object.

        Raises:
            UpstreamError: If the call fails or the content is not a JSON object
        """
        content = await self.generate_text(
            prompt=prompt,
            system_prompt=system_prompt,
            json_output=True,
        )
        return parse_json_object(content)


def parse_json_object(content: str) -> dict[str, Any]:
    """Parse model output as a JSON object; the request asks for JSON mode."""
    try:
        parsed = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise UpstreamError(f"Failed to parse JSON from response: {(content or '')[:200]}") from e

    if not isinstance(parsed, dict):
        raise UpstreamError("AI response is not a JSON object")
    return parsed


class AIPromptBuilder:
    """
    Helper class for building structured prompts.
    """

    @staticmethod
    def car_table(cars: Iterable[Any]) -> str:
        """Render cars as `id|name|brand|category|price` rows."""
        return "\n".join(
            f"{c.id}|{c.name}|{c.brand}|{_enum_text(c.category)}|{_price_text(c.default_price)}"
            for c in cars
        )

    @staticmethod
    def car_search_prompt(car_table: str) -> str:
        """Build system instructions for natural-language car selection."""
        return f"""You are a car selection assistant for Amber Drive luxury car rental.
Available cars (ID|Name|Brand|Category|Price):
{car_table}

Based on the user's request, return a JSON object with "car_ids" array containing the IDs of matching cars.
Only return cars that match. If unsure, return the closest matches.
Return ONLY valid JSON: {{"car_ids": [1, 2, 3]}}"""


def _enum_text(value: Any) -> str:
    return getattr(value, "value", value)


def _price_text(value: Any) -> str:
    # 1200.00 -> "1200", 99.50 -> "99.5"
    return format(Decimal(str(value or 0)).normalize(), "f")


# Global AI client instance
ai_client = AIClient()
prompt_builder = AIPromptBuilder()
