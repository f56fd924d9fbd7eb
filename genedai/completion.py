import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from genedai.exceptions import CompletionError, MissingCredentialError

logger = logging.getLogger(__name__)


class CompletionService(ABC):
    """Structured text completion: a prompt in, one JSON object out, or an exception."""

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def complete_json(self, system: str, user: str) -> Dict[str, Any]:
        ...


def parse_json_object(content: Optional[str]) -> Dict[str, Any]:
    # Strict: malformed output fails the call, no brace-hunting recovery.
    if not content or not content.strip():
        raise CompletionError("Completion returned no content.")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise CompletionError(f"Completion returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise CompletionError(f"Completion returned JSON {type(data).__name__}, expected an object.")
    return data


class OpenAICompletionService(CompletionService):
    def __init__(self, openai_api_key: str, model: str, temperature: float = 0.0):
        self.api_key = (openai_api_key or "").strip()
        self.model = model
        self.temperature = temperature
        self._client: Optional[AsyncOpenAI] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> AsyncOpenAI:
        if not self.api_key:
            raise MissingCredentialError("OpenAI API key is missing. Set OPENAI_API_KEY to enable AI analysis.")
        if self._client is None:
            # Retries belong to the caller's transport policy, not the engine.
            self._client = AsyncOpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    async def complete_json(self, system: str, user: str) -> Dict[str, Any]:
        client = self.client
        logger.debug(f"Completion request to {self.model} ({len(system) + len(user)} prompt chars)")
        try:
            resp = await client.chat.completions.create(
                model           = self.model,
                messages        = [
                    {"role": "system", "content": system},
                    {"role": "user",   "content": user},
                ],
                temperature     = self.temperature,
                response_format = {"type": "json_object"},
            )
        except Exception as e:
            raise CompletionError(f"Completion request failed: {e}") from e

        if not resp.choices:
            raise CompletionError("Completion returned no choices.")
        return parse_json_object(resp.choices[0].message.content)
