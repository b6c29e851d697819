"""
OpenRouter Provider - LanguageModel backed by the OpenRouter API

Sends formatted prompts as OpenAI-compatible chat completions.
"""
import os
import logging
import requests
from typing import Any, Dict, List, Optional

from core.messages import Message, Prompt
from core.options import GenerateOptions
from providers.base import LanguageModel

logger = logging.getLogger(__name__)


class OpenRouterError(Exception):
    """Raised when OpenRouter returns an unusable response."""
    pass


class OpenRouterProvider(LanguageModel):
    """
    LLM provider using OpenRouter API

    Supports:
    - Chat completion with per-call GenerateOptions
    - JSON / JSON-schema response formats
    - Usage tracking
    """

    name = "openrouter"

    def __init__(
        self,
        model: str = "xiaomi/mimo-v2-flash:free",
        api_key: Optional[str] = None,
        base_url: str = "https://openrouter.ai/api/v1",
        timeout: float = 60.0
    ):
        """
        Initialize OpenRouter provider

        Args:
            model: Model name (default: xiaomi/mimo-v2-flash:free)
            api_key: OpenRouter API key (or set OPENROUTER_API_KEY env var)
            base_url: API base URL
            timeout: Request timeout in seconds
        """
        self.model = model
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if not self.api_key:
            raise ValueError("OpenRouter API key required. Set OPENROUTER_API_KEY env var or pass api_key parameter.")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def chat(
        self,
        messages: List[Dict[str, str]],
        options: Optional[GenerateOptions] = None
    ) -> Dict[str, Any]:
        """
        Send chat completion request

        Args:
            messages: List of message dicts with 'role' and 'content'
            options: Generation options (defaults when omitted)

        Returns:
            {"content": str, "usage": dict}
        """
        payload: Dict[str, Any] = {"model": self.model, "messages": messages}
        payload.update((options or GenerateOptions()).to_payload())

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        response = requests.post(
            f"{self.base_url}/chat/completions",
            json=payload,
            headers=headers,
            timeout=self.timeout
        )
        if not response.ok:
            logger.error(f"❌ [OpenRouter] HTTP {response.status_code}: {response.text[:500]}")
        response.raise_for_status()

        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            raise OpenRouterError(f"OpenRouter response has no choices: {data}")

        usage = data.get("usage", {})
        logger.debug(f"📊 [OpenRouter] {self.model} usage: {usage}")
        return {
            "content": choices[0].get("message", {}).get("content") or "",
            "usage": usage
        }

    def generate(self, messages: List[Message], options: Optional[GenerateOptions] = None) -> str:
        return self.chat([m.as_dict() for m in messages], options)["content"]

    def complete(self, prompt: Prompt) -> str:
        """Send a formatted Prompt with the options it carries."""
        return self.generate(prompt.messages, prompt.options)
