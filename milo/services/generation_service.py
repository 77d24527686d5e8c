"""
Generation Service - hosted chat-completion API (Anthropic Claude)
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import anthropic

from milo.config import settings

logger = logging.getLogger(__name__)


class MissingAPIKeyError(RuntimeError):
    """ANTHROPIC_API_KEY is not configured on the server"""


class UpstreamServiceError(Exception):
    """The generation API answered with a non-success status"""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Upstream error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


def split_system_messages(messages: List[Dict[str, Any]]) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Convert chat-completion style messages to the Messages API shape:
    system entries become the system parameter, the rest pass through.
    """
    system_parts = []
    turns = []
    for msg in messages:
        role = msg.get("role")
        content = msg.get("content", "")
        if role == "system":
            system_parts.append(content)
        else:
            turns.append({"role": role, "content": content})
    return "\n\n".join(system_parts), turns


class GenerationService:
    """Service for interacting with Anthropic Claude API"""

    def __init__(self):
        """Client is created on first use so a missing key fails per request, not at import"""
        self.client = None

    def _get_client(self):
        if self.client is None:
            self.client = anthropic.Anthropic(api_key=settings.ANTHROPIC_API_KEY)
            logger.info("Anthropic client initialized")
        return self.client

    def generate(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Generate a reply for a conversation

        Args:
            messages: [{"role": "system"|"user"|"assistant", "content": str}, ...]
            model: Model name (defaults to settings.LLM_MODEL)
            temperature: Sampling temperature (defaults to settings.DEFAULT_TEMPERATURE)
            max_tokens: Maximum tokens in response

        Returns:
            Reply text

        Raises:
            MissingAPIKeyError: no API key configured
            UpstreamServiceError: non-2xx response or unreachable API
        """
        if not settings.ANTHROPIC_API_KEY:
            logger.error("Missing Anthropic API Key")
            raise MissingAPIKeyError("Missing Anthropic API Key")

        system_prompt, turns = split_system_messages(messages)

        request = {
            "model": model or settings.LLM_MODEL,
            "max_tokens": max_tokens or settings.LLM_MAX_TOKENS,
            "messages": turns,
            "temperature": settings.DEFAULT_TEMPERATURE if temperature is None else temperature,
        }
        if system_prompt:
            request["system"] = system_prompt

        logger.debug(f"System prompt length: {len(system_prompt)} chars, {len(turns)} turns")

        try:
            response = self._get_client().messages.create(**request)
        except anthropic.APIStatusError as e:
            logger.error(f"Anthropic API error ({e.status_code}): {e.response.text}")
            raise UpstreamServiceError(e.status_code, e.response.text) from e
        except anthropic.APIConnectionError as e:
            logger.error(f"Could not reach Anthropic API: {e}")
            raise UpstreamServiceError(502, str(e)) from e

        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ).strip()

        logger.info(f"Generated response ({len(content)} chars)")
        return content or "No response generated."


# Singleton instance
generation_service = GenerationService()
