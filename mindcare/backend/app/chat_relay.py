"""
Chat relay

Forwards a single user message to Gemini and returns the generated reply.
No conversation state is kept between calls.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gemini-2.5-flash"

SYSTEM_INSTRUCTION = (
    "You are a supportive wellbeing companion for university students. "
    "Reply warmly and briefly. You are not a therapist and do not diagnose. "
    "If the user mentions self-harm or being in danger, encourage them to call "
    "the National Helpline 1800-599-0019 or local emergency services."
)


class ChatRelayError(RuntimeError):
    """The upstream text-generation call failed."""


class ChatRelayUnavailable(ChatRelayError):
    """No API key is configured for the upstream service."""


@dataclass
class ChatRelayConfig:
    api_key: Optional[str] = None
    model: str = field(default_factory=lambda: os.getenv("MINDCARE_CHAT_MODEL", DEFAULT_CHAT_MODEL))
    temperature: float = 0.7
    max_output_tokens: int = 512

    def __post_init__(self):
        if self.api_key is None:
            self.api_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")


class ChatRelay:
    def __init__(self, config: Optional[ChatRelayConfig] = None):
        self.config = config or ChatRelayConfig()
        self._client = None

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    def _get_client(self) -> genai.Client:
        if not self.is_configured:
            raise ChatRelayUnavailable("Chat service is not configured.")
        if self._client is None:
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    def reply(self, message: str) -> str:
        client = self._get_client()
        try:
            response = client.models.generate_content(
                model=self.config.model,
                contents=message,
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_INSTRUCTION,
                    temperature=self.config.temperature,
                    max_output_tokens=self.config.max_output_tokens,
                ),
            )
        except Exception as exc:
            logger.error("Gemini generation failed: %s", exc)
            raise ChatRelayError("Something went wrong") from exc
        text = response.text
        if not text:
            raise ChatRelayError("Empty reply from chat service")
        return text
