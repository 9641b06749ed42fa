"""
Ollama narrator - a local LLM as the narrative collaborator.

Posts to an Ollama /api/generate endpoint. The HTTP call is blocking, so
it runs in a worker thread; the event loop keeps ticking meanwhile.
Errors propagate to the caller, which falls back to local text.
"""

from __future__ import annotations
import asyncio
import re

import requests

from ..config import NarrativeConfig
from .base import Narrator, NarrativeContext, Voice, NO_RESPONSE
from .prompts import NarrativePrompts


def clean_response(text: str, max_length: int = 1000) -> str:
    """Trim, strip wrapping quotes, collapse whitespace, truncate."""
    text = text.strip()
    text = re.sub(r'^"|"$', "", text)
    text = re.sub(r"\s+", " ", text)
    return text[:max_length]


class OllamaNarrator(Narrator):
    """One voice (Mayor or citizens) backed by an Ollama model."""

    def __init__(
        self,
        voice: Voice,
        config: NarrativeConfig | None = None,
        session: requests.Session | None = None,
    ):
        self.voice = voice
        self.config = config or NarrativeConfig()
        self.http = session or requests.Session()

    def build_prompt(
        self,
        action_description: str,
        target_name: str,
        context: NarrativeContext,
    ) -> str:
        if self.voice is Voice.MAYOR:
            return NarrativePrompts.mayor(action_description, target_name, context)
        return NarrativePrompts.citizens(action_description, target_name, context)

    async def respond(
        self,
        action_description: str,
        target_name: str,
        action_kind: str,
        context: NarrativeContext,
    ) -> str | None:
        prompt = self.build_prompt(action_description, target_name, context)
        return await asyncio.to_thread(self._generate, prompt)

    def _generate(self, prompt: str) -> str | None:
        payload = {
            "model": self.config.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": float(self.config.temperatures.get(self.voice.value, 0.5)),
                "num_predict": int(self.config.max_length),
                "top_p": 0.9,
            },
        }
        r = self.http.post(
            self.config.endpoint,
            json=payload,
            timeout=(3, max(4, self.config.timeout_seconds)),
        )
        r.raise_for_status()
        out = clean_response(r.json().get("response") or "", self.config.max_length)
        return out or NO_RESPONSE
