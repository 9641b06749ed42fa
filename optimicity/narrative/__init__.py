"""
Narrative - Collaborators that put the simulation into words.

The engine only needs a display string (or nothing) back. It never
depends on a narrator succeeding:
- SilentNarrator is the default
- OllamaNarrator asks a local LLM
- fallback provides deterministic local lines
"""

from .base import Narrator, NarrativeContext, SilentNarrator, Voice, NO_RESPONSE
from .fallback import mayor_fallback, citizen_fallback
from .ollama import OllamaNarrator, clean_response
from .prompts import NarrativePrompts

__all__ = [
    "Narrator",
    "NarrativeContext",
    "SilentNarrator",
    "Voice",
    "NO_RESPONSE",
    "mayor_fallback",
    "citizen_fallback",
    "OllamaNarrator",
    "clean_response",
    "NarrativePrompts",
]
