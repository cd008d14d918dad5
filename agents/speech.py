"""Optional speech side channel: text-to-speech for transcript messages.

Nothing in the turn engine depends on audio; the session only awaits
synthesis when audio is switched on and treats every failure as advisory.
"""

from __future__ import annotations

import logging
import os
import wave
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Gemini TTS returns raw 16-bit mono PCM at 24 kHz.
PCM_SAMPLE_RATE = 24_000
PCM_SAMPLE_WIDTH = 2


class SpeechSynthesizer(ABC):
    """Interface for a text-to-speech backend."""

    name: str

    @abstractmethod
    async def synthesize(self, text: str, voice_id: str) -> bytes:
        """Return audio bytes for *text* spoken with *voice_id*."""
        ...


class GeminiSpeechSynthesizer(SpeechSynthesizer):
    """Gemini TTS via the ``google-genai`` client."""

    name = "gemini-tts"

    def __init__(
        self,
        model: str = "gemini-2.5-flash-preview-tts",
        api_key: str | None = None,
        api_key_env: str = "GEMINI_API_KEY",
    ) -> None:
        self.model = model
        self.api_key = api_key or os.getenv(api_key_env)
        if not self.api_key:
            raise ValueError(
                f"No API key for {self.name}. "
                f"Set {api_key_env!r} or pass api_key explicitly."
            )
        from google import genai
        from google.genai import types as genai_types

        self._types = genai_types
        self._client = genai.Client(api_key=self.api_key)

    async def synthesize(self, text: str, voice_id: str) -> bytes:
        types = self._types
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice_id),
                    ),
                ),
            ),
        )
        parts: list[Any] = []
        if response.candidates and response.candidates[0].content:
            parts = response.candidates[0].content.parts or []
        for part in parts:
            if part.inline_data and part.inline_data.data:
                return part.inline_data.data
        raise RuntimeError(f"[{self.name}] Response contained no audio")


def write_wav(path: str | Path, pcm: bytes, sample_rate: int = PCM_SAMPLE_RATE) -> Path:
    """Wrap raw mono PCM in a WAV container."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(PCM_SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    logger.debug("Saved %s", path)
    return path
