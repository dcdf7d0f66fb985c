import os
import logging
from typing import List, Optional, Sequence

import requests

from inference.errors import AIServiceError, InferenceError, TranscriptionError
from inference.llm import OpenAICompatibleLLM, get_llm, is_configured
from transcription.audio import audio_mime_type

logger = logging.getLogger(__name__)

SARVAM_API_KEY = os.getenv("SARVAM_AI_API_KEY", "")
SARVAM_API_BASE = os.getenv("SARVAM_API_BASE", "https://api.sarvam.ai").rstrip("/")
SARVAM_TIMEOUT = float(os.getenv("SARVAM_TIMEOUT", "60"))


class SarvamProvider:
    """Regional speech service; speech-to-text with translation to English."""

    name = "sarvam"

    def __init__(self, api_key: str = None, base_url: str = None):
        self.api_key = SARVAM_API_KEY if api_key is None else api_key
        self.base_url = (base_url or SARVAM_API_BASE).rstrip("/")

    def available(self) -> bool:
        return bool(self.api_key)

    def transcribe(self, audio: bytes, filename: str) -> str:
        try:
            r = requests.post(
                f"{self.base_url}/speech-to-text/translate",
                headers={"api-subscription-key": self.api_key},
                files={"file": (filename, audio, audio_mime_type(filename))},
                timeout=SARVAM_TIMEOUT,
            )
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise InferenceError(f"Sarvam STT failed: {e.__class__.__name__}") from e
        if not isinstance(data, dict):
            raise InferenceError(f"Sarvam STT returned {type(data).__name__}, expected an object")
        logger.info("[sarvam] detected language: %s", data.get("language_code"))
        transcript = data.get("transcript")
        return transcript if isinstance(transcript, str) else ""


class WhisperProvider:
    """General-purpose transcription model behind the OpenAI-compatible endpoint."""

    name = "whisper"

    def __init__(self, llm: Optional[OpenAICompatibleLLM] = None):
        self.llm = llm

    def available(self) -> bool:
        return self.llm is not None or is_configured()

    def transcribe(self, audio: bytes, filename: str) -> str:
        llm = self.llm or get_llm()
        return llm.transcribe(audio, filename, audio_mime_type(filename))


def default_providers() -> List:
    return [SarvamProvider(), WhisperProvider()]


def transcribe_with_fallback(providers: Sequence, audio: bytes, filename: str) -> str:
    """First provider to succeed wins; each failure is logged and the next one tried."""
    tried = []
    for p in providers:
        if not p.available():
            logger.info("[transcribe] %s not configured, skipping", p.name)
            continue
        tried.append(p.name)
        try:
            return p.transcribe(audio, filename)
        except AIServiceError as e:
            logger.warning("[transcribe] %s failed: %s", p.name, e)
    if not tried:
        raise TranscriptionError("No transcription service configured.")
    raise TranscriptionError(f"All transcription providers failed: {', '.join(tried)}.")
