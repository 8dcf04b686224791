"""Text-to-speech for phrases via the OpenAI speech endpoint"""

import base64
import logging
import os
from typing import Dict, Optional

from dotenv import load_dotenv
from flask import current_app, has_app_context

from services.llm_provider_factory import OpenAIProvider

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_TTS_MODEL = "tts-1"
# alloy, echo, fable, onyx, nova, shimmer; the spoken language is detected from the text
DEFAULT_TTS_VOICE = "alloy"


def _setting(name: str, default: str) -> str:
    """App config inside an app context, environment otherwise"""
    if has_app_context():
        return current_app.config.get(name) or default
    return os.getenv(name, default)


def synthesize_speech(
    text: str,
    model: Optional[str] = None,
    voice: Optional[str] = None
) -> Dict[str, str]:
    """
    Convert text to MP3 speech.

    Returns:
        dict: audio (base64 MP3), format ("mp3"), text

    Raises:
        ValueError: If text is empty or OPENAI_API_KEY is missing
        RuntimeError: If the speech request fails
    """
    if not text or not text.strip():
        raise ValueError("No text to convert to audio")

    model = model or _setting("TTS_MODEL", DEFAULT_TTS_MODEL)
    voice = voice or _setting("TTS_VOICE", DEFAULT_TTS_VOICE)

    provider = OpenAIProvider()
    try:
        audio_bytes = provider.create_speech(text.strip(), model=model, voice=voice)
    except Exception as e:
        logger.error(f"Speech synthesis failed: {e}", exc_info=True)
        raise RuntimeError(f"Failed to generate audio: {e}")

    logger.info(f"Synthesized {len(audio_bytes)} bytes of speech with {model}/{voice}")
    return {
        "audio": base64.b64encode(audio_bytes).decode("ascii"),
        "format": "mp3",
        "text": text.strip()
    }
