"""
VOLT Legal Speech Synthesis
Proxies text-to-speech requests to ElevenLabs so the API key stays server-side
"""

from typing import Optional
import base64
import logging

import requests

from .config import VoltConfig, default_config

logger = logging.getLogger(__name__)


class SpeechSynthesisError(RuntimeError):
    """Speech could not be synthesized"""


def synthesize_speech(text: str,
                      voice_id: str,
                      config: VoltConfig = default_config,
                      session: Optional[requests.Session] = None) -> str:
    """
    Synthesize speech for text with an ElevenLabs voice

    Args:
        text: Text to read aloud
        voice_id: ElevenLabs voice identifier
        config: Configuration holding the API key and voice settings
        session: Optional requests session

    Returns:
        MPEG audio encoded as base64

    Raises:
        SpeechSynthesisError: on missing inputs, missing key or API failure
    """
    if not text or not voice_id:
        raise SpeechSynthesisError("Missing text or voice_id")

    speech = config.speech
    if not speech.api_key:
        raise SpeechSynthesisError("ELEVENLABS_API_KEY environment variable not set.")

    http = session or requests
    url = f"{speech.base_url.rstrip('/')}/text-to-speech/{voice_id}"
    payload = {
        "text": text,
        "model_id": speech.model_id,
        "voice_settings": {
            "stability": speech.stability,
            "similarity_boost": speech.similarity_boost,
        },
    }
    headers = {
        "Accept": "audio/mpeg",
        "Content-Type": "application/json",
        "xi-api-key": speech.api_key,
    }

    try:
        response = http.post(url, json=payload, headers=headers, timeout=speech.timeout)
    except requests.RequestException as e:
        logger.error(f"Error in speech synthesis: {str(e)}")
        raise SpeechSynthesisError(f"ElevenLabs request failed: {e}") from e

    if not response.ok:
        logger.error(f"ElevenLabs API error: {response.status_code}")
        raise SpeechSynthesisError(f"ElevenLabs API error: {response.status_code} - {response.text}")

    logger.info(f"Synthesized {len(response.content)} bytes of audio for {len(text)} characters")
    return base64.b64encode(response.content).decode("ascii")
