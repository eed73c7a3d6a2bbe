"""
Voice note transcription
"""
import asyncio
import logging
import os
import requests
from typing import Optional

from chad.config import TRANSCRIPTION_MODEL

logger = logging.getLogger(__name__)


class VoiceService:
    """Downloads Telegram voice notes and transcribes them with Whisper"""

    def __init__(self, openai_service, language: str = "en"):
        """Reuses the shared OpenAI client"""
        self.client = openai_service.client
        self.language = language
        logger.info("Voice service initialized")

    async def download_voice_file(self, file_url: str, file_path: str, bot_token: str) -> bool:
        """
        Download a voice file from Telegram
        """
        url = file_url if file_url.startswith("http") else f"https://api.telegram.org/file/bot{bot_token}/{file_url}"
        try:
            response = await asyncio.to_thread(requests.get, url, timeout=30)
        except requests.RequestException as e:
            logger.error(f"Voice file download failed: {e}")
            return False

        if response.status_code != 200:
            logger.error(f"Voice file download failed: HTTP {response.status_code}")
            return False

        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(file_path, 'wb') as f:
            f.write(response.content)
        logger.info(f"Voice file saved: {file_path}")
        return True

    async def transcribe_voice(self, audio_file_path: str) -> Optional[str]:
        """
        Transcribe a voice note to text. Removes the file afterwards.
        """
        try:
            with open(audio_file_path, 'rb') as audio_file:
                transcript = await self.client.audio.transcriptions.create(
                    model=TRANSCRIPTION_MODEL,
                    file=audio_file,
                    language=self.language
                )
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            return None
        finally:
            if os.path.exists(audio_file_path):
                os.remove(audio_file_path)

        text = (transcript.text or "").strip()
        logger.info(f"Transcribed voice note: {text[:50]}...")
        return text or None
