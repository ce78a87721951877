"""
ElevenLabs service for voice cloning and speech synthesis.
"""

import logging
from typing import Any

import httpx

from flow.core.config import settings

logger = logging.getLogger(__name__)


class ElevenLabsError(Exception):
    """Non-2xx response from the ElevenLabs API."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"ElevenLabs API error: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class ElevenLabsService:
    """Thin async client for the ElevenLabs REST API."""

    def __init__(self, api_key: str | None = None, base_url: str | None = None) -> None:
        self.api_key = api_key or settings.elevenlabs_api_key
        self.base_url = (base_url or settings.elevenlabs_base_url).rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        if not self.api_key:
            raise ElevenLabsError(503, "ELEVENLABS_API_KEY is not configured")

        headers = {"xi-api-key": self.api_key, **kwargs.pop("headers", {})}
        async with httpx.AsyncClient(timeout=60.0) as client:
            response = await client.request(
                method, f"{self.base_url}{endpoint}", headers=headers, **kwargs
            )

        if response.is_error:
            logger.error("ElevenLabs %s %s failed: %s", method, endpoint, response.status_code)
            raise ElevenLabsError(response.status_code, response.text)
        return response

    async def get_voices(self) -> list[dict]:
        """All voices available to the account."""
        response = await self._request("GET", "/voices")
        return response.json().get("voices", [])

    async def get_voice(self, voice_id: str) -> dict:
        response = await self._request("GET", f"/voices/{voice_id}")
        return response.json()

    async def clone_voice(
        self,
        name: str,
        files: list[tuple[bytes, str | None]],
        description: str | None = None,
    ) -> dict:
        """
        Create an instant voice clone from audio samples.

        ``files`` holds ``(content, content_type)`` pairs; the response
        contains the new ``voice_id``.
        """
        data = {"name": name}
        if description:
            data["description"] = description

        multipart = [
            ("files", (f"sample_{index}.wav", content, content_type or "audio/wav"))
            for index, (content, content_type) in enumerate(files)
        ]
        response = await self._request("POST", "/voices/add", data=data, files=multipart)
        return response.json()

    async def generate_speech(self, text: str, voice_id: str) -> bytes:
        """Synthesize ``text`` in the given voice; returns MP3 bytes."""
        response = await self._request(
            "POST",
            f"/text-to-speech/{voice_id}",
            json={
                "text": text,
                "model_id": settings.elevenlabs_model_id,
                "voice_settings": {
                    "stability": 0.5,
                    "similarity_boost": 0.8,
                    "style": 0.0,
                    "use_speaker_boost": True,
                },
            },
        )
        return response.content

    async def delete_voice(self, voice_id: str) -> None:
        await self._request("DELETE", f"/voices/{voice_id}")

    async def get_user_info(self) -> dict:
        """Subscription and quota details of the API key owner."""
        response = await self._request("GET", "/user")
        return response.json()
